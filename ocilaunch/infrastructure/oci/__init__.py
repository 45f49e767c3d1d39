"""OCI control-plane client."""
