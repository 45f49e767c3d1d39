"""Request signing for the OCI REST API."""
