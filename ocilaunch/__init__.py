"""ocilaunch: signed OCI compute client with capacity admission and rate-limit backoff."""

__version__ = "0.1.0"
