"""Exception hierarchy for ocilaunch.

Every error raised by the client derives from OciLaunchError so the CLI
layer can report it in one place. Nothing here is retried automatically;
callers decide what to do with each type.
"""

from typing import Optional


class OciLaunchError(Exception):
    """Base exception for all ocilaunch operations."""
    pass


class ConfigurationError(OciLaunchError):
    """Raised when required configuration is missing or invalid. Not retryable."""
    pass


class KeyNotFoundError(ConfigurationError):
    """Raised when the API signing private key cannot be located or read."""
    pass


class SigningError(OciLaunchError):
    """Raised when a request signature cannot be produced.

    Covers keys that do not parse as an RSA private key as well as failures
    of the signing operation itself.
    """
    pass


class TransportError(OciLaunchError):
    """Raised on network-level failures (connection errors, timeouts)."""
    pass


class ApiCallError(OciLaunchError):
    """Raised when the provider answers with a non-2xx status.

    The raw response body is kept so callers can match on provider error
    codes such as 'TooManyRequests' or 'Out of host capacity'.
    """

    def __init__(self, status_code: int, body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(f"API call failed with status {status_code}: {body}")


class RateLimitedError(OciLaunchError):
    """Raised when creation is refused because of provider rate limiting.

    Either the waiter is still cooling down (seconds_remaining is set), or a
    429 response has just armed it.
    """

    def __init__(self, message: str, seconds_remaining: Optional[int] = None):
        self.seconds_remaining = seconds_remaining
        super().__init__(message)


class SerializationError(OciLaunchError):
    """Raised when a response body is not the JSON we expected."""
    pass
