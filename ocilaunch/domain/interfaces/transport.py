"""Interface for the raw HTTP transport.

The API client builds and signs requests; a transport only has to send
bytes and hand back the status code and body text.
"""

import abc
from dataclasses import dataclass
from typing import Mapping, Optional

from ocilaunch.domain.models.common import HttpMethod

DEFAULT_TIMEOUT_SECONDS = 10


@dataclass
class HttpResponse:
    """Status and raw body of a completed HTTP exchange."""
    status_code: int
    text: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class HttpTransport(abc.ABC):
    """Abstract Base Class for sending HTTP requests."""

    @abc.abstractmethod
    def request(
        self,
        method: HttpMethod,
        url: str,
        headers: Mapping[str, str],
        body: Optional[bytes] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> HttpResponse:
        """Sends a single request and blocks until a response arrives.

        Args:
            method: HTTP method.
            url: Absolute URL, query string included.
            headers: Headers to send verbatim.
            body: Optional request body.
            timeout: Seconds before giving up.

        Returns:
            The HttpResponse, whatever its status code.

        Raises:
            TransportError: On connection failures or timeouts.
        """
        pass
