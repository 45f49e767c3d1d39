"""HTTP transport backed by `requests`.

Sends already-signed requests. Redirects are followed at most once and
every call is bounded by a timeout; network failures surface as
TransportError.
"""

import logging
from typing import Mapping, Optional

import requests

from ocilaunch.core.exceptions import TransportError
from ocilaunch.domain.interfaces.transport import DEFAULT_TIMEOUT_SECONDS, HttpResponse, HttpTransport
from ocilaunch.domain.models.common import HttpMethod

logger = logging.getLogger(__name__)

MAX_REDIRECTS = 1


class RequestsTransport(HttpTransport):
    """Concrete HttpTransport using a shared requests.Session."""

    def __init__(self, session: Optional[requests.Session] = None, max_redirects: int = MAX_REDIRECTS):
        self.session = session or requests.Session()
        self.session.max_redirects = max_redirects

    def request(
        self,
        method: HttpMethod,
        url: str,
        headers: Mapping[str, str],
        body: Optional[bytes] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> HttpResponse:
        logger.debug(f"HTTP {method} {url} (timeout={timeout}s)")
        try:
            response = self.session.request(
                method,
                url,
                headers=dict(headers),
                data=body,
                timeout=timeout,
                allow_redirects=True,
            )
        except requests.RequestException as e:
            logger.error(f"HTTP {method} {url} failed: {e}")
            raise TransportError(f"{method} {url} failed: {e}") from e

        return HttpResponse(status_code=response.status_code, text=response.text)
