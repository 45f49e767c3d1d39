"""OCI request signing (HTTP Signatures, version 1).

Every call to the control plane must carry an Authorization header built
from a canonical "signing string". The provider rebuilds the same string
from the headers it receives, so the header names, their order and their
values have to match exactly or the call is rejected with a 401.

Signing string layout (lines joined with '\\n')::

    (request-target): post /20160918/instances/
    date: Sun, 18 Oct 2026 10:00:00 GMT
    host: iaas.eu-frankfurt-1.oraclecloud.com
    x-content-sha256: <base64 sha256 of body>     # POST/PUT/PATCH only
    content-type: application/json                # POST/PUT/PATCH only
    content-length: 123                           # POST/PUT/PATCH only
"""

import base64
import hashlib
import logging
import time
from email.utils import formatdate
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple, Union
from urllib.parse import urlsplit

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from ocilaunch.core.exceptions import KeyNotFoundError, SigningError
from ocilaunch.domain.models.common import Identity

logger = logging.getLogger(__name__)

SIGNATURE_VERSION = "1"
SIGNATURE_ALGORITHM = "rsa-sha256"
DEFAULT_CONTENT_TYPE = "application/json"
BODY_METHODS = frozenset({"post", "put", "patch"})

# Ordered (name, value) pairs; order is part of the signature
SignedHeaders = List[Tuple[str, str]]


def content_sha256(body: bytes) -> str:
    """Base64 encoded SHA-256 digest of the raw body bytes."""
    return base64.b64encode(hashlib.sha256(body).digest()).decode("ascii")


def build_signing_string(signed_headers: SignedHeaders) -> str:
    """Joins the (name, value) pairs into the canonical signing string."""
    return "\n".join(f"{name}: {value}" for name, value in signed_headers)


class RequestSigner:
    """Produces the authentication headers for one OCI identity.

    The private key is read and validated on first use and then kept for
    the lifetime of the signer.
    """

    def __init__(self, identity: Identity, clock: Callable[[], float] = time.time):
        """Initializes the signer.

        Args:
            identity: Tenancy, user, key fingerprint and private key location.
            clock: Returns the current epoch time; injectable for tests.
        """
        self.identity = identity
        self.clock = clock
        self._private_key: Optional[rsa.RSAPrivateKey] = None

    @property
    def private_key(self) -> rsa.RSAPrivateKey:
        if self._private_key is None:
            self._private_key = self._load_private_key()
        return self._private_key

    def _load_private_key(self) -> rsa.RSAPrivateKey:
        """Reads the PEM key file and checks that it holds an RSA private key.

        Raises:
            KeyNotFoundError: If the file does not exist or cannot be read.
            SigningError: If the content is not a usable RSA private key.
        """
        key_path = Path(self.identity.private_key_path).expanduser()
        try:
            pem_data = key_path.read_bytes()
        except OSError as e:
            raise KeyNotFoundError(f"Private key file not found or unreadable: {key_path} ({e})") from e

        passphrase = self.identity.private_key_passphrase
        password = passphrase.encode("utf-8") if passphrase else None
        try:
            key = serialization.load_pem_private_key(pem_data, password=password)
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise SigningError(f"Private key {key_path} could not be loaded: {e}") from e

        if not isinstance(key, rsa.RSAPrivateKey):
            raise SigningError(f"Private key {key_path} is not an RSA private key ({type(key).__name__}).")

        logger.debug(f"Loaded {key.key_size}-bit RSA signing key from {key_path}")
        return key

    def signed_headers(
        self,
        url: str,
        method: str,
        body: Optional[bytes] = None,
        content_type: str = DEFAULT_CONTENT_TYPE,
    ) -> SignedHeaders:
        """Returns the ordered pseudo-headers that go into the signing string."""
        parts = urlsplit(url)
        target = parts.path or "/"
        if parts.query:
            target = f"{target}?{parts.query}"

        method_lower = method.lower()
        pairs: SignedHeaders = [
            ("(request-target)", f"{method_lower} {target}"),
            ("date", formatdate(self.clock(), usegmt=True)),
            ("host", parts.netloc),
        ]

        if method_lower in BODY_METHODS:
            payload = body or b""
            pairs.extend([
                ("x-content-sha256", content_sha256(payload)),
                ("content-type", content_type),
                ("content-length", str(len(payload))),
            ])
        return pairs

    def sign(
        self,
        url: str,
        method: str,
        body: Optional[Union[bytes, str]] = None,
        content_type: str = DEFAULT_CONTENT_TYPE,
    ) -> Dict[str, str]:
        """Builds every header needed to authenticate one request.

        Args:
            url: Absolute request URL, query string included.
            method: HTTP method (any case).
            body: Raw request body, if any.
            content_type: Content type of the body.

        Returns:
            Ordered header mapping: date, host, body headers (POST/PUT/PATCH),
            content-type and Authorization.

        Raises:
            KeyNotFoundError: If the private key cannot be read.
            SigningError: If the key is invalid or signing fails.
        """
        if isinstance(body, str):
            body = body.encode("utf-8")

        pairs = self.signed_headers(url, method, body, content_type)
        signing_string = build_signing_string(pairs)

        try:
            raw_signature = self.private_key.sign(
                signing_string.encode("utf-8"),
                padding.PKCS1v15(),
                hashes.SHA256(),
            )
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise SigningError(f"Failed to sign request: {e}") from e

        signature = base64.b64encode(raw_signature).decode("ascii")
        header_names = " ".join(name for name, _ in pairs)
        authorization = (
            f'Signature version="{SIGNATURE_VERSION}",'
            f'keyId="{self.identity.key_id}",'
            f'algorithm="{SIGNATURE_ALGORITHM}",'
            f'headers="{header_names}",'
            f'signature="{signature}"'
        )

        # (request-target) is a pseudo-header and is never sent
        headers: Dict[str, str] = {name: value for name, value in pairs if name != "(request-target)"}
        headers.setdefault("content-type", content_type)
        headers["Authorization"] = authorization
        logger.debug(f"Signed {method.upper()} {url} with headers: {header_names}")
        return headers
