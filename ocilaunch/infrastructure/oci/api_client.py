"""Client for the OCI compute and identity control plane.

Builds request URLs and bodies, signs them with RequestSigner, sends them
through an HttpTransport and turns failures into typed errors. Instance
creation is additionally gated by a TooManyRequestsWaiter, which is armed
whenever the provider answers with a rate-limit error.
"""

import json
import logging
import time
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional
from urllib.parse import urlencode

# Domain Layer Imports
from ocilaunch.core.exceptions import ApiCallError, RateLimitedError, SerializationError
from ocilaunch.domain.events.api_events import (
    ApiCallDeferred,
    ApiCallFailed,
    ApiCallInitiated,
    ApiCallSucceeded,
    DomainEvent,
    WaiterArmed,
)
from ocilaunch.domain.interfaces.cache import CacheService, NullCache
from ocilaunch.domain.interfaces.config import OciConfigProvider
from ocilaunch.domain.interfaces.transport import DEFAULT_TIMEOUT_SECONDS, HttpTransport
from ocilaunch.domain.interfaces.waiter import NullWaiter, TooManyRequestsWaiter
from ocilaunch.domain.models.common import (
    AvailabilityDomain,
    CacheKey,
    HttpMethod,
    Identity,
    InstanceRecord,
    ShapeName,
)

# Infrastructure Layer Imports
from ocilaunch.infrastructure.signing.request_signer import DEFAULT_CONTENT_TYPE, RequestSigner

logger = logging.getLogger(__name__)

API_VERSION = "20160918"
COMPUTE_API = "iaas"
IDENTITY_API = "identity"

AVAILABILITY_DOMAINS_CACHE_KEY = CacheKey("getAvailabilityDomains")
TOO_MANY_REQUESTS_STATUS = 429
TOO_MANY_REQUESTS_MARKER = "TooManyRequests"
FLEX_SHAPE_SUFFIX = ".Flex"


def is_flexible_shape(shape: str) -> bool:
    """Flexible shapes take an explicit OCPU/memory shapeConfig."""
    return shape.endswith(FLEX_SHAPE_SUFFIX)


def is_rate_limited(error: ApiCallError) -> bool:
    """Classifies an API failure as provider rate limiting.

    The 429 status is authoritative; the body marker catches responses where
    the provider reports TooManyRequests under another status.
    """
    return error.status_code == TOO_MANY_REQUESTS_STATUS or TOO_MANY_REQUESTS_MARKER in error.body


def base_api_url(region: str, api: str = COMPUTE_API) -> str:
    return f"https://{api}.{region}.oraclecloud.com/{API_VERSION}"


class OciApiClient:
    """Signed calls to the OCI REST API, with admission backoff on creation."""

    def __init__(
        self,
        transport: HttpTransport,
        cache: Optional[CacheService] = None,
        waiter: Optional[TooManyRequestsWaiter] = None,
        cache_availability_domains: bool = False,
        signer_factory: Callable[[Identity], RequestSigner] = RequestSigner,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        """Initializes the client.

        Args:
            transport: Sends the signed HTTP requests.
            cache: Optional cache for availability-domain lookups.
            waiter: Optional rate-limit waiter gating instance creation.
            cache_availability_domains: Whether to use the cache at all.
            signer_factory: Builds a RequestSigner for an identity.
            timeout: Per-request timeout in seconds.
        """
        self.transport = transport
        self.cache = cache or NullCache()
        self.waiter = waiter or NullWaiter()
        self.cache_availability_domains = cache_availability_domains
        self.signer_factory = signer_factory
        self.timeout = timeout
        self._signers: Dict[Identity, RequestSigner] = {}

    def _dispatch_event(self, event: DomainEvent) -> None:
        logger.debug(f"EVENT: {event}")

    def _signer_for(self, identity: Identity) -> RequestSigner:
        signer = self._signers.get(identity)
        if signer is None:
            signer = self.signer_factory(identity)
            self._signers[identity] = signer
        return signer

    # --- Operations ---

    def create_instance(
        self,
        config: OciConfigProvider,
        shape: ShapeName,
        ssh_key: str,
        availability_domain: str,
    ) -> InstanceRecord:
        """Launches one instance.

        Args:
            config: Account, networking and boot source settings.
            shape: Shape to launch, e.g. 'VM.Standard.A1.Flex'.
            ssh_key: Public key authorized for the default user.
            availability_domain: Availability domain name.

        Returns:
            The instance record returned by the provider.

        Raises:
            RateLimitedError: If the waiter is cooling down, or the provider
                answered with a rate-limit error and the waiter was armed.
            ApiCallError: For any other non-2xx response.
        """
        endpoint = "create_instance"
        if self.waiter.is_configured():
            if self.waiter.is_too_early():
                seconds = self.waiter.seconds_remaining()
                self._dispatch_event(ApiCallDeferred(endpoint=endpoint, wait_time_seconds=seconds))
                raise RateLimitedError(f"Will retry after {seconds} seconds", seconds_remaining=seconds)

            self.waiter.remove()

        body = self.build_launch_payload(config, shape, ssh_key, availability_domain)
        url = f"{base_api_url(config.region)}/instances/"

        try:
            return self.call(config, url, "POST", json.dumps(body))
        except ApiCallError as e:
            if not is_rate_limited(e) or not self.waiter.is_configured():
                raise

            self.waiter.enable()
            self._dispatch_event(WaiterArmed(endpoint=endpoint, status_code=e.status_code, reason=e.body))
            raise RateLimitedError(
                str(e), seconds_remaining=self.waiter.seconds_remaining()
            ) from e

    def build_launch_payload(
        self,
        config: OciConfigProvider,
        shape: ShapeName,
        ssh_key: str,
        availability_domain: str,
    ) -> Dict[str, Any]:
        """Builds the LaunchInstanceDetails JSON object."""
        display_name = "instance-" + datetime.now().strftime("%Y%m%d-%H%M")

        payload: Dict[str, Any] = {
            "metadata": {
                "ssh_authorized_keys": ssh_key,
            },
            "shape": shape,
            "compartmentId": config.tenancy_id,
            "displayName": display_name,
            "availabilityDomain": availability_domain,
            "sourceDetails": config.get_source_details(),
            "createVnicDetails": {
                "assignPublicIp": False,
                "subnetId": config.subnet_id,
                "assignPrivateDnsRecord": True,
            },
            "agentConfig": {
                "pluginsConfig": [
                    {
                        "name": "Compute Instance Monitoring",
                        "desiredState": "ENABLED",
                    }
                ],
                "isMonitoringDisabled": False,
                "isManagementDisabled": False,
            },
            "definedTags": {},
            "freeformTags": {},
            "instanceOptions": {
                "areLegacyImdsEndpointsDisabled": False,
            },
            "availabilityConfig": {
                "recoveryAction": "RESTORE_INSTANCE",
            },
        }

        if is_flexible_shape(shape):
            sizing = config.shape_sizing
            payload["shapeConfig"] = {
                "ocpus": sizing.ocpus,
                "memoryInGBs": sizing.memory_in_gbs,
            }
        return payload

    def get_instances(self, config: OciConfigProvider) -> List[InstanceRecord]:
        """Lists instances in the tenancy's root compartment (first page only)."""
        url = f"{base_api_url(config.region)}/instances/"
        return self.call(config, url, "GET", params={"compartmentId": config.tenancy_id})

    def get_availability_domains(self, config: OciConfigProvider) -> List[AvailabilityDomain]:
        """Lists availability domains, memoized when caching is enabled."""
        use_cache = self.cache_availability_domains
        if use_cache:
            cached = self.cache.get(AVAILABILITY_DOMAINS_CACHE_KEY)
            if cached:
                logger.debug("Using cached availability domains.")
                return cached

        url = f"{base_api_url(config.region, IDENTITY_API)}/availabilityDomains/"
        data = self.call(config, url, "GET", params={"compartmentId": config.tenancy_id})

        if use_cache:
            self.cache.add(data, AVAILABILITY_DOMAINS_CACHE_KEY)
        return data

    def call(
        self,
        config: OciConfigProvider,
        base_url: str,
        method: str = "GET",
        body: Optional[str] = None,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        """Performs one signed request and returns the parsed JSON body.

        Args:
            config: Supplies the signing identity.
            base_url: Endpoint URL without query string.
            method: HTTP method.
            body: JSON request body, if any.
            params: Query parameters.

        Returns:
            The decoded JSON response.

        Raises:
            KeyNotFoundError, SigningError: If the request cannot be signed.
            TransportError: On network failures.
            ApiCallError: On non-2xx responses; the message embeds the body.
            SerializationError: If the response body is not valid JSON.
        """
        url = base_url
        if params:
            url = f"{base_url}?{urlencode(params)}"

        method = HttpMethod(method.upper())
        payload = body.encode("utf-8") if body else None
        headers = self._signer_for(config.identity).sign(url, method, payload, DEFAULT_CONTENT_TYPE)

        self._dispatch_event(ApiCallInitiated(method=method, url=url))
        start_time = time.perf_counter()
        response = self.transport.request(method, url, headers, payload, timeout=self.timeout)
        latency_ms = (time.perf_counter() - start_time) * 1000

        if not response.ok:
            logger.warning(f"{method} {url} returned {response.status_code}")
            self._dispatch_event(ApiCallFailed(
                method=method, url=url, status_code=response.status_code, error_message=response.text,
            ))
            raise ApiCallError(response.status_code, response.text)

        self._dispatch_event(ApiCallSucceeded(
            method=method, url=url, status_code=response.status_code, latency_ms=latency_ms,
        ))
        try:
            return json.loads(response.text)
        except json.JSONDecodeError as e:
            raise SerializationError(f"Invalid JSON from {method} {url}: {e}") from e
