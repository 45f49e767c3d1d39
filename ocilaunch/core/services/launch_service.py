"""Core service for the instance launch workflow.

Lists existing instances, runs the capacity policy, resolves the
availability domains to try, and asks the API client to create an instance
in each domain until one succeeds.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

# Core Imports
from ocilaunch.core.exceptions import ApiCallError
from ocilaunch.core.services.capacity_policy import AdmissionDecision, CapacityPolicy

# Domain Layer Imports
from ocilaunch.domain.interfaces.config import OciConfigProvider
from ocilaunch.domain.models.common import InstanceRecord, ShapeName

# Infrastructure Layer Imports (implementation injected)
from ocilaunch.infrastructure.oci.api_client import OciApiClient

logger = logging.getLogger(__name__)

STATUS_CREATED = "created"
STATUS_SKIPPED = "skipped"


@dataclass
class LaunchResult:
    """What a launch attempt ended with."""
    status: str
    instance: Optional[InstanceRecord] = None
    availability_domain: Optional[str] = None
    reason: str = ""
    failed_domains: List[str] = field(default_factory=list)


class LaunchService:
    """Orchestrates admission and creation of a single instance."""

    def __init__(self, api_client: OciApiClient, capacity_policy: CapacityPolicy):
        self.api_client = api_client
        self.capacity_policy = capacity_policy

    def check(
        self,
        config: OciConfigProvider,
        shape: ShapeName,
        max_instances: int,
    ) -> AdmissionDecision:
        """Runs the admission policy against the live instance list."""
        instances = self.api_client.get_instances(config)
        return self.capacity_policy.check_admission(
            instances, shape, config.shape_sizing, max_instances, user_id=config.user_id,
        )

    def resolve_availability_domains(
        self,
        config: OciConfigProvider,
        configured: Optional[List[str]] = None,
    ) -> List[str]:
        """Configured domains win; otherwise every domain of the region."""
        if configured:
            return list(configured)
        domains = self.api_client.get_availability_domains(config)
        return [d["name"] for d in domains if d.get("name")]

    def launch(
        self,
        config: OciConfigProvider,
        shape: ShapeName,
        ssh_key: str,
        max_instances: int,
        availability_domains: Optional[List[str]] = None,
    ) -> LaunchResult:
        """Creates one instance if the admission policy allows it.

        Returns:
            A LaunchResult with status 'created' or 'skipped'.

        Raises:
            RateLimitedError: As soon as the provider (or waiter) rate limits.
            ApiCallError: The last failure when every domain refused.
        """
        decision = self.check(config, shape, max_instances)
        if not decision.admitted:
            return LaunchResult(status=STATUS_SKIPPED, reason=decision.rejection_reason)

        domains = self.resolve_availability_domains(config, availability_domains)
        if not domains:
            return LaunchResult(status=STATUS_SKIPPED, reason="No availability domains found.")

        failed: List[str] = []
        last_error: Optional[ApiCallError] = None
        for domain in domains:
            logger.info(f"Trying to create {shape} in {domain}")
            try:
                instance = self.api_client.create_instance(config, shape, ssh_key, domain)
            except ApiCallError as e:
                # e.g. 500 "Out of host capacity": move on to the next domain
                logger.warning(f"Creation in {domain} failed: {e}")
                failed.append(domain)
                last_error = e
                continue

            logger.info(f"Created instance {instance.get('displayName')} in {domain}")
            return LaunchResult(
                status=STATUS_CREATED,
                instance=instance,
                availability_domain=domain,
                failed_domains=failed,
            )

        raise last_error
