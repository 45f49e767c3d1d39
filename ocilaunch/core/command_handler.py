"""Command Handler: Orchestrates CLI command execution.

Receives commands from the main entry point (main.py) and delegates the
work to the LaunchService and the API client. Errors raised by the client
are reported through the UserInterface and mapped to exit codes.
"""

import logging
from typing import Optional

# Core Imports
from ocilaunch.core.exceptions import OciLaunchError, RateLimitedError
from ocilaunch.core.services.launch_service import STATUS_CREATED, LaunchService

# Domain Layer Imports
from ocilaunch.domain.interfaces.config import OciConfigProvider
from ocilaunch.domain.interfaces.user_interface import UserInterface
from ocilaunch.domain.interfaces.waiter import TooManyRequestsWaiter
from ocilaunch.domain.models.common import ShapeName

# Infrastructure Layer Imports
from ocilaunch.infrastructure.config.settings import LaunchSettings
from ocilaunch.infrastructure.oci.api_client import OciApiClient

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_RATE_LIMITED = 75  # EX_TEMPFAIL: try again later


class CommandHandler:
    """Handles incoming commands and delegates to appropriate services."""

    def __init__(
        self,
        launch_service: LaunchService,
        api_client: OciApiClient,
        waiter: TooManyRequestsWaiter,
        config: OciConfigProvider,
        settings: LaunchSettings,
        ui: UserInterface,
    ):
        """Initializes the CommandHandler with required services."""
        self.launch_service = launch_service
        self.api_client = api_client
        self.waiter = waiter
        self.config = config
        self.settings = settings
        self.ui = ui

    def _report_error(self, command: str, error: OciLaunchError) -> int:
        if isinstance(error, RateLimitedError):
            logger.warning(f"'{command}' rate limited: {error}")
            self.ui.display_warning(f"Rate limited by OCI: {error}")
            return EXIT_RATE_LIMITED
        logger.error(f"'{command}' failed: {error}", exc_info=True)
        self.ui.display_error(f"{command} failed: {error}")
        return EXIT_ERROR

    def handle_launch(
        self,
        shape: Optional[str] = None,
        max_instances: Optional[int] = None,
        ssh_key: Optional[str] = None,
    ) -> int:
        """Handles the 'launch' command."""
        shape = ShapeName(shape or self.settings.shape)
        max_instances = max_instances if max_instances is not None else self.settings.max_instances
        ssh_key = ssh_key or self.settings.ssh_public_key
        if not ssh_key:
            self.ui.display_error("No SSH public key configured (OCI_SSH_PUBLIC_KEY or --ssh-key).")
            return EXIT_ERROR

        logger.info(f"Handling 'launch' for shape {shape} (max {max_instances})")
        try:
            result = self.launch_service.launch(
                self.config, shape, ssh_key, max_instances, self.settings.availability_domains,
            )
        except OciLaunchError as e:
            return self._report_error("Launch", e)

        if result.status == STATUS_CREATED:
            instance = result.instance or {}
            self.ui.display_output(
                f"Created {instance.get('displayName')} ({instance.get('id')}) "
                f"in {result.availability_domain}, state {instance.get('lifecycleState')}",
                title="Instance created",
            )
        else:
            self.ui.display_info(f"Launch skipped: {result.reason}")
        return EXIT_OK

    def handle_check(self, shape: Optional[str] = None, max_instances: Optional[int] = None) -> int:
        """Handles the 'check' command: admission only, nothing is created."""
        shape = ShapeName(shape or self.settings.shape)
        max_instances = max_instances if max_instances is not None else self.settings.max_instances
        try:
            decision = self.launch_service.check(self.config, shape, max_instances)
        except OciLaunchError as e:
            return self._report_error("Check", e)

        if decision.admitted:
            self.ui.display_info(
                f"A new {shape} instance would be admitted "
                f"({len(decision.matching_instances)} existing)."
            )
        else:
            self.ui.display_warning(decision.rejection_reason)
        return EXIT_OK

    def handle_list_instances(self) -> int:
        """Handles the 'instances' command."""
        try:
            instances = self.api_client.get_instances(self.config)
        except OciLaunchError as e:
            return self._report_error("Listing instances", e)

        rows = []
        for instance in instances:
            shape_config = instance.get("shapeConfig") or {}
            rows.append([
                instance.get("displayName"),
                instance.get("shape"),
                instance.get("lifecycleState"),
                shape_config.get("ocpus"),
                shape_config.get("memoryInGBs"),
                instance.get("availabilityDomain"),
            ])
        self.ui.display_table(
            "Instances",
            ["Name", "Shape", "State", "OCPUs", "Memory (GB)", "Availability domain"],
            rows,
        )
        return EXIT_OK

    def handle_availability_domains(self) -> int:
        """Handles the 'availability-domains' command."""
        try:
            domains = self.api_client.get_availability_domains(self.config)
        except OciLaunchError as e:
            return self._report_error("Listing availability domains", e)

        self.ui.display_table(
            "Availability domains",
            ["Name", "Id"],
            [[d.get("name"), d.get("id")] for d in domains],
        )
        return EXIT_OK

    def handle_waiter_status(self) -> int:
        """Handles the 'waiter-status' command."""
        if not self.waiter.is_configured():
            self.ui.display_info("Too-many-requests waiter is disabled (TOO_MANY_REQUESTS_TIME_WAIT=0).")
        elif self.waiter.is_too_early():
            self.ui.display_warning(f"Cooling down: next attempt in {self.waiter.seconds_remaining()} seconds.")
        else:
            self.ui.display_info("No cooldown in effect.")
        return EXIT_OK

    def handle_waiter_reset(self) -> int:
        """Handles the 'waiter-reset' command."""
        self.waiter.remove()
        self.ui.display_info("Waiter state cleared.")
        return EXIT_OK
