"""Main entry point for the ocilaunch application.

Sets up the Typer CLI application, performs dependency injection (Composition
Root), defines CLI commands, and delegates execution to the CommandHandler.
"""

import logging
from typing import Any, Dict, Optional

import typer
from typing_extensions import Annotated

# --- Core Layer ---
from ocilaunch.core.command_handler import EXIT_ERROR, CommandHandler
from ocilaunch.core.exceptions import ConfigurationError
from ocilaunch.core.services.capacity_policy import CapacityPolicy
from ocilaunch.core.services.launch_service import LaunchService

# --- Infrastructure Layer ---
# Config
from ocilaunch.infrastructure.config.settings import get_config, load_configuration, load_launch_settings, load_oci_config
# UI
from ocilaunch.infrastructure.cli.display import ConsoleDisplay
# Cache
from ocilaunch.infrastructure.cache.caching_service import DiskCachingService
# HTTP
from ocilaunch.infrastructure.http.transport import RequestsTransport
# OCI
from ocilaunch.infrastructure.oci.api_client import OciApiClient
# Resilience
from ocilaunch.infrastructure.resilience.too_many_requests_waiter import DiskCacheWaiter
# Monitoring
from ocilaunch.infrastructure.monitoring.logger_setup import setup_logging

logger = logging.getLogger(__name__)

# --- Dependency Injection Container (Manual) ---

def create_dependencies() -> Dict[str, Any]:
    """Creates and wires up all dependencies for the application.

    This acts as the Composition Root.

    Raises:
        ConfigurationError: If the OCI configuration is incomplete.
    """
    # 1. Load Configuration First
    load_configuration()
    log_level_name = str(get_config('logging.level', 'INFO')).upper()
    log_level = getattr(logging, log_level_name, logging.INFO)
    setup_logging(
        log_level=log_level,
        log_file=get_config('logging.file'),
        log_format=get_config('logging.format', '%(asctime)s - %(name)s - %(levelname)s - %(message)s'),
    )
    logger.debug("Configuration and logging initialized.")

    dependencies: Dict[str, Any] = {}
    dependencies['ui'] = ConsoleDisplay()
    dependencies['config'] = load_oci_config()
    settings = dependencies['settings'] = load_launch_settings()

    # 2. Instantiate Infrastructure Adapters
    dependencies['cache_service'] = DiskCachingService(cache_dir=settings.cache_dir / "lookups")
    dependencies['waiter'] = DiskCacheWaiter(
        directory=settings.cache_dir / "waiter",
        cooldown_seconds=settings.too_many_requests_wait,
    )
    dependencies['api_client'] = OciApiClient(
        transport=RequestsTransport(),
        cache=dependencies['cache_service'],
        waiter=dependencies['waiter'],
        cache_availability_domains=settings.cache_availability_domains,
    )

    # 3. Core Services
    dependencies['launch_service'] = LaunchService(
        api_client=dependencies['api_client'],
        capacity_policy=CapacityPolicy(),
    )

    # 4. Command Handler
    dependencies['command_handler'] = CommandHandler(
        launch_service=dependencies['launch_service'],
        api_client=dependencies['api_client'],
        waiter=dependencies['waiter'],
        config=dependencies['config'],
        settings=settings,
        ui=dependencies['ui'],
    )
    logger.debug("All dependencies initialized successfully.")
    return dependencies


_dependencies: Optional[Dict[str, Any]] = None


def get_command_handler() -> CommandHandler:
    """Builds the dependency graph on first use and returns the handler."""
    global _dependencies
    if _dependencies is None:
        try:
            _dependencies = create_dependencies()
        except ConfigurationError as e:
            ConsoleDisplay().display_error(f"Configuration error: {e}")
            raise typer.Exit(code=EXIT_ERROR)
    return _dependencies['command_handler']


# --- Typer App Definition ---
app = typer.Typer(
    name="ocilaunch",
    help="ocilaunch: create OCI compute instances within your capacity limits, backing off when rate limited.",
    add_completion=False,
)

# Shared options
ShapeOption = Annotated[
    Optional[str],
    typer.Option("--shape", "-s", help="Instance shape. Defaults to OCI_SHAPE."),
]
MaxInstancesOption = Annotated[
    Optional[int],
    typer.Option("--max-instances", "-m", min=1, help="Limit for fixed shapes. Defaults to OCI_MAX_INSTANCES."),
]


@app.command()
def launch(
    shape: ShapeOption = None,
    max_instances: MaxInstancesOption = None,
    ssh_key: Annotated[
        Optional[str],
        typer.Option("--ssh-key", help="SSH public key. Defaults to OCI_SSH_PUBLIC_KEY."),
    ] = None,
):
    """Create an instance if the capacity policy allows it."""
    raise typer.Exit(code=get_command_handler().handle_launch(shape, max_instances, ssh_key))


@app.command()
def check(
    shape: ShapeOption = None,
    max_instances: MaxInstancesOption = None,
):
    """Only run the capacity check; nothing is created."""
    raise typer.Exit(code=get_command_handler().handle_check(shape, max_instances))


@app.command()
def instances():
    """List instances in the tenancy."""
    raise typer.Exit(code=get_command_handler().handle_list_instances())


@app.command(name="availability-domains")
def availability_domains():
    """List availability domains of the configured region."""
    raise typer.Exit(code=get_command_handler().handle_availability_domains())


@app.command(name="waiter-status")
def waiter_status():
    """Show the remaining too-many-requests cooldown."""
    raise typer.Exit(code=get_command_handler().handle_waiter_status())


@app.command(name="waiter-reset")
def waiter_reset():
    """Clear the too-many-requests cooldown."""
    raise typer.Exit(code=get_command_handler().handle_waiter_reset())


# --- Main Execution Guard ---

def cli_entry_point():
    """Function to be called by the script entry point in pyproject.toml."""
    app()


if __name__ == "__main__":
    cli_entry_point()
