"""Provides functions for loading and accessing configuration settings.

Supports loading from .env files, environment variables, and a dedicated
configuration file (~/.ocilaunch/config.yaml). Builds the OciConfig and
LaunchSettings objects consumed by the API client and the launch workflow.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv

from ocilaunch.core.exceptions import ConfigurationError
from ocilaunch.domain.interfaces.config import OciConfigProvider
from ocilaunch.domain.models.common import (
    Identity,
    KeyFingerprint,
    Ocid,
    Region,
    ShapeName,
    ShapeSizing,
)

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
DEFAULT_CONFIG_DIR = Path.home() / ".ocilaunch"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
DEFAULT_CACHE_DIR = DEFAULT_CONFIG_DIR / "cache"
ENV_FILE_NAME = ".env"

DEFAULT_SHAPE = ShapeName("VM.Standard.A1.Flex")
DEFAULT_OCPUS = 4.0
DEFAULT_MEMORY_IN_GBS = 24.0
DEFAULT_MAX_INSTANCES = 1

REQUIRED_OCI_KEYS = (
    "oci_region",
    "oci_user_id",
    "oci_tenancy_id",
    "oci_key_fingerprint",
    "oci_private_key_filename",
    "oci_subnet_id",
)

# --- Global Configuration Store (Simple Approach) ---
_config: Dict[str, Any] = {}
_test_config: Dict[str, Any] = {}  # For testing purposes
_loaded = False


def load_configuration(config_file: Path = DEFAULT_CONFIG_FILE, env_file: Optional[Path] = None) -> None:
    """Loads configuration from environment, .env file, and YAML file.

    Priority order (highest to lowest):
    1. Environment Variables
    2. .env file
    3. YAML configuration file
    4. Default values passed to get_config

    Args:
        config_file: Path to the YAML configuration file.
        env_file: Path to the .env file (searches upwards from cwd if None).
    """
    global _config, _loaded
    if _loaded:
        logger.debug("Configuration already loaded.")
        return

    _config = {}

    # 1. Load from YAML file (Lowest priority)
    if config_file.exists():
        try:
            with open(config_file, 'r') as f:
                yaml_config = yaml.safe_load(f)
            if isinstance(yaml_config, dict):
                # Keys are matched case-insensitively against env var names
                _config.update({str(k).lower(): v for k, v in yaml_config.items()})
                logger.info(f"Loaded configuration from YAML: {config_file}")
            elif yaml_config is not None:
                logger.warning(f"YAML config file {config_file} did not contain a dictionary.")
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to load or parse YAML config {config_file}: {e}") from e
    else:
        logger.debug(f"YAML config file not found: {config_file}")

    # 2. Load from .env file (Medium priority)
    dotenv_path = env_file or find_dotenv_path()
    if dotenv_path:
        # override=False: ENV VARS take precedence
        if load_dotenv(dotenv_path=dotenv_path, override=False):
            logger.info(f"Loaded environment variables from: {dotenv_path}")
    else:
        logger.debug("Skipping .env file loading (no .env found at or above current directory).")

    # 3. Environment Variables (Highest priority) are handled by os.environ in get_config

    _loaded = True
    logger.debug("Configuration loading process completed.")


def _coerce(value: str) -> Any:
    """Converts common string forms to bool/int/float."""
    if value.lower() == 'true':
        return True
    if value.lower() == 'false':
        return False
    try:
        if '.' in value:
            return float(value)
        return int(value)
    except (ValueError, TypeError):
        return value


def get_config(key: str, default: Any = None) -> Any:
    """
    Get a configuration value by key.

    Priority:
    1. Test configuration (if in testing mode)
    2. Environment variable (key upper-cased)
    3. YAML config (key lower-cased)
    4. Default value

    Args:
        key: The configuration key, e.g. 'oci_region'.
        default: Default value if the key is not found.

    Returns:
        The configuration value
    """
    if key in _test_config:
        return _test_config[key]

    env_key = key.upper()
    if env_key in os.environ:
        return _coerce(os.environ[env_key])

    if key.lower() in _config:
        return _config[key.lower()]

    logger.debug(f"Config key '{key}' not found in environment or loaded config. Returning default: {default}")
    return default


def get_str(key: str, default: Optional[str] = None) -> Optional[str]:
    """Reads a value as text, without the numeric/bool coercion of get_config.

    Used for secrets, keys and OCIDs, which must reach their consumer
    verbatim (a passphrase of '0042' stays '0042'). YAML scalars are already
    typed by the parser, so such values should be quoted in the YAML file.
    """
    if key in _test_config:
        value = _test_config[key]
    elif key.upper() in os.environ:
        value = os.environ[key.upper()]
    elif key.lower() in _config:
        value = _config[key.lower()]
    else:
        return default

    if value is None or value == "":
        return default
    return str(value)


def get_bool(key: str, default: bool = False) -> bool:
    """Reads a flag, accepting the usual string spellings."""
    flag = get_config(key, default)
    if isinstance(flag, str):
        return flag.strip().lower() in ('1', 'true', 'yes', 'on')
    if flag is None:
        return False
    return bool(flag)


def find_dotenv_path() -> Optional[Path]:
    """Searches for the .env file upwards from the current directory."""
    cwd = Path.cwd()
    for path in [cwd] + list(cwd.parents):
        env_path = path / ENV_FILE_NAME
        if env_path.is_file():
            return env_path
    return None


def set_config_for_testing(config_dict: Dict[str, Any]) -> None:
    """
    Set configuration values for testing purposes.
    These values will override any existing configuration.

    Args:
        config_dict: Dictionary of configuration values to set
    """
    _test_config.update(config_dict)
    logger.debug(f"Set testing configuration: {config_dict}")


def clear_test_config() -> None:
    """Clear all testing configuration values."""
    _test_config.clear()
    logger.debug("Cleared testing configuration")


# --- Typed configuration objects ---

@dataclass(frozen=True)
class OciConfig(OciConfigProvider):
    """OCI account, networking and boot source settings."""
    tenancy_id: Ocid
    user_id: Ocid
    key_fingerprint: KeyFingerprint
    private_key_filename: str
    region: Region
    subnet_id: Ocid
    image_id: Optional[Ocid] = None
    boot_volume_id: Optional[Ocid] = None
    boot_volume_size_in_gbs: Optional[int] = None
    ocpus: float = DEFAULT_OCPUS
    memory_in_gbs: float = DEFAULT_MEMORY_IN_GBS
    private_key_passphrase: Optional[str] = None

    @property
    def identity(self) -> Identity:
        return Identity(
            tenancy_id=self.tenancy_id,
            user_id=self.user_id,
            key_fingerprint=self.key_fingerprint,
            private_key_path=self.private_key_filename,
            region=self.region,
            private_key_passphrase=self.private_key_passphrase,
        )

    @property
    def shape_sizing(self) -> ShapeSizing:
        return ShapeSizing(ocpus=self.ocpus, memory_in_gbs=self.memory_in_gbs)

    def get_source_details(self) -> Dict[str, Any]:
        """Boot source for new instances: an existing boot volume or an image."""
        if self.boot_volume_id:
            return {
                "sourceType": "bootVolume",
                "bootVolumeId": self.boot_volume_id,
            }

        details: Dict[str, Any] = {
            "sourceType": "image",
            "imageId": self.image_id,
        }
        if self.boot_volume_size_in_gbs:
            details["bootVolumeSizeInGBs"] = self.boot_volume_size_in_gbs
        return details


@dataclass(frozen=True)
class LaunchSettings:
    """What to launch and how the client should behave around it."""
    shape: ShapeName = DEFAULT_SHAPE
    max_instances: int = DEFAULT_MAX_INSTANCES
    ssh_public_key: str = ""
    availability_domains: List[str] = field(default_factory=list)
    cache_availability_domains: bool = False
    too_many_requests_wait: int = 0
    cache_dir: Path = DEFAULT_CACHE_DIR


def load_oci_config() -> OciConfig:
    """Builds OciConfig from the loaded configuration.

    Raises:
        ConfigurationError: If a required key is missing, no boot source is
            configured, or a numeric setting does not parse.
    """
    load_configuration()

    missing = [key.upper() for key in REQUIRED_OCI_KEYS if get_str(key) is None]
    if missing:
        raise ConfigurationError(f"Missing required configuration: {', '.join(missing)}")

    image_id = get_str('oci_image_id')
    boot_volume_id = get_str('oci_boot_volume_id')
    if not image_id and not boot_volume_id:
        raise ConfigurationError("Either OCI_IMAGE_ID or OCI_BOOT_VOLUME_ID must be set.")

    try:
        boot_volume_size = get_config('oci_boot_volume_size_in_gbs')
        config = OciConfig(
            tenancy_id=Ocid(get_str('oci_tenancy_id')),
            user_id=Ocid(get_str('oci_user_id')),
            key_fingerprint=KeyFingerprint(get_str('oci_key_fingerprint')),
            private_key_filename=get_str('oci_private_key_filename'),
            region=Region(get_str('oci_region')),
            subnet_id=Ocid(get_str('oci_subnet_id')),
            image_id=Ocid(image_id) if image_id else None,
            boot_volume_id=Ocid(boot_volume_id) if boot_volume_id else None,
            boot_volume_size_in_gbs=int(boot_volume_size) if boot_volume_size else None,
            ocpus=float(get_config('oci_ocpus', DEFAULT_OCPUS)),
            memory_in_gbs=float(get_config('oci_memory_in_gbs', DEFAULT_MEMORY_IN_GBS)),
            private_key_passphrase=get_str('oci_private_key_passphrase'),
        )
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid numeric OCI setting: {e}") from e

    logger.debug(f"OCI config loaded for region {config.region}")
    return config


def load_launch_settings() -> LaunchSettings:
    """Builds LaunchSettings from the loaded configuration."""
    load_configuration()

    domains = get_str('oci_availability_domain') or ""
    try:
        settings = LaunchSettings(
            shape=ShapeName(str(get_config('oci_shape', DEFAULT_SHAPE))),
            max_instances=int(get_config('oci_max_instances', DEFAULT_MAX_INSTANCES)),
            ssh_public_key=get_str('oci_ssh_public_key') or "",
            availability_domains=[d.strip() for d in domains.split(',') if d.strip()],
            cache_availability_domains=get_bool('cache_availability_domains'),
            too_many_requests_wait=int(get_config('too_many_requests_time_wait', 0)),
            cache_dir=Path(str(get_config('ocilaunch_cache_dir', DEFAULT_CACHE_DIR))).expanduser(),
        )
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid launch setting: {e}") from e
    return settings
