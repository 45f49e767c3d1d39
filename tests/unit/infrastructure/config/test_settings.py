from pathlib import Path

import pytest

from ocilaunch.core.exceptions import ConfigurationError
from ocilaunch.infrastructure.config import settings
from ocilaunch.infrastructure.config.settings import (
    DEFAULT_SHAPE,
    OciConfig,
    get_config,
    get_str,
    load_launch_settings,
    load_oci_config,
    set_config_for_testing,
)

REQUIRED = {
    "oci_region": "eu-frankfurt-1",
    "oci_user_id": "ocid1.user.oc1..aaaauser",
    "oci_tenancy_id": "ocid1.tenancy.oc1..aaaatenancy",
    "oci_key_fingerprint": "12:34:56:78:90:ab:cd:ef:12:34:56:78:90:ab:cd:ef",
    "oci_private_key_filename": "~/.oci/oci_api_key.pem",
    "oci_subnet_id": "ocid1.subnet.oc1.eu-frankfurt-1.aaaasubnet",
    "oci_image_id": "ocid1.image.oc1.eu-frankfurt-1.aaaaimage",
}


@pytest.fixture(autouse=True)
def skip_file_loading(monkeypatch):
    """Pretend YAML/.env loading already happened."""
    monkeypatch.setattr(settings, "_loaded", True)


def test_get_config_prefers_env_and_coerces(monkeypatch):
    monkeypatch.setenv("OCI_OCPUS", "2.5")
    monkeypatch.setenv("CACHE_AVAILABILITY_DOMAINS", "true")
    assert get_config("oci_ocpus") == 2.5
    assert get_config("cache_availability_domains") is True
    assert get_config("definitely_not_set", "fallback") == "fallback"


def test_load_oci_config_from_test_values():
    set_config_for_testing({**REQUIRED, "oci_ocpus": 2, "oci_memory_in_gbs": 12})

    config = load_oci_config()

    assert isinstance(config, OciConfig)
    assert config.region == "eu-frankfurt-1"
    assert config.shape_sizing.ocpus == 2.0
    assert config.shape_sizing.memory_in_gbs == 12.0
    assert config.identity.key_id == (
        "ocid1.tenancy.oc1..aaaatenancy/ocid1.user.oc1..aaaauser/"
        "12:34:56:78:90:ab:cd:ef:12:34:56:78:90:ab:cd:ef"
    )


def test_load_oci_config_reports_missing_keys():
    values = dict(REQUIRED)
    del values["oci_subnet_id"]
    set_config_for_testing({**values, "oci_region": ""})

    with pytest.raises(ConfigurationError, match="OCI_REGION, OCI_SUBNET_ID"):
        load_oci_config()


def test_load_oci_config_requires_boot_source():
    values = {k: v for k, v in REQUIRED.items() if k != "oci_image_id"}
    set_config_for_testing(values)

    with pytest.raises(ConfigurationError, match="OCI_IMAGE_ID or OCI_BOOT_VOLUME_ID"):
        load_oci_config()


def test_source_details_image_with_boot_volume_size():
    set_config_for_testing({**REQUIRED, "oci_boot_volume_size_in_gbs": 100})
    config = load_oci_config()
    assert config.get_source_details() == {
        "sourceType": "image",
        "imageId": REQUIRED["oci_image_id"],
        "bootVolumeSizeInGBs": 100,
    }


def test_load_launch_settings_defaults():
    launch = load_launch_settings()
    assert launch.shape == DEFAULT_SHAPE
    assert launch.max_instances == 1
    assert launch.availability_domains == []
    assert launch.cache_availability_domains is False
    assert launch.too_many_requests_wait == 0


def test_load_launch_settings_parses_values(tmp_path: Path):
    set_config_for_testing({
        "oci_shape": "VM.Standard.E2.1.Micro",
        "oci_max_instances": 2,
        "oci_availability_domain": "AD-1, AD-2,",
        "cache_availability_domains": "yes",
        "too_many_requests_time_wait": 600,
        "ocilaunch_cache_dir": str(tmp_path),
    })

    launch = load_launch_settings()

    assert launch.shape == "VM.Standard.E2.1.Micro"
    assert launch.max_instances == 2
    assert launch.availability_domains == ["AD-1", "AD-2"]
    assert launch.cache_availability_domains is True
    assert launch.too_many_requests_wait == 600
    assert launch.cache_dir == tmp_path


def test_load_configuration_reads_yaml(tmp_path: Path, monkeypatch):
    monkeypatch.setattr(settings, "_loaded", False)
    monkeypatch.setattr(settings, "_config", {})
    monkeypatch.chdir(tmp_path)
    config_file = tmp_path / "config.yaml"
    config_file.write_text("OCI_SHAPE: VM.Standard.E2.1.Micro\noci_max_instances: 3\n")

    settings.load_configuration(config_file=config_file)

    assert get_config("oci_shape") == "VM.Standard.E2.1.Micro"
    assert get_config("oci_max_instances") == 3


def test_load_configuration_rejects_broken_yaml(tmp_path: Path, monkeypatch):
    monkeypatch.setattr(settings, "_loaded", False)
    monkeypatch.setattr(settings, "_config", {})
    config_file = tmp_path / "config.yaml"
    config_file.write_text("oci_shape: [unclosed\n")

    with pytest.raises(ConfigurationError):
        settings.load_configuration(config_file=config_file)


@pytest.mark.parametrize("passphrase", ["0042", "3.10", "true", "False"])
def test_passphrase_is_kept_verbatim(monkeypatch, passphrase):
    set_config_for_testing(dict(REQUIRED))
    monkeypatch.setenv("OCI_PRIVATE_KEY_PASSPHRASE", passphrase)

    config = load_oci_config()

    assert config.private_key_passphrase == passphrase
    assert config.identity.private_key_passphrase == passphrase


def test_text_settings_skip_coercion(monkeypatch):
    monkeypatch.setenv("OCI_SSH_PUBLIC_KEY", "1234")
    monkeypatch.setenv("OCI_OCPUS", "2.50")
    assert get_str("oci_ssh_public_key") == "1234"
    assert get_str("oci_not_set", "fallback") == "fallback"
    assert get_config("oci_ocpus") == 2.5
    assert load_launch_settings().ssh_public_key == "1234"
