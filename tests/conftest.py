import json
import os
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import diskcache as dc
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from typer.testing import CliRunner

from ocilaunch.domain.interfaces.transport import HttpResponse, HttpTransport
from ocilaunch.domain.models.common import Identity
from ocilaunch.infrastructure.config.settings import OciConfig, clear_test_config

# Sun, 18 Oct 2026 10:00:00 GMT
FIXED_NOW = 1792317600.0


@pytest.fixture(scope="session")
def runner():
    """Provides a Typer CliRunner instance."""
    return CliRunner()


@pytest.fixture(scope="session")
def rsa_private_key():
    """A throwaway 2048-bit RSA key shared by the whole session."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def private_key_file(tmp_path: Path, rsa_private_key) -> Path:
    """Writes the session key as an unencrypted PKCS#8 PEM file."""
    pem = rsa_private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    key_path = tmp_path / "oci_api_key.pem"
    key_path.write_bytes(pem)
    return key_path


@pytest.fixture
def oci_config(private_key_file: Path) -> OciConfig:
    return OciConfig(
        tenancy_id="ocid1.tenancy.oc1..aaaatenancy",
        user_id="ocid1.user.oc1..aaaauser",
        key_fingerprint="12:34:56:78:90:ab:cd:ef:12:34:56:78:90:ab:cd:ef",
        private_key_filename=str(private_key_file),
        region="eu-frankfurt-1",
        subnet_id="ocid1.subnet.oc1.eu-frankfurt-1.aaaasubnet",
        image_id="ocid1.image.oc1.eu-frankfurt-1.aaaaimage",
        ocpus=4,
        memory_in_gbs=24,
    )


@pytest.fixture
def identity(oci_config: OciConfig) -> Identity:
    return oci_config.identity


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW


def json_response(payload: Any, status_code: int = 200) -> HttpResponse:
    return HttpResponse(status_code=status_code, text=json.dumps(payload))


@pytest.fixture
def mock_transport(mocker) -> MagicMock:
    """HttpTransport mock answering 200 with an empty JSON list by default."""
    transport = mocker.MagicMock(spec=HttpTransport)
    transport.request.return_value = json_response([])
    return transport


@pytest.fixture
def disk_cache(tmp_path: Path):
    cache = dc.Cache(str(tmp_path / "diskcache"))
    yield cache
    cache.close()


class FakeClock:
    """Manually advanced clock for waiter tests."""

    def __init__(self, now: float = FIXED_NOW):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(autouse=True)
def isolate_config(monkeypatch):
    """Keep developer environment variables out of the tests."""
    for key in list(os.environ):
        if key.startswith(("OCI_", "OCILAUNCH_")) or key in ("TOO_MANY_REQUESTS_TIME_WAIT", "CACHE_AVAILABILITY_DOMAINS"):
            monkeypatch.delenv(key, raising=False)
    yield
    clear_test_config()


@pytest.fixture
def make_response():
    """Factory for JSON HttpResponse objects."""
    return json_response
