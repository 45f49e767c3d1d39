import json
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from typer.testing import CliRunner

from ocilaunch import main
from ocilaunch.core.command_handler import EXIT_ERROR, EXIT_RATE_LIMITED
from ocilaunch.domain.interfaces.transport import HttpResponse
from ocilaunch.domain.interfaces.user_interface import UserInterface
from ocilaunch.infrastructure.config import settings
from ocilaunch.infrastructure.config.settings import set_config_for_testing
from ocilaunch.main import app

FLEX = "VM.Standard.A1.Flex"
DOMAINS = [{"name": "AD-1", "id": "ocid1.ad.1"}, {"name": "AD-2", "id": "ocid1.ad.2"}]


@pytest.fixture
def mock_console_display(mocker) -> MagicMock:
    """Replaces ConsoleDisplay in the composition root."""
    display = MagicMock(spec=UserInterface)
    mocker.patch("ocilaunch.main.ConsoleDisplay", return_value=display)
    return display


@pytest.fixture
def cli_env(tmp_path: Path, private_key_file: Path, mock_transport, mock_console_display, monkeypatch, mocker):
    """Real dependency graph with a mocked transport and display."""
    monkeypatch.setattr(settings, "_loaded", True)
    monkeypatch.setattr(main, "_dependencies", None)
    mocker.patch("ocilaunch.main.setup_logging")
    mocker.patch("ocilaunch.main.RequestsTransport", return_value=mock_transport)
    set_config_for_testing({
        "oci_region": "eu-frankfurt-1",
        "oci_user_id": "ocid1.user.oc1..aaaauser",
        "oci_tenancy_id": "ocid1.tenancy.oc1..aaaatenancy",
        "oci_key_fingerprint": "12:34:56:78:90:ab:cd:ef:12:34:56:78:90:ab:cd:ef",
        "oci_private_key_filename": str(private_key_file),
        "oci_subnet_id": "ocid1.subnet.oc1.eu-frankfurt-1.aaaasubnet",
        "oci_image_id": "ocid1.image.oc1.eu-frankfurt-1.aaaaimage",
        "oci_ssh_public_key": "ssh-ed25519 AAAAC3NzaC1lZDI1NTE5AAAAItest user@host",
        "too_many_requests_time_wait": 600,
        "ocilaunch_cache_dir": str(tmp_path / "cache"),
    })
    yield mock_transport
    deps = main._dependencies or {}
    for key in ("cache_service", "waiter"):
        if key in deps:
            deps[key].disk_cache.close()


def routed(responses):
    """Answers transport calls by (method, path fragment)."""
    def respond(method, url, headers, body=None, timeout=None):
        for (m, fragment), response in responses.items():
            if m == method and fragment in url:
                return response() if callable(response) else response
        raise AssertionError(f"unexpected {method} {url}")
    return respond


def ok(payload):
    return HttpResponse(status_code=200, text=json.dumps(payload))


def test_launch_command_flow(runner: CliRunner, cli_env: MagicMock, mock_console_display: MagicMock):
    """Admission passes, AD-1 is out of capacity, AD-2 succeeds."""
    create_responses = iter([
        HttpResponse(status_code=500, text='{"code": "InternalError", "message": "Out of host capacity."}'),
        ok({"id": "ocid1.instance.oc1..new", "displayName": "instance-1", "lifecycleState": "PROVISIONING"}),
    ])
    cli_env.request.side_effect = routed({
        ("GET", "/instances/"): ok([]),
        ("GET", "/availabilityDomains/"): ok(DOMAINS),
        ("POST", "/instances/"): lambda: next(create_responses),
    })

    result = runner.invoke(app, ["launch"])

    assert result.exit_code == 0, result.output
    posts = [c for c in cli_env.request.call_args_list if c.args[0] == "POST"]
    assert [json.loads(c.args[3])["availabilityDomain"] for c in posts] == ["AD-1", "AD-2"]
    assert all(c.args[2]["Authorization"].startswith('Signature version="1"') for c in posts)
    mock_console_display.display_output.assert_called_once()


def test_launch_rate_limit_then_deferred(runner: CliRunner, cli_env: MagicMock, mock_console_display: MagicMock):
    """A 429 arms the waiter; the next run is deferred without a POST."""
    cli_env.request.side_effect = routed({
        ("GET", "/instances/"): ok([]),
        ("GET", "/availabilityDomains/"): ok(DOMAINS),
        ("POST", "/instances/"): HttpResponse(status_code=429, text='{"code": "TooManyRequests"}'),
    })

    first = runner.invoke(app, ["launch"])
    assert first.exit_code == EXIT_RATE_LIMITED
    posts_after_first = sum(1 for c in cli_env.request.call_args_list if c.args[0] == "POST")
    assert posts_after_first == 1

    second = runner.invoke(app, ["launch"])
    assert second.exit_code == EXIT_RATE_LIMITED
    posts_after_second = sum(1 for c in cli_env.request.call_args_list if c.args[0] == "POST")
    assert posts_after_second == 1
    assert "Will retry after" in mock_console_display.display_warning.call_args.args[0]

    runner.invoke(app, ["waiter-reset"])
    runner.invoke(app, ["waiter-status"])
    mock_console_display.display_info.assert_called_with("No cooldown in effect.")


def test_launch_skipped_when_capacity_used(runner: CliRunner, cli_env: MagicMock, mock_console_display: MagicMock):
    cli_env.request.side_effect = routed({
        ("GET", "/instances/"): ok([
            {"displayName": "a1", "shape": FLEX, "lifecycleState": "RUNNING",
             "shapeConfig": {"ocpus": 4, "memoryInGBs": 24}},
        ]),
    })

    result = runner.invoke(app, ["launch"])

    assert result.exit_code == 0
    assert "A1.Flex capacity exceeded" in mock_console_display.display_info.call_args.args[0]
    assert all(c.args[0] == "GET" for c in cli_env.request.call_args_list)


def test_instances_command(runner: CliRunner, cli_env: MagicMock, mock_console_display: MagicMock):
    cli_env.request.side_effect = routed({
        ("GET", "/instances/"): ok([{"displayName": "micro", "shape": "VM.Standard.E2.1.Micro",
                                     "lifecycleState": "RUNNING"}]),
    })

    result = runner.invoke(app, ["instances"])

    assert result.exit_code == 0
    title, _, rows = mock_console_display.display_table.call_args.args
    assert title == "Instances"
    assert rows[0][0] == "micro"


def test_availability_domains_api_error(runner: CliRunner, cli_env: MagicMock, mock_console_display: MagicMock):
    cli_env.request.side_effect = routed({
        ("GET", "/availabilityDomains/"): HttpResponse(status_code=401, text='{"code": "NotAuthenticated"}'),
    })

    result = runner.invoke(app, ["availability-domains"])

    assert result.exit_code == EXIT_ERROR
    assert "status 401" in mock_console_display.display_error.call_args.args[0]


def test_missing_configuration_exits_with_error(runner: CliRunner, mock_console_display: MagicMock, monkeypatch, mocker):
    monkeypatch.setattr(settings, "_loaded", True)
    monkeypatch.setattr(main, "_dependencies", None)
    mocker.patch("ocilaunch.main.setup_logging")

    result = runner.invoke(app, ["check"])

    assert result.exit_code == EXIT_ERROR
    assert "Missing required configuration" in mock_console_display.display_error.call_args.args[0]
