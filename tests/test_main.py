"""Tests for the main entry point's startup sequence and fatal exits."""

from unittest.mock import MagicMock, patch

import pytest
from docker.errors import DockerException

from pihole_customdns.cli import (
    CONFIG_PATH_ENV,
    ENV_VARS,
    TARGET_KEY,
    ContainerSnapshot,
    EventStream,
    Operation,
    Outcome,
    PiholeDNSProvider,
    ProviderUnreachable,
    RecordMode,
    main,
)

ARGV = ["-targetip", "10.0.0.5", "-piholeurl", "http://pi.hole", "-apitoken", "secret"]


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in list(ENV_VARS.values()) + [CONFIG_PATH_ENV]:
        monkeypatch.delenv(name, raising=False)


def make_host(containers=None, raw_events=None) -> MagicMock:
    host = MagicMock()
    host.list_containers.return_value = containers or []
    host.events.return_value = EventStream(raw_events or [])
    return host


def test_config_error_exits_before_network_activity() -> None:
    with patch.object(PiholeDNSProvider, "test_connection") as mock_probe:
        with pytest.raises(SystemExit) as excinfo:
            main(["-piholeurl", "http://pi.hole", "-apitoken", "secret"])

    assert excinfo.value.code == 1
    mock_probe.assert_not_called()


def test_failed_probe_exits() -> None:
    with patch.object(PiholeDNSProvider, "test_connection", return_value=False), patch(
        "pihole_customdns.cli.DockerContainerHost"
    ) as mock_host:
        with pytest.raises(SystemExit) as excinfo:
            main(ARGV)

    assert excinfo.value.code == 1
    mock_host.assert_not_called()


def test_docker_unavailable_exits() -> None:
    with patch.object(PiholeDNSProvider, "test_connection", return_value=True), patch(
        "pihole_customdns.cli.DockerContainerHost", side_effect=DockerException("no socket")
    ):
        with pytest.raises(SystemExit) as excinfo:
            main(ARGV)

    assert excinfo.value.code == 1


def test_once_mode_bootstraps_and_returns() -> None:
    host = make_host(containers=[ContainerSnapshot(name="web", labels={TARGET_KEY: "Web.LAN"})])

    with patch.object(PiholeDNSProvider, "test_connection", return_value=True), patch.object(
        PiholeDNSProvider, "get_records", return_value=[]
    ), patch.object(
        PiholeDNSProvider, "mutate", return_value=Outcome(success=True)
    ) as mock_mutate, patch(
        "pihole_customdns.cli.DockerContainerHost", return_value=host
    ):
        main(ARGV + ["--sync-mode", "once"])

    mock_mutate.assert_called_once_with(Operation.CREATE, RecordMode.ADDRESS, "web.lan", "10.0.0.5")
    host.events.assert_not_called()


def test_fetch_failure_exits() -> None:
    host = make_host()

    with patch.object(PiholeDNSProvider, "test_connection", return_value=True), patch.object(
        PiholeDNSProvider, "get_records", side_effect=ProviderUnreachable("down")
    ), patch("pihole_customdns.cli.DockerContainerHost", return_value=host):
        with pytest.raises(SystemExit) as excinfo:
            main(ARGV)

    assert excinfo.value.code == 1


def test_event_stream_error_exits() -> None:
    host = make_host()

    with patch.object(PiholeDNSProvider, "test_connection", return_value=True), patch.object(
        PiholeDNSProvider, "get_records", return_value=[]
    ), patch("pihole_customdns.cli.DockerContainerHost", return_value=host):
        with pytest.raises(SystemExit) as excinfo:
            main(ARGV)

    assert excinfo.value.code == 1
    host.events.assert_called_once_with()


def test_every_endpoint_is_probed() -> None:
    argv = ARGV + ["-piholeurl2", "http://pi2.hole", "-apitoken2", "other"]

    with patch.object(
        PiholeDNSProvider, "test_connection", side_effect=[True, False]
    ) as mock_probe, patch("pihole_customdns.cli.DockerContainerHost") as mock_host:
        with pytest.raises(SystemExit):
            main(argv)

    assert mock_probe.call_count == 2
    mock_host.assert_not_called()
