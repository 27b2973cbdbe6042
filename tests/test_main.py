"""Tests for the command line application."""

import json
import signal
import socket

import pytest

from peer_discovery.core.interface_provider import PsutilInterfaceProvider, StaticInterfaceProvider
from peer_discovery.main import (
    EXIT_CANCELLED,
    EXIT_ERROR,
    EXIT_OK,
    PeerDiscoveryApp,
    create_argument_parser,
    main,
)
from peer_discovery.utils.error_handler import ValidationError


def parse(*argv):
    return create_argument_parser().parse_args(list(argv))


@pytest.fixture
def app():
    return PeerDiscoveryApp(install_signal_handlers=False)


@pytest.fixture
def listening_port():
    server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    server.bind(("127.0.0.1", 0))
    server.listen(8)
    try:
        yield server.getsockname()[1]
    finally:
        server.close()


class TestBuildConfig:

    def test_defaults(self, app):
        config = app.build_config(parse())

        assert config.port == 44444
        assert config.timeout == 0.5
        assert config.concurrency_limit == 64
        assert config.address_filter == "private"

    def test_overrides(self, app):
        config = app.build_config(parse(
            "--port", "5000", "--timeout", "0.2", "--concurrency", "8", "--filter", "ipv4",
            "--exclude-reserved", "--exclude-self", "--deadline", "10", "--verbose"))

        assert config.port == 5000
        assert config.timeout == 0.2
        assert config.concurrency_limit == 8
        assert config.address_filter == "ipv4"
        assert config.exclude_reserved
        assert config.exclude_local_addresses
        assert config.deadline == 10.0
        assert config.verbose

    def test_prefix_implies_prefix_filter(self, app):
        config = app.build_config(parse("--prefix", "10.0.", "--prefix", "172.16."))

        assert config.address_filter == "prefix"
        assert config.prefixes == ["10.0.", "172.16."]

    def test_explicit_filter_wins_over_prefix(self, app):
        config = app.build_config(parse("--prefix", "10.0.", "--filter", "private"))

        assert config.address_filter == "private"

    def test_missing_config_dir(self, app, tmp_path):
        with pytest.raises(ValidationError):
            app.build_config(parse("--config-dir", str(tmp_path / "missing")))

    def test_config_dir(self, app, tmp_path):
        (tmp_path / "discovery_config.yml").write_text("discovery:\n  port: 7000\n", encoding="utf-8")

        assert app.build_config(parse("--config-dir", str(tmp_path))).port == 7000

    def test_explicit_subnet_defaults_to_any_filter(self, app):
        assert app.build_config(parse("--subnet", "8.8.8.0/24")).address_filter == "any"

    def test_explicit_subnet_keeps_named_filter(self, app):
        config = app.build_config(parse("--subnet", "8.8.8.0/24", "--filter", "private"))

        assert config.address_filter == "private"

    def test_explicit_subnet_with_prefix(self, app):
        config = app.build_config(parse("--subnet", "10.0.0.0/24", "--prefix", "10.0."))

        assert config.address_filter == "prefix"

    def test_unknown_filter_rejected_by_parser(self):
        with pytest.raises(SystemExit):
            parse("--filter", "public")


class TestBuildProvider:

    def test_static_provider_for_subnets(self, app):
        assert isinstance(app.build_provider(parse("--subnet", "10.0.0.0/24")), StaticInterfaceProvider)

    def test_psutil_provider_by_default(self, app):
        assert isinstance(app.build_provider(parse()), PsutilInterfaceProvider)


class TestRun:

    def test_finds_local_listener(self, app, tmp_path, listening_port):
        args = parse("--subnet", "127.0.0.1/32", "--filter", "any", "--port", str(listening_port),
                     "--output-dir", str(tmp_path))

        assert app.run(args) == EXIT_OK

        reports = list(tmp_path.glob("peer_discovery_*.json"))
        assert len(reports) == 1
        data = json.loads(reports[0].read_text(encoding="utf-8"))
        assert [peer["address"] for peer in data["peers"]] == ["127.0.0.1"]
        assert data["peers"][0]["port"] == listening_port

    def test_no_report(self, app, tmp_path, listening_port):
        args = parse("--subnet", "127.0.0.1/32", "--filter", "any", "--port", str(listening_port),
                     "--output-dir", str(tmp_path), "--no-report")

        assert app.run(args) == EXIT_OK
        assert list(tmp_path.iterdir()) == []

    def test_loopback_subnet_probed_without_filter(self, app, listening_port):
        args = parse("--subnet", "127.0.0.1/32", "--port", str(listening_port), "--no-report")

        assert app.run(args) == EXIT_OK

    def test_rejected_explicit_subnet_warns(self, app, capsys):
        args = parse("--subnet", "8.8.8.0/24", "--filter", "private", "--no-report")

        assert app.run(args) == EXIT_OK
        assert "rejected by the address filter: 8.8.8.0/24" in capsys.readouterr().out

    def test_cancelled_run(self, app, tmp_path):
        app.cancel_event.set()
        args = parse("--subnet", "127.0.0.0/30", "--filter", "any", "--no-report")

        assert app.run(args) == EXIT_CANCELLED

    @pytest.mark.parametrize("argv", [
        ["--subnet", "300.1.1.1/24"],
        ["--subnet", "10.0.0.0/40"],
        ["--subnet", "192.168.1.0/²"],
        ["--subnet", "10.0.0.0/24", "--concurrency", "0"],
        ["--subnet", "10.0.0.0/24", "--port", "0"],
    ])
    def test_errors_exit_with_error_code(self, app, argv):
        assert app.run(parse(*argv, "--no-report")) == EXIT_ERROR


class TestSignals:

    def test_first_signal_cancels_second_exits(self, app):
        app._signal_handler(signal.SIGINT, None)
        assert app.cancel_event.is_set()

        with pytest.raises(SystemExit):
            app._signal_handler(signal.SIGTERM, None)


def test_version_flag(capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(["--version"])

    assert excinfo.value.code == 0
    assert "Peer Discovery Module" in capsys.readouterr().out
