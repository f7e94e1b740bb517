"""Tests for the command-gateway CLI."""

import json
from pathlib import Path
from unittest.mock import patch

import httpx
from click.testing import CliRunner

from command_gateway.app import create_app
from command_gateway.cli import main
from command_gateway.config import TransportMode
from command_gateway.protocol import RequestHandler


def test_check_valid_config(config_file: Path):
    result = CliRunner().invoke(main, ["check", "--config", str(config_file)])

    assert result.exit_code == 0
    assert "OK: 4 commands, 3 groups, 1 agents" in result.output


def test_check_missing_config(tmp_path: Path):
    result = CliRunner().invoke(main, ["check", "--config", str(tmp_path / "missing.yaml")])

    assert result.exit_code == 1
    assert "Configuration error" in result.output


def test_check_reads_config_from_env(config_file: Path):
    result = CliRunner().invoke(main, ["check"], env={"GATEWAY_CONFIG": str(config_file)})

    assert result.exit_code == 0


def test_resolve_json(config_file: Path):
    result = CliRunner().invoke(
        main,
        ["resolve", "-c", str(config_file), "-a", "a1", "-g", "windows", "-g", "linux", "-f", "json"],
    )

    assert result.exit_code == 0
    assert [c["ID"] for c in json.loads(result.output)] == ["C3", "C1", "C2"]


def test_resolve_table(config_file: Path):
    result = CliRunner().invoke(main, ["resolve", "-c", str(config_file), "-a", "a1", "-g", "linux"])

    assert result.exit_code == 0
    assert "C1" in result.output
    assert "Total: 2 command(s)" in result.output


def test_resolve_no_commands(config_file: Path):
    result = CliRunner().invoke(main, ["resolve", "-c", str(config_file), "-a", "a1"])

    assert result.exit_code == 0
    assert "No commands." in result.output


def test_serve_fails_on_bad_config(tmp_path: Path):
    bad = tmp_path / "bad.yaml"
    bad.write_text("commands: [{Type: exec}]", encoding="utf-8")

    result = CliRunner().invoke(main, ["serve", "--config", str(bad)])

    assert result.exit_code == 1
    assert "Failed to load command config" in result.output


def test_serve_builds_config_from_options(config_file: Path):
    with (
        patch("command_gateway.server.GatewayServer") as server_cls,
        patch("command_gateway.cli.asyncio.run") as asyncio_run,
    ):
        result = CliRunner().invoke(
            main,
            [
                "serve",
                "--config",
                str(config_file),
                "--transport",
                "binary",
                "--port",
                "7100",
                "--read-timeout",
                "2.5",
            ],
        )

    assert result.exit_code == 0, result.output
    config = server_cls.call_args.args[0]
    assert config.transport == TransportMode.BINARY
    assert config.binary_port == 7100
    assert config.read_timeout == 2.5
    assert config.write_timeout is None
    assert config.config_path == config_file
    asyncio_run.assert_called_once()


def test_fetch_connection_refused():
    result = CliRunner().invoke(main, ["fetch", "-a", "a1", "-g", "linux", "--port", "1"])

    assert result.exit_code == 1
    assert "Fetch failed" in result.output


def test_health_reports_status(handler: RequestHandler):
    app_transport = httpx.ASGITransport(app=create_app(handler))
    real_client = httpx.AsyncClient

    with patch(
        "command_gateway.cli.httpx.AsyncClient",
        side_effect=lambda: real_client(transport=app_transport),
    ):
        result = CliRunner().invoke(main, ["health", "--url", "http://gateway"])

    assert result.exit_code == 0, result.output
    assert "Gateway is healthy" in result.output
    assert "'commands': 4" in result.output


def test_health_connection_refused():
    result = CliRunner().invoke(main, ["health", "--url", "http://127.0.0.1:1"])

    assert result.exit_code == 1
    assert "Cannot connect to gateway" in result.output
