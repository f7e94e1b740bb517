"""Command Gateway CLI.

Usage:
    command-gateway serve --config commands.yaml              # Both transports
    command-gateway serve --config commands.yaml --transport binary --port 7000
    command-gateway serve --config commands.yaml --transport http --http-port 8080

    command-gateway check --config commands.yaml              # Validate configuration
    command-gateway resolve --config commands.yaml --agent a1 --group linux

    command-gateway fetch --agent a1 --group linux            # Act as an agent (binary)
    command-gateway fetch --agent a1 --group linux --http http://localhost:8080
    command-gateway health --url http://localhost:8080        # Check HTTP transport

Every serve option can also be set through a GATEWAY_* environment variable.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path

import click
import httpx

from .config import ServerConfig, TransportMode
from .protocol.codec import DEFAULT_MAX_REQUEST_SIZE
from .resolver import Command, CommandResolver, ConfigurationError, load_configuration

# Output format options
FORMAT_TABLE = "table"
FORMAT_JSON = "json"

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def configure_logging(level: str) -> None:
    """Send all log records, uvicorn included, to stderr."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def truncate(text: str | None, max_len: int = 50) -> str:
    """Truncate text for display."""
    if not text:
        return ""
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def print_commands(commands: list[Command], output_format: str) -> None:
    if output_format == FORMAT_JSON:
        click.echo(json.dumps([c.to_wire() for c in commands], indent=2, ensure_ascii=False))
        return

    if not commands:
        click.echo("No commands.")
        return

    click.echo(f"{'ID':<20} {'Type':<15} {'Details':<40}")
    click.echo("-" * 77)
    for command in commands:
        details = json.dumps(command.model_extra or {}, ensure_ascii=False, default=str)
        command_id = truncate(command.id, 20)
        command_type = truncate(command.type, 15)
        click.echo(f"{command_id:<20} {command_type:<15} {truncate(details, 40)}")
    click.echo(f"\nTotal: {len(commands)} command(s)")


def _load_or_exit(config_path: Path) -> CommandResolver:
    try:
        return load_configuration(config_path)
    except ConfigurationError as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(1)


config_option = click.option(
    "--config",
    "-c",
    "config_path",
    envvar="GATEWAY_CONFIG",
    required=True,
    type=click.Path(path_type=Path),
    help="Command configuration file (YAML)",
)

format_option = click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice([FORMAT_TABLE, FORMAT_JSON]),
    default=FORMAT_TABLE,
    help="Output format",
)


@click.group()
@click.version_option(package_name="command-gateway")
def main() -> None:
    """Command Gateway - serve commands to agents and collect their results."""


@main.command()
@config_option
@click.option("--host", envvar="GATEWAY_HOST", default="0.0.0.0", help="Interface to bind to")
@click.option("--port", "-p", envvar="GATEWAY_PORT", default=7000, help="Binary transport port")
@click.option("--http-port", envvar="GATEWAY_HTTP_PORT", default=8080, help="HTTP transport port")
@click.option(
    "--transport",
    "-t",
    envvar="GATEWAY_TRANSPORT",
    type=click.Choice([m.value for m in TransportMode]),
    default=TransportMode.BOTH.value,
    help="Transports to start",
)
@click.option(
    "--read-timeout",
    envvar="GATEWAY_READ_TIMEOUT",
    type=float,
    default=None,
    help="Seconds to wait for a binary request (default: no timeout)",
)
@click.option(
    "--write-timeout",
    envvar="GATEWAY_WRITE_TIMEOUT",
    type=float,
    default=None,
    help="Seconds to wait for a binary reply to flush (default: no timeout)",
)
@click.option(
    "--max-request-size",
    envvar="GATEWAY_MAX_REQUEST_SIZE",
    default=DEFAULT_MAX_REQUEST_SIZE,
    help="Largest accepted binary request in bytes",
)
@click.option(
    "--log-level",
    envvar="GATEWAY_LOG_LEVEL",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="INFO",
    help="Logging level",
)
def serve(
    config_path: Path,
    host: str,
    port: int,
    http_port: int,
    transport: str,
    read_timeout: float | None,
    write_timeout: float | None,
    max_request_size: int,
    log_level: str,
) -> None:
    """Run the gateway."""
    from .server import GatewayServer, StartupError

    configure_logging(log_level)

    config = ServerConfig(
        config_path=config_path,
        host=host,
        binary_port=port,
        http_port=http_port,
        transport=TransportMode(transport),
        read_timeout=read_timeout,
        write_timeout=write_timeout,
        max_request_size=max_request_size,
        log_level=log_level,
    )

    try:
        server = GatewayServer(config)
    except ConfigurationError as e:
        click.echo(f"Failed to load command config: {e}", err=True)
        sys.exit(1)

    click.echo("Press Ctrl+C to stop", err=True)
    try:
        asyncio.run(server.run())
    except StartupError as e:
        click.echo(f"Failed to start server: {e}", err=True)
        sys.exit(1)
    except KeyboardInterrupt:
        click.echo("\nShutting down", err=True)


@main.command()
@config_option
def check(config_path: Path) -> None:
    """Validate a command configuration file."""
    resolver = _load_or_exit(config_path)
    click.echo(
        f"OK: {len(resolver.commands)} commands, {len(resolver.groups)} groups, "
        f"{len(resolver.agents)} agents"
    )


@main.command()
@config_option
@click.option("--agent", "-a", "agent_id", required=True, help="Agent ID")
@click.option("--group", "-g", "groups", multiple=True, help="Group membership (repeatable)")
@format_option
def resolve(config_path: Path, agent_id: str, groups: tuple[str, ...], output_format: str) -> None:
    """Show the commands an agent would receive.

    Examples:

        command-gateway resolve -c commands.yaml -a a1 -g linux -g web
    """
    resolver = _load_or_exit(config_path)
    print_commands(resolver.resolve(agent_id, list(groups)), output_format)


@main.command()
@click.option("--agent", "-a", "agent_id", required=True, help="Agent ID")
@click.option("--group", "-g", "groups", multiple=True, help="Group membership (repeatable)")
@click.option("--host", default="127.0.0.1", help="Gateway host (binary transport)")
@click.option("--port", "-p", default=7000, help="Gateway port (binary transport)")
@click.option("--http", "http_url", default=None, help="Use the HTTP transport at this URL")
@click.option("--timeout", default=30.0, help="Request timeout in seconds")
@format_option
def fetch(
    agent_id: str,
    groups: tuple[str, ...],
    host: str,
    port: int,
    http_url: str | None,
    timeout: float,
    output_format: str,
) -> None:
    """Fetch commands from a running gateway as an agent would."""
    from .sdk import BinaryClient, GatewayError, HTTPClient

    async def run() -> list[Command]:
        if http_url:
            async with HTTPClient(base_url=http_url, timeout=timeout) as client:
                return await client.get_commands(agent_id, list(groups))
        return await BinaryClient(host=host, port=port, timeout=timeout).get_commands(
            agent_id, list(groups)
        )

    try:
        commands = asyncio.run(run())
    except (GatewayError, TimeoutError) as e:
        click.echo(f"Fetch failed: {str(e) or 'timed out'}", err=True)
        sys.exit(1)

    print_commands(commands, output_format)


@main.command()
@click.option("--url", default="http://localhost:8080", help="Gateway HTTP URL")
def health(url: str) -> None:
    """Check HTTP transport health."""

    async def check_health() -> None:
        try:
            async with httpx.AsyncClient() as client:
                response = await client.get(f"{url}/health")
                if response.status_code == 200:
                    data = response.json()
                    click.echo(f"Gateway is healthy: {data}")
                else:
                    click.echo(f"Gateway returned {response.status_code}", err=True)
                    sys.exit(1)
        except httpx.ConnectError:
            click.echo(f"Cannot connect to gateway at {url}", err=True)
            sys.exit(1)

    asyncio.run(check_health())


if __name__ == "__main__":
    main()
