"""
Letta MCP CLI - start the MCP server.

Run `letta-mcp` to serve over stdio, or pass `--transport sse|http` to
listen on a port. Connection settings come from LETTA_BASE_URL and
LETTA_PASSWORD, a `.env` file, or a YAML config file.
"""

import asyncio
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import click
from rich.console import Console

from letta_mcp import __version__

# stdout carries the protocol on stdio.
console = Console(stderr=True)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def build_overrides(
    transport: Optional[str],
    host: Optional[str],
    port: Optional[int],
    log_level: Optional[str],
) -> Dict[str, Any]:
    """Nested config overrides for the options that were given."""
    overrides: Dict[str, Any] = {}
    server = {k: v for k, v in (("transport", transport), ("host", host), ("port", port)) if v is not None}
    if server:
        overrides["server"] = server
    if log_level:
        overrides["logging"] = {"level": log_level}
    return overrides


@click.command()
@click.option("--version", "-v", is_flag=True, help="Show version")
@click.option("--transport", "-t", type=click.Choice(["stdio", "sse", "http"]), help="Transport to serve on")
@click.option("--host", help="Bind address for sse/http")
@click.option("--port", "-p", type=int, help="Port for sse/http")
@click.option("--config", "-c", "config_path", type=click.Path(path_type=Path), help="YAML config file")
@click.option("--log-level", type=click.Choice(LOG_LEVELS, case_sensitive=False), help="Log level")
def cli(
    version: bool,
    transport: Optional[str],
    host: Optional[str],
    port: Optional[int],
    config_path: Optional[Path],
    log_level: Optional[str],
) -> None:
    """
    Letta MCP server - expose a Letta server as MCP tools, prompts and resources.

    \b
    Examples:
        letta-mcp                          # stdio, for desktop clients
        letta-mcp --transport http -p 3001 # streamable HTTP at /mcp
        letta-mcp -c letta-mcp.yaml        # settings from a file
    """
    if version:
        console.print(f"letta-mcp v{__version__}")
        return

    from letta_mcp.core.logger import setup_logging
    from letta_mcp.core.server import create_app
    from letta_mcp.validation.config import Config, ConfigError

    try:
        settings = Config.load(config_path, overrides=build_overrides(transport, host, port, log_level)).merged
    except ConfigError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    setup_logging(settings.logging.level, settings.logging.file)
    server = create_app(settings)

    try:
        asyncio.run(server.run())
    except KeyboardInterrupt:
        console.print("[dim]Shutting down[/dim]")


def main() -> None:
    """Entry point."""
    cli()


if __name__ == "__main__":
    main()
