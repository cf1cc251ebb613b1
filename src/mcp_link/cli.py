"""mcp-link CLI.

Spawns an MCP server over stdio, runs one request against it and shuts it
down again. Everything after ``--`` is the server command line.

Usage:
    mcp-link tools -- python server.py                 # List tools
    mcp-link tools --format json -- python server.py   # List tools as JSON
    mcp-link call echo --args '{"text": "hi"}' -- python server.py
    mcp-link ping -- python server.py                  # Check the server responds
    mcp-link --timeout 10 -v tools -- ./server         # Global options first
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import click

from .client import McpClient, create_stdio_client
from .config import ClientConfig
from .errors import McpLinkError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Output format options
FORMAT_TABLE = "table"
FORMAT_JSON = "json"
FORMAT_TEXT = "text"

# Exit status when a tool reports is_error
EXIT_TOOL_ERROR = 2


def truncate(text: str | None, max_len: int = 60) -> str:
    """Truncate text for display."""
    if not text:
        return ""
    text = " ".join(text.split())
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def _run(
    config: ClientConfig,
    server: tuple[str, ...],
    action: Callable[[McpClient], Awaitable[T]],
) -> T:
    """Spawn the server, run ``action`` inside an initialized session, exit on errors."""

    async def runner() -> T:
        client = await create_stdio_client(server[0], server[1:], config=config)
        completed = False
        try:
            async with client:
                result = await action(client)
                completed = True
        except McpLinkError as e:
            if not completed:
                raise
            # The command succeeded; servers often reject shutdown
            logger.warning(f"Server shutdown failed: {e}")
        return result

    try:
        return asyncio.run(runner())
    except McpLinkError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@click.group()
@click.option("--timeout", type=float, default=None, help="Per-request timeout in seconds")
@click.option("--protocol-version", default=None, help="Protocol version sent in initialize")
@click.option("--verbose", "-v", is_flag=True, help="Log protocol traffic to stderr")
@click.version_option(package_name="mcp-link")
@click.pass_context
def main(
    ctx: click.Context,
    timeout: float | None,
    protocol_version: str | None,
    verbose: bool,
) -> None:
    """mcp-link - talk to an MCP tool server over stdio."""
    # stdout is reserved for command output; logs go to stderr
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    overrides: dict[str, Any] = {}
    if timeout is not None:
        overrides["request_timeout"] = timeout
    if protocol_version:
        overrides["protocol_version"] = protocol_version

    try:
        ctx.obj = ClientConfig.from_env(**overrides)
    except ValueError as e:
        raise click.UsageError(str(e)) from e


@main.command("tools")
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice([FORMAT_TABLE, FORMAT_JSON]),
    default=FORMAT_TABLE,
    help="Output format",
)
@click.argument("server", nargs=-1, required=True)
@click.pass_obj
def tools_command(config: ClientConfig, output_format: str, server: tuple[str, ...]) -> None:
    """List the tools a server exposes.

    Examples:

        mcp-link tools -- python my_server.py

        mcp-link tools --format json -- npx some-mcp-server
    """
    tools = _run(config, server, lambda client: client.list_all_tools())

    if output_format == FORMAT_JSON:
        click.echo(json.dumps([tool.model_dump(mode="json") for tool in tools], indent=2))
        return

    if not tools:
        click.echo("No tools.")
        return

    width = max(len(tool.name) for tool in tools)
    click.echo(f"{'NAME':<{width}}  DESCRIPTION")
    for tool in tools:
        click.echo(f"{tool.name:<{width}}  {truncate(tool.description)}")


@main.command("call")
@click.argument("tool")
@click.option("--args", "arguments", default="{}", help="Tool arguments as a JSON object")
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice([FORMAT_TEXT, FORMAT_JSON]),
    default=FORMAT_TEXT,
    help="Output format",
)
@click.argument("server", nargs=-1, required=True)
@click.pass_obj
def call_command(
    config: ClientConfig,
    tool: str,
    arguments: str,
    output_format: str,
    server: tuple[str, ...],
) -> None:
    """Invoke TOOL and print its result.

    Exits with status 2 when the tool reports an error.
    """
    try:
        parsed = json.loads(arguments)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"not valid JSON: {e}", param_hint="--args") from e
    if not isinstance(parsed, dict):
        raise click.BadParameter("must be a JSON object", param_hint="--args")

    result = _run(config, server, lambda client: client.call_tool(tool, parsed))

    if output_format == FORMAT_JSON:
        click.echo(result.model_dump_json(indent=2))
    else:
        click.echo(result.as_text())

    if result.is_error:
        sys.exit(EXIT_TOOL_ERROR)


@main.command("ping")
@click.argument("server", nargs=-1, required=True)
@click.pass_obj
def ping_command(config: ClientConfig, server: tuple[str, ...]) -> None:
    """Check that a server completes the handshake and answers ping."""

    async def ping(client: McpClient) -> str:
        await client.ping()
        info = client.server_info
        if info is None:
            return "unknown server"
        return f"{info.name} {info.version or ''}".strip()

    name = _run(config, server, ping)
    click.echo(f"ok: {name}")


if __name__ == "__main__":
    main()
