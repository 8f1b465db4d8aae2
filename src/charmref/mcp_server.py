"""MCP server for charmref: exposes parse/infer/path/quote/latest as MCP tools.

The server uses FastMCP for the transport layer. Core tool functions are
plain Python and can be tested without FastMCP installed.
"""

from __future__ import annotations

import io
import json
from contextlib import redirect_stdout

import charmref.cli

# ---------------------------------------------------------------------------
# Core tool functions (no FastMCP dependency)
# ---------------------------------------------------------------------------


def _run_cli_json(argv: list[str]) -> str:
    """Run a CLI command with --json and return its stdout JSON document.

    If the command produces no stdout (e.g. an error path that only prints to
    stderr), an error envelope is synthesised so callers always get valid JSON.
    """
    cmd_name = argv[0] if argv else "unknown"
    buf = io.StringIO()
    with redirect_stdout(buf):
        charmref.cli.main(argv)
    output = buf.getvalue().strip()
    if not output:
        return json.dumps({"command": cmd_name, "ok": False, "error": "command produced no output"})

    try:
        json.loads(output)
    except (json.JSONDecodeError, ValueError):
        return json.dumps({"command": cmd_name, "ok": False, "error": output[:500]})
    return output


def _ref_argv(command: str, ref: str, config: str | None, *extra: str) -> list[str]:
    argv = [command, "--json", *extra]
    if config:
        argv += ["--config", config]
    # "--" keeps references that start with "-" positional.
    return [*argv, "--", ref]


def tool_parse(ref: str, *, config: str | None = None) -> str:
    """Normalize one reference and return its fields."""
    return _run_cli_json(_ref_argv("parse", ref, config))


def tool_infer(ref: str, *, series: str | None = None, config: str | None = None) -> str:
    """Parse a reference, filling in an unset series."""
    extra = ["--series", series] if series is not None else []
    return _run_cli_json(_ref_argv("infer", ref, config, *extra))


def tool_path(ref: str, *, config: str | None = None) -> str:
    """Return the store request path of a reference."""
    return _run_cli_json(_ref_argv("path", ref, config))


def tool_quote(text: str) -> str:
    """Escape text for use as a file name."""
    return _run_cli_json(["quote", "--json", "--", text])


def tool_latest(ref: str, *, config: str | None = None) -> str:
    """Ask the store for the latest revision of a reference."""
    return _run_cli_json(_ref_argv("latest", ref, config))


# ---------------------------------------------------------------------------
# FastMCP server factory
# ---------------------------------------------------------------------------


def create_mcp_server(*, config: str | None = None):
    """Create and return a FastMCP server with charmref tools registered.

    Raises ImportError if fastmcp is not installed.
    """
    from fastmcp import FastMCP

    mcp = FastMCP("charmref", instructions="Charm and bundle reference parsing and lookup")

    @mcp.tool()
    def charmref_parse(ref: str) -> str:
        """Normalize a charm or bundle reference.

        Accepts compact (cs:~user/series/name-1), slash (user/name/series/1)
        and web (https://host/u/user/name) spellings. Returns JSON with the
        canonical URL and its fields, or the parse error kind.
        """
        return tool_parse(ref, config=config)

    @mcp.tool()
    def charmref_infer(ref: str, series: str | None = None) -> str:
        """Parse a reference and fill in its series from `series` when unset."""
        return tool_infer(ref, series=series, config=config)

    @mcp.tool()
    def charmref_path(ref: str) -> str:
        """Return the legacy store path (~user/series/name-rev) of a reference."""
        return tool_path(ref, config=config)

    @mcp.tool()
    def charmref_quote(text: str) -> str:
        """Escape text into a file-name-safe form."""
        return tool_quote(text)

    @mcp.tool()
    def charmref_latest(ref: str) -> str:
        """Return the latest revision the charm store knows for a reference."""
        return tool_latest(ref, config=config)

    return mcp


def run_server(*, config: str | None = None) -> None:
    """Entry point: create and run the MCP server (stdio transport)."""
    mcp = create_mcp_server(config=config)
    mcp.run()
