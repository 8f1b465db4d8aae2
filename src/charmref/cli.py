from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from charmref import __version__
from charmref.codec import dump_document
from charmref.errors import CharmRefConfigError, ParseError, StoreError
from charmref.reference import Reference, quote

if TYPE_CHECKING:  # pragma: no cover
    from charmref.config import CharmRefConfig
    from charmref.store import CharmStore


EXIT_OK = 0
EXIT_PARSE_OR_CONFIG = 2
EXIT_STORE_ERROR = 3

logger = logging.getLogger("charmref.cli")


def _add_common_flags(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to charmref.toml (defaults to searching upward from cwd).",
    )
    p.add_argument(
        "--json",
        dest="json_output",
        action="store_true",
        help="Emit a JSON document on stdout.",
    )
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="charmref")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", required=True)

    parse_p = subparsers.add_parser("parse", help="Normalize charm or bundle references.")
    _add_common_flags(parse_p)
    parse_p.add_argument("refs", nargs="+", metavar="REF")

    infer_p = subparsers.add_parser("infer", help="Parse a reference and fill in its series.")
    _add_common_flags(infer_p)
    infer_p.add_argument("ref", metavar="REF")
    infer_p.add_argument(
        "--series",
        type=str,
        default=None,
        help="Default series (defaults to parse.default_series from config).",
    )

    path_p = subparsers.add_parser("path", help="Print the store request path of a reference.")
    _add_common_flags(path_p)
    path_p.add_argument("ref", metavar="REF")

    quote_p = subparsers.add_parser("quote", help="Escape text for use as a file name.")
    _add_common_flags(quote_p)
    quote_p.add_argument("text", metavar="TEXT")

    info_p = subparsers.add_parser("info", help="Show store revision and digest.")
    _add_common_flags(info_p)
    info_p.add_argument("ref", metavar="REF")

    latest_p = subparsers.add_parser("latest", help="Show the latest store revision.")
    _add_common_flags(latest_p)
    latest_p.add_argument("ref", metavar="REF")

    get_p = subparsers.add_parser("get", help="Download and cache a charm archive.")
    _add_common_flags(get_p)
    get_p.add_argument("ref", metavar="REF")
    get_p.add_argument("--no-progress", action="store_true", help="Disable the progress bar.")

    mcp_p = subparsers.add_parser("mcp", help="Model Context Protocol server.")
    mcp_sub = mcp_p.add_subparsers(dest="mcp_command", required=True)
    serve_p = mcp_sub.add_parser("serve", help="Run the MCP server over stdio.")
    serve_p.add_argument("--config", type=str, default=None, help="Path to charmref.toml.")
    serve_p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")

    return parser


def parse_args(argv: list[str]) -> argparse.Namespace:
    return _build_parser().parse_args(argv)


def _is_json_mode(args: argparse.Namespace) -> bool:
    return bool(getattr(args, "json_output", False))


def _configure_logging(args: argparse.Namespace) -> None:
    level = logging.DEBUG if getattr(args, "verbose", False) else logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _load_config(args: argparse.Namespace) -> CharmRefConfig:
    from charmref.config import load_config

    config_path = Path(args.config).resolve() if args.config else None
    return load_config(config_path=config_path)


def _build_store(cfg: CharmRefConfig) -> CharmStore:
    from charmref.store import CharmStore

    return CharmStore.from_config(cfg.store)


def _eprint(msg: str) -> None:
    print(msg, file=sys.stderr)


def _emit(args: argparse.Namespace, payload: dict[str, object], text: str) -> None:
    if _is_json_mode(args):
        print(dump_document(payload, indent=2))
    else:
        print(text)


def _emit_error(args: argparse.Namespace, e: BaseException) -> None:
    msg = (str(e) or repr(e)).strip()
    if _is_json_mode(args):
        payload: dict[str, object] = {"command": args.command, "ok": False, "error": msg}
        if isinstance(e, ParseError):
            payload["kind"] = e.kind
        print(dump_document(payload, indent=2))
    else:
        _eprint(f"error: {msg}")


def reference_fields(ref: Reference) -> dict[str, object]:
    """JSON-friendly view of a reference; unset fields are left out."""

    return {
        "url": ref.string(),
        "path": ref.path(),
        "schema": ref.schema,
        "user": ref.user or None,
        "name": ref.name,
        "series": ref.series or None,
        "revision": ref.revision if ref.has_revision else None,
    }


def cmd_parse(args: argparse.Namespace) -> int:
    try:
        parser = _load_config(args).parser()
        refs = [parser.parse(raw) for raw in args.refs]
    except (ParseError, CharmRefConfigError) as e:
        _emit_error(args, e)
        return EXIT_PARSE_OR_CONFIG

    _emit(
        args,
        {"command": "parse", "ok": True, "references": [reference_fields(r) for r in refs]},
        "\n".join(r.string() for r in refs),
    )
    return EXIT_OK


def cmd_infer(args: argparse.Namespace) -> int:
    try:
        cfg = _load_config(args)
        default_series = args.series if args.series is not None else cfg.parse.default_series
        ref = cfg.parser().infer(args.ref, default_series)
    except (ParseError, CharmRefConfigError) as e:
        _emit_error(args, e)
        return EXIT_PARSE_OR_CONFIG

    _emit(args, {"command": "infer", "ok": True, "reference": reference_fields(ref)}, ref.string())
    return EXIT_OK


def cmd_path(args: argparse.Namespace) -> int:
    try:
        ref = _load_config(args).parser().parse(args.ref)
    except (ParseError, CharmRefConfigError) as e:
        _emit_error(args, e)
        return EXIT_PARSE_OR_CONFIG

    _emit(args, {"command": "path", "ok": True, "path": ref.path()}, ref.path())
    return EXIT_OK


def cmd_quote(args: argparse.Namespace) -> int:
    quoted = quote(args.text)
    _emit(args, {"command": "quote", "ok": True, "quoted": quoted}, quoted)
    return EXIT_OK


def cmd_info(args: argparse.Namespace) -> int:
    try:
        cfg = _load_config(args)
        ref = cfg.parser().parse(args.ref)
        info = _build_store(cfg).info(ref)
    except (ParseError, CharmRefConfigError) as e:
        _emit_error(args, e)
        return EXIT_PARSE_OR_CONFIG
    except StoreError as e:
        _emit_error(args, e)
        return EXIT_STORE_ERROR

    _emit(
        args,
        {
            "command": "info",
            "ok": True,
            "reference": reference_fields(ref),
            "revision": info.revision,
            "sha256": info.sha256 or None,
        },
        f"{info.revision} {info.sha256}",
    )
    return EXIT_OK


def cmd_latest(args: argparse.Namespace) -> int:
    try:
        cfg = _load_config(args)
        ref = cfg.parser().parse(args.ref)
        revision = _build_store(cfg).latest(ref)
    except (ParseError, CharmRefConfigError) as e:
        _emit_error(args, e)
        return EXIT_PARSE_OR_CONFIG
    except StoreError as e:
        _emit_error(args, e)
        return EXIT_STORE_ERROR

    _emit(
        args,
        {"command": "latest", "ok": True, "reference": reference_fields(ref), "revision": revision},
        str(revision),
    )
    return EXIT_OK


def cmd_get(args: argparse.Namespace) -> int:
    progress = None
    try:
        cfg = _load_config(args)
        ref = cfg.parser().parse(args.ref)
        store = _build_store(cfg)

        if (not bool(args.no_progress)) and (not _is_json_mode(args)) and sys.stderr.isatty():
            from charmref.progress import ProgressBar

            progress = ProgressBar(label=ref.string(), total=0, enabled=True, stream=sys.stderr)

        path = store.get(ref, progress=progress)
        logger.debug("archive for %s at %s", ref, path)
    except (ParseError, CharmRefConfigError) as e:
        _emit_error(args, e)
        return EXIT_PARSE_OR_CONFIG
    except (StoreError, OSError) as e:
        _emit_error(args, e)
        return EXIT_STORE_ERROR
    finally:
        if progress is not None:
            progress.finish()

    _emit(
        args,
        {"command": "get", "ok": True, "reference": reference_fields(ref), "archive": str(path)},
        str(path),
    )
    return EXIT_OK


def cmd_mcp(args: argparse.Namespace) -> int:
    try:
        from charmref.mcp_server import run_server

        run_server(config=args.config)
    except ImportError as e:
        _eprint(f"error: fastmcp is required for `charmref mcp serve`: {e}")
        return EXIT_PARSE_OR_CONFIG
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    try:
        args = parse_args(list(sys.argv[1:] if argv is None else argv))
    except SystemExit as e:
        # argparse uses SystemExit for --help/--version and parse errors.
        code = e.code
        return int(code) if isinstance(code, int) else EXIT_PARSE_OR_CONFIG

    _configure_logging(args)

    if args.command == "parse":
        return cmd_parse(args)
    if args.command == "infer":
        return cmd_infer(args)
    if args.command == "path":
        return cmd_path(args)
    if args.command == "quote":
        return cmd_quote(args)
    if args.command == "info":
        return cmd_info(args)
    if args.command == "latest":
        return cmd_latest(args)
    if args.command == "get":
        return cmd_get(args)
    if args.command == "mcp":
        return cmd_mcp(args)

    return EXIT_PARSE_OR_CONFIG


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
