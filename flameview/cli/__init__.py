"""
FlameView CLI entry point.

Subcommands:

* ``check FILE`` – sanitize, transpile and build a component file.
* ``transpile FILE`` – print the lowered Python.
* ``render FILE --data DATA`` – render to an HTML page or JSON tree.
* ``schema`` – discover the schema of a data source.
* ``generate INSTRUCTION`` – run one generation turn end to end.
"""

from __future__ import annotations

import argparse
import sys
from typing import List, Optional

from flameview import __version__
from flameview.config import get_settings
from flameview.observability import configure_logging

from .commands import cmd_check, cmd_generate, cmd_render, cmd_schema, cmd_transpile


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="flameview",
        description="Build and render LLM-generated dashboards in a capability sandbox.",
    )
    parser.add_argument("--version", action="version", version=f"flameview {__version__}")
    parser.add_argument("--log-level", help="Logging level (default from FLAMEVIEW_LOG_LEVEL)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show tracebacks for errors")
    subparsers = parser.add_subparsers(dest="command", required=True)

    check_parser = subparsers.add_parser("check", help="Check that a component file builds")
    check_parser.add_argument("file", help="PyX component file ('-' for stdin)")
    check_parser.set_defaults(func=cmd_check)

    transpile_parser = subparsers.add_parser("transpile", help="Print the lowered Python for a component")
    transpile_parser.add_argument("file", help="PyX component file ('-' for stdin)")
    transpile_parser.add_argument("--out", help="Write to this file instead of stdout")
    transpile_parser.set_defaults(func=cmd_transpile)

    render_parser = subparsers.add_parser("render", help="Render a component against JSON data")
    render_parser.add_argument("file", help="PyX component file ('-' for stdin)")
    render_parser.add_argument("--data", help="JSON file mapping collection names to rows")
    render_parser.add_argument("--format", choices=("html", "json"), default="html")
    render_parser.add_argument("--out", help="Write to this file instead of stdout")
    render_parser.set_defaults(func=cmd_render)

    schema_parser = subparsers.add_parser("schema", help="Discover the schema of a data source")
    schema_parser.add_argument("--data", help="JSON file to sample instead of the data API")
    schema_parser.set_defaults(func=cmd_schema)

    generate_parser = subparsers.add_parser("generate", help="Generate a dashboard from an instruction")
    generate_parser.add_argument("instruction", help="What the dashboard should show")
    generate_parser.add_argument("--data", help="JSON file to use instead of the data API")
    generate_parser.add_argument("--out", help="Write the HTML page to this file")
    generate_parser.add_argument("--save", action="store_true", help="Store the dashboard record")
    generate_parser.set_defaults(func=cmd_generate)

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    if argv is None:
        argv = sys.argv[1:]
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level or get_settings().log_level)
    args.func(args)


__all__ = ["build_parser", "main"]
