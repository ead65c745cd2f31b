"""Command implementations for the ``flameview`` CLI."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from flameview.config import get_settings
from flameview.host import RenderHost, RenderStatus
from flameview.pipeline import GeminiClient, GenerationPipeline, HttpDataFetchClient, InMemoryDataSource
from flameview.pipeline.schema import schema_payload
from flameview.persistence import DashboardStore, JsonFileDocumentStore
from flameview.rendering import render_page
from flameview.sandbox import compile_component
from flameview.transpiler import transpile

from .errors import handle_cli_exception


def _read_text(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    return Path(path).read_text(encoding="utf-8")


def _read_data(path: Optional[str]) -> Dict[str, Any]:
    if not path:
        return {}
    data = json.loads(_read_text(path))
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a JSON object mapping collections to rows")
    return data


def _emit(text: str, out: Optional[str]) -> None:
    if out:
        Path(out).write_text(text, encoding="utf-8")
        print(f"Wrote {out}", file=sys.stderr)
    else:
        print(text)


def _data_source(args: argparse.Namespace):
    if getattr(args, "data", None):
        return InMemoryDataSource(_read_data(args.data))
    settings = get_settings()
    return HttpDataFetchClient(
        settings.data_api_url,
        project_id=settings.project_id,
        token=settings.data_api_token,
        timeout=settings.request_timeout,
    )


def cmd_check(args: argparse.Namespace) -> None:
    """Run a component file through the sanitizer, transpiler and factory."""
    try:
        result = compile_component(_read_text(args.file))
    except Exception as exc:  # noqa: BLE001 - reported to the user
        handle_cli_exception(exc, verbose=args.verbose)
        return
    if result.ok:
        print(f"✓ {args.file}: component builds ({result.body.element_count} elements)")
        return
    print(f"✗ {args.file}: {result.stage} failed", file=sys.stderr)
    handle_cli_exception(result.error, verbose=args.verbose)


def cmd_transpile(args: argparse.Namespace) -> None:
    """Print the plain Python a component file lowers to."""
    try:
        body = transpile(_read_text(args.file), path=args.file)
    except Exception as exc:  # noqa: BLE001 - reported to the user
        handle_cli_exception(exc, verbose=args.verbose)
        return
    _emit(body.code + "\n", args.out)


def cmd_render(args: argparse.Namespace) -> None:
    """Render a component file against JSON data."""
    try:
        settings = get_settings()
        host = RenderHost(max_render_passes=settings.max_render_passes)
        host.set_source(_read_text(args.file))
        tree = host.view(_read_data(args.data))
    except Exception as exc:  # noqa: BLE001 - reported to the user
        handle_cli_exception(exc, verbose=args.verbose)
        return

    if args.format == "json":
        _emit(json.dumps(tree.to_dict(), indent=2, default=str), args.out)
    else:
        _emit(render_page(tree, title=Path(args.file).stem), args.out)
    if host.status is not RenderStatus.READY:
        print(f"{host.status.value}: {host.state.message}", file=sys.stderr)
        sys.exit(1)


def cmd_schema(args: argparse.Namespace) -> None:
    """Print the schema discovered from the data source."""

    async def _discover():
        source = _data_source(args)
        try:
            return await source.discover_schema()
        finally:
            if hasattr(source, "aclose"):
                await source.aclose()

    try:
        schema = asyncio.run(_discover())
    except Exception as exc:  # noqa: BLE001 - reported to the user
        handle_cli_exception(exc, verbose=args.verbose)
        return
    print(json.dumps(schema_payload(schema), indent=2, default=str))


def cmd_generate(args: argparse.Namespace) -> None:
    """Generate a dashboard for one instruction and write it as a page."""
    settings = get_settings()

    async def _generate():
        source = _data_source(args)
        generator = GeminiClient.from_settings(settings)
        store = DashboardStore(JsonFileDocumentStore(settings.store_path)) if args.save else None
        pipeline = GenerationPipeline(generator, source, settings=settings, store=store)
        try:
            result = await pipeline.submit(args.instruction)
            return pipeline, result
        finally:
            await generator.aclose()
            if hasattr(source, "aclose"):
                await source.aclose()

    try:
        pipeline, result = asyncio.run(_generate())
    except Exception as exc:  # noqa: BLE001 - reported to the user
        handle_cli_exception(exc, verbose=args.verbose)
        return

    if result.summary:
        print(result.summary, file=sys.stderr)
    tree = pipeline.view()
    _emit(render_page(tree, title=args.instruction[:60]), args.out)
    if not result.ok:
        print(f"{result.status}: {result.message}", file=sys.stderr)
        sys.exit(1)


__all__ = ["cmd_check", "cmd_generate", "cmd_render", "cmd_schema", "cmd_transpile"]
