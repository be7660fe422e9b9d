#!/usr/bin/env python3
"""
pagesnap CLI - run scraping schemas, validate them, snapshot a page

Usage:
    pagesnap run <schema.yaml> [--format jsonl] [--output-dir DIR]
                 [--max-pages N] [--max-items N] [--headful] [--debug-dumps] [--verbose]
    pagesnap validate <schema.yaml>
    pagesnap snapshot <url>
"""

import argparse
import asyncio
import json
import sys
from dataclasses import replace

from .browser_setup import BrowserSession
from .config import Config, config as default_config
from .diagnostics import get_logger, set_level
from .exceptions import PagesnapError, SchemaValidationError
from .navigation import ScrapingEngine
from .output import OutputWriter
from .readiness import wait_for_ready
from .schema import OUTPUT_FORMATS, load_schema
from .snapshot import build_snapshot
from .weights import DEFAULT_WEIGHTS, SnapshotLimits

logger = get_logger(__name__)

SCHEMA_ARG_HELP = "Path to a JSON or YAML scraping schema"


def _configure(args) -> Config:
    if getattr(args, "verbose", False):
        set_level("DEBUG")
    cfg = default_config
    if getattr(args, "headful", False):
        cfg = replace(cfg, headless=False)
    if getattr(args, "debug_dumps", False):
        cfg = replace(cfg, debug_dumps=True)
    return cfg


def cmd_run(args):
    """Run a scraping schema and write its output"""
    cfg = _configure(args)
    try:
        schema = load_schema(args.schema)
    except SchemaValidationError as e:
        logger.error(f"Invalid schema: {e}")
        return 2

    if args.max_pages is not None:
        schema.target.max_pages = args.max_pages
    if args.max_items is not None:
        schema.target.max_items = args.max_items
    if args.format:
        schema.output.format = args.format
    if args.output_dir:
        schema.output.directory = args.output_dir

    try:
        result = asyncio.run(ScrapingEngine(schema, cfg).run())
        path = OutputWriter(schema.output, cfg.output_dir, cfg.output_format).write(result)
    except PagesnapError as e:
        logger.error(f"Scraping failed: {e}")
        return 1
    except Exception as e:
        logger.error(f"Scraping failed: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1

    print(
        f"{schema.name}: {result.item_count} items, {result.page_count} pages, "
        f"{len(result.errors)} errors, {result.duration_ms} ms -> {path}"
    )
    return 0 if result.item_count or not result.errors else 1


def cmd_validate(args):
    """Validate a scraping schema"""
    _configure(args)
    try:
        schema = load_schema(args.schema)
    except SchemaValidationError as e:
        print(f"✗ Schema validation failed: {args.schema}: {e}")
        return 1
    print(f"✓ Schema is valid: {args.schema} ({schema.name}, start {schema.target.start_url})")
    return 0


async def _snapshot(url: str, cfg: Config):
    async with BrowserSession(cfg) as session:
        await session.goto(url)
        await wait_for_ready(
            session.page,
            session.monitor,
            timeout_ms=cfg.ready_timeout_ms,
            idle_ms=cfg.idle_ms,
            max_inflight=cfg.max_inflight,
        )
        return await build_snapshot(
            session.page,
            SnapshotLimits.from_config(cfg),
            DEFAULT_WEIGHTS,
            include_iframes=cfg.include_iframes,
            max_nodes=cfg.max_capture_nodes,
        )


def cmd_snapshot(args):
    """Print the compact snapshot of one page"""
    cfg = _configure(args)
    try:
        snap = asyncio.run(_snapshot(args.url, cfg))
    except Exception as e:
        logger.error(f"Snapshot failed: {e}")
        return 1
    out = snap.to_dict() if args.full else snap.compact.to_dict()
    print(json.dumps(out, indent=2, ensure_ascii=False))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pagesnap",
        description="pagesnap - snapshot-driven web extraction",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest='command', help='Commands')

    run_parser = subparsers.add_parser('run', help='Run a scraping schema')
    run_parser.add_argument('schema', help=SCHEMA_ARG_HELP)
    run_parser.add_argument('--format', choices=OUTPUT_FORMATS, help='Output format')
    run_parser.add_argument('--output-dir', help='Output directory')
    run_parser.add_argument('--max-pages', type=int, help='Override target.maxPages')
    run_parser.add_argument('--max-items', type=int, help='Override target.maxItems')
    run_parser.add_argument('--headful', action='store_true', help='Show the browser window')
    run_parser.add_argument('--debug-dumps', action='store_true', help='Write per-step debug dumps')
    run_parser.add_argument('--verbose', action='store_true', help='Verbose output')
    run_parser.set_defaults(func=cmd_run)

    validate_parser = subparsers.add_parser('validate', help='Validate a scraping schema')
    validate_parser.add_argument('schema', help=SCHEMA_ARG_HELP)
    validate_parser.add_argument('--verbose', action='store_true', help='Verbose output')
    validate_parser.set_defaults(func=cmd_validate)

    snapshot_parser = subparsers.add_parser('snapshot', help='Print the compact snapshot of a page')
    snapshot_parser.add_argument('url', help='Page URL')
    snapshot_parser.add_argument('--full', action='store_true', help='Include refMap and stats')
    snapshot_parser.add_argument('--headful', action='store_true', help='Show the browser window')
    snapshot_parser.add_argument('--verbose', action='store_true', help='Verbose output')
    snapshot_parser.set_defaults(func=cmd_snapshot)

    return parser


def main(argv=None):
    """Main CLI entry point"""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
