"""
pagesnap_core package: page distillation and the snapshot-driven scraping loop

Usage:
    from pagesnap_core import BrowserSession, build_snapshot, load_schema, ScrapingEngine

    async with BrowserSession() as session:
        await session.goto("https://example.com")
        snap = await build_snapshot(session.page)

    result = await ScrapingEngine(load_schema("books.yaml")).run()
"""
from .config import Config, config
from .browser_setup import BrowserSession, RequestMonitor
from .canonical import Deduplicator, canonicalize
from .exceptions import (
    PagesnapError,
    ExtractionError,
    NavigationError,
    SchemaValidationError,
    ReadinessTimeout,
    SelectorSyntaxError,
)
from .extraction import ItemExtractor
from .images import pick_best_image
from .models import CompactSnapshot, NodeRef, PageSnapshot, ScrapingResult, ScrapingState
from .navigation import PaginationHandler, ScrapingEngine
from .output import OutputWriter
from .readiness import wait_for_ready
from .schema import ScrapingSchema, load_schema, parse_schema
from .snapshot import assemble_snapshot, build_snapshot
from .weights import DEFAULT_LIMITS, DEFAULT_WEIGHTS, HeuristicWeights, SnapshotLimits

__version__ = "0.1.0"

__all__ = [
    # Core
    "Config",
    "config",
    "BrowserSession",
    "RequestMonitor",
    "wait_for_ready",
    # Snapshot
    "build_snapshot",
    "assemble_snapshot",
    "PageSnapshot",
    "CompactSnapshot",
    "NodeRef",
    "HeuristicWeights",
    "SnapshotLimits",
    "DEFAULT_WEIGHTS",
    "DEFAULT_LIMITS",
    # Extraction
    "ItemExtractor",
    "pick_best_image",
    "canonicalize",
    "Deduplicator",
    # Runs
    "ScrapingSchema",
    "load_schema",
    "parse_schema",
    "ScrapingEngine",
    "PaginationHandler",
    "ScrapingState",
    "ScrapingResult",
    "OutputWriter",
    # Errors
    "PagesnapError",
    "ExtractionError",
    "NavigationError",
    "SchemaValidationError",
    "ReadinessTimeout",
    "SelectorSyntaxError",
]
