#!/usr/bin/env python3
"""
Scraping engine - the snapshot-driven navigation loop.

One cycle per page:

    snapshot -> extract -> (follow links)* -> paginate -> continue | stop

The loop stops when nothing advanced, ``maxPages`` or ``maxItems`` is
reached, or the accumulated errors reach ``retry_attempts``. A failed cycle
is recorded, followed by a fixed ``retry_delay`` sleep, and retried.
"""

import asyncio
import time
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional
from urllib.parse import urlsplit

from pagesnap_logs import DebugDumper

from ..browser_setup import BrowserSession
from ..canonical import Deduplicator, canonicalize
from ..config import Config, config as default_config
from ..diagnostics import get_logger
from ..dom.selectors import select_one
from ..exceptions import NavigationError, SelectorSyntaxError, error_kind
from ..extraction import ItemExtractor, list_roots
from ..models import ExtractedItem, PageSnapshot, ScrapingError, ScrapingResult, ScrapingState
from ..readiness import wait_for_ready
from ..schema import ScrapingSchema
from ..snapshot import build_snapshot
from ..weights import DEFAULT_WEIGHTS, HeuristicWeights, SnapshotLimits
from .pagination import PaginationHandler

logger = get_logger(__name__)

Snapshotter = Callable[[Any], Awaitable[PageSnapshot]]


def _is_http(url: Optional[str]) -> bool:
    return bool(url) and urlsplit(url).scheme.lower() in ("http", "https")


class ScrapingEngine:
    """
    Drives one page through a schema-described scraping run.

    Usage:
        schema = load_schema("books.yaml")
        result = await ScrapingEngine(schema).run()

    ``page``, ``snapshotter``, ``extractor``, ``readiness`` and ``sleep`` can
    be injected; without a page the engine opens its own BrowserSession.
    """

    def __init__(
        self,
        schema: ScrapingSchema,
        cfg: Optional[Config] = None,
        page=None,
        snapshotter: Optional[Snapshotter] = None,
        extractor: Optional[ItemExtractor] = None,
        dumper: Optional[DebugDumper] = None,
        readiness: Optional[Callable[[Any], Awaitable[bool]]] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        weights: HeuristicWeights = DEFAULT_WEIGHTS,
        limits: Optional[SnapshotLimits] = None,
    ):
        self.schema = schema
        self.config = cfg or default_config
        self.page = page
        self.weights = weights
        self.limits = limits or SnapshotLimits.from_config(self.config)
        self.snapshotter = snapshotter
        self.extractor = extractor or ItemExtractor(schema.selectors, weights, Deduplicator())
        if dumper is None and self.config.debug_dumps:
            dumper = DebugDumper(self.config.debug_dir, self.config.debug_html, self.config.debug_screenshots)
        self.dumper = dumper
        self.readiness = readiness
        self.sleep = sleep
        self.pagination = (
            PaginationHandler(schema.pagination, self.config.timeout_ms) if schema.pagination else None
        )
        self.session: Optional[BrowserSession] = None
        self.state = ScrapingState(current_url=schema.target.base_url)
        self._user_agent: Optional[str] = None
        # items collected before the current page was reached
        self._page_start = 0

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    async def run(self) -> ScrapingResult:
        logger.info(f"Starting scraping session: {self.schema.name}")
        if self.page is not None:
            return await self._run_on(self.page)
        async with BrowserSession(self.config) as session:
            self.session = session
            try:
                return await self._run_on(session.page)
            finally:
                self.session = None

    async def _run_on(self, page) -> ScrapingResult:
        start_url = self.schema.target.start_url
        await self._goto(page, start_url)
        self.state.current_url = start_url
        self.state.visited_urls.add(canonicalize(start_url))

        await self._loop(page)

        result = self._build_result()
        logger.info(
            f"Finished {self.schema.name}: {result.item_count} item(s), "
            f"{result.page_count} page(s), {len(result.errors)} error(s)"
        )
        return result

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    async def _loop(self, page):
        while self._should_continue():
            try:
                await self._wait_ready(page)
                snap = await self._snapshot(page)
                self.state.current_url = snap.compact.url or self.state.current_url
                self.state.visited_urls.add(canonicalize(self.state.current_url))
                await self._dump(page, snap, "snapshot")

                await self._extract(page, snap, self.state.current_url)

                if self.schema.navigation.follow_links:
                    await self._follow_links(page, snap)

                if self.state.current_page > 1 and len(self.state.extracted_items) == self._page_start:
                    logger.info(f"Page {self.state.current_page} added no new items; stopping")
                    break

                if not await self._paginate(page, snap):
                    break
            except Exception as e:
                self._handle_error(e)
                await self._dump(page, None, "error", extra={"error": str(e), "type": type(e).__name__})
                if len(self.state.errors) >= self.config.retry_attempts:
                    logger.error(f"Giving up after {len(self.state.errors)} error(s)")
                    break
                await self.sleep(self.config.retry_delay)

    def _items_left(self) -> Optional[int]:
        max_items = self.schema.max_items
        if max_items is None:
            return None
        return max(max_items - len(self.state.extracted_items), 0)

    def _should_continue(self) -> bool:
        left = self._items_left()
        if left is not None and left <= 0:
            logger.info(f"Reached maxItems ({self.schema.max_items})")
            return False
        max_pages = self.schema.max_pages
        return max_pages is None or self.state.current_page <= max_pages

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def _wait_ready(self, page):
        if self.readiness is not None:
            await self.readiness(page)
            return
        monitor = self.session.monitor if self.session is not None else None
        await wait_for_ready(
            page,
            monitor,
            timeout_ms=self.config.ready_timeout_ms,
            idle_ms=self.config.idle_ms,
            max_inflight=self.config.max_inflight,
        )

    async def _snapshot(self, page) -> PageSnapshot:
        if self.snapshotter is not None:
            return await self.snapshotter(page)
        return await build_snapshot(
            page,
            self.limits,
            self.weights,
            include_iframes=self.config.include_iframes,
            max_nodes=self.config.max_capture_nodes,
        )

    async def _extract(self, page, snap: PageSnapshot, url: str) -> int:
        records = await self.extractor.extract(page, snap, self._items_left())
        if records:
            now = datetime.now()
            self.state.extracted_items.extend(ExtractedItem(data=r, url=url, timestamp=now) for r in records)
            logger.info(f"Total items: {len(self.state.extracted_items)}")
        await self._dump(page, snap, "extract", extra={"tier": self.extractor.last_tier, "count": len(records)})
        return len(records)

    async def _follow_links(self, page, snap: PageSnapshot):
        parent_url = self.state.current_url
        for href in self._discover_links(snap):
            left = self._items_left()
            if left is not None and left <= 0:
                break
            key = canonicalize(href)
            if key in self.state.visited_urls:
                continue
            self.state.visited_urls.add(key)
            try:
                await self._goto(page, href)
                await self._wait_ready(page)
                child = await self._snapshot(page)
                await self._dump(page, child, "follow")
                await self._extract(page, child, href)
            except Exception as e:
                self._handle_error(e)
                logger.warning(f"Skipping linked page {href}")
            finally:
                if not self._same_url(page.url, parent_url):
                    await self._go_back(page, parent_url)

    def _same_site(self, href: str) -> bool:
        host = (urlsplit(href).hostname or "").lower()
        current = (urlsplit(self.state.current_url).hostname or "").lower()
        if not host or host == current:
            return True
        for domain in self.schema.navigation.allowed_domains:
            domain = domain.lower().lstrip(".")
            if host == domain or host.endswith("." + domain):
                return True
        return False

    def _discover_links(self, snap: PageSnapshot) -> List[str]:
        """Hrefs of prominent controls and top list items worth visiting."""
        candidates: List[str] = [
            ctl.href for ctl in snap.compact.controls[: self.weights.follow_controls] if ctl.href
        ]
        for block in snap.compact.lists[: self.weights.follow_lists]:
            doc = snap.documents.get(block.root.frame_id)
            if doc is None:
                continue
            link_selector = block.item_link_selector or self.weights.list_link_selector
            try:
                for root in list_roots(doc, block, self.weights):
                    link = select_one(doc, link_selector, scope=root)
                    if link is not None and link.href:
                        candidates.append(link.href)
            except SelectorSyntaxError as e:
                logger.warning(f"Cannot resolve list links for {block.root.selector!r}: {e}")

        out: List[str] = []
        seen = set()
        for href in candidates:
            if not _is_http(href) or not self._same_site(href):
                continue
            key = canonicalize(href)
            if key in seen or key in self.state.visited_urls:
                continue
            seen.add(key)
            out.append(href)
            if len(out) >= self.schema.navigation.max_follow_links:
                break
        logger.debug(f"Discovered {len(out)} link(s) to follow")
        return out

    def _choose_next_href(self, snap: PageSnapshot) -> Optional[str]:
        for ref in snap.compact.pagination:
            if _is_http(ref.href) and canonicalize(ref.href) not in self.state.visited_urls:
                return ref.href
        return None

    async def _paginate(self, page, snap: PageSnapshot) -> bool:
        max_pages = self.schema.max_pages
        if max_pages is not None and self.state.current_page >= max_pages:
            logger.info(f"Reached maxPages ({max_pages})")
            return False

        next_href = self._choose_next_href(snap)
        if next_href:
            await self._goto(page, next_href)
            self.state.visited_urls.add(canonicalize(next_href))
            self._advance_page()
            return True

        if self.pagination is None:
            return False
        if not await self.pagination.has_next(page):
            logger.info("No next page")
            return False

        before = page.url
        await self.pagination.go_next(page)
        after = page.url
        if self.pagination.changes_url and not self._same_url(before, after):
            key = canonicalize(after)
            if key in self.state.visited_urls:
                logger.info(f"Pagination looped back to {after}; stopping")
                return False
            self.state.visited_urls.add(key)
        self._advance_page()
        return True

    def _advance_page(self):
        self.state.current_page += 1
        self._page_start = len(self.state.extracted_items)

    @staticmethod
    def _same_url(a: Optional[str], b: Optional[str]) -> bool:
        return canonicalize(a) == canonicalize(b)

    # ------------------------------------------------------------------
    # Navigation helpers
    # ------------------------------------------------------------------

    async def _goto(self, page, url: str):
        try:
            await page.goto(url, wait_until="load", timeout=self.config.timeout_ms)
        except Exception as e:
            logger.warning(f"Navigation failed: {url} ({e})")
            raise NavigationError(f"Navigation to {url} failed: {e}", url=url) from e
        logger.info(f"Navigated: {url}")

    async def _go_back(self, page, parent_url: str):
        try:
            await page.go_back(wait_until="load", timeout=self.config.timeout_ms)
        except Exception as e:
            logger.debug(f"go_back failed: {e}")
        if not self._same_url(page.url, parent_url):
            await self._goto(page, parent_url)

    # ------------------------------------------------------------------
    # Errors, dumps, result
    # ------------------------------------------------------------------

    def _handle_error(self, error: BaseException):
        err = ScrapingError(
            type=error_kind(error),
            message=str(error) or type(error).__name__,
            url=getattr(error, "url", None) or self.state.current_url,
            selector=getattr(error, "selector", None),
        )
        self.state.errors.append(err)
        logger.warning(f"Scraping error ({err.type}) at {err.url}: {err.message}")

    async def _dump(self, page, snap: Optional[PageSnapshot], tag: str, extra: Optional[Dict[str, Any]] = None):
        if self.dumper is None:
            return
        if self._user_agent is None and self.session is not None:
            self._user_agent = await self.session.user_agent()
        await self.dumper.dump(page, snap, self.state, tag, extra=extra, user_agent=self._user_agent)

    def _build_result(self) -> ScrapingResult:
        return ScrapingResult(
            url=self.schema.target.base_url,
            data=[item.data for item in self.state.extracted_items],
            page_count=self.state.current_page,
            item_count=len(self.state.extracted_items),
            duration_ms=int((time.time() - self.state.start_time) * 1000),
            errors=list(self.state.errors),
        )
