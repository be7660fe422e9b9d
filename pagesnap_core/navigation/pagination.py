"""
Schema-declared pagination strategies.

Used when the snapshot offers no unvisited pagination link:

    next-button      click (or follow the href of) ``nextSelector``
    url-pattern      increment the ``page=N`` query parameter
    infinite-scroll  scroll to the bottom and wait for more content
    load-more        click a "load more" control
"""

import asyncio
import re
from typing import Optional
from urllib.parse import urljoin

from ..diagnostics import get_logger
from ..exceptions import NavigationError
from ..extraction.fields import parse_number
from ..schema import PaginationConfig

logger = get_logger(__name__)

NEXT_FALLBACK = 'a[rel="next"], a:has-text("Next"), a:has-text("Older"), a:has-text("›"), a:has-text("»")'
LOAD_MORE_FALLBACK = '[data-load-more], .load-more, button:has-text("Load more"), button:has-text("Show more")'
_PAGE_PARAM = re.compile(r"([?&]page=)(\d+)", re.IGNORECASE)

SCROLL_STATE_JS = """
() => ({
    top: window.pageYOffset || document.documentElement.scrollTop,
    client: document.documentElement.clientHeight,
    height: document.documentElement.scrollHeight
})
"""


def next_page_url(url: str) -> str:
    """``page=N`` -> ``page=N+1``; appends ``page=2`` when absent."""
    m = _PAGE_PARAM.search(url)
    if m:
        return url[: m.start()] + m.group(1) + str(int(m.group(2)) + 1) + url[m.end():]
    base, _, fragment = url.partition("#")
    sep = "&" if "?" in base else "?"
    return f"{base}{sep}page=2" + (f"#{fragment}" if fragment else "")


class PaginationHandler:
    def __init__(self, config: PaginationConfig, timeout_ms: int = 30000):
        self.config = config
        self.timeout_ms = timeout_ms

    @property
    def strategy(self) -> str:
        return self.config.strategy

    @property
    def changes_url(self) -> bool:
        return self.strategy in ("next-button", "url-pattern")

    async def has_next(self, page) -> bool:
        try:
            if self.strategy == "next-button":
                return await self._usable(page, self.config.next_selector or NEXT_FALLBACK)
            if self.strategy == "url-pattern":
                return await self._indicator_allows_next(page)
            if self.strategy == "infinite-scroll":
                state = await page.evaluate(SCROLL_STATE_JS)
                return state["top"] + state["client"] < state["height"]
            if self.strategy == "load-more":
                return await self._usable(page, self.config.next_selector or LOAD_MORE_FALLBACK)
        except Exception as e:
            logger.warning(f"Pagination check failed ({self.strategy}): {e}")
        return False

    async def go_next(self, page):
        try:
            if self.strategy == "next-button":
                await self._follow_or_click(page, self.config.next_selector or NEXT_FALLBACK)
            elif self.strategy == "url-pattern":
                await page.goto(next_page_url(page.url), wait_until="load", timeout=self.timeout_ms)
            elif self.strategy == "infinite-scroll":
                await page.evaluate("() => window.scrollTo(0, document.body.scrollHeight)")
                if not self.config.wait_for_load:
                    await asyncio.sleep(1.0)
            elif self.strategy == "load-more":
                await page.locator(self.config.next_selector or LOAD_MORE_FALLBACK).first.click()
        except Exception as e:
            raise NavigationError(f"Failed to go to next page ({self.strategy}): {e}", url=page.url) from e

        if self.config.wait_for_load:
            await asyncio.sleep(self.config.wait_for_load / 1000)
        logger.info(f"Paginated via {self.strategy}: {page.url}")

    async def _usable(self, page, selector: str) -> bool:
        el = page.locator(selector).first
        if await el.count() == 0:
            return False
        if not await el.is_visible():
            return False
        disabled = await el.get_attribute("disabled")
        aria = (await el.get_attribute("aria-disabled")) or ""
        return disabled is None and aria.lower() != "true"

    async def _indicator_allows_next(self, page) -> bool:
        # without an indicator the engine stops on the first page adding nothing
        if not self.config.page_indicator:
            return True
        el = page.locator(self.config.page_indicator).first
        if await el.count() == 0:
            logger.info(f"Page indicator {self.config.page_indicator!r} not found")
            return False
        if not self.config.max_pages:
            return True
        current: Optional[float] = parse_number(await el.text_content())
        return current is None or current < self.config.max_pages

    async def _follow_or_click(self, page, selector: str):
        el = page.locator(selector).first
        href = await el.get_attribute("href")
        if href and not href.startswith(("javascript:", "#")):
            await page.goto(urljoin(page.url, href), wait_until="domcontentloaded", timeout=self.timeout_ms)
            return
        await el.click()
        await page.wait_for_load_state("domcontentloaded")
