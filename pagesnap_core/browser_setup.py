#!/usr/bin/env python3
"""
Browser session: Playwright lifecycle, request interception, page events.

    async with BrowserSession(config) as session:
        await session.goto("https://example.com")
        snap = await build_snapshot(session.page)
"""

import re
from typing import Any, Dict, Optional

from .config import Config, config as default_config
from .diagnostics import get_logger
from .exceptions import NavigationError

logger = get_logger(__name__)

VIEWPORT = {"width": 1920, "height": 1080}
BROWSER_KINDS = ("chromium", "firefox", "webkit")

BLOCKED_RESOURCE_TYPES = frozenset(["image", "media", "font"])

TRACKER_PATTERNS = [
    re.compile(r"google[-_]?analytics", re.IGNORECASE),
    re.compile(r"googletagmanager", re.IGNORECASE),
    re.compile(r"doubleclick\.net", re.IGNORECASE),
    re.compile(r"googlesyndication", re.IGNORECASE),
    re.compile(r"facebook\.net", re.IGNORECASE),
    re.compile(r"hotjar\.", re.IGNORECASE),
    re.compile(r"optimizely\.", re.IGNORECASE),
    re.compile(r"segment\.(com|io)", re.IGNORECASE),
    re.compile(r"mixpanel\.", re.IGNORECASE),
    re.compile(r"amplitude\.", re.IGNORECASE),
    re.compile(r"fullstory\.", re.IGNORECASE),
    re.compile(r"newrelic\.", re.IGNORECASE),
    re.compile(r"sentry\.io", re.IGNORECASE),
]


def is_tracker(url: str) -> bool:
    return any(p.search(url) for p in TRACKER_PATTERNS)


class RequestMonitor:
    """Route handler + in-flight counter for non-document requests."""

    def __init__(self, block_resources: bool = True):
        self.block_resources = block_resources
        self.inflight = 0
        self.blocked = 0

    def should_block(self, resource_type: str, url: str) -> bool:
        if not self.block_resources:
            return False
        return resource_type in BLOCKED_RESOURCE_TYPES or is_tracker(url)

    async def handle_route(self, route):
        request = route.request
        if self.should_block(request.resource_type, request.url):
            self.blocked += 1
            await route.abort()
            return
        await route.continue_()

    def on_request(self, request):
        if request.resource_type == "document":
            return
        self.inflight += 1

    def on_request_done(self, request):
        if request.resource_type == "document":
            return
        self.inflight = max(0, self.inflight - 1)

    async def install(self, page):
        await page.route("**/*", self.handle_route)
        page.on("request", self.on_request)
        page.on("requestfinished", self.on_request_done)
        page.on("requestfailed", self.on_request_done)


class BrowserSession:
    """
    Async context manager owning the Playwright driver, browser, context
    and page. Everything opened is closed on every exit path.
    """

    def __init__(self, cfg: Optional[Config] = None):
        self.config = cfg or default_config
        self.monitor = RequestMonitor(self.config.block_resources)
        self.playwright = None
        self.browser = None
        self.context = None
        self.page = None

    async def __aenter__(self) -> "BrowserSession":
        try:
            await self.start()
        except BaseException:
            await self.close()
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def start(self):
        from playwright.async_api import async_playwright

        kind = self.config.browser if self.config.browser in BROWSER_KINDS else "chromium"
        if kind != self.config.browser:
            logger.warning(f"Unknown browser '{self.config.browser}', using chromium")

        self.playwright = await async_playwright().start()
        engine = getattr(self.playwright, kind)
        self.browser = await engine.launch(
            headless=bool(self.config.headless),
            slow_mo=self.config.slow_mo,
            timeout=self.config.timeout_ms,
        )
        context_args: Dict[str, Any] = {"viewport": dict(VIEWPORT), "locale": self.config.locale}
        if self.config.user_agent:
            context_args["user_agent"] = self.config.user_agent
        self.context = await self.browser.new_context(**context_args)
        self.context.set_default_timeout(self.config.timeout_ms)

        self.page = await self.context.new_page()
        await self.monitor.install(self.page)
        self.page.on("pageerror", lambda error: logger.error(f"Page error: {error}"))
        logger.info(f"Launched {kind} (headless={self.config.headless})")

    async def goto(self, url: str, wait_until: str = "load"):
        try:
            response = await self.page.goto(url, wait_until=wait_until, timeout=self.config.timeout_ms)
        except Exception as e:
            logger.warning(f"Navigation failed: {url} ({e})")
            raise NavigationError(f"Navigation to {url} failed: {e}", url=url) from e
        logger.info(f"Navigated: {url}")
        return response

    async def user_agent(self) -> str:
        try:
            return await self.page.evaluate("() => navigator.userAgent")
        except Exception:
            return self.config.user_agent or ""

    async def close(self):
        for name in ("page", "context", "browser"):
            target = getattr(self, name)
            if target is None:
                continue
            try:
                await target.close()
            except Exception as e:
                logger.debug(f"Closing {name} failed: {e}")
            setattr(self, name, None)
        if self.playwright is not None:
            try:
                await self.playwright.stop()
            except Exception as e:
                logger.debug(f"Stopping playwright failed: {e}")
            self.playwright = None
