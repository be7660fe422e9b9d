"""
Debug dumps - per-step artifacts of a scraping run

Each dump is ``<counter>-<timestamp>-<sanitized url>-<tag>.json`` holding

    {"meta": {url, page, tag, timestamp, userAgent},
     "snapshot": {"compact": ...},
     "extra": ...}

with optional ``.html`` (page content) and ``.png`` (screenshot) siblings.
The counter comes from ``ScrapingState.dump_counter``. A failing dump is
logged and never interrupts the run.
"""

import hashlib
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union, TYPE_CHECKING

if TYPE_CHECKING:
    from playwright.async_api import Page

logger = logging.getLogger(__name__)


def sanitize_name(s: str, limit: int = 80) -> str:
    """Filesystem-safe fragment; long values keep a prefix plus a hash."""
    s = (s or "").strip()
    if not s:
        return "page"
    s2 = "".join(ch if ch.isalnum() or ch in ("-", "_", ".") else "_" for ch in s)
    if len(s2) > limit:
        h = hashlib.sha1(s.encode("utf-8")).hexdigest()[:12]
        s2 = s2[: limit - 13] + "_" + h
    return s2


@dataclass
class DumpInfo:
    """Paths written by one dump"""
    index: int
    tag: str
    json_path: str
    html_path: Optional[str] = None
    screenshot_path: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)


class DebugDumper:
    """
    Writes debug artifacts for a run.

    Usage:
        dumper = DebugDumper("./debug", html=True, screenshots=True)
        await dumper.dump(page, snapshot, state, tag="snapshot")
    """

    def __init__(self, directory: Union[str, Path], html: bool = False, screenshots: bool = False):
        self.directory = Path(directory)
        self.html = html
        self.screenshots = screenshots

    def _basename(self, index: int, url: str, tag: str) -> str:
        ts = datetime.now().strftime("%Y%m%d-%H%M%S-%f")
        url_part = sanitize_name(url.replace("://", "_").replace("/", "_"))
        return f"{index:04d}-{ts}-{url_part}-{sanitize_name(tag)}"

    async def dump(
        self,
        page: "Page",
        snapshot,
        state,
        tag: str,
        extra: Optional[Dict[str, Any]] = None,
        user_agent: Optional[str] = None,
    ) -> Optional[DumpInfo]:
        """
        Write one dump for the current step.

        Args:
            page: Playwright page (for url, content and screenshot)
            snapshot: PageSnapshot of the step, or None
            state: ScrapingState; supplies the page number and dump counter
            tag: Step name (snapshot, extract, error, ...)
            extra: Any JSON-serializable step details
            user_agent: Browser user agent recorded in the meta block

        Returns:
            DumpInfo, or None when writing failed
        """
        try:
            url = page.url or state.current_url
            index = state.next_dump_index()
            base = self._basename(index, url, tag)
            self.directory.mkdir(parents=True, exist_ok=True)

            payload = {
                "meta": {
                    "url": url,
                    "page": state.current_page,
                    "tag": tag,
                    "timestamp": datetime.now().isoformat(),
                    "userAgent": user_agent,
                },
                "snapshot": {"compact": snapshot.compact.to_dict() if snapshot is not None else None},
                "extra": extra,
            }
            json_path = self.directory / f"{base}.json"
            json_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False, default=str), encoding="utf-8")
            info = DumpInfo(index=index, tag=tag, json_path=str(json_path))
        except Exception as e:
            logger.error(f"Failed to write debug dump ({tag}): {e}")
            return None

        if self.html:
            html_path = self.directory / f"{base}.html"
            try:
                html_path.write_text(await page.content(), encoding="utf-8")
                info.html_path = str(html_path)
            except Exception as e:
                logger.warning(f"Failed to dump page HTML: {e}")

        if self.screenshots:
            png_path = self.directory / f"{base}.png"
            try:
                await page.screenshot(path=str(png_path), full_page=True)
                info.screenshot_path = str(png_path)
            except Exception as e:
                logger.warning(f"Failed to capture debug screenshot: {e}")

        logger.debug(f"Debug dump written: {info.json_path}")
        return info
