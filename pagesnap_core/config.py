#!/usr/bin/env python3
from dataclasses import dataclass
import os
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv

load_dotenv()


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ["true", "1", "yes"]


@dataclass
class Config:
    """Application configuration"""
    # Browser
    browser: str = os.getenv("PAGESNAP_BROWSER", "chromium").lower()
    headless: bool = _flag("PAGESNAP_HEADLESS", "true")
    slow_mo: int = int(os.getenv("PAGESNAP_SLOW_MO", "0"))
    timeout_ms: int = int(os.getenv("PAGESNAP_TIMEOUT_MS", "30000"))
    user_agent: Optional[str] = os.getenv("PAGESNAP_USER_AGENT") or None
    locale: str = os.getenv("PAGESNAP_LOCALE", "en-US")
    block_resources: bool = _flag("PAGESNAP_BLOCK_RESOURCES", "true")

    # Retry / backoff for the navigation loop
    retry_attempts: int = int(os.getenv("PAGESNAP_RETRY_ATTEMPTS", "3"))
    retry_delay_ms: int = int(os.getenv("PAGESNAP_RETRY_DELAY_MS", "1000"))

    # Readiness heuristics (soft idle + density)
    ready_timeout_ms: int = int(os.getenv("PAGESNAP_READY_TIMEOUT_MS", "8000"))
    idle_ms: int = int(os.getenv("PAGESNAP_IDLE_MS", "500"))
    max_inflight: int = int(os.getenv("PAGESNAP_MAX_INFLIGHT", "2"))

    # Snapshot limits
    max_controls: int = int(os.getenv("PAGESNAP_MAX_CONTROLS", "30"))
    max_lists: int = int(os.getenv("PAGESNAP_MAX_LISTS", "2"))
    max_forms: int = int(os.getenv("PAGESNAP_MAX_FORMS", "3"))
    max_form_fields: int = int(os.getenv("PAGESNAP_MAX_FORM_FIELDS", "12"))
    include_iframes: bool = _flag("PAGESNAP_INCLUDE_IFRAMES", "true")
    max_capture_nodes: int = int(os.getenv("PAGESNAP_MAX_CAPTURE_NODES", "8000"))

    # Output
    output_dir: Path = Path(os.getenv("PAGESNAP_OUTPUT_DIR", "./output"))
    output_format: str = os.getenv("PAGESNAP_OUTPUT_FORMAT", "json").lower()

    # Debugging
    debug_dumps: bool = _flag("PAGESNAP_DEBUG_DUMPS", "false")
    debug_dir: Path = Path(os.getenv("PAGESNAP_DEBUG_DIR", "./debug"))
    debug_html: bool = _flag("PAGESNAP_DEBUG_HTML", "false")
    debug_screenshots: bool = _flag("PAGESNAP_DEBUG_SCREENSHOTS", "false")

    def __post_init__(self):
        if self.debug_dumps:
            self.debug_dir.mkdir(parents=True, exist_ok=True)

    @property
    def retry_delay(self) -> float:
        return self.retry_delay_ms / 1000.0


config = Config()
