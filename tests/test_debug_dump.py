"""Tests for debug dumps."""

import json
from pathlib import Path

import pytest
from unittest.mock import AsyncMock, MagicMock

from pagesnap_core.models import ScrapingState
from pagesnap_core.snapshot import assemble_snapshot
from pagesnap_logs import DebugDumper, sanitize_name

from dom_builders import el, page_doc

URL = "https://shop.example/list?page=2"


def mock_page():
    page = MagicMock()
    page.url = URL
    page.content = AsyncMock(return_value="<html><body>hi</body></html>")
    page.screenshot = AsyncMock()
    return page


def snapshot():
    return assemble_snapshot([page_doc(el("h1", text="Catalogue"), url=URL)])


class TestDebugDumper:
    """Per-step artifacts."""

    @pytest.mark.asyncio
    async def test_json_dump_contents(self, tmp_path):
        """meta, compact snapshot and extra land in the JSON file."""
        state = ScrapingState(current_url=URL, current_page=2)
        dumper = DebugDumper(tmp_path)

        info = await dumper.dump(mock_page(), snapshot(), state, "snapshot", extra={"count": 3}, user_agent="UA/1")

        assert info is not None
        payload = json.loads(open(info.json_path, encoding="utf-8").read())
        assert payload["meta"]["url"] == URL
        assert payload["meta"]["page"] == 2
        assert payload["meta"]["tag"] == "snapshot"
        assert payload["meta"]["userAgent"] == "UA/1"
        assert payload["snapshot"]["compact"]["headings"] == ["Catalogue"]
        assert payload["extra"] == {"count": 3}

    @pytest.mark.asyncio
    async def test_counter_sequence_lives_in_state(self, tmp_path):
        """File names are numbered from ScrapingState.dump_counter."""
        state = ScrapingState(current_url=URL)
        dumper = DebugDumper(tmp_path)

        first = await dumper.dump(mock_page(), snapshot(), state, "snapshot")
        second = await dumper.dump(mock_page(), None, state, "error")

        assert state.dump_counter == 2
        assert Path(first.json_path).name.startswith("0001-")
        assert Path(second.json_path).name.startswith("0002-")
        assert second.json_path.endswith("-error.json")
        assert "shop.example" in first.json_path

    @pytest.mark.asyncio
    async def test_long_runs_keep_no_per_dump_state(self, tmp_path):
        """Only the files and the state counter grow; the dumper itself does not."""
        state = ScrapingState(current_url=URL)
        dumper = DebugDumper(tmp_path)
        before = dict(vars(dumper))

        for _ in range(25):
            await dumper.dump(mock_page(), None, state, "snapshot")

        assert vars(dumper) == before
        assert state.dump_counter == 25
        assert len(list(tmp_path.glob("*.json"))) == 25

    @pytest.mark.asyncio
    async def test_html_and_screenshot_siblings(self, tmp_path):
        """Optional .html and .png next to the JSON."""
        page = mock_page()
        dumper = DebugDumper(tmp_path, html=True, screenshots=True)

        info = await dumper.dump(page, snapshot(), ScrapingState(current_url=URL), "extract")

        assert open(info.html_path, encoding="utf-8").read() == "<html><body>hi</body></html>"
        assert info.screenshot_path.endswith(".png")
        page.screenshot.assert_awaited_once()
        assert page.screenshot.await_args.kwargs["path"] == info.screenshot_path

    @pytest.mark.asyncio
    async def test_screenshot_failure_does_not_abort(self, tmp_path):
        """A failing screenshot is logged; the JSON dump survives."""
        page = mock_page()
        page.screenshot = AsyncMock(side_effect=Exception("Target closed"))
        dumper = DebugDumper(tmp_path, screenshots=True)

        info = await dumper.dump(page, snapshot(), ScrapingState(current_url=URL), "snapshot")

        assert info is not None
        assert info.screenshot_path is None

    @pytest.mark.asyncio
    async def test_unwritable_directory_returns_none(self, tmp_path):
        """Dump failures never raise."""
        blocker = tmp_path / "file"
        blocker.write_text("x", encoding="utf-8")
        dumper = DebugDumper(blocker / "sub")

        assert await dumper.dump(mock_page(), snapshot(), ScrapingState(current_url=URL), "snapshot") is None


class TestSanitizeName:
    """File name fragments."""

    def test_sanitize(self):
        """Unsafe characters become underscores; long values are hashed."""
        assert sanitize_name("https://a.b/c?d=1") == "https___a.b_c_d_1"
        assert sanitize_name("") == "page"
        long_name = sanitize_name("x" * 500)
        assert len(long_name) == 80
