"""Tests for the three-tier item extraction pipeline."""

import pytest
from unittest.mock import AsyncMock, MagicMock

from pagesnap_core.canonical import Deduplicator
from pagesnap_core.extraction import (
    LIST_ROOTS_JS,
    ItemExtractor,
    anchor_tier,
    list_roots,
    list_tier,
    parse_number,
    requery_list_roots,
    schema_tier,
)
from pagesnap_core.schema import DataSelectors, FieldSelector
from pagesnap_core.snapshot import assemble_snapshot

from dom_builders import el, item_cards, page_doc


def list_snapshot(count=10, start=0, url="https://shop.example/list"):
    return assemble_snapshot([page_doc(el("main", *item_cards(count, start)), url=url)])


def anchors_snapshot():
    doc = page_doc(
        el("a", text="Read the full review of the new phone", href="https://shop.example/review",
           bbox=(0, 0, 400, 40)),
        el("a", text="x", href="https://shop.example/tiny", bbox=(0, 0, 10, 10)),
        el("a", text="Script", href="javascript:void(0)", bbox=(0, 0, 400, 40)),
    )
    return assemble_snapshot([doc])


class TestParseNumber:
    """parse_number()"""

    @pytest.mark.parametrize("text,expected", [
        ("£1,299.99", 1299.99),
        ("1.299,99 zł", 1299.99),
        ("12,50", 12.5),
        ("1,000", 1000),
        ("Price: 42", 42),
        ("-5 °C", -5),
        ("£51.77", 51.77),
        ("no digits", None),
        (None, None),
    ])
    def test_values(self, text, expected):
        """First numeric token, both separator conventions."""
        assert parse_number(text) == expected


class TestSchemaTier:
    """Explicit schema selectors."""

    @pytest.mark.asyncio
    async def test_fields_win_over_derived_keys(self):
        """Schema values are kept; missing keys are derived from the container."""
        snap = list_snapshot(2)
        doc = snap.documents["main"]
        articles = list(doc.iter_tag("article"))
        page = MagicMock()
        page.evaluate = AsyncMock(return_value=[
            {"index": articles[0].index, "values": {"title": "Book one", "price": "£51.77"}},
            {"index": articles[1].index, "values": {"title": "Book two", "price": "£12,50"}},
        ])
        selectors = DataSelectors(
            item_root="article",
            fields=[FieldSelector("title", "h2"), FieldSelector("price", ".price", type="number")],
        )

        records = await schema_tier(page, snap, selectors)

        assert [r["title"] for r in records] == ["Book one", "Book two"]
        assert [r["price"] for r in records] == [51.77, 12.5]
        assert records[0]["href"] == "https://shop.example/p/0"
        assert records[0]["selector"] == {"root": "article", "strategy": "schema"}
        assert records[0]["container"]["tag"] == "article"
        assert records[0]["actions"][0]["name"] == "Add to cart"

    @pytest.mark.asyncio
    async def test_no_selectors_means_no_records(self):
        """Without itemRoot and fields the tier is skipped."""
        assert await schema_tier(MagicMock(), list_snapshot(), DataSelectors()) == []


class TestListTier:
    """Snapshot-derived list extraction."""

    @pytest.mark.asyncio
    async def test_one_record_per_item(self):
        """The first ListBlock yields enriched records."""
        records = await list_tier(None, list_snapshot(10))
        assert len(records) == 10
        first = records[0]
        assert first["href"] == "https://shop.example/p/0"
        assert first["title"] == "Product 0"
        assert first["text"].startswith("Product 0")
        assert first["selector"]["strategy"] == "list"
        assert first["signals"]["links"] == 1

    def test_roots_widen_from_first_member(self):
        """A positional root selector widens to all members."""
        snap = list_snapshot(10)
        block = snap.compact.lists[0]
        roots = list_roots(snap.documents["main"], block)
        assert len(roots) == 10
        assert all(r.tag == "article" for r in roots)

    @pytest.mark.asyncio
    async def test_no_lists(self):
        """No ListBlock, no records."""
        assert await list_tier(None, anchors_snapshot()) == []


class TestLiveListRoots:
    """List roots re-queried in the live frame and mapped onto the capture."""

    @staticmethod
    def articles(snap):
        return list(snap.documents["main"].iter_tag("article"))

    @pytest.mark.asyncio
    async def test_live_matches_drive_the_records(self):
        """Only elements still matched live become records; unknown ones are skipped."""
        snap = list_snapshot(10)
        cards = self.articles(snap)
        page = MagicMock()
        page.evaluate = AsyncMock(return_value={
            "selector": "main > article",
            "indexes": [cards[2].index, cards[5].index, -1],
        })

        records = await list_tier(page, snap)

        assert [r["href"] for r in records] == ["https://shop.example/p/2", "https://shop.example/p/5"]
        script, candidates = page.evaluate.await_args.args
        assert script == LIST_ROOTS_JS
        assert candidates[0] == snap.compact.lists[0].root.selector

    @pytest.mark.asyncio
    async def test_captured_frame_preferred_over_page(self):
        """The frame the list was captured from is queried, not the page."""
        snap = list_snapshot(10)
        cards = self.articles(snap)
        frame = MagicMock()
        frame.evaluate = AsyncMock(return_value={"selector": "article", "indexes": [c.index for c in cards[:3]]})
        snap.frames["main"] = frame
        page = MagicMock()
        page.evaluate = AsyncMock()

        records = await list_tier(page, snap)

        assert len(records) == 3
        frame.evaluate.assert_awaited_once()
        page.evaluate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_query_failure_falls_back_to_capture(self):
        """A destroyed context leaves the captured document to answer."""
        snap = list_snapshot(10)
        page = MagicMock()
        page.evaluate = AsyncMock(side_effect=Exception("Execution context was destroyed"))

        records = await list_tier(page, snap)

        assert len(records) == 10

    @pytest.mark.asyncio
    async def test_single_live_match_expands_to_siblings(self):
        """One live member stands for its same-signature siblings."""
        snap = list_snapshot(10)
        cards = self.articles(snap)
        frame = MagicMock()
        frame.evaluate = AsyncMock(return_value={"selector": "x", "indexes": [cards[0].index]})

        roots = await requery_list_roots(frame, snap.documents["main"], snap.compact.lists[0])

        assert roots == cards

    @pytest.mark.asyncio
    async def test_nothing_mapped_back_uses_capture(self):
        """Live matches outside the capture fall back to the captured document."""
        snap = list_snapshot(10)
        frame = MagicMock()
        frame.evaluate = AsyncMock(return_value={"selector": "x", "indexes": [-1, -1]})

        roots = await requery_list_roots(frame, snap.documents["main"], snap.compact.lists[0])

        assert roots == self.articles(snap)


class TestAnchorTier:
    """Generic anchor fallback."""

    @pytest.mark.asyncio
    async def test_scored_http_anchors(self):
        """Wordy, large anchors first; non-http hrefs dropped."""
        records = await anchor_tier(anchors_snapshot())
        assert [r["href"] for r in records] == ["https://shop.example/review", "https://shop.example/tiny"]
        assert records[0]["selector"]["strategy"] == "anchor"


class TestItemExtractor:
    """Tier order, capacity and run-wide dedup."""

    @pytest.mark.asyncio
    async def test_capacity_limits_records(self):
        """maxItems=5 with 10 list items gives 5 records."""
        extractor = ItemExtractor()
        records = await extractor.extract(MagicMock(), list_snapshot(10), capacity=5)
        assert len(records) == 5
        assert extractor.last_tier == "list"

    @pytest.mark.asyncio
    async def test_zero_capacity_skips(self):
        """No capacity left, no work."""
        extractor = ItemExtractor()
        assert await extractor.extract(MagicMock(), list_snapshot(10), capacity=0) == []
        assert extractor.last_tier is None

    @pytest.mark.asyncio
    async def test_schema_failure_falls_back_to_list(self):
        """A failing schema evaluation is recovered by the next tier."""
        page = MagicMock()
        page.evaluate = AsyncMock(side_effect=Exception("Execution context was destroyed"))
        extractor = ItemExtractor(DataSelectors(item_root="article", fields=[FieldSelector("t", "h2")]))
        records = await extractor.extract(page, list_snapshot(10))
        assert len(records) == 10
        assert extractor.last_tier == "list"

    @pytest.mark.asyncio
    async def test_dedup_across_cycles(self):
        """Items already extracted on an earlier page are not repeated."""
        extractor = ItemExtractor(dedup=Deduplicator())
        first = await extractor.extract(MagicMock(), list_snapshot(10, start=0))
        second = await extractor.extract(MagicMock(), list_snapshot(10, start=5))
        again = await extractor.extract(MagicMock(), list_snapshot(10, start=0))
        assert len(first) == 10
        assert [r["href"] for r in second] == [f"https://shop.example/p/{i}" for i in range(10, 15)]
        assert again == []

    @pytest.mark.asyncio
    async def test_dedup_across_tiers(self):
        """An anchor-tier record repeating a list-tier href is dropped."""
        extractor = ItemExtractor()
        await extractor.extract(MagicMock(), list_snapshot(10))
        doc = page_doc(el("a", text="Product 3 again", href="https://shop.example/p/3?utm_source=x"))
        records = await extractor.extract(MagicMock(), assemble_snapshot([doc]))
        assert extractor.last_tier == "anchor"
        assert records == []
