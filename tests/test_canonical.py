"""Tests for URL canonicalization and record de-duplication."""

import pytest

from pagesnap_core.canonical import (
    Deduplicator,
    canonicalize,
    is_tracking_param,
    record_key,
    suppress_repeated_images,
)

URLS = [
    "HTTPS://Example.COM/Path?utm_source=x&id=5#frag",
    "https://example.com",
    "https://example.com/a?utm_medium=x&gclid=1",
    "http://shop.example/list?page=2&fbclid=abc&sort=price",
    "https://user@Host.Example/x?q=a%20b",
    "/relative/path#section",
]


class TestCanonicalize:
    """canonicalize()"""

    def test_tracking_fragment_and_case(self):
        """utm_* and the fragment go away; scheme and host are lowercased."""
        assert canonicalize("HTTPS://Example.COM/Path?utm_source=x&id=5#frag") == "https://example.com/Path?id=5"

    def test_empty_path_and_query(self):
        """Empty path becomes '/', an emptied query disappears."""
        assert canonicalize("https://example.com") == "https://example.com/"
        assert canonicalize("https://example.com/a?utm_medium=x&gclid=1") == "https://example.com/a"

    def test_order_and_encoding_kept(self):
        """Remaining parameters keep their order and encoding."""
        assert canonicalize("http://shop.example/list?page=2&fbclid=abc&sort=price") == \
            "http://shop.example/list?page=2&sort=price"
        assert canonicalize("https://user@Host.Example/x?q=a%20b") == "https://user@host.example/x?q=a%20b"

    def test_relative_urls_lose_only_the_fragment(self):
        """Relative input is not resolved."""
        assert canonicalize("/relative/path#section") == "/relative/path"

    @pytest.mark.parametrize("url", URLS)
    def test_idempotent(self, url):
        """canonicalize(canonicalize(u)) == canonicalize(u)"""
        once = canonicalize(url)
        assert canonicalize(once) == once

    def test_tracking_params(self):
        """Known click ids and utm_* prefixes."""
        assert is_tracking_param("utm_campaign")
        assert is_tracking_param("GCLID")
        assert not is_tracking_param("page")


class TestDeduplicator:
    """Batch and run-wide de-duplication."""

    def test_record_key(self):
        """href first, then (title, snippet)."""
        assert record_key({"href": "https://e.com/a#x"}) == "href:https://e.com/a"
        assert record_key({"title": "T", "snippet": "S"}) == "text:T|S"
        assert record_key({"title": "", "snippet": ""}) is None

    def test_duplicates_across_batches(self):
        """A URL seen in an earlier batch is dropped later."""
        dedup = Deduplicator()
        first = dedup.filter([{"href": "https://e.com/a?utm_source=1"}, {"href": "https://e.com/b"}])
        second = dedup.filter([{"href": "https://e.com/a#reviews"}, {"href": "https://e.com/c"}])
        assert [r["href"] for r in first] == ["https://e.com/a?utm_source=1", "https://e.com/b"]
        assert [r["href"] for r in second] == ["https://e.com/c"]

    def test_duplicates_within_batch_by_text(self):
        """Records without href collapse on (title, snippet)."""
        dedup = Deduplicator()
        kept = dedup.filter([
            {"title": "Same", "snippet": "text"},
            {"title": "Same", "snippet": "text"},
            {"title": "Same", "snippet": "other"},
        ])
        assert len(kept) == 2

    def test_limit_does_not_consume_unkept_records(self):
        """Records cut by the limit stay available for later."""
        dedup = Deduplicator()
        records = [{"href": f"https://e.com/{i}"} for i in range(3)]
        assert len(dedup.filter(records, limit=2)) == 2
        assert [r["href"] for r in dedup.filter(records)] == ["https://e.com/2"]

    def test_keyless_records_are_kept(self):
        """Nothing to compare, nothing dropped."""
        assert len(Deduplicator().filter([{}, {}])) == 2


class TestRepeatedImages:
    """Placeholder image suppression."""

    def test_five_repeats_are_nulled(self):
        """An image on five records of a batch is a placeholder."""
        records = [{"image": "https://cdn/p.png"} for _ in range(5)] + [{"image": "https://cdn/real.jpg"}]
        suppress_repeated_images(records)
        assert [r["image"] for r in records[:5]] == [None] * 5
        assert records[5]["image"] == "https://cdn/real.jpg"

    def test_four_repeats_are_kept(self):
        """Below the threshold images stay."""
        records = [{"image": "https://cdn/p.png"} for _ in range(4)]
        suppress_repeated_images(records)
        assert all(r["image"] == "https://cdn/p.png" for r in records)
