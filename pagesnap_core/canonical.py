"""
URL canonicalization and record de-duplication.
"""

from collections import Counter
from typing import Any, Dict, Iterable, List, Optional, Set
from urllib.parse import urlsplit, urlunsplit

TRACKING_PARAMS = frozenset({
    "gclid", "fbclid", "msclkid", "dclid", "yclid", "gbraid", "wbraid",
    "mc_cid", "mc_eid", "_ga", "_gl", "igshid", "ref_src",
})


def is_tracking_param(key: str) -> bool:
    key = key.lower()
    return key.startswith("utm_") or key in TRACKING_PARAMS


def canonicalize(url: Optional[str]) -> Optional[str]:
    """
    Normalize a URL for identity comparison.

    Strips the fragment and tracking parameters, drops an empty query,
    lowercases scheme and host and turns an empty path into ``/``. Remaining
    parameters keep their order and encoding. Idempotent. Relative or
    unparsable input only loses its fragment.
    """
    if not url:
        return url
    raw = url.strip()
    try:
        parts = urlsplit(raw)
    except ValueError:
        return raw.split("#", 1)[0]
    if not parts.scheme or not parts.netloc:
        return raw.split("#", 1)[0]

    netloc = parts.netloc
    if "@" in netloc:
        userinfo, host = netloc.rsplit("@", 1)
        netloc = f"{userinfo}@{host.lower()}"
    else:
        netloc = netloc.lower()

    params = [
        p for p in parts.query.split("&")
        if p and not is_tracking_param(p.split("=", 1)[0])
    ]
    return urlunsplit((parts.scheme.lower(), netloc, parts.path or "/", "&".join(params), ""))


def same_document_url(a: Optional[str], b: Optional[str]) -> bool:
    if not a or not b:
        return False
    return canonicalize(a) == canonicalize(b)


def record_key(record: Dict[str, Any]) -> Optional[str]:
    """Identity of an extracted record: canonical href, else (title, snippet)."""
    href = record.get("href")
    if isinstance(href, str) and href.strip():
        return "href:" + canonicalize(href)
    title = (record.get("title") or "").strip() if isinstance(record.get("title"), str) else ""
    snippet = (record.get("snippet") or "").strip() if isinstance(record.get("snippet"), str) else ""
    if title or snippet:
        return f"text:{title}|{snippet}"
    return None


class Deduplicator:
    """Run-wide seen set; filters each batch against it and against itself."""

    def __init__(self, seen: Optional[Set[str]] = None):
        self.seen: Set[str] = seen if seen is not None else set()

    def filter(self, records: Iterable[Dict[str, Any]], limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """New records in order, at most ``limit``; only kept records are marked seen."""
        out: List[Dict[str, Any]] = []
        for record in records:
            if limit is not None and len(out) >= limit:
                break
            key = record_key(record)
            if key is not None:
                if key in self.seen:
                    continue
                self.seen.add(key)
            out.append(record)
        return out

    def __len__(self) -> int:
        return len(self.seen)


def suppress_repeated_images(records: List[Dict[str, Any]], threshold: int = 5) -> List[Dict[str, Any]]:
    """Null ``image`` wherever the same URL occurs ``threshold`` or more times in the batch."""
    counts = Counter(r.get("image") for r in records if r.get("image"))
    repeated = {url for url, n in counts.items() if n >= threshold}
    if repeated:
        for record in records:
            if record.get("image") in repeated:
                record["image"] = None
    return records
