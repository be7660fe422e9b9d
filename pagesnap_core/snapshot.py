"""
Snapshot Assembler

Captures the main frame and reachable same-origin iframes concurrently,
runs every analyzer on each captured document and merges the results into
one bounded ``CompactSnapshot`` plus the ``refId -> (selector, frame)`` map
used to act on what the snapshot describes.

Usage:
    snap = await build_snapshot(page)
    print(snap.compact.to_dict())
    target = snap.resolve(snap.compact.controls[0].ref_id)
"""

import asyncio
import hashlib
import time
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .analyzers import AnalyzerContext, PaginationCandidate, rank_pagination, run_analyzers
from .diagnostics import get_logger
from .dom.capture import capture_document
from .dom.document import DocumentContext
from .dom.frames import collect_frames
from .models import (
    CompactSnapshot,
    DensityHints,
    FormBlock,
    ListBlock,
    NodeRef,
    PageSnapshot,
    RefTarget,
    SnapshotStats,
)
from .weights import DEFAULT_LIMITS, DEFAULT_WEIGHTS, HeuristicWeights, SnapshotLimits

logger = get_logger(__name__)


class RefRegistry:
    """
    Assigns content-derived refIds and records them in the RefMap.

    The id is ``r<frameId>-`` + a SHA-1 prefix of
    ``frameId|selector|href|name``. A prefix already taken by a different
    (selector, frame) gets a ``-2``, ``-3``, ... suffix; the same element
    registered twice keeps one id.
    """

    def __init__(self, digits: int = 12):
        self.digits = digits
        self.ref_map: Dict[str, RefTarget] = {}

    def make_id(self, ref: NodeRef) -> str:
        base = f"{ref.frame_id}|{ref.selector}|{ref.href or ''}|{ref.name or ''}"
        digest = hashlib.sha1(base.encode("utf-8")).hexdigest()[: self.digits]
        return f"r{ref.frame_id}-{digest}"

    def register(self, ref: NodeRef) -> NodeRef:
        base = self.make_id(ref)
        candidate = base
        n = 1
        while True:
            existing = self.ref_map.get(candidate)
            if existing is None:
                self.ref_map[candidate] = RefTarget(ref.selector, ref.frame_id)
                break
            if existing.selector == ref.selector and existing.frame_id == ref.frame_id:
                break
            n += 1
            candidate = f"{base}-{n}"
        ref.ref_id = candidate
        return ref


def _dedupe(items: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(items))


def assemble_snapshot(
    docs: Sequence[DocumentContext],
    limits: SnapshotLimits = DEFAULT_LIMITS,
    weights: HeuristicWeights = DEFAULT_WEIGHTS,
    started: Optional[float] = None,
    frames: Optional[Dict[str, Any]] = None,
) -> PageSnapshot:
    """Merge per-frame analyzer output. ``docs[0]`` is the main frame."""
    started = started if started is not None else time.monotonic()
    headings: List[str] = []
    controls: List[NodeRef] = []
    lists: List[ListBlock] = []
    candidates: List[PaginationCandidate] = []
    forms: List[FormBlock] = []
    hints = DensityHints()

    for i, doc in enumerate(docs):
        out = run_analyzers(AnalyzerContext(doc, weights, limits))
        headings.extend(out["headings"])
        controls.extend(out["controls"])
        lists.extend(out["lists"])
        candidates.extend(out["pagination"])
        forms.extend(out["forms"])
        if i == 0:
            hints = out["hints"]

    lists.sort(key=lambda lb: lb.item_count, reverse=True)
    compact = CompactSnapshot(
        url=docs[0].url if docs else "",
        title=(docs[0].title or None) if docs else None,
        headings=_dedupe(headings)[: limits.max_headings],
        lists=lists[: limits.max_lists],
        controls=controls[: limits.max_controls],
        pagination=rank_pagination(candidates, limits.max_pagination),
        forms=forms[: limits.max_forms],
        hints=hints,
    )

    registry = RefRegistry(weights.ref_hash_digits)
    for ref in compact.controls:
        registry.register(ref)
    for lb in compact.lists:
        registry.register(lb.root)
    for ref in compact.pagination:
        registry.register(ref)
    for fb in compact.forms:
        registry.register(fb.form)
        for ff in fb.fields:
            registry.register(ff.input)
        if fb.submit is not None:
            registry.register(fb.submit)

    stats = SnapshotStats(
        size_bytes=compact.size_bytes(),
        frame_count=len(docs),
        build_ms=int((time.monotonic() - started) * 1000),
    )
    logger.debug(
        f"Snapshot {compact.url}: {stats.size_bytes} bytes, "
        f"{stats.frame_count} frame(s), {stats.build_ms} ms"
    )
    return PageSnapshot(
        compact=compact,
        ref_map=registry.ref_map,
        stats=stats,
        documents={doc.frame_id: doc for doc in docs},
        frames={doc.frame_id: frames[doc.frame_id] for doc in docs if frames and doc.frame_id in frames},
    )


async def build_snapshot(
    page,
    limits: SnapshotLimits = DEFAULT_LIMITS,
    weights: HeuristicWeights = DEFAULT_WEIGHTS,
    include_iframes: bool = True,
    max_nodes: int = 8000,
) -> PageSnapshot:
    """Capture all frames of ``page`` concurrently and assemble the snapshot."""
    started = time.monotonic()
    frames = await collect_frames(page, include_iframes)
    captured = await asyncio.gather(
        *(capture_document(frame, frame_id, max_nodes) for frame_id, frame in frames),
        return_exceptions=True,
    )
    docs: List[DocumentContext] = []
    for (frame_id, _), result in zip(frames, captured):
        if isinstance(result, BaseException):
            if frame_id == "main":
                raise result
            # frame detached or navigated between collection and capture
            logger.debug(f"Skipping frame {frame_id}: {result}")
            continue
        docs.append(result)
    return assemble_snapshot(docs, limits, weights, started=started, frames=dict(frames))
