"""
Pagination Ranker

Anchors qualify on any of: ``rel`` containing "next", next-like visible
text, or a page/offset query parameter in the raw href. Each signal adds
its weight; sitting in the lower part of the viewport adds a small bonus.
"""

import re
from dataclasses import dataclass
from typing import Iterable, List

from ..models import NodeRef
from .base import AnalyzerContext


@dataclass
class PaginationCandidate:
    ref: NodeRef
    score: float


def score_anchor(node, ctx: AnalyzerContext) -> float:
    """0.0 when the anchor does not qualify."""
    w = ctx.weights
    rel_next = "next" in (node.get("rel") or "").lower().split()
    next_text = bool(re.search(w.pagination_text_pattern, node.text, re.IGNORECASE))
    page_param = bool(re.search(w.pagination_query_pattern, node.get("href") or "", re.IGNORECASE))
    if not (rel_next or next_text or page_param):
        return 0.0
    bottom = (node.bbox.y + node.bbox.h) > ctx.doc.viewport_height * w.pagination_bottom_fraction
    return (
        (w.pagination_rel_next if rel_next else 0.0)
        + (w.pagination_text if next_text else 0.0)
        + (w.pagination_query if page_param else 0.0)
        + (w.pagination_bottom if bottom else 0.0)
    )


def extract_pagination(ctx: AnalyzerContext) -> List[PaginationCandidate]:
    w = ctx.weights
    out: List[PaginationCandidate] = []
    for node in ctx.doc.iter_tag("a"):
        score = score_anchor(node, ctx)
        if score <= 0:
            continue
        ref = ctx.ref(
            node,
            role="link",
            name=ctx.accessible_text(node),
            href=node.href,
            visible=node.is_visible(w.visible_min_area, w.visible_min_opacity),
        )
        out.append(PaginationCandidate(ref, score))
    out.sort(key=lambda c: c.score, reverse=True)
    return out[: w.pagination_frame_cap]


def rank_pagination(candidates: Iterable[PaginationCandidate], keep: int = 2) -> List[NodeRef]:
    """Cross-frame merge: dedupe by (href, selector, frame), best score first."""
    seen = set()
    unique: List[PaginationCandidate] = []
    for cand in candidates:
        key = (cand.ref.href or "", cand.ref.selector, cand.ref.frame_id)
        if key in seen:
            continue
        seen.add(key)
        unique.append(cand)
    unique.sort(key=lambda c: c.score, reverse=True)
    return [c.ref for c in unique[:keep]]
