"""
Heading Extractor

Explicit headings (role="heading", aria-level, h1-h6) first, then
large-font "div soup" surrogates. Texts are whitespace-collapsed and
clipped before the order-preserving dedup.
"""

from typing import List

from .base import AnalyzerContext

HEADING_TAGS = {"h1", "h2", "h3", "h4", "h5", "h6"}


def _is_explicit(node) -> bool:
    return node.role == "heading" or "aria-level" in node.attrs or node.tag in HEADING_TAGS


def extract_headings(ctx: AnalyzerContext) -> List[str]:
    w = ctx.weights
    out: List[str] = []

    for node in ctx.doc.nodes:
        if _is_explicit(node) and node.text:
            out.append(ctx.clip(node.text))

    for node in ctx.doc.body.iter_descendants():
        strong = node.font_size >= w.heading_min_font_px or node.font_weight >= w.heading_min_font_weight
        if not strong:
            continue
        if node.bbox.area < w.heading_min_area:
            continue
        if len(node.text) >= w.heading_min_text:
            out.append(ctx.clip(node.text))
        if len(out) > w.heading_collect_cap:
            break

    return list(dict.fromkeys(out))[: w.heading_frame_cap]
