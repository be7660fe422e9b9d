"""
Clickable/Control Detector
"""

from typing import List

from ..models import NodeRef
from .base import AnalyzerContext


def is_clickable(node) -> bool:
    return bool(
        node.href
        or node.role in ("button", "link")
        or node.tab_index >= 0
        or node.css("cursor") == "pointer"
        or node.has_handler
    )


def extract_controls(ctx: AnalyzerContext) -> List[NodeRef]:
    """
    Visible interactive elements, largest first.

    Collection stops at ``control_buffer_multiplier * max_controls``
    candidates; the stable sort keeps document order among equal areas.
    """
    w = ctx.weights
    limit = ctx.limits.max_controls
    buffer = limit * w.control_buffer_multiplier

    found = []
    for node in ctx.doc.nodes:
        if not node.is_visible(w.visible_min_area, w.visible_min_opacity):
            continue
        if is_clickable(node):
            found.append(node)
        if len(found) >= buffer:
            break

    found.sort(key=lambda n: n.bbox.area, reverse=True)
    return [
        ctx.ref(
            node,
            role=node.role or ("link" if node.href else None),
            name=ctx.accessible_text(node),
            href=node.href,
            visible=True,
        )
        for node in found[:limit]
    ]
