from ..models import DensityHints
from .base import AnalyzerContext


def density_hints(ctx: AnalyzerContext) -> DensityHints:
    """Visible text chars and anchors per body element (node count floored at 1)."""
    doc = ctx.doc
    nodes = max(doc.body_node_count, 1)
    return DensityHints(
        text_density=round(doc.body_text_length / nodes, 2),
        link_density=round(doc.anchor_count / nodes, 4),
    )
