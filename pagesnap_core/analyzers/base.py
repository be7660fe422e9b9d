from dataclasses import dataclass
from typing import Any, Callable, Optional

from ..dom.document import DocumentContext, DomNode, clip
from ..dom.selectors import css_for
from ..models import NodeRef
from ..weights import DEFAULT_LIMITS, DEFAULT_WEIGHTS, HeuristicWeights, SnapshotLimits


@dataclass(frozen=True)
class AnalyzerContext:
    """Everything an analyzer may look at: one frame document plus tuning."""
    doc: DocumentContext
    weights: HeuristicWeights = DEFAULT_WEIGHTS
    limits: SnapshotLimits = DEFAULT_LIMITS

    def clip(self, text: Optional[str]) -> str:
        return clip(text, self.weights.clip_chars)

    def selector(self, node: DomNode) -> str:
        return css_for(node, self.doc, self.weights)

    def ref(self, node: DomNode, role: Optional[str] = None, name: Optional[str] = None,
            href: Optional[str] = None, visible: Optional[bool] = None,
            with_bbox: bool = True) -> NodeRef:
        """NodeRef for ``node``; ``ref_id`` is assigned by the snapshot assembler."""
        return NodeRef(
            selector=self.selector(node),
            frame_id=self.doc.frame_id,
            role=role,
            name=name,
            href=href,
            visible=visible,
            bbox=node.bbox if with_bbox else None,
        )

    def accessible_text(self, node: DomNode) -> str:
        return self.clip(node.text or node.get("aria-label") or "")


@dataclass(frozen=True)
class Analyzer:
    """One named analyzer: ``extract(context) -> value``."""
    name: str
    extract: Callable[[AnalyzerContext], Any]
