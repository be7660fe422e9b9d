"""
Repetition-based List Block Detector

Direct children of each content container are grouped by a shallow
structural signature: the child's own child count and the tags of its
first few children. A big enough group of sizable siblings is a list of
items (search results, product cards, feed entries).
"""

from typing import Dict, List, Tuple

from ..models import ListBlock
from ..dom.document import DomNode
from ..dom.selectors import select
from .base import AnalyzerContext

Signature = Tuple[int, Tuple[str, ...]]


def signature(node: DomNode, depth: int = 6) -> Signature:
    kids = node.children
    return len(kids), tuple(k.tag for k in kids[:depth])


def group_children(container: DomNode, depth: int = 6) -> Dict[Signature, List[DomNode]]:
    groups: Dict[Signature, List[DomNode]] = {}
    for child in container.children:
        groups.setdefault(signature(child, depth), []).append(child)
    return groups


def extract_lists(ctx: AnalyzerContext) -> List[ListBlock]:
    w = ctx.weights
    containers = select(ctx.doc, ", ".join(w.list_containers))
    results: List[ListBlock] = []

    for container in containers:
        for members in group_children(container, w.list_signature_tags).values():
            if len(members) < w.list_min_repeats:
                continue
            first = members[0]
            if first.bbox.area < w.list_min_area:
                continue
            has_links = bool(select(ctx.doc, w.list_link_selector, scope=first))
            samples = [ctx.clip(m.text) for m in members[: w.list_samples]]
            results.append(ListBlock(
                root=ctx.ref(first, name=ctx.clip(first.text) or None),
                item_count=len(members),
                item_link_selector=w.list_link_selector if has_links else None,
                samples=[s for s in samples if s],
            ))

    results.sort(key=lambda lb: lb.item_count, reverse=True)
    return results[: ctx.limits.max_lists]
