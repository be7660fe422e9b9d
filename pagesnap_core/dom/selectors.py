"""
Selector Generator - Build stable, replayable CSS selectors

Generation walks upward from the element, preferring a unique id, then a
unique data-* hook, then tag + stable classes + ``:nth-of-type``. Matching
against a captured ``DocumentContext`` goes through soupsieve over the
document's BeautifulSoup mirror, so a generated selector resolves the same
way it would under ``querySelectorAll``.
"""

import re
from typing import List, Optional

import soupsieve

from ..exceptions import SelectorSyntaxError
from ..weights import DEFAULT_WEIGHTS, HeuristicWeights
from .document import DocumentContext, DomNode

_DATA_ATTR = re.compile(r"^data-[a-z0-9_-]+$")
_NTH = re.compile(r"(?<!\\):nth-of-type\(\d+\)")


def _quote(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


# ----------------------------------------------------------------------
# Generation
# ----------------------------------------------------------------------

def _anchor(node: DomNode, doc: DocumentContext, weights: HeuristicWeights) -> Optional[str]:
    if node.id and doc.count_id(node.id) == 1:
        return "#" + soupsieve.escape(node.id)
    for name, value in node.attrs.items():
        if not name.startswith("data-"):
            continue
        if not _DATA_ATTR.match(name) or len(value) > weights.max_data_attr_value:
            break
        if doc.count_attr(name, value) == 1:
            return f"[{name}={_quote(value)}]"
        break
    return None


def _segment(node: DomNode, unstable: "re.Pattern", weights: HeuristicWeights) -> str:
    classes = [c for c in node.classes if not unstable.match(c)][: weights.max_selector_classes]
    base = node.tag + "".join("." + soupsieve.escape(c) for c in classes)
    if node.parent is None:
        return base
    same = [c for c in node.parent.children if c.tag == node.tag]
    if len(same) > 1:
        base += f":nth-of-type({same.index(node) + 1})"
    return base


def css_for(node: DomNode, doc: DocumentContext, weights: HeuristicWeights = DEFAULT_WEIGHTS) -> str:
    """Stable selector resolving to ``node`` as the only match from the document root."""
    unstable = re.compile(weights.unstable_class_pattern)
    segments: List[str] = []
    cur: Optional[DomNode] = node
    while cur is not None:
        anchor = _anchor(cur, doc, weights)
        if anchor:
            segments.append(anchor)
            break
        segments.append(_segment(cur, unstable, weights))
        cur = cur.parent
    return " > ".join(reversed(segments))


def widen_selector(selector: str) -> List[str]:
    """Progressively wider variants: drop the last positional qualifier, then all."""
    out: List[str] = []
    hits = list(_NTH.finditer(selector))
    if not hits:
        return out
    last = hits[-1]
    out.append(selector[: last.start()] + selector[last.end():])
    every = _NTH.sub("", selector)
    if every not in out:
        out.append(every)
    return out


# ----------------------------------------------------------------------
# Matching
# ----------------------------------------------------------------------

def _compile(selector: str):
    if not selector or not selector.strip():
        raise SelectorSyntaxError("empty selector")
    try:
        return soupsieve.compile(selector)
    except soupsieve.SelectorSyntaxError as e:
        raise SelectorSyntaxError(str(e)) from e


def select(doc: DocumentContext, selector: str, scope: Optional[DomNode] = None) -> List[DomNode]:
    """``querySelectorAll`` over the captured document (document order)."""
    compiled = _compile(selector)
    container = doc.tag_for(scope) if scope is not None else doc.soup
    found = (doc.node_for(tag) for tag in compiled.select(container))
    return [n for n in found if n is not None]


def select_one(doc: DocumentContext, selector: str, scope: Optional[DomNode] = None) -> Optional[DomNode]:
    compiled = _compile(selector)
    container = doc.tag_for(scope) if scope is not None else doc.soup
    tag = compiled.select_one(container)
    return doc.node_for(tag) if tag is not None else None
