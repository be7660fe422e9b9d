"""
Record enrichment - auto-derived keys for an item container.

Keys are added with ``setdefault`` so values already present (schema
fields) always win:

    title, href, actions, image, tags, snippet,
    selector {root, strategy}, container {tag, attrs, bbox},
    signals {chars, links, linkDensity}
"""

import re
from typing import Any, Dict, List, Optional

from ..dom.document import DocumentContext, DomNode, clip
from ..dom.selectors import css_for
from ..images import pick_best_image
from ..weights import DEFAULT_WEIGHTS, HeuristicWeights

HEADING_TAGS = {"h1", "h2", "h3", "h4", "h5", "h6"}
CONTAINER_ATTRS = ("id", "class", "role", "aria-label", "itemtype", "itemprop")


def _is_link(node: DomNode) -> bool:
    return node.tag == "a" and bool(node.href)


def _is_heading(node: DomNode) -> bool:
    return (node.tag in HEADING_TAGS or node.role == "heading") and bool(node.text)


def primary_link(node: DomNode) -> Optional[DomNode]:
    """Heading link, else first link in the subtree, else a wrapping link."""
    heading = next((n for n in node.iter_subtree() if _is_heading(n)), None)
    if heading is not None:
        inner = next((n for n in heading.iter_subtree() if _is_link(n)), None)
        if inner is not None:
            return inner
    first = next((n for n in node.iter_subtree() if _is_link(n)), None)
    if first is not None:
        return first
    return node.closest(_is_link)


def derive_title(node: DomNode, link: Optional[DomNode], limit: int = 80) -> Optional[str]:
    heading = next((n for n in node.iter_subtree() if _is_heading(n)), None)
    if heading is not None:
        return clip(heading.text, limit)
    if link is not None:
        text = link.text or link.get("title") or link.get("aria-label") or ""
        if text.strip():
            return clip(text, limit)
    img = next((n for n in node.iter_subtree() if n.tag == "img" and (n.get("alt") or "").strip()), None)
    if img is not None:
        return clip(img.get("alt"), limit)
    return clip(node.text, limit) or None


def derive_actions(node: DomNode, doc: DocumentContext, link: Optional[DomNode],
                   weights: HeuristicWeights) -> List[Dict[str, Any]]:
    actions: List[Dict[str, Any]] = []
    for n in node.iter_descendants():
        if len(actions) >= weights.item_actions:
            break
        if n is link:
            continue
        is_button = n.tag == "button" or n.role == "button" or (
            n.tag == "input" and (n.get("type") or "").lower() in ("button", "submit")
        )
        if not (is_button or _is_link(n)):
            continue
        if link is not None and n.href and n.href == link.href:
            continue
        name = clip(n.text or n.get("aria-label") or n.get("value") or n.get("title") or "", weights.clip_chars)
        if not name:
            continue
        action: Dict[str, Any] = {"name": name, "selector": css_for(n, doc, weights)}
        if n.href:
            action["href"] = n.href
        actions.append(action)
    return actions


def derive_tags(node: DomNode, weights: HeuristicWeights) -> List[str]:
    pattern = re.compile(weights.tag_class_pattern, re.IGNORECASE)
    tags: List[str] = []
    for n in node.iter_descendants():
        if len(tags) >= weights.item_tags:
            break
        rel_tag = n.tag == "a" and "tag" in (n.get("rel") or "").lower().split()
        if not (rel_tag or pattern.search(n.get("class") or "")):
            continue
        text = clip(n.text, 40)
        if text and text not in tags:
            tags.append(text)
    return tags


def derive_signals(node: DomNode) -> Dict[str, Any]:
    text = node.text
    links = [n for n in node.iter_subtree() if n.tag == "a"]
    link_chars = sum(len(a.text) for a in links)
    chars = len(text)
    return {
        "chars": chars,
        "links": len(links),
        "linkDensity": round(min(link_chars / chars, 1.0), 4) if chars else 0.0,
    }


def enrich_record(
    record: Dict[str, Any],
    node: DomNode,
    doc: DocumentContext,
    strategy: str,
    root_selector: Optional[str] = None,
    weights: HeuristicWeights = DEFAULT_WEIGHTS,
    allow_page_image: bool = False,
) -> Dict[str, Any]:
    """Add auto-derived keys to ``record`` in place and return it."""
    link = primary_link(node)
    href = link.href if link is not None else None

    record.setdefault("title", derive_title(node, link, weights.clip_chars))
    record.setdefault("href", href)
    record.setdefault("actions", derive_actions(node, doc, link, weights))
    if "image" not in record:
        best = pick_best_image(node, doc, href=record.get("href") or href,
                               allow_page_fallback=allow_page_image, weights=weights)
        record["image"] = best.url if best else None
    record.setdefault("tags", derive_tags(node, weights))
    record.setdefault("snippet", clip(node.text, weights.item_snippet_chars))
    record.setdefault("selector", {"root": root_selector or css_for(node, doc, weights), "strategy": strategy})
    record.setdefault("container", {
        "tag": node.tag,
        "attrs": {k: v for k, v in node.attrs.items() if k in CONTAINER_ATTRS or k.startswith("data-")},
        "bbox": node.bbox.to_dict(),
    })
    record.setdefault("signals", derive_signals(node))
    return record
