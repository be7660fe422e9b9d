"""
Extraction tiers, tried in order until one returns records:

1. schema  - explicit ``selectors.itemRoot`` + ``selectors.fields``
2. list    - first ListBlock of the snapshot, re-queried in its live frame
             (and widened), mapped back onto the captured document
3. anchor  - generic scored anchors
"""

from typing import Any, Dict, List, Optional
from urllib.parse import urlsplit

from ..analyzers.lists import signature
from ..canonical import Deduplicator
from ..diagnostics import get_logger
from ..dom.document import DocumentContext, DomNode, clip
from ..dom.selectors import select, select_one, widen_selector
from ..exceptions import ExtractionError, SelectorSyntaxError
from ..models import ListBlock, PageSnapshot
from ..schema import DataSelectors
from ..weights import DEFAULT_WEIGHTS, HeuristicWeights
from .enrich import enrich_record
from .fields import evaluate_fields

logger = get_logger(__name__)

Record = Dict[str, Any]

# First candidate selector with more than one live match, as capture indexes
LIST_ROOTS_JS = r"""
(selectors) => {
  const ids = window.__pagesnapIds;
  const indexes = (found) => found.map((el) => (ids && ids.has(el) ? ids.get(el) : -1));
  let first = null;
  for (const sel of selectors) {
    let found;
    try { found = Array.from(document.querySelectorAll(sel)); } catch (e) { continue; }
    if (first === null) first = { selector: sel, found };
    if (found.length > 1) return { selector: sel, indexes: indexes(found) };
  }
  return first === null ? null : { selector: first.selector, indexes: indexes(first.found) };
}
"""


def _main_document(snapshot: PageSnapshot) -> Optional[DocumentContext]:
    return snapshot.documents.get("main")


# ----------------------------------------------------------------------
# Tier 1: schema selectors
# ----------------------------------------------------------------------

async def schema_tier(page, snapshot: PageSnapshot, selectors: Optional[DataSelectors],
                      weights: HeuristicWeights = DEFAULT_WEIGHTS) -> List[Record]:
    if selectors is None or not selectors.item_root or not selectors.fields:
        return []
    try:
        rows = await evaluate_fields(page, selectors.item_root, selectors.fields)
    except Exception as e:
        raise ExtractionError(f"Schema-based extraction failed: {e}",
                              url=snapshot.compact.url, selector=selectors.item_root) from e

    doc = _main_document(snapshot)
    single = len(rows) == 1
    records: List[Record] = []
    for row in rows:
        record = dict(row["values"])
        node = doc.by_index(row["index"]) if doc is not None else None
        if node is not None:
            enrich_record(record, node, doc, "schema", selectors.item_root, weights, allow_page_image=single)
        else:
            record.setdefault("selector", {"root": selectors.item_root, "strategy": "schema"})
        records.append(record)
    return records


# ----------------------------------------------------------------------
# Tier 2: snapshot list block
# ----------------------------------------------------------------------

def list_roots(doc: DocumentContext, block: ListBlock,
               weights: HeuristicWeights = DEFAULT_WEIGHTS) -> List[DomNode]:
    """
    Item roots of a list block.

    The block's root selector points at the first member; when it matches
    at most one node it is widened (last positional qualifier, then all),
    and as a last resort the member's same-signature siblings are used.
    """
    selector = block.root.selector
    roots = select(doc, selector)
    if len(roots) <= 1:
        for wider in widen_selector(selector):
            found = select(doc, wider)
            if len(found) > 1:
                logger.debug(f"Widened list root {selector!r} -> {wider!r} ({len(found)} nodes)")
                return found
    if len(roots) == 1:
        return _siblings_like(roots[0], weights)
    return roots


def _siblings_like(first: DomNode, weights: HeuristicWeights) -> List[DomNode]:
    if first.parent is None:
        return [first]
    sig = signature(first, weights.list_signature_tags)
    return [c for c in first.parent.children if signature(c, weights.list_signature_tags) == sig]


async def requery_list_roots(frame, doc: DocumentContext, block: ListBlock,
                             weights: HeuristicWeights = DEFAULT_WEIGHTS) -> List[DomNode]:
    """
    Item roots of a list block, queried in the live frame.

    The root selector and its widened forms run through ``querySelectorAll``
    in the frame; matches map back onto captured nodes by capture index, so
    elements inserted after the capture are skipped. A single live match
    expands to its same-signature siblings. Without a frame, when the query
    fails, or when nothing live maps back, the captured document is queried.
    """
    selector = block.root.selector
    if frame is None:
        return list_roots(doc, block, weights)
    try:
        found = await frame.evaluate(LIST_ROOTS_JS, [selector] + widen_selector(selector))
    except Exception as e:
        logger.debug(f"Live list query failed for {selector!r}, using the capture: {e}")
        return list_roots(doc, block, weights)
    if not isinstance(found, dict):
        return list_roots(doc, block, weights)

    nodes = [doc.by_index(i) for i in found.get("indexes") or []]
    nodes = [n for n in nodes if n is not None]
    if len(nodes) > 1:
        if found.get("selector") != selector:
            logger.debug(f"Widened list root {selector!r} -> {found.get('selector')!r} ({len(nodes)} nodes)")
        return nodes
    if len(nodes) == 1:
        return _siblings_like(nodes[0], weights)
    return list_roots(doc, block, weights)


async def list_tier(page, snapshot: PageSnapshot, weights: HeuristicWeights = DEFAULT_WEIGHTS) -> List[Record]:
    lists = snapshot.compact.lists
    if not lists:
        return []
    block = lists[0]
    doc = snapshot.documents.get(block.root.frame_id)
    if doc is None:
        return []
    frame = snapshot.frames.get(block.root.frame_id)
    if frame is None and block.root.frame_id == "main":
        frame = page
    try:
        roots = await requery_list_roots(frame, doc, block, weights)
        link_selector = block.item_link_selector or weights.list_link_selector
        records: List[Record] = []
        for root in roots:
            record: Record = {}
            link = select_one(doc, link_selector, scope=root)
            if link is not None and link.href:
                record["href"] = link.href
            record["text"] = clip(root.text, weights.item_text_chars)
            records.append(enrich_record(record, root, doc, "list", block.root.selector, weights))
    except SelectorSyntaxError as e:
        raise ExtractionError(f"List extraction failed: {e}", url=doc.url, selector=block.root.selector) from e
    return Deduplicator().filter(records)


# ----------------------------------------------------------------------
# Tier 3: anchor heuristic
# ----------------------------------------------------------------------

def score_link(node: DomNode, weights: HeuristicWeights = DEFAULT_WEIGHTS) -> float:
    words = len(node.text.split())
    score = weights.anchor_href_weight if node.href else 0.0
    if weights.anchor_min_words <= words <= weights.anchor_max_words:
        score += weights.anchor_words_weight
    score += min(node.bbox.area / weights.anchor_area_unit, weights.anchor_area_cap)
    return score


async def anchor_tier(snapshot: PageSnapshot, weights: HeuristicWeights = DEFAULT_WEIGHTS) -> List[Record]:
    doc = _main_document(snapshot)
    if doc is None:
        return []
    scored = []
    for node in doc.iter_tag("a"):
        if not node.href or urlsplit(node.href).scheme not in ("http", "https"):
            continue
        scored.append((score_link(node, weights), node))
    scored.sort(key=lambda pair: pair[0], reverse=True)
    return [
        enrich_record({"href": node.href}, node, doc, "anchor", weights=weights)
        for _, node in scored[: weights.anchor_keep]
    ]
