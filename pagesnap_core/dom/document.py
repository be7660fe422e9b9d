"""
Read-only document model for DOM analysis.

A ``DocumentContext`` is a captured, rendered DOM of one frame: every
element with its attributes, own text runs, bounding box, the computed
style subset the analyzers need and a few resolved properties (href, tab
index, inline handlers, image natural size). Analyzers are pure functions
over ``(DomNode, DocumentContext)`` so they run the same way against a live
capture and against a hand-built fixture.
"""

import re
from collections import Counter
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from bs4 import BeautifulSoup, Tag

from ..models import BBox

_WS = re.compile(r"\s+")

# Tags whose text never renders
_NON_RENDERED = {"script", "style", "noscript", "template", "head", "title", "meta", "link"}
# Tags that are keyboard-focusable without a tabindex attribute
_FOCUSABLE = {"button", "input", "select", "textarea", "summary", "iframe"}


def clip(text: Optional[str], limit: int = 80) -> str:
    """Collapse whitespace and clip to ``limit`` characters."""
    return _WS.sub(" ", text or "").strip()[:limit]


class DomNode:
    """One captured element."""

    def __init__(
        self,
        tag: str,
        attrs: Optional[Dict[str, str]] = None,
        children: Optional[List["DomNode"]] = None,
        text: Optional[str] = None,
        bbox: Optional[BBox] = None,
        style: Optional[Dict[str, str]] = None,
        href: Optional[str] = None,
        tab_index: Optional[int] = None,
        has_handler: bool = False,
        natural_size: Tuple[int, int] = (0, 0),
        current_src: Optional[str] = None,
        noscript_html: Optional[str] = None,
        text_runs: Optional[List[Tuple[int, str]]] = None,
    ):
        self.tag = tag.lower()
        self.attrs: Dict[str, str] = dict(attrs or {})
        self.children: List[DomNode] = list(children or [])
        self.text_runs: List[Tuple[int, str]] = list(text_runs or ([(0, text)] if text else []))
        self.bbox = bbox if bbox is not None else BBox(0, 0, 0, 0)
        self.style: Dict[str, str] = dict(style or {})
        self.href = href
        self._tab_index = tab_index
        self.has_handler = has_handler
        self.natural_size = natural_size
        self.current_src = current_src
        self.noscript_html = noscript_html
        self.parent: Optional[DomNode] = None
        self.index = -1
        self._text: Optional[str] = None
        for child in self.children:
            child.parent = self

    def __repr__(self) -> str:
        return f"<DomNode {self.tag}#{self.index}>"

    # ------------------------------------------------------------------
    # Attributes
    # ------------------------------------------------------------------

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.attrs.get(name, default)

    @property
    def id(self) -> str:
        return self.attrs.get("id", "")

    @property
    def classes(self) -> List[str]:
        return [c for c in (self.attrs.get("class") or "").split() if c]

    @property
    def role(self) -> str:
        return (self.attrs.get("role") or "").strip().lower()

    @property
    def tab_index(self) -> int:
        if self._tab_index is not None:
            return self._tab_index
        raw = self.attrs.get("tabindex")
        if raw is not None:
            try:
                return int(raw)
            except ValueError:
                pass
        if self.tag in _FOCUSABLE:
            return 0
        if self.tag in ("a", "area") and self.href:
            return 0
        return -1

    # ------------------------------------------------------------------
    # Computed style
    # ------------------------------------------------------------------

    def css(self, name: str, default: str = "") -> str:
        return self.style.get(name, default)

    @property
    def font_size(self) -> float:
        return _to_float(self.css("fontSize", "16px"), 16.0)

    @property
    def font_weight(self) -> int:
        raw = self.css("fontWeight", "400").strip().lower()
        if raw == "bold":
            return 700
        if raw == "normal":
            return 400
        return int(_to_float(raw, 400.0))

    @property
    def opacity(self) -> float:
        return _to_float(self.css("opacity", "1"), 1.0)

    def is_visible(self, min_area: float = 10.0, min_opacity: float = 0.01) -> bool:
        if self.css("display") == "none" or self.css("visibility") == "hidden":
            return False
        if self.opacity <= min_opacity:
            return False
        return self.bbox.area > min_area

    def is_rendered(self) -> bool:
        return self.css("display") != "none" and self.css("visibility") != "hidden"

    # ------------------------------------------------------------------
    # Tree walking
    # ------------------------------------------------------------------

    def iter_descendants(self) -> Iterator["DomNode"]:
        """Descendants in document order (self excluded)."""
        stack = list(reversed(self.children))
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def iter_subtree(self) -> Iterator["DomNode"]:
        yield self
        yield from self.iter_descendants()

    def iter_ancestors(self) -> Iterator["DomNode"]:
        node = self.parent
        while node is not None:
            yield node
            node = node.parent

    def closest(self, predicate: Callable[["DomNode"], bool]) -> Optional["DomNode"]:
        """Nearest of self-or-ancestors matching ``predicate``."""
        if predicate(self):
            return self
        for anc in self.iter_ancestors():
            if predicate(anc):
                return anc
        return None

    def find(self, predicate: Callable[["DomNode"], bool]) -> Optional["DomNode"]:
        for n in self.iter_descendants():
            if predicate(n):
                return n
        return None

    def previous_sibling(self) -> Optional["DomNode"]:
        if self.parent is None:
            return None
        sibs = self.parent.children
        pos = sibs.index(self)
        return sibs[pos - 1] if pos > 0 else None

    # ------------------------------------------------------------------
    # Text
    # ------------------------------------------------------------------

    @property
    def text(self) -> str:
        """Rendered text of the subtree, whitespace-collapsed (innerText-like)."""
        if self._text is None:
            parts: List[str] = []
            _collect_text(self, parts)
            self._text = _WS.sub(" ", " ".join(parts)).strip()
        return self._text

    @property
    def own_text(self) -> str:
        return _WS.sub(" ", " ".join(t for _, t in self.text_runs)).strip()


def _collect_text(node: DomNode, parts: List[str]) -> None:
    if node.tag in _NON_RENDERED or not node.is_rendered():
        return
    runs = sorted(node.text_runs, key=lambda r: r[0])
    pos = 0
    for i, child in enumerate(node.children):
        while pos < len(runs) and runs[pos][0] <= i:
            parts.append(runs[pos][1])
            pos += 1
        _collect_text(child, parts)
    parts.extend(t for _, t in runs[pos:])


def _to_float(raw: str, default: float) -> float:
    m = re.match(r"\s*(-?\d+(?:\.\d+)?)", raw or "")
    return float(m.group(1)) if m else default


class DocumentContext:
    """Read-only view over one captured frame document."""

    def __init__(
        self,
        root: DomNode,
        url: str = "",
        title: str = "",
        frame_id: str = "main",
        viewport: Tuple[int, int] = (1920, 1080),
        body_node_count: Optional[int] = None,
        body_text_length: Optional[int] = None,
        anchor_count: Optional[int] = None,
        truncated: bool = False,
    ):
        self.root = root
        self.url = url
        self.title = title
        self.frame_id = frame_id
        self.viewport = viewport
        self.truncated = truncated
        self.nodes: List[DomNode] = list(root.iter_subtree())
        for i, node in enumerate(self.nodes):
            node.index = i
        self._ids = Counter(n.id for n in self.nodes if n.id)
        self._attr_pairs: Optional[Counter] = None
        self._soup: Optional[BeautifulSoup] = None
        self._tags: List[Tag] = []
        self._tag_index: Dict[int, int] = {}
        self.body = next((n for n in self.nodes if n.tag == "body"), root)
        self._body_node_count = body_node_count
        self._body_text_length = body_text_length
        self._anchor_count = anchor_count

    def __len__(self) -> int:
        return len(self.nodes)

    @property
    def viewport_height(self) -> int:
        return self.viewport[1]

    def by_index(self, index: int) -> Optional[DomNode]:
        if 0 <= index < len(self.nodes):
            return self.nodes[index]
        return None

    def count_id(self, element_id: str) -> int:
        return self._ids.get(element_id, 0)

    def count_attr(self, name: str, value: str) -> int:
        if self._attr_pairs is None:
            self._attr_pairs = Counter(
                (k, v) for n in self.nodes for k, v in n.attrs.items() if k.startswith("data-")
            )
        return self._attr_pairs.get((name, value), 0)

    def iter_tag(self, *tags: str) -> Iterator[DomNode]:
        wanted = set(tags)
        return (n for n in self.nodes if n.tag in wanted)

    # ------------------------------------------------------------------
    # BeautifulSoup mirror (CSS matching through soupsieve)
    # ------------------------------------------------------------------

    def _build_mirror(self) -> None:
        soup = BeautifulSoup("", "html.parser")
        tags: List[Tag] = []
        for node in self.nodes:
            tag = soup.new_tag(node.tag, attrs=dict(node.attrs))
            if node is not self.root and node.parent is not None:
                tags[node.parent.index].append(tag)
            else:
                soup.append(tag)
            tags.append(tag)
        self._tags = tags
        self._tag_index = {id(tag): i for i, tag in enumerate(tags)}
        self._soup = soup

    @property
    def soup(self) -> BeautifulSoup:
        """Element-only BeautifulSoup tree mirroring ``nodes``, built on first use."""
        if self._soup is None:
            self._build_mirror()
        return self._soup

    def tag_for(self, node: DomNode) -> Tag:
        if self._soup is None:
            self._build_mirror()
        return self._tags[node.index]

    def node_for(self, tag: Tag) -> Optional[DomNode]:
        if self._soup is None:
            self._build_mirror()
        index = self._tag_index.get(id(tag))
        return self.nodes[index] if index is not None else None

    # Whole-page counters (the capture script measures them on the live page;
    # fixtures fall back to counting the tree)

    @property
    def body_node_count(self) -> int:
        if self._body_node_count is not None:
            return self._body_node_count
        return sum(1 for _ in self.body.iter_descendants())

    @property
    def body_text_length(self) -> int:
        if self._body_text_length is not None:
            return self._body_text_length
        return len(self.body.text)

    @property
    def anchor_count(self) -> int:
        if self._anchor_count is not None:
            return self._anchor_count
        return sum(1 for _ in self.iter_tag("a"))

    # ------------------------------------------------------------------
    # Construction from a capture payload
    # ------------------------------------------------------------------

    @classmethod
    def from_capture(cls, payload: Dict[str, Any], frame_id: str = "main") -> "DocumentContext":
        records = payload.get("nodes") or []
        built: List[DomNode] = []
        for rec in records:
            b = rec.get("b") or [0, 0, 0, 0]
            s = rec.get("s") or []
            style = dict(zip(
                ("display", "visibility", "opacity", "cursor", "fontSize", "fontWeight", "backgroundImage"),
                s,
            ))
            nat = rec.get("n") or [0, 0, ""]
            node = DomNode(
                tag=rec.get("t") or "div",
                attrs=rec.get("a") or {},
                bbox=BBox(int(b[0]), int(b[1]), int(b[2]), int(b[3])),
                style=style,
                href=rec.get("h") or None,
                tab_index=rec.get("ti"),
                has_handler=bool(rec.get("oc")),
                natural_size=(int(nat[0] or 0), int(nat[1] or 0)),
                current_src=(nat[2] or None) if len(nat) > 2 else None,
                noscript_html=rec.get("ns"),
                text_runs=[(int(o), t) for o, t in (rec.get("x") or [])],
            )
            parent_idx = rec.get("p", -1)
            if parent_idx is not None and 0 <= parent_idx < len(built):
                parent = built[parent_idx]
                node.parent = parent
                parent.children.append(node)
            built.append(node)
        root = built[0] if built else DomNode("html")
        viewport = payload.get("viewport") or [1920, 1080]
        return cls(
            root,
            url=payload.get("url") or "",
            title=payload.get("title") or "",
            frame_id=frame_id,
            viewport=(int(viewport[0]), int(viewport[1])),
            body_node_count=payload.get("bodyNodes"),
            body_text_length=payload.get("bodyTextLength"),
            anchor_count=payload.get("anchorCount"),
            truncated=bool(payload.get("truncated")),
        )
