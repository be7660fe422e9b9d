"""
Snapshot and scraping data model.

Dataclasses in snake_case; ``to_dict()`` renders the camelCase wire shape
consumed by planners and written to output/debug files. Optional keys are
omitted when unset (a FormBlock without a detected submit has no
``submit`` key at all).
"""

import json
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Set


@dataclass
class BBox:
    x: int
    y: int
    w: int
    h: int

    @property
    def area(self) -> float:
        return float(self.w * self.h)

    def to_dict(self) -> Dict[str, int]:
        return {"x": self.x, "y": self.y, "w": self.w, "h": self.h}


@dataclass
class NodeRef:
    """Frame-scoped, re-locatable reference to one DOM element."""
    selector: str
    frame_id: str = "main"
    ref_id: str = ""
    role: Optional[str] = None
    name: Optional[str] = None
    href: Optional[str] = None
    visible: Optional[bool] = None
    bbox: Optional[BBox] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "refId": self.ref_id,
            "selector": self.selector,
            "frameId": self.frame_id,
        }
        if self.role is not None:
            out["role"] = self.role
        if self.name is not None:
            out["name"] = self.name
        if self.href is not None:
            out["href"] = self.href
        if self.visible is not None:
            out["visible"] = self.visible
        if self.bbox is not None:
            out["bbox"] = self.bbox.to_dict()
        return out


@dataclass
class ListBlock:
    root: NodeRef
    item_count: int
    item_link_selector: Optional[str] = None
    samples: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"root": self.root.to_dict(), "itemCount": self.item_count}
        if self.item_link_selector is not None:
            out["itemLinkSelector"] = self.item_link_selector
        out["samples"] = list(self.samples)
        return out


@dataclass
class FormField:
    input: NodeRef
    label: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        if self.label is not None:
            out["label"] = self.label
        out["input"] = self.input.to_dict()
        return out


@dataclass
class FormBlock:
    form: NodeRef
    fields: List[FormField] = field(default_factory=list)
    submit: Optional[NodeRef] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "form": self.form.to_dict(),
            "fields": [f.to_dict() for f in self.fields],
        }
        if self.submit is not None:
            out["submit"] = self.submit.to_dict()
        return out


@dataclass
class DensityHints:
    text_density: float = 0.0
    link_density: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {"textDensity": self.text_density, "linkDensity": self.link_density}


@dataclass
class CompactSnapshot:
    url: str
    title: Optional[str] = None
    headings: List[str] = field(default_factory=list)
    lists: List[ListBlock] = field(default_factory=list)
    controls: List[NodeRef] = field(default_factory=list)
    pagination: List[NodeRef] = field(default_factory=list)
    forms: List[FormBlock] = field(default_factory=list)
    hints: DensityHints = field(default_factory=DensityHints)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"url": self.url}
        if self.title is not None:
            out["title"] = self.title
        out.update({
            "headings": list(self.headings),
            "lists": [lb.to_dict() for lb in self.lists],
            "controls": [c.to_dict() for c in self.controls],
            "pagination": [p.to_dict() for p in self.pagination],
            "forms": [f.to_dict() for f in self.forms],
            "hints": self.hints.to_dict(),
        })
        return out

    def size_bytes(self) -> int:
        return len(json.dumps(self.to_dict(), ensure_ascii=False).encode("utf-8"))


@dataclass
class RefTarget:
    selector: str
    frame_id: str

    def to_dict(self) -> Dict[str, str]:
        return {"selector": self.selector, "frameId": self.frame_id}


@dataclass
class SnapshotStats:
    size_bytes: int = 0
    frame_count: int = 0
    build_ms: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {"sizeBytes": self.size_bytes, "frameCount": self.frame_count, "buildMs": self.build_ms}


@dataclass
class PageSnapshot:
    """CompactSnapshot + RefMap for one extraction step.

    ``documents`` keeps the captured DOM of every frame for the extraction
    step that immediately follows; ``frames`` holds the live Playwright frame
    each document was captured from. Neither is serialized and neither may be
    reused after a navigation.
    """
    compact: CompactSnapshot
    ref_map: Dict[str, RefTarget] = field(default_factory=dict)
    stats: SnapshotStats = field(default_factory=SnapshotStats)
    documents: Dict[str, Any] = field(default_factory=dict, repr=False)
    frames: Dict[str, Any] = field(default_factory=dict, repr=False)

    def resolve(self, ref_id: str) -> Optional[RefTarget]:
        return self.ref_map.get(ref_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "compact": self.compact.to_dict(),
            "refMap": {k: v.to_dict() for k, v in self.ref_map.items()},
            "stats": self.stats.to_dict(),
        }


@dataclass
class ScrapingError:
    type: str
    message: str
    url: Optional[str] = None
    selector: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"type": self.type, "message": self.message}
        if self.url is not None:
            out["url"] = self.url
        if self.selector is not None:
            out["selector"] = self.selector
        out["timestamp"] = self.timestamp.isoformat()
        return out


@dataclass
class ExtractedItem:
    data: Dict[str, Any]
    url: str
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class ScrapingState:
    """Run-wide state; owned and mutated only by the navigation loop."""
    current_url: str
    visited_urls: Set[str] = field(default_factory=set)
    extracted_items: List[ExtractedItem] = field(default_factory=list)
    current_page: int = 1
    errors: List[ScrapingError] = field(default_factory=list)
    start_time: float = field(default_factory=time.time)
    dump_counter: int = 0

    def next_dump_index(self) -> int:
        self.dump_counter += 1
        return self.dump_counter


@dataclass
class ScrapingResult:
    url: str
    data: List[Dict[str, Any]]
    page_count: int
    item_count: int
    duration_ms: int
    errors: List[ScrapingError] = field(default_factory=list)
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "timestamp": self.timestamp.isoformat(),
            "data": self.data,
            "metadata": {
                "pageCount": self.page_count,
                "itemCount": self.item_count,
                "duration": self.duration_ms,
                "errors": [e.to_dict() for e in self.errors],
            },
        }
