"""
Image Candidate Scorer - pick the representative image of an item container.

Sources gathered from the container subtree:
- <img>: currentSrc, src, lazy-loading attributes, srcset/data-srcset (widest)
- <picture><source srcset>
- <noscript> fallbacks (markup parsed for img src/srcset)
- inline and computed background-image (URLs inside gradients included)
- data-bg* / data-background* attributes

SVG and data: URLs are ignored. Each source is scored on anchor match,
decorative hints, visibility, size and aspect ratio; candidates are
deduplicated by absolute URL keeping their best score.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple
from urllib.parse import urljoin, urlsplit

from bs4 import BeautifulSoup

from .canonical import same_document_url
from .dom.document import DocumentContext, DomNode
from .dom.selectors import css_for
from .weights import DEFAULT_WEIGHTS, HeuristicWeights

LAZY_ATTRS = (
    "data-src", "data-lazy-src", "data-original", "data-lazy", "data-url",
    "data-hi-res-src", "data-zoom-image", "data-echo", "data-lazyload",
)
META_IMAGE_KEYS = ("og:image", "twitter:image")

_CSS_URL = re.compile(r"url\(\s*(['\"]?)(.*?)\1\s*\)", re.IGNORECASE)
_NOSCRIPT_ATTRS = ("src", "srcset", "data-src")


@dataclass
class ImageCandidate:
    url: str
    selector: str
    score: float
    why: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {"url": self.url, "selector": self.selector, "score": round(self.score, 3), "why": list(self.why)}


def widest_srcset(srcset: str) -> Optional[str]:
    """URL of the widest srcset descriptor (first one on ties)."""
    best_url, best_w = None, -1.0
    for part in srcset.split(","):
        bits = part.strip().split()
        if not bits:
            continue
        width = 0.0
        if len(bits) >= 2:
            desc = bits[1].lower()
            try:
                if desc.endswith("w"):
                    width = float(desc[:-1])
                elif desc.endswith("x"):
                    width = float(desc[:-1])
            except ValueError:
                width = 0.0
        if width > best_w:
            best_url, best_w = bits[0], width
    return best_url


def css_urls(value: Optional[str]) -> List[str]:
    if not value or value == "none":
        return []
    return [m.group(2).strip() for m in _CSS_URL.finditer(value) if m.group(2).strip()]


def is_usable(url: str) -> bool:
    low = url.strip().lower()
    if not low or low.startswith("data:") or low.startswith("javascript:"):
        return False
    path = urlsplit(low).path
    return not path.endswith(".svg")


def _img_sources(img: DomNode) -> Iterator[Tuple[str, str, bool]]:
    """(url, why, lazy) for one <img>."""
    if img.current_src:
        yield img.current_src, "currentSrc", False
    if img.get("src"):
        yield img.get("src"), "src", False
    for attr in LAZY_ATTRS:
        if img.get(attr):
            yield img.get(attr), attr, True
    for attr in ("srcset", "data-srcset"):
        if img.get(attr):
            best = widest_srcset(img.get(attr))
            if best:
                yield best, attr, attr != "srcset"


def _noscript_sources(node: DomNode) -> Iterator[Tuple[str, str, bool]]:
    if not node.noscript_html:
        return
    for img in BeautifulSoup(node.noscript_html, "html.parser").find_all("img"):
        for attr in _NOSCRIPT_ATTRS:
            value = (img.get(attr) or "").strip()
            url = widest_srcset(value) if attr == "srcset" else value
            if url:
                yield url, f"noscript:{attr}", False


def _background_sources(node: DomNode) -> Iterator[Tuple[str, str, bool]]:
    inline = node.get("style") or ""
    for url in css_urls(inline):
        yield url, "style:background", False
    for url in css_urls(node.css("backgroundImage")):
        yield url, "computed:background", False
    for name, value in node.attrs.items():
        if name.startswith("data-bg") or name.startswith("data-background"):
            urls = css_urls(value) or [value.strip()]
            for url in urls:
                if url:
                    yield url, name, True


def _geometry_node(node: DomNode) -> DomNode:
    """Element whose box/visibility stands for a non-rendered source."""
    if node.tag == "source" and node.parent is not None:
        img = next((c for c in node.parent.children if c.tag == "img"), None)
        return img or node.parent
    if node.tag == "noscript" and node.parent is not None:
        return node.parent
    return node


def _sources(container: DomNode) -> Iterator[Tuple[DomNode, str, str, bool]]:
    for node in container.iter_subtree():
        if node.tag == "img":
            for url, why, lazy in _img_sources(node):
                yield node, url, why, lazy
        elif node.tag == "source" and node.parent is not None and node.parent.tag == "picture":
            for attr in ("srcset", "data-srcset"):
                best = widest_srcset(node.get(attr) or "")
                if best:
                    yield node, best, f"picture:{attr}", attr != "srcset"
        elif node.tag == "noscript":
            for url, why, lazy in _noscript_sources(node):
                yield node, url, why, lazy
        for url, why, lazy in _background_sources(node):
            yield node, url, why, lazy


def score_source(
    node: DomNode,
    url: str,
    lazy: bool,
    href: Optional[str],
    weights: HeuristicWeights = DEFAULT_WEIGHTS,
) -> Tuple[float, List[str]]:
    w = weights
    geo = _geometry_node(node)
    score = w.image_base_score
    why: List[str] = []

    if href:
        anchor = geo.closest(lambda n: n.tag == "a" and bool(n.href))
        if anchor is not None and same_document_url(anchor.href, href):
            score += w.image_anchor_match
            why.append("anchor-match")

    hints = " ".join([
        " ".join(geo.classes), geo.id, geo.role, geo.get("alt") or "", url,
    ]).lower()
    if re.search(w.image_decorative_pattern, hints):
        score -= w.image_decorative_penalty
        why.append("decorative")

    if not geo.is_rendered() or geo.opacity <= w.visible_min_opacity:
        score -= w.image_hidden_penalty
        why.append("hidden")

    area = geo.bbox.area
    if area < w.image_min_area:
        score -= w.image_small_penalty
        why.append("small")

    if geo.bbox.w > 0 and geo.bbox.h > 0:
        ratio = geo.bbox.w / geo.bbox.h
        if ratio > w.image_max_aspect or ratio < w.image_min_aspect:
            score -= w.image_aspect_penalty
            why.append("aspect")

    natural = float(geo.natural_size[0] * geo.natural_size[1])
    bonus = min(max(area, natural) / w.image_area_unit, w.image_area_bonus_cap)
    if bonus > 0:
        score += bonus
        why.append(f"area+{bonus:.2f}")

    if lazy and score > 0:
        score *= w.image_lazy_factor
        why.append("lazy")
    return score, why


def collect_image_candidates(
    container: DomNode,
    doc: DocumentContext,
    href: Optional[str] = None,
    weights: HeuristicWeights = DEFAULT_WEIGHTS,
) -> List[ImageCandidate]:
    """Scored candidates, best first (first seen wins ties)."""
    by_url: Dict[str, ImageCandidate] = {}
    for node, raw, source, lazy in _sources(container):
        if not is_usable(raw):
            continue
        url = urljoin(doc.url, raw.strip()) if doc.url else raw.strip()
        if not is_usable(url):
            continue
        score, why = score_source(node, url, lazy, href, weights)
        existing = by_url.get(url)
        if existing is None:
            by_url[url] = ImageCandidate(url, css_for(node, doc, weights), score, [source] + why)
        elif score > existing.score:
            existing.score = score
            existing.why = [source] + why
            existing.selector = css_for(node, doc, weights)
    return sorted(by_url.values(), key=lambda c: c.score, reverse=True)


def page_image(doc: DocumentContext, weights: HeuristicWeights = DEFAULT_WEIGHTS) -> Optional[ImageCandidate]:
    """og:image / twitter:image fallback."""
    for node in doc.iter_tag("meta"):
        key = (node.get("property") or node.get("name") or "").lower()
        content = (node.get("content") or "").strip()
        if key in META_IMAGE_KEYS and content:
            url = urljoin(doc.url, content) if doc.url else content
            if is_usable(url):
                return ImageCandidate(url, css_for(node, doc, weights), weights.image_meta_score, [f"meta:{key}"])
    return None


def pick_best_image(
    container: DomNode,
    doc: DocumentContext,
    href: Optional[str] = None,
    allow_page_fallback: bool = False,
    weights: HeuristicWeights = DEFAULT_WEIGHTS,
) -> Optional[ImageCandidate]:
    candidates = collect_image_candidates(container, doc, href, weights)
    if candidates:
        return candidates[0]
    if allow_page_fallback:
        return page_image(doc, weights)
    return None
