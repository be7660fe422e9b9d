"""
Scraping schema - load, validate and model a schema file.

Schema files are JSON or YAML with camelCase keys:

    name: "Books"
    target:
      baseUrl: "https://books.example.com"
      startPath: "/catalogue/page-1.html"
      maxPages: 3
      maxItems: 50
    navigation:
      followLinks: false
    selectors:
      itemRoot: "article.product_pod"
      fields:
        - {name: title, selector: "h3 a", type: attribute, attribute: title}
        - {name: price, selector: ".price_color", type: number}
    pagination:
      strategy: next-button
      nextSelector: "li.next a"
    output:
      directory: "./output"
      format: jsonl

``fields`` may also be a mapping ``{name: {selector, type, attribute}}``.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
from urllib.parse import urlsplit

import yaml

from .exceptions import SchemaValidationError

FIELD_TYPES = ("text", "html", "url", "href", "image", "src", "attribute", "number")
PAGINATION_STRATEGIES = ("next-button", "url-pattern", "infinite-scroll", "load-more")
OUTPUT_FORMATS = ("json", "jsonl", "csv")


@dataclass
class Target:
    base_url: str
    start_path: Optional[str] = None
    max_pages: Optional[int] = None
    max_items: Optional[int] = None

    @property
    def start_url(self) -> str:
        if not self.start_path:
            return self.base_url
        if urlsplit(self.start_path).scheme:
            return self.start_path
        return self.base_url.rstrip("/") + "/" + self.start_path.lstrip("/")


@dataclass
class NavigationConfig:
    follow_links: bool = False
    max_follow_links: int = 10
    allowed_domains: List[str] = field(default_factory=list)


@dataclass
class FieldSelector:
    name: str
    selector: str
    type: str = "text"
    attribute: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "selector": self.selector, "type": self.type, "attribute": self.attribute}


@dataclass
class DataSelectors:
    item_root: Optional[str] = None
    fields: List[FieldSelector] = field(default_factory=list)


@dataclass
class PaginationConfig:
    strategy: str
    next_selector: Optional[str] = None
    page_indicator: Optional[str] = None
    wait_for_load: Optional[int] = None
    max_pages: Optional[int] = None


@dataclass
class OutputTarget:
    directory: Optional[str] = None
    filename: Optional[str] = None
    format: Optional[str] = None


@dataclass
class ScrapingSchema:
    name: str
    target: Target
    navigation: NavigationConfig = field(default_factory=NavigationConfig)
    selectors: DataSelectors = field(default_factory=DataSelectors)
    pagination: Optional[PaginationConfig] = None
    output: OutputTarget = field(default_factory=OutputTarget)
    description: Optional[str] = None

    @property
    def max_pages(self) -> Optional[int]:
        if self.target.max_pages is not None:
            return self.target.max_pages
        return self.pagination.max_pages if self.pagination else None

    @property
    def max_items(self) -> Optional[int]:
        return self.target.max_items


# ----------------------------------------------------------------------
# Parsing
# ----------------------------------------------------------------------

def _section(raw: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = raw.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise SchemaValidationError(f"'{key}' must be a mapping")
    return value


def _positive(value: Any, where: str) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise SchemaValidationError(f"'{where}' must be a positive integer, got {value!r}")
    return value


def _fields(raw: Any) -> List[FieldSelector]:
    if raw is None:
        return []
    if isinstance(raw, dict):
        items = [dict(value, name=name) if isinstance(value, dict) else {"name": name, "selector": value}
                 for name, value in raw.items()]
    elif isinstance(raw, list):
        items = raw
    else:
        raise SchemaValidationError("'selectors.fields' must be a list or a mapping")

    out: List[FieldSelector] = []
    for i, item in enumerate(items):
        if not isinstance(item, dict):
            raise SchemaValidationError(f"selectors.fields[{i}] must be a mapping")
        name = item.get("name")
        selector = item.get("selector")
        if not name or not isinstance(name, str):
            raise SchemaValidationError(f"selectors.fields[{i}] is missing 'name'")
        if not selector or not isinstance(selector, str):
            raise SchemaValidationError(f"field '{name}' is missing 'selector'")
        kind = str(item.get("type") or "text").lower()
        if kind not in FIELD_TYPES:
            raise SchemaValidationError(f"field '{name}' has unknown type '{kind}'", selector=selector)
        attribute = item.get("attribute") or item.get("attr")
        if kind == "attribute" and not attribute:
            raise SchemaValidationError(f"field '{name}' of type 'attribute' needs 'attribute'", selector=selector)
        out.append(FieldSelector(name=name, selector=selector, type=kind, attribute=attribute))
    return out


def schema_from_dict(raw: Any) -> ScrapingSchema:
    """Validate a decoded schema document and build the model."""
    if not isinstance(raw, dict):
        raise SchemaValidationError("schema must be a mapping")
    name = raw.get("name")
    if not name or not isinstance(name, str):
        raise SchemaValidationError("schema is missing 'name'")
    if "target" not in raw:
        raise SchemaValidationError("schema is missing 'target'")

    target_raw = _section(raw, "target")
    base_url = target_raw.get("baseUrl")
    if not base_url or not isinstance(base_url, str):
        raise SchemaValidationError("'target.baseUrl' is required")
    if urlsplit(base_url).scheme not in ("http", "https"):
        raise SchemaValidationError(f"'target.baseUrl' must be an http(s) URL, got {base_url!r}", url=base_url)
    target = Target(
        base_url=base_url,
        start_path=target_raw.get("startPath"),
        max_pages=_positive(target_raw.get("maxPages"), "target.maxPages"),
        max_items=_positive(target_raw.get("maxItems"), "target.maxItems"),
    )

    nav_raw = _section(raw, "navigation")
    domains = nav_raw.get("allowedDomains") or []
    if not isinstance(domains, list):
        raise SchemaValidationError("'navigation.allowedDomains' must be a list")
    navigation = NavigationConfig(
        follow_links=bool(nav_raw.get("followLinks", False)),
        max_follow_links=_positive(nav_raw.get("maxFollowLinks"), "navigation.maxFollowLinks") or 10,
        allowed_domains=[str(d).lower() for d in domains],
    )

    sel_raw = _section(raw, "selectors")
    selectors = DataSelectors(
        item_root=sel_raw.get("itemRoot") or sel_raw.get("container"),
        fields=_fields(sel_raw.get("fields")),
    )

    pagination = None
    if raw.get("pagination") is not None:
        pag_raw = _section(raw, "pagination")
        strategy = pag_raw.get("strategy")
        if strategy not in PAGINATION_STRATEGIES:
            raise SchemaValidationError(f"unknown pagination strategy {strategy!r}")
        wait = pag_raw.get("waitForLoad")
        if wait is not None and (isinstance(wait, bool) or not isinstance(wait, int) or wait < 0):
            raise SchemaValidationError("'pagination.waitForLoad' must be a non-negative integer (ms)")
        pagination = PaginationConfig(
            strategy=strategy,
            next_selector=pag_raw.get("nextSelector") or pag_raw.get("nextButton"),
            page_indicator=pag_raw.get("pageIndicator"),
            wait_for_load=wait,
            max_pages=_positive(pag_raw.get("maxPages"), "pagination.maxPages"),
        )

    out_raw = _section(raw, "output")
    fmt = out_raw.get("format")
    if fmt is not None:
        fmt = str(fmt).lower()
        if fmt not in OUTPUT_FORMATS:
            raise SchemaValidationError(f"unknown output format {fmt!r}")
    output = OutputTarget(directory=out_raw.get("directory"), filename=out_raw.get("filename"), format=fmt)

    return ScrapingSchema(
        name=name,
        target=target,
        navigation=navigation,
        selectors=selectors,
        pagination=pagination,
        output=output,
        description=raw.get("description"),
    )


def parse_schema(content: str, fmt: str = "yaml") -> ScrapingSchema:
    """Parse schema text; ``fmt`` is ``json`` or ``yaml``."""
    fmt = fmt.lower()
    try:
        if fmt == "json":
            raw = json.loads(content)
        elif fmt in ("yaml", "yml"):
            raw = yaml.safe_load(content)
        else:
            raise SchemaValidationError(f"Unsupported schema format: {fmt}. Use json or yaml")
    except json.JSONDecodeError as e:
        raise SchemaValidationError(f"Invalid JSON schema: {e}")
    except yaml.YAMLError as e:
        raise SchemaValidationError(f"Invalid YAML schema: {e}")
    return schema_from_dict(raw)


def load_schema(path: Union[str, Path]) -> ScrapingSchema:
    path = Path(path)
    suffix = path.suffix.lower().lstrip(".")
    if suffix not in ("json", "yaml", "yml"):
        raise SchemaValidationError(f"Unsupported schema file: {path.name}. Use .json or .yaml")
    try:
        content = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise SchemaValidationError(f"Schema file not found: {path}")
    return parse_schema(content, suffix)
