"""
Schema field evaluation.

Field values are read in the page (one evaluate call for every item root)
so ``html`` and user-supplied selectors behave exactly as in the browser.
Each result carries the root's capture index (from ``window.__pagesnapIds``)
so it can be enriched from the snapshot's captured document.
"""

import re
from typing import Any, Dict, List, Optional, Union

from ..schema import FieldSelector

SCHEMA_ITEMS_JS = r"""
(args) => {
  const clip = (t) => (t || '').replace(/\s+/g, ' ').trim();
  const abs = (u) => {
    if (!u) return null;
    try { return new URL(u, location.href).href; } catch (e) { return null; }
  };
  const ids = window.__pagesnapIds;
  const roots = Array.from(document.querySelectorAll(args.itemRoot));
  return roots.map((root) => {
    const values = {};
    for (const f of args.fields) {
      const el = f.selector === ':scope' ? root : root.querySelector(f.selector);
      if (!el) { values[f.name] = null; continue; }
      switch (f.type) {
        case 'html':
          values[f.name] = el.innerHTML;
          break;
        case 'url':
        case 'href':
          values[f.name] = (typeof el.href === 'string' && el.href) ? el.href : abs(el.getAttribute('href'));
          break;
        case 'image':
        case 'src':
          values[f.name] = abs(el.currentSrc || el.getAttribute('src') || el.getAttribute('data-src'));
          break;
        case 'attribute': {
          const v = el.getAttribute(f.attribute);
          values[f.name] = v === null ? null : v;
          break;
        }
        default:
          values[f.name] = clip(el.textContent);
      }
    }
    return { index: ids && ids.has(root) ? ids.get(root) : -1, values };
  });
}
"""

_NUMBER = re.compile(r"-?\d[\d.,]*")


def parse_number(text: Optional[str]) -> Optional[Union[int, float]]:
    """
    First numeric token of ``text``.

    Handles thousands separators in either convention:
    "1,299.99" -> 1299.99, "1.299,99" -> 1299.99, "12,50" -> 12.5,
    "1,000" -> 1000.
    """
    if not text:
        return None
    m = _NUMBER.search(text.replace("\u00a0", " "))
    if not m:
        return None
    token = m.group(0).rstrip(".,")
    negative = token.startswith("-")
    digits = token.lstrip("-")

    if "," in digits and "." in digits:
        decimal = "," if digits.rfind(",") > digits.rfind(".") else "."
        thousands = "." if decimal == "," else ","
        digits = digits.replace(thousands, "").replace(decimal, ".")
    elif "," in digits:
        head, _, tail = digits.rpartition(",")
        if digits.count(",") == 1 and len(tail) in (1, 2):
            digits = f"{head}.{tail}"
        else:
            digits = digits.replace(",", "")
    elif digits.count(".") > 1:
        digits = digits.replace(".", "")

    try:
        value = float(digits)
    except ValueError:
        return None
    if negative:
        value = -value
    if value.is_integer() and "." not in digits:
        return int(value)
    return value


def convert_values(values: Dict[str, Any], fields: List[FieldSelector]) -> Dict[str, Any]:
    """Apply Python-side conversions (``number``) to raw in-page values."""
    out = dict(values)
    for f in fields:
        if f.type == "number":
            out[f.name] = parse_number(out.get(f.name))
    return out


async def evaluate_fields(page, item_root: str, fields: List[FieldSelector]) -> List[Dict[str, Any]]:
    """``[{index, values}]`` per item root, in document order."""
    rows = await page.evaluate(
        SCHEMA_ITEMS_JS,
        {"itemRoot": item_root, "fields": [f.to_dict() for f in fields]},
    )
    return [
        {"index": row.get("index", -1), "values": convert_values(row.get("values") or {}, fields)}
        for row in rows or []
    ]
