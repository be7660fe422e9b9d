"""
DOM Capture - serialize one frame's rendered DOM in a single evaluate call.

The payload is a flat, document-ordered node list; ``p`` is the parent's
index. Keys are short because pages with thousands of elements cross the
Playwright bridge on every snapshot.

    t   tag name (lowercase)
    a   attributes (values clipped)
    x   own text runs as [elementChildOffset, text]
    b   bounding box [x, y, w, h]
    s   [display, visibility, opacity, cursor, fontSize, fontWeight, backgroundImage]
    h   resolved href (anchors, areas)
    ti  tabIndex
    oc  1 when an inline click/mousedown/mouseup handler is present
    n   [naturalWidth, naturalHeight, currentSrc] for <img>
    ns  <noscript> raw text

The script also leaves ``window.__pagesnapIds`` (WeakMap element -> index)
so later in-page scripts can map live elements back to captured nodes.
"""

from typing import Any, Dict

from ..diagnostics import get_logger
from .document import DocumentContext

logger = get_logger(__name__)


CAPTURE_JS = r"""
(opts) => {
  const maxNodes = opts.maxNodes || 8000;
  const maxText = opts.maxText || 300;
  const maxAttr = opts.maxAttr || 2000;
  const NO_TEXT = new Set(['SCRIPT', 'STYLE', 'NOSCRIPT', 'TEMPLATE']);
  const ids = new WeakMap();
  const nodes = [];
  let truncated = false;
  const root = document.documentElement;
  const stack = root ? [[root, -1]] : [];
  while (stack.length) {
    if (nodes.length >= maxNodes) { truncated = true; break; }
    const [el, parent] = stack.pop();
    const idx = nodes.length;
    ids.set(el, idx);
    const tag = (el.tagName || '').toLowerCase();
    const attrs = {};
    for (const name of el.getAttributeNames()) {
      const v = el.getAttribute(name) || '';
      attrs[name] = v.length > maxAttr ? v.slice(0, maxAttr) : v;
    }
    const runs = [];
    if (!NO_TEXT.has(el.tagName)) {
      let offset = 0;
      for (const c of el.childNodes) {
        if (c.nodeType === 1) { offset++; continue; }
        if (c.nodeType !== 3) continue;
        const t = (c.nodeValue || '').replace(/\s+/g, ' ');
        if (t.trim()) runs.push([offset, t.slice(0, maxText)]);
      }
    }
    const r = el.getBoundingClientRect();
    const cs = getComputedStyle(el);
    const rec = {
      p: parent, t: tag, a: attrs, x: runs,
      b: [Math.round(r.x), Math.round(r.y), Math.round(r.width), Math.round(r.height)],
      s: [cs.display, cs.visibility, cs.opacity, cs.cursor, cs.fontSize, cs.fontWeight, cs.backgroundImage],
      ti: typeof el.tabIndex === 'number' ? el.tabIndex : -1,
    };
    if ((tag === 'a' || tag === 'area') && typeof el.href === 'string' && el.href) rec.h = el.href;
    if (el.onclick || el.onmousedown || el.onmouseup) rec.oc = 1;
    if (tag === 'img') rec.n = [el.naturalWidth || 0, el.naturalHeight || 0, el.currentSrc || ''];
    if (tag === 'noscript') rec.ns = (el.textContent || '').slice(0, 4000);
    nodes.push(rec);
    if (tag === 'svg' || tag === 'math') continue;
    const kids = el.children;
    for (let i = kids.length - 1; i >= 0; i--) stack.push([kids[i], idx]);
  }
  Object.defineProperty(window, '__pagesnapIds', { value: ids, configurable: true, writable: true });
  const body = document.body;
  return {
    url: location.href,
    title: document.title || '',
    viewport: [window.innerWidth, window.innerHeight],
    truncated,
    bodyNodes: body ? body.getElementsByTagName('*').length : 0,
    bodyTextLength: body ? (body.innerText || '').length : 0,
    anchorCount: document.getElementsByTagName('a').length,
    nodes,
  };
}
"""


async def capture_document(frame, frame_id: str = "main", max_nodes: int = 8000,
                           max_text: int = 300) -> DocumentContext:
    """Capture ``frame`` (Playwright Page or Frame) into a DocumentContext."""
    payload: Dict[str, Any] = await frame.evaluate(
        CAPTURE_JS, {"maxNodes": max_nodes, "maxText": max_text}
    )
    doc = DocumentContext.from_capture(payload or {}, frame_id=frame_id)
    if doc.truncated:
        logger.debug(f"Capture of {frame_id} truncated at {max_nodes} nodes ({doc.url})")
    return doc
