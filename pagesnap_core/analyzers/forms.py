"""
Form Mapper - label -> input mapping and submit detection per <form>.
"""

from typing import List, Optional

from ..dom.document import DomNode
from ..models import FormBlock, FormField
from .base import AnalyzerContext

FIELD_TAGS = {"input", "textarea", "select"}
BUTTON_TYPES = {"button", "submit", "reset", "image"}


def infer_role(node: DomNode) -> str:
    if node.tag == "select":
        return "combobox"
    if node.tag == "input":
        kind = (node.get("type") or "text").lower()
        if kind in ("checkbox", "radio"):
            return kind
        if kind in BUTTON_TYPES:
            return "button"
    return "textbox"


def find_label(node: DomNode, ctx: AnalyzerContext) -> Optional[str]:
    """label[for=id], then a preceding sibling <label>, aria-label, placeholder."""
    if node.id:
        for lab in ctx.doc.iter_tag("label"):
            if lab.get("for") == node.id:
                text = ctx.clip(lab.text)
                if text:
                    return text
                break
    prev = node.previous_sibling()
    if prev is not None and prev.tag == "label":
        text = ctx.clip(prev.text)
        if text:
            return text
    for attr in ("aria-label", "placeholder"):
        text = ctx.clip(node.get(attr))
        if text:
            return text
    return None


def _is_submit(node: DomNode) -> bool:
    return node.tag in ("button", "input") and (node.get("type") or "").lower() == "submit"


def extract_forms(ctx: AnalyzerContext) -> List[FormBlock]:
    limits = ctx.limits
    out: List[FormBlock] = []
    for form in ctx.doc.iter_tag("form"):
        fields: List[FormField] = []
        for node in form.iter_descendants():
            if len(fields) >= limits.max_form_fields:
                break
            if node.tag not in FIELD_TAGS:
                continue
            if node.tag == "input" and (node.get("type") or "").lower() == "hidden":
                continue
            label = find_label(node, ctx)
            fields.append(FormField(
                input=ctx.ref(node, role=infer_role(node), name=ctx.clip(label or node.get("name") or "")),
                label=label,
            ))

        submit = None
        submit_node = form.find(_is_submit)
        if submit_node is not None:
            name = ctx.clip(submit_node.text or submit_node.get("aria-label") or submit_node.get("value") or "Submit")
            submit = ctx.ref(submit_node, role="button", name=name)

        out.append(FormBlock(
            form=ctx.ref(form, role="form", name=ctx.clip(form.get("name") or "")),
            fields=fields,
            submit=submit,
        ))
        if len(out) >= limits.max_forms:
            break
    return out
