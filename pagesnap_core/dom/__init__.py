"""
DOM layer: capture, read-only document model, selectors, frames.
"""

from .document import DomNode, DocumentContext, clip
from .selectors import css_for, select, select_one, widen_selector
from .capture import CAPTURE_JS, capture_document
from .frames import collect_frames

__all__ = [
    'DomNode',
    'DocumentContext',
    'clip',
    'css_for',
    'select',
    'select_one',
    'widen_selector',
    'CAPTURE_JS',
    'capture_document',
    'collect_frames',
]
