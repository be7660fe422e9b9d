"""
Page Analyzers - pure functions of a captured frame document

Each analyzer is registered once in ``ANALYZERS`` with a uniform
``extract(context)`` contract; the snapshot assembler runs them all per
frame and merges by name.
"""

from typing import Any, Dict, Iterable

from .base import Analyzer, AnalyzerContext
from .clickables import extract_controls, is_clickable
from .density import density_hints
from .forms import extract_forms, find_label, infer_role
from .headings import extract_headings
from .lists import extract_lists, group_children, signature
from .pagination import PaginationCandidate, extract_pagination, rank_pagination, score_anchor

ANALYZERS = (
    Analyzer("headings", extract_headings),
    Analyzer("controls", extract_controls),
    Analyzer("lists", extract_lists),
    Analyzer("pagination", extract_pagination),
    Analyzer("forms", extract_forms),
    Analyzer("hints", density_hints),
)


def run_analyzers(ctx: AnalyzerContext, analyzers: Iterable[Analyzer] = ANALYZERS) -> Dict[str, Any]:
    return {a.name: a.extract(ctx) for a in analyzers}


__all__ = [
    'ANALYZERS',
    'Analyzer',
    'AnalyzerContext',
    'run_analyzers',
    'extract_headings',
    'extract_controls',
    'extract_lists',
    'extract_pagination',
    'extract_forms',
    'density_hints',
    'is_clickable',
    'find_label',
    'infer_role',
    'group_children',
    'signature',
    'PaginationCandidate',
    'rank_pagination',
    'score_anchor',
]
