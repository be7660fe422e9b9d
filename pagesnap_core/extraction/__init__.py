"""
Item extraction: schema fields, snapshot lists, anchor fallback.
"""

from .enrich import enrich_record, primary_link, derive_title, derive_tags, derive_signals
from .extractor import ItemExtractor, TIERS
from .fields import SCHEMA_ITEMS_JS, evaluate_fields, parse_number
from .tiers import LIST_ROOTS_JS, anchor_tier, list_roots, list_tier, requery_list_roots, schema_tier, score_link

__all__ = [
    'ItemExtractor',
    'TIERS',
    'enrich_record',
    'primary_link',
    'derive_title',
    'derive_tags',
    'derive_signals',
    'SCHEMA_ITEMS_JS',
    'evaluate_fields',
    'parse_number',
    'anchor_tier',
    'list_roots',
    'list_tier',
    'requery_list_roots',
    'LIST_ROOTS_JS',
    'schema_tier',
    'score_link',
]
