"""
Heuristic weights and snapshot limits.

Every score weight, size floor, repetition threshold and multiplier used by
the analyzers, the image scorer and the extraction tiers lives here, so a
caller can override any of them with ``dataclasses.replace``:

    from dataclasses import replace
    weights = replace(DEFAULT_WEIGHTS, list_min_repeats=5)
    snap = await build_snapshot(page, weights=weights)
"""

from dataclasses import dataclass
from typing import Tuple

from .config import Config


@dataclass(frozen=True)
class SnapshotLimits:
    """Output caps for one CompactSnapshot."""
    max_controls: int = 30
    max_lists: int = 2
    max_forms: int = 3
    max_form_fields: int = 12
    max_headings: int = 6
    max_pagination: int = 2

    @classmethod
    def from_config(cls, cfg: Config) -> "SnapshotLimits":
        return cls(
            max_controls=cfg.max_controls,
            max_lists=cfg.max_lists,
            max_forms=cfg.max_forms,
            max_form_fields=cfg.max_form_fields,
        )


@dataclass(frozen=True)
class HeuristicWeights:
    # Text clipping
    clip_chars: int = 80

    # Selector generator: class names produced by CSS-in-JS / frameworks
    unstable_class_pattern: str = r"^(_|Mui|css-|sc-|chakra-|ant-|ember|ng-)"
    max_selector_classes: int = 2
    max_data_attr_value: int = 100

    # Headings
    heading_min_font_px: float = 20.0
    heading_min_font_weight: int = 600
    heading_min_area: float = 200.0
    heading_min_text: int = 12
    heading_collect_cap: int = 12
    heading_frame_cap: int = 8

    # Visibility / clickables
    visible_min_area: float = 10.0
    visible_min_opacity: float = 0.01
    control_buffer_multiplier: int = 2

    # Repetition-based list detection
    list_containers: Tuple[str, ...] = ("main", ".content", "body")
    list_min_repeats: int = 8
    list_min_area: float = 200.0
    list_signature_tags: int = 6
    list_samples: int = 3
    list_link_selector: str = "a, [role=link]"

    # Pagination ranking
    pagination_rel_next: float = 3.0
    pagination_text: float = 2.0
    pagination_query: float = 2.0
    pagination_bottom: float = 1.0
    pagination_bottom_fraction: float = 0.6
    pagination_frame_cap: int = 4
    pagination_text_pattern: str = r"(next|older|more|›|»)"
    pagination_query_pattern: str = r"[?&](page|p|offset|start)=\d+"

    # Image candidate scoring
    image_base_score: float = 1.0
    image_anchor_match: float = 1.6
    image_decorative_penalty: float = 1.5
    image_hidden_penalty: float = 1.0
    image_min_area: float = 1500.0
    image_small_penalty: float = 1.0
    image_max_aspect: float = 3.5
    image_min_aspect: float = 0.3
    image_aspect_penalty: float = 0.8
    image_area_unit: float = 40000.0
    image_area_bonus_cap: float = 1.5
    image_lazy_factor: float = 0.9
    image_meta_score: float = 0.1
    image_decorative_pattern: str = (
        r"(logo|icon|avatar|sprite|\bads?\b|ad[-_]|banner|badge|placeholder|"
        r"spinner|loader|loading|pixel|tracking|emoji|blank|spacer)"
    )
    image_repeat_threshold: int = 5

    # Extraction tiers
    item_actions: int = 3
    item_tags: int = 8
    item_snippet_chars: int = 200
    item_text_chars: int = 500
    anchor_href_weight: float = 2.0
    anchor_words_weight: float = 2.5
    anchor_min_words: int = 1
    anchor_max_words: int = 12
    anchor_area_unit: float = 5000.0
    anchor_area_cap: float = 1.5
    anchor_keep: int = 100
    tag_class_pattern: str = r"(^|[-_ ])(tag|tags|badge|chip|label|category|pill|topic)([-_ ]|$)"

    # Navigation
    follow_controls: int = 10
    follow_lists: int = 2

    # Hash width for refIds (hex digits)
    ref_hash_digits: int = 12


DEFAULT_WEIGHTS = HeuristicWeights()
DEFAULT_LIMITS = SnapshotLimits()
