from typing import Any, Dict, List, Optional

from ..canonical import Deduplicator, suppress_repeated_images
from ..diagnostics import get_logger
from ..exceptions import ExtractionError
from ..models import PageSnapshot
from ..schema import DataSelectors
from ..weights import DEFAULT_WEIGHTS, HeuristicWeights
from .tiers import anchor_tier, list_tier, schema_tier

logger = get_logger(__name__)

TIERS = ("schema", "list", "anchor")


class ItemExtractor:
    """
    Three-tier item extraction with run-wide de-duplication.

    The first tier with a non-empty raw result wins; its batch then has
    repeated images suppressed, is filtered against the run's seen set and
    truncated to the remaining capacity.
    """

    def __init__(
        self,
        selectors: Optional[DataSelectors] = None,
        weights: HeuristicWeights = DEFAULT_WEIGHTS,
        dedup: Optional[Deduplicator] = None,
    ):
        self.selectors = selectors
        self.weights = weights
        self.dedup = dedup if dedup is not None else Deduplicator()
        self.last_tier: Optional[str] = None

    async def _run_tier(self, name: str, page, snapshot: PageSnapshot) -> List[Dict[str, Any]]:
        if name == "schema":
            return await schema_tier(page, snapshot, self.selectors, self.weights)
        if name == "list":
            return await list_tier(page, snapshot, self.weights)
        return await anchor_tier(snapshot, self.weights)

    async def extract(self, page, snapshot: PageSnapshot, capacity: Optional[int] = None) -> List[Dict[str, Any]]:
        """New records for this page; ``capacity`` None means unbounded."""
        self.last_tier = None
        if capacity is not None and capacity <= 0:
            logger.debug("No remaining capacity; skipping extraction")
            return []

        raw: List[Dict[str, Any]] = []
        for name in TIERS:
            try:
                raw = await self._run_tier(name, page, snapshot)
            except ExtractionError as e:
                logger.warning(f"{name} tier failed, falling back: {e}")
                continue
            if raw:
                self.last_tier = name
                break

        if not raw:
            logger.info(f"No items found on {snapshot.compact.url}")
            return []

        suppress_repeated_images(raw, self.weights.image_repeat_threshold)
        fresh = self.dedup.filter(raw, limit=capacity)
        logger.info(f"Extracted {len(fresh)} new item(s) via {self.last_tier} tier ({len(raw)} raw)")
        return fresh
