"""Analytics snapshot provider interface and in-memory implementation."""

import logging
from typing import Dict, Optional, Protocol, Tuple

from tillsight.cache.single_flight import ALL_TILLS
from tillsight.schema import AnalyticsSnapshot


logger = logging.getLogger(__name__)


class AnalyticsSnapshotProvider(Protocol):
    """Supplies the pre-aggregated analytics the insights are built from."""

    async def fetch(
        self, user_id: str, range_key: str, till_id: Optional[str] = None
    ) -> Optional[AnalyticsSnapshot]:
        ...


class InMemorySnapshotProvider:
    """
    Snapshot provider backed by a dictionary.

    Used for local development and tests. Snapshots registered without a
    till apply to the "all tills" view.
    """

    def __init__(self):
        self._snapshots: Dict[Tuple[str, str, str], AnalyticsSnapshot] = {}
        self.fetch_count = 0

    def add(
        self,
        user_id: str,
        range_key: str,
        snapshot: AnalyticsSnapshot,
        till_id: Optional[str] = None,
    ) -> None:
        """Register the snapshot for a merchant / window / till."""
        self._snapshots[(user_id, range_key.lower(), till_id or ALL_TILLS)] = snapshot

    async def fetch(
        self, user_id: str, range_key: str, till_id: Optional[str] = None
    ) -> Optional[AnalyticsSnapshot]:
        self.fetch_count += 1
        snapshot = self._snapshots.get((user_id, range_key.lower(), till_id or ALL_TILLS))
        if snapshot is None:
            logger.debug(f"No snapshot for {user_id}/{range_key}/{till_id or ALL_TILLS}")
        return snapshot
