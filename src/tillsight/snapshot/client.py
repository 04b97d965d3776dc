"""
Analytics Client

HTTP client for fetching pre-aggregated snapshots from the analytics service.
Transaction aggregation happens there; this client only transports the result.
"""

import logging
from typing import Optional

import httpx

from tillsight.errors import SnapshotUnavailableError
from tillsight.schema import AnalyticsSnapshot


logger = logging.getLogger(__name__)


class AnalyticsClient:
    """Client for the analytics service (implements AnalyticsSnapshotProvider)."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize analytics client.

        Args:
            base_url: Base URL of the analytics service
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests inject a MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self.logger = logger

    async def fetch(
        self, user_id: str, range_key: str, till_id: Optional[str] = None
    ) -> Optional[AnalyticsSnapshot]:
        """
        Fetch the snapshot for a merchant / window / till.

        Returns:
            AnalyticsSnapshot, or None if the service has none

        Raises:
            SnapshotUnavailableError: If the service is unreachable or fails
        """
        params = {"range": range_key}
        if till_id:
            params["tillId"] = till_id

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(f"{self.base_url}/analytics/{user_id}", params=params)
                if response.status_code == 404:
                    return None
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as e:
            self.logger.error(f"Failed to fetch analytics snapshot: {e}")
            raise SnapshotUnavailableError(f"Analytics service error: {e}")

        snapshot = AnalyticsSnapshot.model_validate(data)
        self.logger.info(f"Fetched analytics snapshot for {user_id} ({range_key})")
        return snapshot
