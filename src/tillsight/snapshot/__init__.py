"""Analytics snapshot providers."""

from tillsight.snapshot.client import AnalyticsClient
from tillsight.snapshot.provider import AnalyticsSnapshotProvider, InMemorySnapshotProvider

__all__ = ["AnalyticsClient", "AnalyticsSnapshotProvider", "InMemorySnapshotProvider"]
