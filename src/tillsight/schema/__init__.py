"""Schema module for insight bundles and generator payload validation."""

from tillsight.schema.models import (
    AnalyticsSnapshot,
    AnomalyScore,
    CacheEntry,
    FailedAmount,
    Insight,
    InsightBundle,
    InsightMeta,
    InsightResult,
    InsightType,
    Provider,
    Severity,
)
from tillsight.schema.validator import InsightValidator, extract_json

__all__ = [
    "AnalyticsSnapshot",
    "AnomalyScore",
    "CacheEntry",
    "FailedAmount",
    "Insight",
    "InsightBundle",
    "InsightMeta",
    "InsightResult",
    "InsightType",
    "Provider",
    "Severity",
    "InsightValidator",
    "extract_json",
]
