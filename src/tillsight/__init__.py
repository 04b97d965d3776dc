"""Tillsight - merchant insight generation service."""

from tillsight.errors import InsightError, InsightsUnavailableError
from tillsight.schema import InsightBundle, InsightResult
from tillsight.service import InsightService

__all__ = [
    "InsightError",
    "InsightsUnavailableError",
    "InsightBundle",
    "InsightResult",
    "InsightService",
]

__version__ = "0.1.0"
