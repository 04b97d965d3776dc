"""Base class for insight rules."""

from abc import ABC, abstractmethod
from typing import Optional

from tillsight.schema import AnalyticsSnapshot, Insight, InsightType, Severity


class InsightRule(ABC):
    """Abstract base class for deterministic insight rules."""

    def __init__(
        self,
        name: str,
        insight_type: InsightType,
        severity: Severity,
        title: str,
        action: str,
    ):
        """
        Initialize an insight rule.

        Args:
            name: Unique rule identifier
            insight_type: Type of the insight this rule emits
            severity: Display severity of the insight
            title: Headline of the insight
            action: Suggested operational next step
        """
        self.name = name
        self.insight_type = insight_type
        self.severity = severity
        self.title = title
        self.action = action

    @abstractmethod
    def evaluate(self, snapshot: AnalyticsSnapshot) -> Optional[Insight]:
        """
        Evaluate the rule against an analytics snapshot.

        Returns:
            The insight if the rule fires, otherwise None
        """
        pass

    def create_insight(self, description: str) -> Insight:
        """Create an insight for this rule."""
        return Insight(
            type=self.insight_type,
            title=self.title,
            description=description,
            severity=self.severity,
            action=self.action,
        )


def format_kes(amount: float) -> str:
    """Format an amount with thousands separators and at most 3 decimals, trailing zeros trimmed."""
    text = f"{float(amount):,.3f}".rstrip("0").rstrip(".")
    return f"KES {text}"
