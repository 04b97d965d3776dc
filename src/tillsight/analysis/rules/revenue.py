"""Revenue trend rules."""

from typing import Optional

from tillsight.analysis.rules import InsightRule
from tillsight.schema import AnalyticsSnapshot, Insight, InsightType, Severity


REVENUE_SURGE_PCT = 20.0


class RevenueSurgeRule(InsightRule):
    """Celebrate revenue growth above 20% versus the previous window."""

    def __init__(self):
        super().__init__(
            name="revenue_surge",
            insight_type=InsightType.POSITIVE,
            severity=Severity.SUCCESS,
            title="Revenue Surge",
            action="Consider increasing float/limits and preparing support for peak volume.",
        )

    def evaluate(self, snapshot: AnalyticsSnapshot) -> Optional[Insight]:
        change = snapshot.revenue_change_pct
        if change is None or change <= REVENUE_SURGE_PCT:
            return None

        return self.create_insight(
            f"Revenue increased by {change:.1f}% versus the previous comparable window."
        )


REVENUE_RULES = [
    RevenueSurgeRule(),
]
