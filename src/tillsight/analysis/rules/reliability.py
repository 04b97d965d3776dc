"""Reliability rules: payment success and repeated failures.

These rules flag conditions that cost the merchant conversions, usually
gateway health or customer drop-off during STK push.
"""

from typing import Optional

from tillsight.analysis.rules import InsightRule, format_kes
from tillsight.schema import AnalyticsSnapshot, Insight, InsightType, Severity


# Reliability thresholds
MIN_TRANSACTIONS_FOR_RATE = 20  # Too few transactions make the rate noisy
MIN_SUCCESS_RATE = 0.70
MIN_FAILURES_PER_AMOUNT = 5


class LowSuccessRateRule(InsightRule):
    """Flag a success rate below 70% over a meaningful sample."""

    def __init__(self):
        super().__init__(
            name="low_success_rate",
            insight_type=InsightType.ANOMALY,
            severity=Severity.WARNING,
            title="Low Success Rate",
            action="Review M-Pesa gateway health, callback handling, and user input validation.",
        )

    def evaluate(self, snapshot: AnalyticsSnapshot) -> Optional[Insight]:
        if snapshot.total_transactions < MIN_TRANSACTIONS_FOR_RATE:
            return None

        rate = snapshot.success_rate
        if rate >= MIN_SUCCESS_RATE:
            return None

        return self.create_insight(
            f"Success rate is {rate * 100:.1f}% for the selected period."
        )


class FrequentFailedAmountRule(InsightRule):
    """Flag a single amount that keeps failing."""

    def __init__(self):
        super().__init__(
            name="frequent_failed_amount",
            insight_type=InsightType.ANOMALY,
            severity=Severity.WARNING,
            title="Amount With Frequent Failures",
            action=(
                "Investigate user flows and STK push outcomes for this amount "
                "(timeouts, PIN entry drop-off, balance issues)."
            ),
        )

    def evaluate(self, snapshot: AnalyticsSnapshot) -> Optional[Insight]:
        top = snapshot.top_failed_amount
        if top is None or top.failed_count < MIN_FAILURES_PER_AMOUNT:
            return None

        return self.create_insight(
            f"{format_kes(top.amount)} has {top.failed_count} failures in the selected period."
        )


# Export all reliability rules
RELIABILITY_RULES = [
    LowSuccessRateRule(),
    FrequentFailedAmountRule(),
]
