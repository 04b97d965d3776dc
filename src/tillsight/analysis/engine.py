"""Rule Engine - deterministic insight generation.

The rule engine is the guaranteed fallback of the insight service: it runs
plain Python over an analytics snapshot, does no I/O and never fails.
"""

import logging
from typing import List, Optional

from tillsight.analysis.rules import InsightRule
from tillsight.analysis.rules.reliability import RELIABILITY_RULES
from tillsight.analysis.rules.revenue import REVENUE_RULES
from tillsight.schema import (
    AnalyticsSnapshot,
    AnomalyScore,
    Insight,
    InsightBundle,
    InsightType,
    Provider,
    Severity,
)
from tillsight.schema.models import MAX_INSIGHTS


logger = logging.getLogger(__name__)


STABLE_OPERATIONS = Insight(
    type=InsightType.INFO,
    title="Stable Operations",
    description="No major anomalies detected for the selected period.",
    severity=Severity.INFO,
    action="Use “Generate with Gemini” for deeper insights and next-best actions.",
)


class RuleEngine:
    """
    Deterministic insight engine.

    Every rule is evaluated independently and every matching rule is
    included, earliest-defined first, capped at MAX_INSIGHTS. When nothing
    fires a single "Stable Operations" info insight is returned.
    """

    def __init__(self, rules: Optional[List[InsightRule]] = None):
        """Initialize the engine with the given rules, or the default set."""
        if rules is None:
            rules = [*RELIABILITY_RULES, *REVENUE_RULES]
        self.rules: List[InsightRule] = list(rules)

        logger.info(f"Rule Engine initialized with {len(self.rules)} rules")

    def evaluate(self, snapshot: AnalyticsSnapshot) -> InsightBundle:
        """
        Evaluate a snapshot against all rules.

        Args:
            snapshot: Pre-aggregated analytics for the requested window

        Returns:
            InsightBundle with provider "rule_based" and no model
        """
        insights: List[Insight] = []
        for rule in self.rules:
            insight = rule.evaluate(snapshot)
            if insight is not None:
                insights.append(insight)
                logger.debug(f"Rule '{rule.name}' fired: {insight.description}")

        if not insights:
            insights.append(STABLE_OPERATIONS)

        insights = insights[:MAX_INSIGHTS]
        has_anomaly = any(i.type == InsightType.ANOMALY for i in insights)

        return InsightBundle(
            anomaly_score=AnomalyScore.HIGH if has_anomaly else AnomalyScore.LOW,
            insights=insights,
            provider=Provider.RULE_BASED,
            model=None,
        )
