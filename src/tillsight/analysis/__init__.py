"""Rule-based insight analysis."""

from tillsight.analysis.engine import RuleEngine
from tillsight.analysis.rules import InsightRule

__all__ = [
    "RuleEngine",
    "InsightRule",
]
