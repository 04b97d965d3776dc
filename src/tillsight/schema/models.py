"""
Insight Schema Definition

This module defines the authoritative shapes exchanged by the insight service
using Pydantic. Every bundle returned to a caller, whether computed by the rule
engine or produced by the external generator, is an InsightBundle.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


MAX_INSIGHTS = 9


class InsightType(str, Enum):
    """Kinds of insight."""

    ANOMALY = "anomaly"
    POSITIVE = "positive"
    INFO = "info"


class Severity(str, Enum):
    """Display severity of an insight."""

    ERROR = "error"
    WARNING = "warning"
    SUCCESS = "success"
    INFO = "info"


class AnomalyScore(str, Enum):
    """Overall anomaly level of a bundle."""

    LOW = "low"
    HIGH = "high"


class Provider(str, Enum):
    """Strategy that produced a bundle."""

    RULE_BASED = "rule_based"
    EXTERNAL = "external"


class FailedAmount(BaseModel):
    """The transaction amount with the most failures in the window."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    amount: float = Field(description="Transaction amount (KES)")
    failed_count: int = Field(ge=0, alias="failedCount", description="Failed transactions at this amount")


class AnalyticsSnapshot(BaseModel):
    """
    Pre-aggregated analytics for one merchant / window / till.

    Produced by the analytics collaborator. Only the fields the rule engine
    reads are declared; any additional aggregate is kept as an extra field
    and passed through untouched to the generator prompt.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    total_transactions: int = Field(default=0, ge=0, alias="totalTransactions")
    success_count: int = Field(default=0, ge=0, alias="successCount")
    top_failed_amount: Optional[FailedAmount] = Field(default=None, alias="topFailedAmount")
    revenue_change_pct: Optional[float] = Field(default=None, alias="revenueChangePct")

    @property
    def success_rate(self) -> float:
        """Fraction of successful transactions (0.0 when there are none)."""
        if self.total_transactions == 0:
            return 0.0
        return self.success_count / self.total_transactions


class Insight(BaseModel):
    """A single piece of analytics commentary."""

    model_config = ConfigDict(frozen=True)

    type: InsightType = Field(description="anomaly, positive or info")
    title: str = Field(min_length=1, description="Short headline")
    description: str = Field(min_length=1, description="One-sentence explanation")
    severity: Severity = Field(description="error, warning, success or info")
    action: str = Field(min_length=1, description="Operational next step")

    @field_validator("title", "description", "action")
    @classmethod
    def reject_blank(cls, v: str) -> str:
        """Whitespace-only text is as useless as missing text."""
        if not v.strip():
            raise ValueError("must not be blank")
        return v


class InsightBundle(BaseModel):
    """The unit stored in the cache and returned to callers."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    anomaly_score: AnomalyScore = Field(alias="anomalyScore")
    insights: List[Insight] = Field(default_factory=list, max_length=MAX_INSIGHTS)
    provider: Provider = Field(default=Provider.RULE_BASED)
    model: Optional[str] = Field(default=None, description="Generator model name, if any")

    def to_payload(self) -> dict:
        """Wire form used by the dashboard (`aiInsights`)."""
        return {
            "anomalyScore": self.anomaly_score.value,
            "insights": [i.model_dump(mode="json") for i in self.insights],
        }


class CacheEntry(BaseModel):
    """A successfully generated bundle and its validity window."""

    model_config = ConfigDict(frozen=True)

    bundle: InsightBundle
    generated_at: datetime
    expires_at: datetime


class InsightMeta(BaseModel):
    """How a bundle was obtained."""

    cached: bool = Field(default=False)
    generated_at: Optional[datetime] = Field(default=None)
    expires_at: Optional[datetime] = Field(default=None)
    provider: Provider = Field(default=Provider.RULE_BASED)
    model: Optional[str] = Field(default=None)
    available: bool = Field(default=True, description="Whether external insights were delivered")
    error: Optional[str] = Field(default=None, description="Failure code of the external attempt")
    provider_attempted: Optional[Provider] = Field(default=None)
    retry_after_ms: Optional[int] = Field(default=None)


class InsightResult(BaseModel):
    """Bundle plus metadata, as returned by InsightService."""

    bundle: InsightBundle
    meta: InsightMeta
