"""Interface the insight service expects from an external generator."""

from typing import Optional, Protocol

from tillsight.schema import AnalyticsSnapshot


class InsightGenerator(Protocol):
    """One outbound generation call returning raw, unvalidated text."""

    model_name: str

    @property
    def is_configured(self) -> bool:
        ...

    async def generate(
        self,
        snapshot: AnalyticsSnapshot,
        range_key: str,
        till_id: Optional[str] = None,
    ) -> str:
        ...
