"""Shared fixtures for the insight service tests."""

import asyncio
import json
from datetime import UTC, datetime, timedelta
from typing import Optional

import pytest

from tillsight.config import InsightSettings
from tillsight.schema import AnalyticsSnapshot
from tillsight.service import InsightService
from tillsight.snapshot import InMemorySnapshotProvider


VALID_PAYLOAD = {
    "anomalyScore": "high",
    "insights": [
        {
            "type": "anomaly",
            "title": "Success Rate Below Target",
            "description": "Only 30 of 50 payments succeeded (60.0%).",
            "severity": "warning",
            "action": "Check STK push timeouts for the last 7 days.",
        },
        {
            "type": "positive",
            "title": "Revenue Growth",
            "description": "Paid revenue reached KES 45,000 this week.",
            "severity": "success",
            "action": "Raise till float before the weekend peak.",
        },
    ],
}

VALID_TEXT = "Here you go:\n```json\n" + json.dumps(VALID_PAYLOAD) + "\n```"


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2026, 1, 5, 9, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class StubGenerator:
    """In-process generator that records calls."""

    model_name = "stub-model"

    def __init__(
        self,
        text: str = VALID_TEXT,
        error: Optional[Exception] = None,
        delay: float = 0.0,
        configured: bool = True,
    ):
        self.text = text
        self.error = error
        self.delay = delay
        self.configured = configured
        self.calls = 0

    @property
    def is_configured(self) -> bool:
        return self.configured

    async def generate(self, snapshot, range_key, till_id=None) -> str:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.text


def make_settings(**overrides) -> InsightSettings:
    """Settings isolated from the environment and any .env file."""
    values = {"gemini_api_key": "test-key"}
    values.update(overrides)
    return InsightSettings(_env_file=None, **values)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def snapshots():
    provider = InMemorySnapshotProvider()
    provider.add(
        "u1",
        "week",
        AnalyticsSnapshot(
            totalTransactions=50,
            successCount=30,
            topFailedAmount=None,
            revenueChangePct=None,
            paidRevenue=45000,
        ),
    )
    provider.add("u2", "week", AnalyticsSnapshot(totalTransactions=10, successCount=10))
    return provider


@pytest.fixture
def make_service(snapshots, clock):
    """Factory for services wired to the fake clock and in-memory snapshots."""

    def _make(generator=None, **settings) -> InsightService:
        return InsightService(
            snapshot_provider=snapshots,
            settings=make_settings(**settings),
            generator=generator if generator is not None else StubGenerator(),
            clock=clock,
        )

    return _make
