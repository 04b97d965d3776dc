"""Insight Service - orchestration of cached, rate-limited generation.

Flow for one request:
1. Compose the cache key from (user, range, till).
2. Serve a fresh cached bundle, join a running generation, or start one.
   A new generation checks configuration, loads the snapshot, reserves a
   rate-limit slot, calls the external generator, extracts and validates
   its JSON.
3. On any generation failure the rule engine answers instead. The failure
   is reported as metadata, or raised with the fallback attached when the
   caller explicitly forced generation.
"""

import logging
from datetime import UTC, datetime, timedelta
from typing import Callable, Optional

from tillsight.analysis import RuleEngine
from tillsight.cache import SingleFlightCache, make_cache_key
from tillsight.config import InsightSettings
from tillsight.errors import (
    InsightError,
    InsightsUnavailableError,
    NotConfiguredError,
    RateLimitedError,
    SnapshotUnavailableError,
    UpstreamError,
)
from tillsight.generator import GeminiInsightGenerator, InsightGenerator
from tillsight.ratelimit import RateLimiter
from tillsight.schema import (
    AnalyticsSnapshot,
    InsightBundle,
    InsightMeta,
    InsightResult,
    InsightValidator,
    Provider,
    extract_json,
)
from tillsight.snapshot import AnalyticsSnapshotProvider


logger = logging.getLogger(__name__)


class _SnapshotLoader:
    """Fetches the snapshot for one request at most once."""

    def __init__(self, provider: AnalyticsSnapshotProvider, user_id: str, range_key: str, till_id: Optional[str]):
        self.provider = provider
        self.user_id = user_id
        self.range_key = range_key
        self.till_id = till_id
        self._snapshot: Optional[AnalyticsSnapshot] = None

    async def get(self) -> AnalyticsSnapshot:
        if self._snapshot is None:
            snapshot = await self.provider.fetch(self.user_id, self.range_key, self.till_id)
            if snapshot is None:
                raise SnapshotUnavailableError(
                    f"No analytics snapshot for {self.user_id} ({self.range_key}, till={self.till_id or 'all'})"
                )
            self._snapshot = snapshot
        return self._snapshot


class InsightService:
    """
    Insight orchestrator.

    Owns the cache, in-flight tickets and rate windows for one deployment;
    nothing is process-global, so tests and tenants can build isolated
    instances.
    """

    def __init__(
        self,
        snapshot_provider: AnalyticsSnapshotProvider,
        settings: Optional[InsightSettings] = None,
        generator: Optional[InsightGenerator] = None,
        rule_engine: Optional[RuleEngine] = None,
        validator: Optional[InsightValidator] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize the service.

        Args:
            snapshot_provider: Source of analytics snapshots
            settings: TTL, rate limit and generator settings
            generator: External generator (defaults to Gemini from settings)
            rule_engine: Deterministic fallback engine
            validator: Generator payload validator
            clock: Time source shared by cache and rate limiter
        """
        self.settings = settings or InsightSettings()
        self.snapshot_provider = snapshot_provider
        self.generator = generator or GeminiInsightGenerator(self.settings)
        self.rule_engine = rule_engine or RuleEngine()
        self.validator = validator or InsightValidator()

        clock = clock or (lambda: datetime.now(UTC))
        self.rate_limiter = RateLimiter(
            max_per_window=self.settings.gemini_rate_limit_max,
            window=timedelta(seconds=self.settings.gemini_rate_limit_window_seconds),
            clock=clock,
        )
        self.cache = SingleFlightCache(
            ttl=timedelta(seconds=self.settings.gemini_insights_ttl_seconds),
            clock=clock,
        )

        logger.info("Insight Service initialized")

    async def get_insights(
        self,
        user_id: str,
        range_key: str = "week",
        till_id: Optional[str] = None,
        force: bool = False,
    ) -> InsightResult:
        """
        Return insights for a merchant's window.

        Args:
            user_id: Requesting merchant
            range_key: Time window (today, week, month, year)
            till_id: Till to scope to, or None for all tills
            force: Demand fresh generation, bypassing a fresh cache entry

        Returns:
            InsightResult; a rule-based bundle when generation failed and
            force is False

        Raises:
            InsightsUnavailableError: force is True and generation did not
                happen (carries a rule-based fallback)
            SnapshotUnavailableError: The analytics collaborator had no data
        """
        range_key = range_key.strip().lower()
        key = make_cache_key(user_id, range_key, till_id)
        loader = _SnapshotLoader(self.snapshot_provider, user_id, range_key, till_id)

        async def generate() -> InsightBundle:
            if not self.generator.is_configured:
                raise NotConfiguredError("Gemini is not configured: missing GEMINI_API_KEY")

            snapshot = await loader.get()

            decision = self.rate_limiter.check_and_reserve(user_id)
            if not decision.allowed:
                raise RateLimitedError(
                    "Too many AI insight requests. Please try again shortly.",
                    retry_after_ms=decision.retry_after_ms,
                )

            try:
                raw_text = await self.generator.generate(snapshot, range_key, till_id)
            except InsightError:
                raise
            except Exception as e:
                logger.error(f"Generator raised {type(e).__name__}: {e}")
                raise UpstreamError(f"Insight generation failed: {e}") from e
            candidate = extract_json(raw_text)
            return self.validator.validate(candidate, model=self.generator.model_name)

        try:
            outcome = await self.cache.get_or_generate(key, generate, force=force)
        except InsightError as e:
            return await self._recover(key, e, loader, force)

        return InsightResult(
            bundle=outcome.bundle,
            meta=InsightMeta(
                cached=outcome.cached,
                generated_at=outcome.generated_at,
                expires_at=outcome.expires_at,
                provider=outcome.bundle.provider,
                model=outcome.bundle.model,
                available=True,
            ),
        )

    async def _recover(
        self,
        key: str,
        error: InsightError,
        loader: _SnapshotLoader,
        force: bool,
    ) -> InsightResult:
        """Apply the fallback policy to a failed generation."""
        if force and isinstance(error, NotConfiguredError):
            entry = self.cache.peek(key)
            if entry is not None:
                logger.info(f"Generator not configured, serving existing entry for {key}")
                return InsightResult(
                    bundle=entry.bundle,
                    meta=InsightMeta(
                        cached=True,
                        generated_at=entry.generated_at,
                        expires_at=entry.expires_at,
                        provider=entry.bundle.provider,
                        model=entry.bundle.model,
                        available=True,
                        error=error.code,
                    ),
                )

        snapshot = await loader.get()
        fallback = InsightResult(
            bundle=self.rule_engine.evaluate(snapshot),
            meta=InsightMeta(
                cached=False,
                provider=Provider.RULE_BASED,
                available=False,
                error=error.code,
                provider_attempted=Provider.EXTERNAL,
                retry_after_ms=error.retry_after_ms if isinstance(error, RateLimitedError) else None,
            ),
        )

        if force:
            logger.warning(f"Forced generation failed for {key}: {error.code} ({error.message})")
            raise InsightsUnavailableError(error, fallback) from error

        logger.info(f"Generation unavailable for {key} ({error.code}), using rule-based insights")
        return fallback
