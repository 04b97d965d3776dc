"""Rate limiting for external generation."""

from tillsight.ratelimit.limiter import RateLimitDecision, RateLimiter

__all__ = ["RateLimitDecision", "RateLimiter"]
