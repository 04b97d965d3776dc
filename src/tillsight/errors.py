"""
Insight error taxonomy.

Configuration: NotConfiguredError
Capacity:      RateLimitedError
Transport:     UpstreamTimeoutError, UpstreamError
Contract:      MalformedPayloadError, SchemaMismatchError

Every InsightError carries a machine-readable ``code`` that is reported to
callers verbatim.
"""

from typing import Any, Dict, List, Optional


class InsightError(Exception):
    """Base class for failures of the external generation path."""

    code = "InsightError"

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class NotConfiguredError(InsightError):
    """The generator credential is absent."""

    code = "NotConfigured"


class RateLimitedError(InsightError):
    """The requester exhausted its generation budget for the current window."""

    code = "RateLimited"

    def __init__(self, message: str, retry_after_ms: int):
        self.retry_after_ms = retry_after_ms
        super().__init__(message)


class UpstreamTimeoutError(InsightError):
    """The generator did not answer before the deadline."""

    code = "UpstreamTimeout"


class UpstreamError(InsightError):
    """The generator answered with an error or the transport failed."""

    code = "UpstreamError"

    def __init__(self, message: str, status_code: int = 502):
        self.status_code = status_code
        super().__init__(message)


class MalformedPayloadError(InsightError):
    """The generator text did not contain parseable JSON."""

    code = "MalformedPayload"


class SchemaMismatchError(InsightError):
    """The parsed payload does not match the InsightBundle shape."""

    code = "SchemaMismatch"

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None):
        self.errors = errors or []
        super().__init__(message)


class InsightsUnavailableError(Exception):
    """
    Raised to a caller that explicitly demanded fresh generation (force=True)
    when it did not happen.

    ``fallback`` is always a usable rule-based InsightResult.
    """

    def __init__(self, cause: InsightError, fallback):
        self.cause = cause
        self.fallback = fallback
        super().__init__(f"{cause.code}: {cause.message}")

    @property
    def code(self) -> str:
        return self.cause.code


class SnapshotUnavailableError(Exception):
    """The analytics collaborator had no snapshot for the request."""
