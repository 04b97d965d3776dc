"""
Tillsight API Server

Exposes the insight service to the merchant dashboard. Authentication is
handled upstream; the gateway forwards the merchant id in ``X-User-Id``.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Header, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Load environment variables (API keys)
load_dotenv()

from tillsight.config import config
from tillsight.errors import InsightsUnavailableError, SnapshotUnavailableError
from tillsight.schema import InsightResult
from tillsight.service import InsightService
from tillsight.snapshot import AnalyticsClient

# Configure Logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


# HTTP status per failure code when generation was forced
ERROR_STATUS = {
    "RateLimited": 429,
    "NotConfigured": 503,
    "UpstreamTimeout": 504,
    "UpstreamError": 502,
    "MalformedPayload": 502,
    "SchemaMismatch": 502,
}

# CORS origins (dashboard dev servers)
origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:8080",
]


def _epoch_ms(value: Optional[datetime]) -> Optional[int]:
    return int(value.timestamp() * 1000) if value else None


def render_result(result: InsightResult) -> Dict[str, Any]:
    """Dashboard wire format for an insight result."""
    meta = result.meta
    body: Dict[str, Any] = {
        "status": "success",
        "cached": meta.cached,
        "generatedAt": _epoch_ms(meta.generated_at),
        "expiresAt": _epoch_ms(meta.expires_at),
        "provider": meta.provider.value,
        "model": meta.model,
        "available": meta.available,
        "error": meta.error,
        "aiInsights": result.bundle.to_payload(),
    }
    if meta.provider_attempted is not None:
        body["providerAttempted"] = meta.provider_attempted.value
    if meta.retry_after_ms is not None:
        body["retryAfterMs"] = meta.retry_after_ms
    return body


def create_app(service: Optional[InsightService] = None) -> FastAPI:
    """Build the API around an insight service (one per process by default)."""
    if service is None:
        service = InsightService(
            snapshot_provider=AnalyticsClient(
                config.analytics_service_url,
                timeout=config.analytics_timeout_seconds,
            ),
            settings=config,
        )

    app = FastAPI(title="Tillsight API", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.insights = service

    @app.get("/")
    async def root():
        return {"status": "online", "system": "Tillsight"}

    @app.get("/api/dashboard/ai-insights")
    async def get_ai_insights(
        user_id: str = Header(alias="X-User-Id"),
        range_key: str = Query(default="week", alias="range"),
        till_id: Optional[str] = Query(default=None, alias="tillId"),
        force: str = Query(default=""),
    ):
        """Insights for the requesting merchant's window."""
        force_refresh = force.strip().lower() == "true"
        logger.info(f"AI insights requested by {user_id}: range={range_key} till={till_id or 'all'} force={force_refresh}")

        try:
            result = await service.get_insights(user_id, range_key, till_id, force=force_refresh)
        except InsightsUnavailableError as e:
            body = render_result(e.fallback)
            body.update({"status": "error", "error": e.code, "message": e.cause.message})
            return JSONResponse(status_code=ERROR_STATUS.get(e.code, 502), content=body)
        except SnapshotUnavailableError as e:
            logger.error(f"Snapshot unavailable: {e}")
            return JSONResponse(status_code=503, content={"status": "error", "message": str(e)})

        return render_result(result)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=config.host, port=config.port)
