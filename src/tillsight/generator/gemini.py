"""
Gemini Insight Generator

Issues one outbound Gemini generateContent call per generation attempt and returns
the model's raw text. The text is untrusted: it goes through extract_json and
the InsightValidator before anything is cached or shown to a merchant.

PROPERTIES:
1. Fails fast with NotConfiguredError when no API key is set (no I/O).
2. Hard deadline on every call; no internal retries.
3. Transport failures are mapped onto the insight error taxonomy.
"""

import asyncio
import json
import logging
from typing import Optional

import httpx
from google import genai
from google.genai import errors, types

from tillsight.config import InsightSettings
from tillsight.errors import NotConfiguredError, UpstreamError, UpstreamTimeoutError
from tillsight.schema import AnalyticsSnapshot


logger = logging.getLogger(__name__)


PROMPT_TEMPLATE = """You are an expert fintech analytics assistant for a payment platform.

TASK:
Generate high-signal, evidence-driven insights and next actions for a merchant. Prioritize issues that impact conversion, revenue, and reliability.

OUTPUT FORMAT:
Return STRICT JSON only (no markdown, no extra text) with this schema:
{{
  "anomalyScore": "low"|"high",
  "insights": [
    {{
      "type": "anomaly"|"positive"|"info",
      "title": string,
      "description": string,
      "severity": "error"|"warning"|"success"|"info",
      "action": string
    }}
  ]
}}

RULES:
- Max 9 insights.
- Every insight MUST cite at least one concrete number from the provided data.
- Use KES currency formatting in descriptions.
- Descriptions < 160 chars.
- Actions must be operational and testable (what to check/change next).

DATA (selected period):
{data}"""


def build_prompt(snapshot: AnalyticsSnapshot, range_key: str, till_id: Optional[str]) -> str:
    """Embed the snapshot as structured data in the fixed instruction."""
    data = {
        "rangeKey": range_key,
        "requestedTillId": till_id,
        "core": snapshot.model_dump(mode="json", by_alias=True),
    }
    return PROMPT_TEMPLATE.format(data=json.dumps(data, indent=2))


class GeminiInsightGenerator:
    """
    External insight generator backed by the Gemini API (google-genai SDK).

    Never called directly by the service: every call goes through the
    single-flight cache and the rate limiter.
    """

    def __init__(self, settings: InsightSettings, client: Optional[genai.Client] = None):
        """
        Initialize the generator.

        Args:
            settings: Service settings (API key, model, timeout, output cap)
            client: Optional pre-built Gemini client (tests inject a fake)
        """
        self.api_key = settings.gemini_api_key
        self.model_name = settings.gemini_model
        self.timeout = settings.gemini_timeout_seconds
        self.generation_config = types.GenerateContentConfig(
            temperature=settings.gemini_temperature,
            max_output_tokens=settings.gemini_max_output_tokens,
        )

        self.logger = logger
        self.client = client
        if self.client is None and self.is_configured:
            self.client = genai.Client(
                api_key=self.api_key,
                http_options=types.HttpOptions(
                    base_url=settings.gemini_base_url,
                    timeout=int(self.timeout * 1000),
                ),
            )

        if self.is_configured:
            self.logger.info(f"Gemini generator initialized: {self.model_name}")
        else:
            self.logger.warning("Gemini generator not configured: missing GEMINI_API_KEY")

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def generate(
        self,
        snapshot: AnalyticsSnapshot,
        range_key: str,
        till_id: Optional[str] = None,
    ) -> str:
        """
        Generate insights text for a snapshot.

        Returns:
            Raw model text (unvalidated)

        Raises:
            NotConfiguredError: No API key configured
            UpstreamTimeoutError: No answer before the deadline
            UpstreamError: Error status or transport failure
        """
        if not self.is_configured:
            raise NotConfiguredError("Gemini is not configured: missing GEMINI_API_KEY")

        self.logger.info(f"Requesting Gemini insights: range={range_key} till={till_id or 'all'}")
        try:
            response = await asyncio.wait_for(
                self.client.aio.models.generate_content(
                    model=self.model_name,
                    contents=build_prompt(snapshot, range_key, till_id),
                    config=self.generation_config,
                ),
                timeout=self.timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            self.logger.error(f"Gemini request timed out after {self.timeout}s")
            raise UpstreamTimeoutError(f"Gemini request timed out after {self.timeout}s")
        except errors.APIError as e:
            message = e.message or f"Gemini request failed with status {e.code}"
            self.logger.error(f"Gemini request failed: {e.code} {message}")
            raise UpstreamError(message, status_code=e.code or 502)
        except httpx.HTTPError as e:
            self.logger.error(f"Gemini transport error: {e}")
            raise UpstreamError(f"Gemini request failed: {e}")
        except Exception as e:
            self.logger.error(f"Gemini call failed: {type(e).__name__}: {e}")
            raise UpstreamError(f"Gemini request failed: {e}") from e

        text = _candidate_text(response)
        self.logger.debug(f"Gemini raw output: {text[:500]}")
        return text


def _candidate_text(response: types.GenerateContentResponse) -> str:
    """Join the text parts of the first candidate."""
    if not response.candidates:
        return ""
    content = response.candidates[0].content
    if content is None or not content.parts:
        return ""
    return "\n".join(part.text for part in content.parts if part.text)
