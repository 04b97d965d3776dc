"""
Payload extraction and schema validation for generator output.

Generator text is untrusted. It goes through two separate steps:

1. ``extract_json`` pulls a JSON document out of free-form text
   (fenced json block, then brace slice, then the raw text) and parses it.
2. ``InsightValidator`` enforces the InsightBundle shape. Any malformed
   insight rejects the whole bundle.
"""

import json
import logging
import re
from typing import Any, Dict, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from tillsight.errors import MalformedPayloadError, SchemaMismatchError
from tillsight.schema.models import MAX_INSIGHTS, InsightBundle, Provider


logger = logging.getLogger(__name__)

_FENCED_JSON = re.compile(r"```json\s*([\s\S]*?)\s*```", re.IGNORECASE)
_DIGIT = re.compile(r"\d")


def extract_json_text(raw_text: str) -> str:
    """Locate the JSON document inside model output."""
    raw = (raw_text or "").strip()

    fenced = _FENCED_JSON.search(raw)
    if fenced and fenced.group(1):
        return fenced.group(1).strip()

    first = raw.find("{")
    last = raw.rfind("}")
    if first != -1 and last > first:
        return raw[first:last + 1]

    return raw


def extract_json(raw_text: str) -> Any:
    """
    Extract and parse the JSON payload from generator text.

    Raises:
        MalformedPayloadError: If no parseable JSON is found
    """
    candidate = extract_json_text(raw_text)
    try:
        return json.loads(candidate)
    except json.JSONDecodeError as e:
        logger.warning(f"Generator output was not valid JSON: {e}")
        raise MalformedPayloadError(f"Generator response was not valid JSON: {e.msg}")
    except RecursionError:
        logger.warning("Generator output nested too deeply to parse")
        raise MalformedPayloadError("Generator response was nested too deeply")


class InsightValidator:
    """
    Strict validator for externally generated insight bundles.

    Prevents:
    - Missing or unknown enum values (type, severity, anomalyScore)
    - Empty titles, descriptions or actions
    - Descriptions that cite no concrete number
    - Partial acceptance of a bundle with one bad insight
    """

    def __init__(self):
        self.logger = logger

    def validate(self, candidate: Any, model: Optional[str] = None) -> InsightBundle:
        """
        Validate a parsed candidate object.

        Args:
            candidate: Object produced by ``extract_json``
            model: Generator model name recorded on the bundle

        Returns:
            InsightBundle with provider "external"

        Raises:
            SchemaMismatchError: If the candidate does not match the schema
        """
        if not isinstance(candidate, dict):
            raise SchemaMismatchError(
                "SCHEMA_ERROR: payload must be a JSON object",
                errors=[{"field": "", "type": "dict_type", "msg": "Input should be an object"}],
            )

        insights = candidate.get("insights")
        if not isinstance(insights, list):
            raise SchemaMismatchError(
                "SCHEMA_ERROR: insights must be a list",
                errors=[{"field": "insights", "type": "list_type", "msg": "Input should be a valid list"}],
            )

        data: Dict[str, Any] = {
            "anomalyScore": candidate.get("anomalyScore"),
            "insights": insights[:MAX_INSIGHTS],
            "provider": Provider.EXTERNAL,
            "model": model,
        }

        try:
            bundle = InsightBundle.model_validate(data)
        except PydanticValidationError as e:
            errors = []
            for error in e.errors():
                errors.append({
                    "field": ".".join(str(loc) for loc in error["loc"]),
                    "type": error["type"],
                    "msg": error["msg"],
                })
            self.logger.error(f"Insight schema validation failed: {errors}")
            raise SchemaMismatchError("SCHEMA_ERROR: insight bundle validation failed", errors=errors)

        missing_numbers = [
            {
                "field": f"insights.{index}.description",
                "type": "missing_number",
                "msg": "Description must cite at least one concrete number",
            }
            for index, insight in enumerate(bundle.insights)
            if not _DIGIT.search(insight.description)
        ]
        if missing_numbers:
            self.logger.error(f"Insight schema validation failed: {missing_numbers}")
            raise SchemaMismatchError("SCHEMA_ERROR: insight bundle validation failed", errors=missing_numbers)

        self.logger.info(f"Insight bundle validated: {len(bundle.insights)} insights")
        return bundle

    def validate_safe(
        self, candidate: Any, model: Optional[str] = None
    ) -> Tuple[Optional[InsightBundle], Optional[SchemaMismatchError]]:
        """
        Validation that returns errors instead of raising.

        Returns:
            (bundle, None) on success, (None, error) on failure
        """
        try:
            return self.validate(candidate, model=model), None
        except SchemaMismatchError as e:
            return None, e
