"""External insight generation."""

from tillsight.generator.base import InsightGenerator
from tillsight.generator.gemini import GeminiInsightGenerator, build_prompt

__all__ = ["InsightGenerator", "GeminiInsightGenerator", "build_prompt"]
