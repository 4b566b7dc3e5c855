"""
Trust Engine - Insight Summarizer

Condenses an expert's contribution into a one-line "key takeaway".
Best-effort: any failure returns None and the contribution simply has no
summary.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from ..config import Settings, get_settings
from .ai_client import AIClientError, ChatCompletionClient

logger = logging.getLogger(__name__)

# Below this the text is not worth a model call
MIN_INSIGHT_SOURCE_LENGTH = 50
MIN_INSIGHT_OUTPUT_LENGTH = 5

INSIGHT_SYSTEM_PROMPT = """You are the Technical Insights Synthesizer. Extract the core value from a verified expert's comment.
Focus on substance: skip pleasantries and go straight to the technical insight.
Use authoritative, objective language.
If the input lacks a concrete insight, return: "Insight: General expert agreement."
Return a single bullet point starting with a bolded keyword, at most 30 words.
Example: **Dosage**: Recommends splitting the daily dose to reduce gastrointestinal side effects."""


class OpenAIInsightSummarizer:
    """Default InsightSummarizer backed by an OpenAI-compatible chat model."""

    def __init__(
        self,
        client: Optional[ChatCompletionClient] = None,
        settings: Optional[Settings] = None,
    ):
        self._settings = settings or get_settings()
        self._client = client or ChatCompletionClient(self._settings)

    async def summarize(self, text: str) -> Optional[str]:
        if not text or len(text) < MIN_INSIGHT_SOURCE_LENGTH:
            return None

        if not self._client.is_configured:
            logger.warning("OPENAI_API_KEY not configured, skipping insight generation")
            return None

        try:
            insight = await self._client.complete(
                self._settings.INSIGHT_MODEL,
                INSIGHT_SYSTEM_PROMPT,
                text,
                temperature=0.5,
                max_tokens=60,
            )
        except (AIClientError, httpx.HTTPError) as e:
            logger.warning("Insight generation failed: %s", e)
            return None

        insight = insight.strip()
        if len(insight) < MIN_INSIGHT_OUTPUT_LENGTH:
            return None
        return insight
