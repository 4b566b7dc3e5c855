"""
Trust Engine - Guest Safety Classifier

Moderates guest contributions before they are written. The classifier
fails closed: without an API key, on any API error, or on an unparseable
verdict, the content is treated as unsafe.

Policy applied by the pipeline:
    unsafe          -> rejected, nothing persisted
    safe / high     -> approved
    safe / low      -> pending_review
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

import httpx

from ..config import Settings, get_settings
from ..core.models import Confidence, ContributionStatus, SafetyVerdict
from .ai_client import AIClientError, ChatCompletionClient

logger = logging.getLogger(__name__)

NOT_CONFIGURED_REASON = "Moderation system not configured - content blocked for safety"
API_ERROR_REASON = "Moderation API error - content blocked for safety"

SAFETY_SYSTEM_PROMPT = """You are a content moderator for a health science community.
Classify the user's comment:
1. HATE/HARASSMENT/PROFANITY -> {"isSafe": false, "reason": "Inappropriate", "confidence": "high"}
2. SPAM/SCAM/SELF-PROMOTION -> {"isSafe": false, "reason": "Spam", "confidence": "high"}
3. TECHNICAL/SCIENTIFIC -> {"isSafe": true, "reason": "Technical", "confidence": "high"}
4. PERSONAL EXPERIENCE -> {"isSafe": true, "reason": "Personal", "confidence": "high"}
5. BORDERLINE -> {"isSafe": true, "reason": "Borderline", "confidence": "low"}
Respond with ONLY valid JSON:
{"isSafe": true, "reason": "explanation", "confidence": "high"}"""


def parse_verdict(raw: str) -> SafetyVerdict:
    """
    Parse the model's JSON verdict.

    Tolerates markdown code fences and leading/trailing prose around the
    JSON object. Raises ValueError if no usable verdict is found.
    """
    text = raw.strip()
    if text.startswith("```"):
        text = text.strip("`")
        if text.lower().startswith("json"):
            text = text[4:]

    first, last = text.find("{"), text.rfind("}")
    if first == -1 or last <= first:
        raise ValueError(f"No JSON object in verdict: {raw[:100]!r}")

    data: Any = json.loads(text[first : last + 1])
    if not isinstance(data, dict) or not isinstance(data.get("isSafe"), bool):
        raise ValueError(f"Verdict missing boolean isSafe: {raw[:100]!r}")

    confidence = str(data.get("confidence", "low")).lower()
    return SafetyVerdict(
        is_safe=data["isSafe"],
        confidence=Confidence.HIGH if confidence == "high" else Confidence.LOW,
        reason=str(data.get("reason") or ""),
    )


def status_for_verdict(verdict: SafetyVerdict) -> Optional[ContributionStatus]:
    """Initial status for a guest contribution, or None if it must be rejected."""
    if not verdict.is_safe:
        return None
    if verdict.confidence == Confidence.HIGH:
        return ContributionStatus.APPROVED
    return ContributionStatus.PENDING_REVIEW


class OpenAISafetyClassifier:
    """Default SafetyClassifier backed by an OpenAI-compatible chat model."""

    def __init__(
        self,
        client: Optional[ChatCompletionClient] = None,
        settings: Optional[Settings] = None,
    ):
        self._settings = settings or get_settings()
        self._client = client or ChatCompletionClient(self._settings)

    async def classify(self, text: str) -> SafetyVerdict:
        if not self._client.is_configured:
            logger.error("OPENAI_API_KEY not set - blocking guest content")
            return SafetyVerdict(is_safe=False, confidence=Confidence.HIGH, reason=NOT_CONFIGURED_REASON)

        try:
            raw = await self._client.complete(
                self._settings.SAFETY_MODEL,
                SAFETY_SYSTEM_PROMPT,
                text,
                temperature=0.0,
                max_tokens=100,
                json_mode=True,
            )
            verdict = parse_verdict(raw)
        except (AIClientError, httpx.HTTPError, ValueError) as e:
            logger.error("Safety classifier failed closed: %s", e)
            return SafetyVerdict(is_safe=False, confidence=Confidence.HIGH, reason=API_ERROR_REASON)

        logger.info(
            "Guest moderation verdict: safe=%s confidence=%s reason=%s",
            verdict.is_safe,
            verdict.confidence.value,
            verdict.reason,
        )
        return verdict
