"""
Trust Engine - AI Client

Thin OpenAI-compatible chat completion call shared by the safety
classifier and the insight summarizer. Transient transport failures are
retried with exponential backoff; everything else is raised to the caller,
which decides whether to fail open or closed.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..config import Settings, get_settings

logger = logging.getLogger(__name__)

# Exceptions worth a second attempt
TRANSIENT_HTTP_EXCEPTIONS = (
    httpx.TimeoutException,
    httpx.NetworkError,
    httpx.RemoteProtocolError,
)


class AIClientError(Exception):
    """The chat completion call did not produce a usable message."""


class ChatCompletionClient:
    """
    Minimal client for POST {base_url}/chat/completions.

    Usage:
        client = ChatCompletionClient()
        text = await client.complete(model, system_prompt, user_text)
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        max_attempts: int = 3,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._settings = settings or get_settings()
        self._max_attempts = max_attempts
        self._transport = transport

    @property
    def api_key(self) -> Optional[str]:
        return self._settings.OPENAI_API_KEY

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def complete(
        self,
        model: str,
        system_prompt: str,
        user_text: str,
        *,
        temperature: float = 0.0,
        max_tokens: int = 200,
        json_mode: bool = False,
    ) -> str:
        """
        Run one chat completion and return the assistant message text.

        Raises:
            AIClientError: no API key, non-200 response, or empty message
            httpx.HTTPError: transport failure after retries are exhausted
        """
        if not self.api_key:
            raise AIClientError("OPENAI_API_KEY not configured")

        payload: dict[str, Any] = {
            "model": model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_text},
            ],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if json_mode:
            payload["response_format"] = {"type": "json_object"}

        @retry(
            retry=retry_if_exception_type(TRANSIENT_HTTP_EXCEPTIONS),
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        async def _post() -> httpx.Response:
            async with httpx.AsyncClient(
                base_url=self._settings.OPENAI_BASE_URL,
                timeout=self._settings.AI_TIMEOUT_SECONDS,
                transport=self._transport,
            ) as client:
                return await client.post(
                    "/chat/completions",
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                    json=payload,
                )

        response = await _post()
        if response.status_code != 200:
            raise AIClientError(
                f"Chat completion failed: {response.status_code} - {response.text[:200]}"
            )

        data = response.json()
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise AIClientError(f"Malformed chat completion response: {e}") from e

        if not content or not str(content).strip():
            raise AIClientError("Chat completion returned an empty message")
        return str(content).strip()
