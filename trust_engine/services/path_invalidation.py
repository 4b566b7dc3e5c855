"""
Trust Engine - Path Invalidation

After a contribution is written, the pages that render it are stale. The
default invalidator POSTs the paths to a revalidation webhook on the web
tier. It is called only after a successful write, and never raises.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

import httpx

from ..config import Settings, get_settings

logger = logging.getLogger(__name__)

WEBHOOK_TIMEOUT = 5.0


def paths_for_contribution(target_entity_id: str, parent_id: Optional[str] = None) -> list[str]:
    """Pages that display contributions on the entity (and the parent thread)."""
    paths = [f"/entities/{target_entity_id}"]
    if parent_id:
        paths.append(f"/contributions/{parent_id}")
    return paths


class WebhookPathInvalidator:
    """PathInvalidator that calls REVALIDATE_WEBHOOK_URL."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._settings = settings or get_settings()
        self._transport = transport

    async def invalidate(self, paths: Sequence[str]) -> None:
        url = self._settings.REVALIDATE_WEBHOOK_URL
        if not url:
            logger.debug("REVALIDATE_WEBHOOK_URL not set, skipping invalidation of %s", list(paths))
            return
        if not paths:
            return

        headers = {"Content-Type": "application/json"}
        if self._settings.REVALIDATE_WEBHOOK_SECRET:
            headers["X-Revalidate-Secret"] = self._settings.REVALIDATE_WEBHOOK_SECRET

        try:
            async with httpx.AsyncClient(timeout=WEBHOOK_TIMEOUT, transport=self._transport) as client:
                response = await client.post(url, headers=headers, json={"paths": list(paths)})
            if response.status_code >= 400:
                logger.warning(
                    "Path invalidation webhook returned %s for %s",
                    response.status_code,
                    list(paths),
                )
        except httpx.HTTPError as e:
            logger.warning("Path invalidation failed: %s", e)
