"""
Trust Engine - Keyword Blacklist

Authenticated contributions are scanned against the active keyword
blacklist. A match does not block the write: the contribution is stored
flagged, and a moderation_queue row is added once its id exists.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

import psycopg

from ..core.models import BlacklistMatch
from ..db import get_connection

logger = logging.getLogger(__name__)

REVIEW_KIND_CONTRIBUTION = "contribution"


def match_keywords(text: str, keywords: list[tuple[str, Optional[str]]]) -> list[BlacklistMatch]:
    """Case-insensitive substring match of text against (keyword, reason) pairs."""
    lowered = text.lower()
    return [
        BlacklistMatch(keyword=keyword, reason=reason)
        for keyword, reason in keywords
        if keyword and keyword.lower() in lowered
    ]


class PostgresBlacklistHandler:
    """BlacklistHandler over public.keyword_blacklist and public.moderation_queue."""

    async def scan(self, text: str) -> list[BlacklistMatch]:
        """
        Return the active blacklisted keywords contained in text.

        A lookup failure is logged and treated as no matches.
        """
        try:
            async with get_connection() as conn:
                rows = await conn.fetch(
                    """
                    SELECT keyword, reason
                    FROM public.keyword_blacklist
                    WHERE is_active = true
                    """
                )
        except (psycopg.Error, RuntimeError) as e:
            logger.warning("Keyword blacklist lookup failed, treating as clean: %s", e)
            return []

        matches = match_keywords(text, [(row["keyword"], row.get("reason")) for row in rows])
        if matches:
            logger.info(
                "Blacklisted keywords matched: %s",
                ", ".join(m.keyword for m in matches),
                extra={"count": len(matches)},
            )
        return matches

    async def queue_for_review(
        self,
        contribution_id: str,
        kind: str,
        text: str,
        target_entity_id: str,
        author_id: Optional[str],
        timestamp: datetime,
    ) -> None:
        async with get_connection() as conn:
            await conn.execute(
                """
                INSERT INTO public.moderation_queue (
                    original_contribution_id, kind, target_entity_id, author_id,
                    content, flag_count, original_created_at, status
                ) VALUES (%s, %s, %s, %s, %s, 1, %s, 'pending')
                """,
                contribution_id,
                kind,
                target_entity_id,
                author_id,
                text,
                timestamp,
            )
        logger.info(
            "Contribution queued for moderation review: contribution_id=%s",
            contribution_id,
            extra={"contribution_id": contribution_id},
        )
