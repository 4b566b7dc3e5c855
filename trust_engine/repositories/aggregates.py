"""
Trust Engine - Aggregate Ratings

Recomputes an entity's average star rating from its approved
contributions. Called best-effort after a rated contribution lands.
"""

from __future__ import annotations

import logging

from ..db import get_connection

logger = logging.getLogger(__name__)

_RECOMPUTE_SQL = """
    INSERT INTO public.entity_ratings (target_entity_id, average_rating, rating_count, updated_at)
    SELECT %s, COALESCE(AVG(star_rating), 0), COUNT(star_rating), NOW()
    FROM public.contributions
    WHERE target_entity_id = %s
      AND star_rating IS NOT NULL
      AND status = 'approved'
    ON CONFLICT (target_entity_id) DO UPDATE SET
        average_rating = EXCLUDED.average_rating,
        rating_count = EXCLUDED.rating_count,
        updated_at = EXCLUDED.updated_at
    RETURNING average_rating, rating_count
"""


class PostgresAggregateRecomputer:
    """Maintains public.entity_ratings."""

    async def recompute_aggregate(self, target_entity_id: str) -> None:
        async with get_connection() as conn:
            row = await conn.fetchrow(_RECOMPUTE_SQL, target_entity_id, target_entity_id)

        if row:
            logger.debug(
                "Aggregate rating recomputed: target=%s average=%s count=%s",
                target_entity_id,
                row.get("average_rating"),
                row.get("rating_count"),
            )
