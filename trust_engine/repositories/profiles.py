"""
Trust Engine - Contributor Profiles

Reads profiles for the identity gate and role checks, and applies
reputation awards as a single atomic increment.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..core.models import ContributorProfile
from ..db import AsyncConnectionWrapper, get_connection

logger = logging.getLogger(__name__)

_AWARD_SQL = """
    UPDATE public.profiles
    SET contributor_score = contributor_score + %s
    WHERE id = %s
    RETURNING contributor_score
"""


class PostgresProfileStore:
    """Profiles in public.profiles (owned by the identity system)."""

    async def get_profile(self, user_id: str) -> Optional[ContributorProfile]:
        async with get_connection() as conn:
            row = await conn.fetchrow(
                """
                SELECT id, contributor_score, is_verified_expert, badge_type, is_banned
                FROM public.profiles
                WHERE id = %s
                """,
                user_id,
            )
        if row is None:
            return None
        return ContributorProfile(
            id=str(row["id"]),
            contributor_score=row.get("contributor_score") or 0,
            is_verified_expert=bool(row.get("is_verified_expert")),
            badge_type=row.get("badge_type"),
            is_banned=bool(row.get("is_banned")),
        )

    async def award_points(
        self,
        user_id: str,
        points: int,
        conn: Optional[AsyncConnectionWrapper] = None,
    ) -> int:
        """
        Add points to a contributor's score and return the new total.

        Scores never go down through the ledger, so non-positive awards
        are refused. Pass `conn` to apply the award inside a caller's
        transaction; a missing profile raises LookupError so that the
        transaction rolls back.
        """
        if points <= 0:
            raise ValueError(f"Reputation awards must be positive, got {points}")

        if conn is None:
            async with get_connection() as own_conn:
                new_score = await own_conn.fetchval(_AWARD_SQL, points, user_id)
        else:
            new_score = await conn.fetchval(_AWARD_SQL, points, user_id)

        if new_score is None:
            raise LookupError(f"Profile {user_id} not found for reputation award")

        logger.info(
            "Reputation awarded: user_id=%s points=%d score=%s",
            user_id,
            points,
            new_score,
            extra={"author_id": user_id, "points": points},
        )
        return int(new_score)

    async def list_verified_expert_ids(self, limit: int = 10) -> list[str]:
        async with get_connection() as conn:
            rows = await conn.fetch(
                """
                SELECT id FROM public.profiles
                WHERE is_verified_expert = true AND is_banned = false
                ORDER BY contributor_score DESC
                LIMIT %s
                """,
                limit,
            )
        return [str(row["id"]) for row in rows]
