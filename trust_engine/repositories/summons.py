"""
Trust Engine - Summons Store

An open summons is resolved by exactly one contribution. The claim is a
single conditional UPDATE: of two concurrent contributions that both see
the summons open, only the one whose update still matches
is_resolved = false gets a row back.

The claim and the author's reputation award commit together. If the award
fails (no profile row, ledger error) the claim rolls back and the summons
stays open for the next qualifying reply.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..core.models import SummonsRequest
from ..db import get_connection
from ..services.reputation import contribution_points
from .profiles import PostgresProfileStore

logger = logging.getLogger(__name__)

_CLAIM_SQL = """
    UPDATE public.sme_summons
    SET is_resolved = true,
        resolved_by_contribution_id = %s,
        resolved_at = NOW()
    WHERE id = (
        SELECT id FROM public.sme_summons
        WHERE target_entity_id = %s AND is_resolved = false
        ORDER BY created_at ASC
        LIMIT 1
        FOR UPDATE SKIP LOCKED
    )
    AND is_resolved = false
    RETURNING id, target_entity_id, is_resolved, resolved_by_contribution_id
"""


class PostgresSummonsStore:
    """Summons requests in public.sme_summons."""

    def __init__(self, profiles: Optional[PostgresProfileStore] = None):
        self._profiles = profiles or PostgresProfileStore()

    async def resolve_and_award(
        self,
        target_entity_id: str,
        contribution_id: str,
        author_id: str,
    ) -> Optional[SummonsRequest]:
        """
        Resolve the oldest open summons for the entity and award the author.

        The author gets the summons bonus when a summons was claimed and the
        base award otherwise, in the same transaction as the claim.

        Returns:
            The resolved summons, or None when nothing was open (or a
            concurrent contribution claimed it first)

        Raises:
            LookupError: author has no profile row (claim rolled back)
        """
        async with get_connection() as conn:
            async with conn.transaction():
                row = await conn.fetchrow(_CLAIM_SQL, contribution_id, target_entity_id)
                points = contribution_points(resolved_summons=row is not None)
                await self._profiles.award_points(author_id, points, conn=conn)

        if row is None:
            return None

        summons = SummonsRequest(
            id=str(row["id"]),
            target_entity_id=str(row["target_entity_id"]),
            is_resolved=bool(row["is_resolved"]),
            resolved_by_contribution_id=str(row["resolved_by_contribution_id"]),
        )
        logger.info(
            "Summons resolved: summons_id=%s target=%s contribution_id=%s",
            summons.id,
            target_entity_id,
            contribution_id,
            extra={"contribution_id": contribution_id, "points": points},
        )
        return summons
