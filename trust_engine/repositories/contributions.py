"""
Trust Engine - Contribution Store

The one must-succeed write of the pipeline. A contribution is inserted in a
single transaction with every pre-persistence field already resolved
(status, flags, official-response marker, source metadata). Database errors
surface as typed PersistenceError subclasses.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import psycopg
from psycopg.types.json import Jsonb

from ..core.errors import PersistenceError, classify_persistence_error
from ..core.models import Contribution, ContributionDraft, SourceMetadata
from ..db import get_connection

logger = logging.getLogger(__name__)

_INSERT_SQL = """
    INSERT INTO public.contributions (
        target_entity_id,
        author_id,
        guest_name,
        content,
        parent_id,
        post_type,
        pillar_of_truth,
        star_rating,
        is_official_response,
        flag_count,
        is_flagged,
        status,
        source_metadata
    ) VALUES (
        %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s
    )
    RETURNING id
"""

_SELECT_SQL = """
    SELECT id, target_entity_id, author_id, guest_name, content, parent_id,
           post_type, pillar_of_truth, star_rating, is_official_response,
           flag_count, is_flagged, status, insight_summary, source_metadata,
           created_at
    FROM public.contributions
    WHERE id = %s
"""


def _source_metadata_param(draft: ContributionDraft) -> Optional[Jsonb]:
    if draft.source_metadata is None:
        return None
    return Jsonb(draft.source_metadata.model_dump(mode="json"))


def _row_to_contribution(row: dict[str, Any]) -> Contribution:
    source = row.get("source_metadata")
    return Contribution(
        id=str(row["id"]),
        target_entity_id=str(row["target_entity_id"]),
        author_id=row.get("author_id"),
        guest_name=row.get("guest_name"),
        content=row["content"],
        parent_id=str(row["parent_id"]) if row.get("parent_id") else None,
        post_type=row["post_type"],
        pillar_of_truth=row.get("pillar_of_truth"),
        star_rating=row.get("star_rating"),
        is_official_response=bool(row.get("is_official_response")),
        flag_count=row.get("flag_count") or 0,
        is_flagged=bool(row.get("is_flagged")),
        status=row["status"],
        insight_summary=row.get("insight_summary"),
        source_metadata=SourceMetadata.model_validate(source) if source else None,
        created_at=row.get("created_at"),
    )


class PostgresContributionStore:
    """Contribution rows in public.contributions."""

    async def insert(self, draft: ContributionDraft) -> str:
        """
        Persist a fully-formed contribution and return its id.

        Raises:
            PersistenceError: (or a subclass) if the row could not be written
        """
        try:
            async with get_connection() as conn:
                async with conn.transaction():
                    row = await conn.fetchrow(
                        _INSERT_SQL,
                        draft.target_entity_id,
                        draft.author_id,
                        draft.guest_name,
                        draft.content,
                        draft.parent_id,
                        draft.post_type.value,
                        draft.pillar_of_truth,
                        draft.star_rating,
                        draft.is_official_response,
                        draft.flag_count,
                        draft.is_flagged,
                        draft.status.value,
                        _source_metadata_param(draft),
                    )
        except psycopg.Error as e:
            error = classify_persistence_error(e)
            logger.error(
                "Contribution insert failed: target=%s code=%s error=%s",
                draft.target_entity_id,
                error.error_code,
                e,
            )
            raise error from e
        except RuntimeError as e:
            # Pool unavailable
            raise PersistenceError(str(e)) from e

        if row is None or row.get("id") is None:
            raise PersistenceError("Contribution insert returned no id")

        return str(row["id"])

    async def update_insight_summary(self, contribution_id: str, summary: str) -> None:
        async with get_connection() as conn:
            await conn.execute(
                "UPDATE public.contributions SET insight_summary = %s WHERE id = %s",
                summary,
                contribution_id,
            )

    async def get(self, contribution_id: str) -> Optional[Contribution]:
        async with get_connection() as conn:
            row = await conn.fetchrow(_SELECT_SQL, contribution_id)
        return _row_to_contribution(row) if row else None
