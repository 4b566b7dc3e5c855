"""
Trust Engine - Citation Store

At most one citation per contribution; citations are never updated.
"""

from __future__ import annotations

from ..core.models import CitationRecord
from ..db import get_connection


class PostgresCitationStore:
    """Citations in public.citations (unique on contribution_id)."""

    async def insert(self, record: CitationRecord) -> bool:
        """Insert the citation. Returns False if the contribution already has one."""
        async with get_connection() as conn:
            citation_id = await conn.fetchval(
                """
                INSERT INTO public.citations (
                    contribution_id, resource_title, resource_url, is_prescreened
                ) VALUES (%s, %s, %s, %s)
                ON CONFLICT (contribution_id) DO NOTHING
                RETURNING id
                """,
                record.contribution_id,
                record.resource_title,
                record.resource_url,
                record.is_prescreened,
            )
        return citation_id is not None
