"""
Trust Engine - Signal Store

Raise-hand signals on contributions. The submission pipeline only reads
them (to target expert-reply notifications); toggling is a separate
user action.
"""

from __future__ import annotations

from ..core.models import RAISE_HAND
from ..db import get_connection


class PostgresSignalStore:
    """Signals in public.comment_signals."""

    async def raise_hand_user_ids(self, contribution_id: str) -> list[str]:
        """Distinct users holding a raise_hand signal on the contribution."""
        async with get_connection() as conn:
            rows = await conn.fetch(
                """
                SELECT DISTINCT user_id
                FROM public.comment_signals
                WHERE contribution_id = %s AND signal_type = %s
                """,
                contribution_id,
                RAISE_HAND,
            )
        return [str(row["user_id"]) for row in rows]

    async def toggle(self, user_id: str, contribution_id: str) -> tuple[bool, int]:
        """
        Add the user's raise_hand signal, or remove it if already present.

        Returns:
            (is_signaled, new raise_hand_count on the contribution)
        """
        async with get_connection() as conn:
            async with conn.transaction():
                deleted = await conn.fetchval(
                    """
                    DELETE FROM public.comment_signals
                    WHERE user_id = %s AND contribution_id = %s AND signal_type = %s
                    RETURNING id
                    """,
                    user_id,
                    contribution_id,
                    RAISE_HAND,
                )

                if deleted is not None:
                    count = await conn.fetchval(
                        """
                        UPDATE public.contributions
                        SET raise_hand_count = GREATEST(raise_hand_count - 1, 0)
                        WHERE id = %s
                        RETURNING raise_hand_count
                        """,
                        contribution_id,
                    )
                    return False, int(count or 0)

                await conn.execute(
                    """
                    INSERT INTO public.comment_signals (user_id, contribution_id, signal_type)
                    VALUES (%s, %s, %s)
                    """,
                    user_id,
                    contribution_id,
                    RAISE_HAND,
                )
                count = await conn.fetchval(
                    """
                    UPDATE public.contributions
                    SET raise_hand_count = raise_hand_count + 1
                    WHERE id = %s
                    RETURNING raise_hand_count
                    """,
                    contribution_id,
                )
                return True, int(count or 0)
