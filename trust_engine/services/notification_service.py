"""
Trust Engine - Notifications

In-app notifications: the Postgres sender/inbox and a bounded concurrent
fan-out used for expert replies and urgent summons alerts.

Fan-out guarantees:
- every recipient is attempted independently
- at most `concurrency` deliveries are in flight at once
- each delivery is bounded by `per_recipient_timeout`
- the whole fan-out is bounded by `overall_timeout`; stragglers are
  cancelled and counted as timed out
- no delivery failure is ever raised to the caller
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

import psycopg

from ..core.models import NotificationKind, NotificationRecord
from ..db import get_connection
from ..pipeline.ports import NotificationSender

logger = logging.getLogger(__name__)

EXPERT_REPLY_TITLE = "Expert Reply"
EXPERT_REPLY_MESSAGE = "An expert has replied to a discussion you raised your hand on."

URGENT_SME_TITLE = "Urgent SME Request"
URGENT_SME_MESSAGE = (
    "A community signal has reached critical mass (10+). Your expertise is requested."
)


def expert_reply_link(parent_id: str, contribution_id: str) -> str:
    return f"/contributions/{parent_id}?commentId={contribution_id}"


# =============================================================================
# Postgres Sender / Inbox
# =============================================================================


class PostgresNotificationSender:
    """Notifications in public.notifications."""

    async def notify(
        self,
        recipient_id: str,
        title: str,
        message: str,
        kind: NotificationKind = "info",
        link: Optional[str] = None,
    ) -> bool:
        try:
            async with get_connection() as conn:
                await conn.execute(
                    """
                    INSERT INTO public.notifications (user_id, title, message, type, link)
                    VALUES (%s, %s, %s, %s, %s)
                    """,
                    recipient_id,
                    title,
                    message,
                    kind,
                    link,
                )
        except (psycopg.Error, RuntimeError) as e:
            logger.warning(
                "Notification insert failed: recipient=%s error=%s",
                recipient_id,
                e,
                extra={"recipient_id": recipient_id},
            )
            return False
        return True

    async def list_for_user(self, user_id: str, limit: int = 20) -> list[NotificationRecord]:
        """Most recent notifications for a user, newest first."""
        async with get_connection() as conn:
            rows = await conn.fetch(
                """
                SELECT id, user_id, title, message, type, link, is_read, created_at
                FROM public.notifications
                WHERE user_id = %s
                ORDER BY created_at DESC
                LIMIT %s
                """,
                user_id,
                limit,
            )
        return [
            NotificationRecord(
                id=str(row["id"]),
                user_id=str(row["user_id"]),
                title=row["title"],
                message=row["message"],
                kind=row.get("type") or "info",
                link=row.get("link"),
                is_read=bool(row.get("is_read")),
                created_at=row.get("created_at"),
            )
            for row in rows
        ]

    async def mark_read(self, notification_id: str) -> bool:
        async with get_connection() as conn:
            updated = await conn.fetchval(
                "UPDATE public.notifications SET is_read = true WHERE id = %s RETURNING id",
                notification_id,
            )
        return updated is not None


# =============================================================================
# Fan-out
# =============================================================================


@dataclass
class FanOutReport:
    """Per-recipient outcome of a fan-out."""

    delivered: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    timed_out: list[str] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return len(self.delivered) + len(self.failed) + len(self.timed_out)


async def fan_out(
    sender: NotificationSender,
    recipients: Iterable[str],
    title: str,
    message: str,
    *,
    kind: NotificationKind = "info",
    link: Optional[str] = None,
    concurrency: int = 8,
    per_recipient_timeout: float = 5.0,
    overall_timeout: float = 15.0,
) -> FanOutReport:
    """Deliver one notification to each distinct recipient."""
    report = FanOutReport()
    unique = list(dict.fromkeys(r for r in recipients if r))
    if not unique:
        return report

    semaphore = asyncio.Semaphore(max(1, concurrency))

    async def _deliver(recipient_id: str) -> None:
        async with semaphore:
            try:
                ok = await asyncio.wait_for(
                    sender.notify(recipient_id, title, message, kind=kind, link=link),
                    timeout=per_recipient_timeout,
                )
            except asyncio.TimeoutError:
                logger.warning(
                    "Notification timed out: recipient=%s",
                    recipient_id,
                    extra={"recipient_id": recipient_id},
                )
                report.timed_out.append(recipient_id)
            except Exception as e:
                logger.warning(
                    "Notification failed: recipient=%s error=%s",
                    recipient_id,
                    e,
                    extra={"recipient_id": recipient_id},
                )
                report.failed.append(recipient_id)
            else:
                (report.delivered if ok else report.failed).append(recipient_id)

    tasks = [asyncio.ensure_future(_deliver(r)) for r in unique]
    try:
        await asyncio.wait_for(asyncio.gather(*tasks), timeout=overall_timeout)
    except asyncio.TimeoutError:
        settled = set(report.delivered) | set(report.failed) | set(report.timed_out)
        abandoned = [r for r in unique if r not in settled]
        report.timed_out.extend(abandoned)
        logger.warning(
            "Fan-out exceeded %.1fs; %d deliveries abandoned",
            overall_timeout,
            len(abandoned),
        )

    logger.info(
        "Fan-out complete: title=%s delivered=%d failed=%d timed_out=%d",
        title,
        len(report.delivered),
        len(report.failed),
        len(report.timed_out),
        extra={"count": len(unique)},
    )
    return report
