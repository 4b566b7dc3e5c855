"""
Trust Engine - Raise-Hand Signals

A raise-hand signal says "I want an expert to weigh in on this". Signals
are toggled per user; reaching the urgent threshold alerts verified
experts.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..config import Settings, get_settings
from ..core.errors import InvalidIdentity
from ..core.models import CallerContext, SignalToggleResult
from ..pipeline.ports import NotificationSender, ProfileStore, SignalStore
from .notification_service import URGENT_SME_MESSAGE, URGENT_SME_TITLE, fan_out

logger = logging.getLogger(__name__)

TRENDING_SIGNAL_THRESHOLD = 5
URGENT_SIGNAL_THRESHOLD = 10
URGENT_EXPERT_LIMIT = 10


class SignalService:
    def __init__(
        self,
        signals: SignalStore,
        profiles: ProfileStore,
        notifications: NotificationSender,
        settings: Optional[Settings] = None,
    ):
        self._signals = signals
        self._profiles = profiles
        self._notifications = notifications
        self._settings = settings or get_settings()

    async def toggle_raise_hand(self, caller: CallerContext, contribution_id: str) -> SignalToggleResult:
        """
        Add or remove the caller's raise-hand signal.

        Raises:
            InvalidIdentity: anonymous caller
        """
        user_id = (caller.identity_id or "").strip()
        if not user_id:
            raise InvalidIdentity("You must be signed in to signal")

        is_signaled, count = await self._signals.toggle(user_id, contribution_id)

        if is_signaled:
            if count == TRENDING_SIGNAL_THRESHOLD:
                logger.info(
                    "[TRENDING] contribution %s has reached %d signals",
                    contribution_id,
                    count,
                    extra={"contribution_id": contribution_id, "count": count},
                )
            if count >= URGENT_SIGNAL_THRESHOLD:
                await self._alert_experts(contribution_id, count)

        return SignalToggleResult(success=True, is_signaled=is_signaled, signal_count=count)

    async def _alert_experts(self, contribution_id: str, count: int) -> None:
        logger.info(
            "[URGENT] contribution %s has reached %d signals, notifying experts",
            contribution_id,
            count,
            extra={"contribution_id": contribution_id, "count": count},
        )
        try:
            experts = await self._profiles.list_verified_expert_ids(limit=URGENT_EXPERT_LIMIT)
            await fan_out(
                self._notifications,
                experts,
                URGENT_SME_TITLE,
                URGENT_SME_MESSAGE,
                kind="warning",
                link=f"/contributions/{contribution_id}",
                concurrency=self._settings.NOTIFICATION_CONCURRENCY,
                per_recipient_timeout=self._settings.NOTIFICATION_TIMEOUT_SECONDS,
                overall_timeout=self._settings.FANOUT_TIMEOUT_SECONDS,
            )
        except Exception as e:
            logger.warning("Urgent expert alert failed: contribution_id=%s error=%s", contribution_id, e)
