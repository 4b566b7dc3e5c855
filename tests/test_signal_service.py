"""
Tests for trust_engine.services.signal_service
"""

from __future__ import annotations

import pytest

from trust_engine.core.errors import InvalidIdentity
from trust_engine.core.models import CallerContext, ContributorProfile
from trust_engine.services.notification_service import URGENT_SME_TITLE
from trust_engine.services.signal_service import SignalService
from tests.helpers import (
    FakeNotificationSender,
    FakeProfileStore,
    FakeSignalStore,
    make_settings,
)


def _service(signals=None, profiles=None, notifications=None) -> SignalService:
    return SignalService(
        signals or FakeSignalStore(),
        profiles or FakeProfileStore(),
        notifications or FakeNotificationSender(),
        settings=make_settings(),
    )


@pytest.mark.asyncio
async def test_toggle_adds_then_removes():
    service = _service()
    caller = CallerContext(identity_id="u1")

    first = await service.toggle_raise_hand(caller, "c-1")
    second = await service.toggle_raise_hand(caller, "c-1")

    assert (first.is_signaled, first.signal_count) == (True, 1)
    assert (second.is_signaled, second.signal_count) == (False, 0)


@pytest.mark.asyncio
async def test_guest_cannot_signal():
    with pytest.raises(InvalidIdentity):
        await _service().toggle_raise_hand(CallerContext.guest(), "c-1")


@pytest.mark.asyncio
async def test_tenth_signal_alerts_verified_experts():
    signals = FakeSignalStore()
    for i in range(9):
        signals.raise_hand(f"u{i}", "c-1")
    profiles = FakeProfileStore(
        [
            ContributorProfile(id="expert-1", is_verified_expert=True),
            ContributorProfile(id="expert-2", is_verified_expert=True),
            ContributorProfile(id="member", contributor_score=500),
        ]
    )
    notifications = FakeNotificationSender()

    result = await _service(signals, profiles, notifications).toggle_raise_hand(
        CallerContext(identity_id="u9"), "c-1"
    )

    assert result.signal_count == 10
    assert sorted(n.recipient_id for n in notifications.sent) == ["expert-1", "expert-2"]
    assert {n.title for n in notifications.sent} == {URGENT_SME_TITLE}
    assert {n.kind for n in notifications.sent} == {"warning"}


@pytest.mark.asyncio
async def test_below_threshold_sends_nothing():
    profiles = FakeProfileStore([ContributorProfile(id="expert-1", is_verified_expert=True)])
    notifications = FakeNotificationSender()

    await _service(profiles=profiles, notifications=notifications).toggle_raise_hand(
        CallerContext(identity_id="u1"), "c-1"
    )

    assert notifications.attempted == []


@pytest.mark.asyncio
async def test_alert_failure_does_not_fail_toggle():
    signals = FakeSignalStore()
    for i in range(9):
        signals.raise_hand(f"u{i}", "c-1")
    profiles = FakeProfileStore()

    async def broken(limit: int = 10):
        raise RuntimeError("profiles down")

    profiles.list_verified_expert_ids = broken

    result = await _service(signals, profiles).toggle_raise_hand(CallerContext(identity_id="u9"), "c-1")

    assert result.success is True
    assert result.signal_count == 10
