"""
tests/helpers.py

In-memory collaborators for pipeline tests, plus a helper for patching a
module's get_connection with an AsyncMock connection.
"""

from __future__ import annotations

import asyncio
import itertools
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional, Sequence
from unittest.mock import AsyncMock, MagicMock

from trust_engine.config import Settings
from trust_engine.core.models import (
    BlacklistMatch,
    CitationRecord,
    Confidence,
    Contribution,
    ContributionDraft,
    ContributorProfile,
    NotificationKind,
    SafetyVerdict,
    SummonsRequest,
)
from trust_engine.pipeline.submission import ContributionPipeline, PipelineDependencies
from trust_engine.services.reputation import contribution_points

FIXED_NOW = datetime(2026, 1, 15, 12, 0, 0)


def make_settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "NOTIFICATION_CONCURRENCY": 4,
        "NOTIFICATION_TIMEOUT_SECONDS": 1.0,
        "FANOUT_TIMEOUT_SECONDS": 2.0,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def mock_connection(mock_get_conn: MagicMock) -> AsyncMock:
    """Wire a patched get_connection to yield an AsyncMock connection."""
    conn = AsyncMock()
    transaction = MagicMock()
    transaction.__aenter__ = AsyncMock(return_value=None)
    transaction.__aexit__ = AsyncMock(return_value=None)
    conn.transaction = MagicMock(return_value=transaction)
    mock_get_conn.return_value.__aenter__.return_value = conn
    mock_get_conn.return_value.__aexit__.return_value = None
    return conn


# =============================================================================
# Stores
# =============================================================================


class FakeProfileStore:
    def __init__(self, profiles: Sequence[ContributorProfile] = ()):
        self.profiles: dict[str, ContributorProfile] = {p.id: p for p in profiles}
        self.awards: list[tuple[str, int]] = []
        self.lookups: list[str] = []
        self.fail_awards = False

    def add(self, profile: ContributorProfile) -> None:
        self.profiles[profile.id] = profile

    async def get_profile(self, user_id: str) -> Optional[ContributorProfile]:
        self.lookups.append(user_id)
        return self.profiles.get(user_id)

    async def award_points(self, user_id: str, points: int) -> int:
        if points <= 0:
            raise ValueError("points must be positive")
        if self.fail_awards:
            raise RuntimeError("ledger unavailable")
        profile = self.profiles.get(user_id)
        if profile is None:
            raise LookupError(user_id)
        updated = profile.model_copy(update={"contributor_score": profile.contributor_score + points})
        self.profiles[user_id] = updated
        self.awards.append((user_id, points))
        return updated.contributor_score

    async def list_verified_expert_ids(self, limit: int = 10) -> list[str]:
        experts = [p.id for p in self.profiles.values() if p.is_verified_expert and not p.is_banned]
        return experts[:limit]


class FakeContributionStore:
    def __init__(self) -> None:
        self.rows: dict[str, ContributionDraft] = {}
        self.summaries: dict[str, str] = {}
        self.insert_error: Optional[Exception] = None
        self._ids = itertools.count(1)

    async def insert(self, draft: ContributionDraft) -> str:
        if self.insert_error is not None:
            raise self.insert_error
        contribution_id = f"c-{next(self._ids)}"
        self.rows[contribution_id] = draft
        return contribution_id

    async def update_insight_summary(self, contribution_id: str, summary: str) -> None:
        self.summaries[contribution_id] = summary

    async def get(self, contribution_id: str) -> Optional[Contribution]:
        draft = self.rows.get(contribution_id)
        if draft is None:
            return None
        return Contribution(
            id=contribution_id,
            insight_summary=self.summaries.get(contribution_id),
            **draft.model_dump(),
        )


class FakeSummonsStore:
    """Open summons per entity; claim and award commit together under a lock."""

    def __init__(self, profiles: Optional[FakeProfileStore] = None) -> None:
        self.profiles = profiles or FakeProfileStore()
        self.open: dict[str, list[str]] = {}
        self.resolved: dict[str, str] = {}
        self._lock = asyncio.Lock()

    def add_open(self, target_entity_id: str, summons_id: str) -> None:
        self.open.setdefault(target_entity_id, []).append(summons_id)

    async def resolve_and_award(
        self, target_entity_id: str, contribution_id: str, author_id: str
    ) -> Optional[SummonsRequest]:
        # Yield first so concurrent claims interleave before the write
        await asyncio.sleep(0)
        async with self._lock:
            pending = self.open.get(target_entity_id) or []
            summons_id = pending[0] if pending else None
            # Raises before the summons is touched, like a rolled-back claim
            await self.profiles.award_points(
                author_id, contribution_points(resolved_summons=summons_id is not None)
            )
            if summons_id is None:
                return None
            pending.pop(0)
            self.resolved[summons_id] = contribution_id
            return SummonsRequest(
                id=summons_id,
                target_entity_id=target_entity_id,
                is_resolved=True,
                resolved_by_contribution_id=contribution_id,
            )


class FakeSignalStore:
    def __init__(self) -> None:
        self.signals: set[tuple[str, str]] = set()

    def raise_hand(self, user_id: str, contribution_id: str) -> None:
        self.signals.add((user_id, contribution_id))

    async def raise_hand_user_ids(self, contribution_id: str) -> list[str]:
        return sorted({u for u, c in self.signals if c == contribution_id})

    async def toggle(self, user_id: str, contribution_id: str) -> tuple[bool, int]:
        key = (user_id, contribution_id)
        if key in self.signals:
            self.signals.remove(key)
            signaled = False
        else:
            self.signals.add(key)
            signaled = True
        return signaled, sum(1 for _, c in self.signals if c == contribution_id)


class FakeCitationStore:
    def __init__(self) -> None:
        self.records: dict[str, CitationRecord] = {}

    async def insert(self, record: CitationRecord) -> bool:
        if record.contribution_id in self.records:
            return False
        self.records[record.contribution_id] = record
        return True


# =============================================================================
# Collaborators
# =============================================================================


class FakeBlacklist:
    def __init__(self, keywords: Sequence[str] = ()):
        self.keywords = list(keywords)
        self.queued: list[dict[str, Any]] = []

    async def scan(self, text: str) -> list[BlacklistMatch]:
        lowered = text.lower()
        return [BlacklistMatch(keyword=k) for k in self.keywords if k.lower() in lowered]

    async def queue_for_review(
        self,
        contribution_id: str,
        kind: str,
        text: str,
        target_entity_id: str,
        author_id: Optional[str],
        timestamp: datetime,
    ) -> None:
        self.queued.append(
            {
                "contribution_id": contribution_id,
                "kind": kind,
                "text": text,
                "target_entity_id": target_entity_id,
                "author_id": author_id,
                "timestamp": timestamp,
            }
        )


class FakeSafetyClassifier:
    def __init__(self, verdict: Optional[SafetyVerdict] = None):
        self.verdict = verdict or SafetyVerdict(is_safe=True, confidence=Confidence.HIGH, reason="ok")
        self.calls: list[str] = []

    async def classify(self, text: str) -> SafetyVerdict:
        self.calls.append(text)
        return self.verdict


class FakeInsightSummarizer:
    def __init__(self, summary: Optional[str] = "**Insight**: useful.") -> None:
        self.summary = summary
        self.calls: list[str] = []

    async def summarize(self, text: str) -> Optional[str]:
        self.calls.append(text)
        return self.summary


@dataclass
class SentNotification:
    recipient_id: str
    title: str
    message: str
    kind: str
    link: Optional[str]


class FakeNotificationSender:
    def __init__(self, failing: Sequence[str] = (), raising: Sequence[str] = ()):
        self.failing = set(failing)
        self.raising = set(raising)
        self.sent: list[SentNotification] = []
        self.attempted: list[str] = []

    async def notify(
        self,
        recipient_id: str,
        title: str,
        message: str,
        kind: NotificationKind = "info",
        link: Optional[str] = None,
    ) -> bool:
        self.attempted.append(recipient_id)
        if recipient_id in self.raising:
            raise ConnectionError(f"cannot reach {recipient_id}")
        if recipient_id in self.failing:
            return False
        self.sent.append(SentNotification(recipient_id, title, message, kind, link))
        return True


class FakeAggregates:
    def __init__(self) -> None:
        self.recomputed: list[str] = []

    async def recompute_aggregate(self, target_entity_id: str) -> None:
        self.recomputed.append(target_entity_id)


class FakeInvalidator:
    def __init__(self) -> None:
        self.calls: list[list[str]] = []

    async def invalidate(self, paths: Sequence[str]) -> None:
        self.calls.append(list(paths))


# =============================================================================
# Bundle
# =============================================================================


@dataclass
class FakeDeps:
    contributions: FakeContributionStore = field(default_factory=FakeContributionStore)
    profiles: FakeProfileStore = field(default_factory=FakeProfileStore)
    summons: FakeSummonsStore = field(default_factory=FakeSummonsStore)
    signals: FakeSignalStore = field(default_factory=FakeSignalStore)
    citations: FakeCitationStore = field(default_factory=FakeCitationStore)
    blacklist: FakeBlacklist = field(default_factory=FakeBlacklist)
    safety: FakeSafetyClassifier = field(default_factory=FakeSafetyClassifier)
    insight: FakeInsightSummarizer = field(default_factory=FakeInsightSummarizer)
    notifications: FakeNotificationSender = field(default_factory=FakeNotificationSender)
    aggregates: FakeAggregates = field(default_factory=FakeAggregates)
    invalidator: FakeInvalidator = field(default_factory=FakeInvalidator)

    def __post_init__(self) -> None:
        self.summons.profiles = self.profiles

    def as_dependencies(self) -> PipelineDependencies:
        return PipelineDependencies(
            contributions=self.contributions,
            profiles=self.profiles,
            summons=self.summons,
            signals=self.signals,
            citations=self.citations,
            blacklist=self.blacklist,
            safety=self.safety,
            insight=self.insight,
            notifications=self.notifications,
            aggregates=self.aggregates,
            invalidator=self.invalidator,
        )

    def pipeline(self, **settings_overrides: Any) -> ContributionPipeline:
        return ContributionPipeline(
            self.as_dependencies(),
            settings=make_settings(**settings_overrides),
            clock=lambda: FIXED_NOW,
        )
