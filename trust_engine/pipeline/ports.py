"""
Trust Engine - Pipeline Collaborator Interfaces

Typed contracts the pipeline depends on. Postgres and HTTP implementations
live in trust_engine.repositories and trust_engine.services; tests supply
in-memory fakes.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.models import (
    BlacklistMatch,
    CitationRecord,
    Contribution,
    ContributionDraft,
    ContributorProfile,
    NotificationKind,
    SafetyVerdict,
    SummonsRequest,
)


class ProfileStore(Protocol):
    async def get_profile(self, user_id: str) -> Optional[ContributorProfile]: ...

    async def list_verified_expert_ids(self, limit: int = 10) -> list[str]: ...


class ContributionStore(Protocol):
    async def insert(self, draft: ContributionDraft) -> str: ...

    async def update_insight_summary(self, contribution_id: str, summary: str) -> None: ...

    async def get(self, contribution_id: str) -> Optional[Contribution]: ...


class SummonsStore(Protocol):
    async def resolve_and_award(
        self, target_entity_id: str, contribution_id: str, author_id: str
    ) -> Optional[SummonsRequest]: ...


class SignalStore(Protocol):
    async def raise_hand_user_ids(self, contribution_id: str) -> list[str]: ...

    async def toggle(self, user_id: str, contribution_id: str) -> tuple[bool, int]: ...


class CitationStore(Protocol):
    async def insert(self, record: CitationRecord) -> bool: ...


class BlacklistHandler(Protocol):
    async def scan(self, text: str) -> list[BlacklistMatch]: ...

    async def queue_for_review(
        self,
        contribution_id: str,
        kind: str,
        text: str,
        target_entity_id: str,
        author_id: Optional[str],
        timestamp: datetime,
    ) -> None: ...


class SafetyClassifier(Protocol):
    async def classify(self, text: str) -> SafetyVerdict: ...


class InsightSummarizer(Protocol):
    async def summarize(self, text: str) -> Optional[str]: ...


class NotificationSender(Protocol):
    async def notify(
        self,
        recipient_id: str,
        title: str,
        message: str,
        kind: NotificationKind = "info",
        link: Optional[str] = None,
    ) -> bool: ...


class AggregateRecomputer(Protocol):
    async def recompute_aggregate(self, target_entity_id: str) -> None: ...


class PathInvalidator(Protocol):
    async def invalidate(self, paths: Sequence[str]) -> None: ...
