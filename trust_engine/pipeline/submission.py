"""
Trust Engine - Contribution Submission Pipeline

Validates, moderates, persists and fans out a user-submitted contribution.

Two moderation tracks:
    guest          validate -> safety classifier -> insert
    authenticated  identity & ban gate -> validate -> official-response check
                   -> blacklist scan -> insert

Authenticated members skip the safety classifier and guests skip the
blacklist: members are accountable through bans and the keyword queue,
guests are not.

The insert is the only step that can fail the request. Everything after it
is an Effect run by the EffectOrchestrator, so a failing summarizer,
notification or citation never changes the caller's result and never rolls
the contribution back.

Usage:
    pipeline = build_default_pipeline()
    result = await pipeline.submit(CallerContext(identity_id=user_id), request)
    if not result.success:
        ...  # result.error, result.error_code
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from ..config import Settings, get_settings
from ..core.errors import (
    ERROR_INTERNAL,
    AccessDenied,
    ModerationRejected,
    TrustEngineError,
)
from ..core.logging import LogContext
from ..core.models import (
    BlacklistMatch,
    CallerContext,
    ContributionDraft,
    ContributionStatus,
    ContributorProfile,
    SourceMetadata,
    SubmissionRequest,
    SubmissionResult,
    ValidatedInput,
)
from ..services.blacklist_service import REVIEW_KIND_CONTRIBUTION
from ..services.citations import AutoCitationBuilder
from ..services.content_validator import validate_submission
from ..services.identity_gate import IdentityGate
from ..services.notification_service import (
    EXPERT_REPLY_MESSAGE,
    EXPERT_REPLY_TITLE,
    expert_reply_link,
    fan_out,
)
from ..services.path_invalidation import paths_for_contribution
from ..services.roles import is_expert, is_official_responder
from ..services.safety_classifier import status_for_verdict
from .effects import Effect, EffectOrchestrator, EffectReport
from .ports import (
    AggregateRecomputer,
    BlacklistHandler,
    CitationStore,
    ContributionStore,
    InsightSummarizer,
    NotificationSender,
    PathInvalidator,
    ProfileStore,
    SafetyClassifier,
    SignalStore,
    SummonsStore,
)

logger = logging.getLogger(__name__)

# Shorter expert contributions are not summarized
INSIGHT_MIN_CONTENT_LENGTH = 50

OFFICIAL_RESPONSE_DENIED = "Only verified experts and Trusted Voices can post official responses"
INTERNAL_ERROR_MESSAGE = "Something went wrong while saving your contribution"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class PipelineDependencies:
    """Every collaborator the pipeline talks to."""

    contributions: ContributionStore
    profiles: ProfileStore
    summons: SummonsStore
    signals: SignalStore
    citations: CitationStore
    blacklist: BlacklistHandler
    safety: SafetyClassifier
    insight: InsightSummarizer
    notifications: NotificationSender
    aggregates: AggregateRecomputer
    invalidator: PathInvalidator


@dataclass(frozen=True)
class _Prepared:
    """Outcome of the pre-persistence stages."""

    draft: ContributionDraft
    matches: list[BlacklistMatch]


class ContributionPipeline:
    """Entry point for contribution submissions."""

    def __init__(
        self,
        deps: PipelineDependencies,
        settings: Optional[Settings] = None,
        orchestrator: Optional[EffectOrchestrator] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._deps = deps
        self._settings = settings or get_settings()
        self._orchestrator = orchestrator or EffectOrchestrator()
        self._clock = clock
        self._gate = IdentityGate(deps.profiles)
        self._citations = AutoCitationBuilder(deps.citations)

    # =========================================================================
    # Public entry point
    # =========================================================================

    async def submit(self, caller: CallerContext, request: SubmissionRequest) -> SubmissionResult:
        """
        Submit a contribution on behalf of caller.

        Never raises: every failure before or during the insert is returned
        as a failed SubmissionResult, and every failure after it is logged.
        """
        result, _ = await self.submit_with_report(caller, request)
        return result

    async def submit_with_report(
        self, caller: CallerContext, request: SubmissionRequest
    ) -> tuple[SubmissionResult, Optional[EffectReport]]:
        """Like submit, also returning the effect report (None if nothing was written)."""
        with LogContext(target_entity_id=request.target_entity_id):
            try:
                prepared = await self._prepare(caller, request)
                contribution_id = await self._deps.contributions.insert(prepared.draft)
            except TrustEngineError as e:
                logger.info(
                    "Contribution refused: code=%s message=%s",
                    e.error_code,
                    e.message,
                    extra={"error_code": e.error_code},
                )
                return SubmissionResult.failed(e.message, e.error_code), None
            except Exception:
                logger.exception("Unexpected error while submitting contribution")
                return SubmissionResult.failed(INTERNAL_ERROR_MESSAGE, ERROR_INTERNAL), None

            draft = prepared.draft
            logger.info(
                "Contribution saved: id=%s status=%s author=%s",
                contribution_id,
                draft.status.value,
                draft.author_id or "guest",
                extra={
                    "contribution_id": contribution_id,
                    "author_id": draft.author_id,
                    "status": draft.status.value,
                },
            )

            effects = self._effects_for(contribution_id, draft, prepared.matches, request.source_link)
            report = await self._orchestrator.run(effects, contribution_id=contribution_id)
            return SubmissionResult.ok(contribution_id, draft.status), report

    # =========================================================================
    # Pre-persistence
    # =========================================================================

    async def _prepare(self, caller: CallerContext, request: SubmissionRequest) -> _Prepared:
        if caller.is_guest:
            return await self._prepare_guest(request)
        return await self._prepare_member(caller, request)

    async def _prepare_guest(self, request: SubmissionRequest) -> _Prepared:
        validated = self._validate(request, is_guest=True)

        if request.is_official_response:
            raise AccessDenied(OFFICIAL_RESPONSE_DENIED)

        verdict = await self._deps.safety.classify(validated.content)
        status = status_for_verdict(verdict)
        if status is None:
            logger.info("Guest contribution rejected by moderation: %s", verdict.reason)
            raise ModerationRejected(
                "Your comment could not be posted because it did not pass moderation",
                reason=verdict.reason,
            )

        draft = self._draft(request, validated, author_id=None, status=status)
        return _Prepared(draft=draft, matches=[])

    async def _prepare_member(self, caller: CallerContext, request: SubmissionRequest) -> _Prepared:
        profile = await self._gate.admit(caller)
        validated = self._validate(request, is_guest=False)

        if request.is_official_response:
            current = await self._current_profile(profile.id)
            if not is_official_responder(current):
                raise AccessDenied(OFFICIAL_RESPONSE_DENIED)

        matches = await self._deps.blacklist.scan(validated.content)
        draft = self._draft(
            request,
            validated,
            author_id=profile.id,
            status=ContributionStatus.APPROVED,
            flagged=bool(matches),
        )
        return _Prepared(draft=draft, matches=matches)

    def _validate(self, request: SubmissionRequest, *, is_guest: bool) -> ValidatedInput:
        return validate_submission(
            request.content,
            is_guest=is_guest,
            guest_name=request.guest_name,
            star_rating=request.star_rating,
            post_type=request.post_type,
            pillar_of_truth=request.pillar_of_truth,
        )

    def _draft(
        self,
        request: SubmissionRequest,
        validated: ValidatedInput,
        *,
        author_id: Optional[str],
        status: ContributionStatus,
        flagged: bool = False,
    ) -> ContributionDraft:
        source_link = (request.source_link or "").strip()
        return ContributionDraft(
            target_entity_id=request.target_entity_id,
            author_id=author_id,
            guest_name=validated.guest_name if author_id is None else None,
            content=validated.content,
            parent_id=request.parent_id or None,
            post_type=validated.post_type,
            pillar_of_truth=validated.pillar_of_truth,
            star_rating=validated.star_rating,
            is_official_response=request.is_official_response and author_id is not None,
            flag_count=1 if flagged else 0,
            is_flagged=flagged,
            status=status,
            source_metadata=(
                SourceMetadata(url=source_link, added_at=self._clock()) if source_link else None
            ),
        )

    async def _current_profile(self, user_id: str) -> Optional[ContributorProfile]:
        return await self._deps.profiles.get_profile(user_id)

    # =========================================================================
    # Post-commit effects
    # =========================================================================

    def _effects_for(
        self,
        contribution_id: str,
        draft: ContributionDraft,
        matches: list[BlacklistMatch],
        source_link: Optional[str],
    ) -> list[Effect]:
        deps = self._deps
        author_id = draft.author_id
        effects: list[Effect] = []

        if matches:

            async def queue_review() -> None:
                await deps.blacklist.queue_for_review(
                    contribution_id,
                    REVIEW_KIND_CONTRIBUTION,
                    draft.content,
                    draft.target_entity_id,
                    author_id,
                    self._clock(),
                )

            effects.append(Effect("blacklist_review", queue_review))

        if author_id is not None:

            async def generate_insight() -> None:
                if len(draft.content) < INSIGHT_MIN_CONTENT_LENGTH:
                    return
                if not is_expert(await self._current_profile(author_id)):
                    return
                summary = await deps.insight.summarize(draft.content)
                if summary and summary.strip():
                    await deps.contributions.update_insight_summary(contribution_id, summary.strip())

            async def award_reputation() -> None:
                await deps.summons.resolve_and_award(draft.target_entity_id, contribution_id, author_id)

            effects.append(Effect("insight", generate_insight))
            effects.append(Effect("summons_reputation", award_reputation))

            link = (source_link or "").strip()
            if link:

                async def attach_citation() -> None:
                    if not is_expert(await self._current_profile(author_id)):
                        return
                    await self._citations.attach(contribution_id, link)

                effects.append(Effect("citation", attach_citation))

            parent_id = draft.parent_id
            if parent_id:

                async def notify_signalers() -> None:
                    if not is_official_responder(await self._current_profile(author_id)):
                        return
                    signalers = await deps.signals.raise_hand_user_ids(parent_id)
                    recipients = [user_id for user_id in signalers if user_id != author_id]
                    await fan_out(
                        deps.notifications,
                        recipients,
                        EXPERT_REPLY_TITLE,
                        EXPERT_REPLY_MESSAGE,
                        kind="success",
                        link=expert_reply_link(parent_id, contribution_id),
                        concurrency=self._settings.NOTIFICATION_CONCURRENCY,
                        per_recipient_timeout=self._settings.NOTIFICATION_TIMEOUT_SECONDS,
                        overall_timeout=self._settings.FANOUT_TIMEOUT_SECONDS,
                    )

                effects.append(Effect("notification_fanout", notify_signalers))

        if draft.star_rating is not None:

            async def recompute_aggregate() -> None:
                await deps.aggregates.recompute_aggregate(draft.target_entity_id)

            effects.append(Effect("aggregate_rating", recompute_aggregate))

        async def invalidate_paths() -> None:
            await deps.invalidator.invalidate(
                paths_for_contribution(draft.target_entity_id, draft.parent_id)
            )

        effects.append(Effect("path_invalidation", invalidate_paths))
        return effects


# =============================================================================
# Default wiring
# =============================================================================


def build_default_pipeline(settings: Optional[Settings] = None) -> ContributionPipeline:
    """Pipeline wired to Postgres, the OpenAI-compatible API and the revalidation webhook."""
    from ..repositories import (
        PostgresAggregateRecomputer,
        PostgresCitationStore,
        PostgresContributionStore,
        PostgresProfileStore,
        PostgresSignalStore,
        PostgresSummonsStore,
    )
    from ..services.blacklist_service import PostgresBlacklistHandler
    from ..services.insight_service import OpenAIInsightSummarizer
    from ..services.notification_service import PostgresNotificationSender
    from ..services.path_invalidation import WebhookPathInvalidator
    from ..services.safety_classifier import OpenAISafetyClassifier

    settings = settings or get_settings()
    profiles = PostgresProfileStore()
    deps = PipelineDependencies(
        contributions=PostgresContributionStore(),
        profiles=profiles,
        summons=PostgresSummonsStore(profiles),
        signals=PostgresSignalStore(),
        citations=PostgresCitationStore(),
        blacklist=PostgresBlacklistHandler(),
        safety=OpenAISafetyClassifier(settings=settings),
        insight=OpenAIInsightSummarizer(settings=settings),
        notifications=PostgresNotificationSender(),
        aggregates=PostgresAggregateRecomputer(),
        invalidator=WebhookPathInvalidator(settings=settings),
    )
    return ContributionPipeline(deps, settings=settings)
