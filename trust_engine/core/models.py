"""
Trust Engine - Core Data Models

Pydantic models for the contribution pipeline:
- caller identity and submission payloads
- persisted rows (contributions, profiles, summons, signals, citations)
- collaborator results (safety verdicts, blacklist matches)
- the structured result returned to callers

Usage:
    from trust_engine.core.models import CallerContext, SubmissionRequest

    request = SubmissionRequest.model_validate(payload)
    result = await pipeline.submit(CallerContext(identity_id=user_id), request)
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

# =============================================================================
# Enums
# =============================================================================


class PostType(str, Enum):
    """Kind of contribution being posted."""

    VERIFIED_INSIGHT = "verified_insight"
    COMMUNITY_EXPERIENCE = "community_experience"


class ContributionStatus(str, Enum):
    """Moderation status of a persisted contribution."""

    APPROVED = "approved"
    PENDING_REVIEW = "pending_review"
    REJECTED = "rejected"


class Confidence(str, Enum):
    """Safety classifier confidence."""

    HIGH = "high"
    LOW = "low"


SignalType = Literal["raise_hand"]
NotificationKind = Literal["info", "success", "warning", "error"]

RAISE_HAND: SignalType = "raise_hand"


# =============================================================================
# Base Configuration
# =============================================================================


class FrozenModel(BaseModel):
    """Immutable model for rows and collaborator results."""

    model_config = ConfigDict(frozen=True, extra="ignore")


# =============================================================================
# Caller & Request
# =============================================================================


class CallerContext(FrozenModel):
    """
    Explicit caller identity passed into every pipeline entry point.

    identity_id is None for guests.
    """

    identity_id: Optional[str] = None

    @property
    def is_guest(self) -> bool:
        return self.identity_id is None

    @classmethod
    def guest(cls) -> "CallerContext":
        return cls(identity_id=None)


class SubmissionRequest(BaseModel):
    """Raw contribution payload as received from a caller."""

    target_entity_id: str = Field(..., min_length=1)
    content: str
    guest_name: Optional[str] = None
    parent_id: Optional[str] = None
    post_type: PostType = PostType.COMMUNITY_EXPERIENCE
    pillar_of_truth: Optional[str] = None
    star_rating: Optional[Any] = None  # range-checked by the content validator
    is_official_response: bool = False
    source_link: Optional[str] = None


class ValidatedInput(FrozenModel):
    """Output of the content validator."""

    content: str
    guest_name: Optional[str] = None
    star_rating: Optional[int] = None
    post_type: PostType = PostType.COMMUNITY_EXPERIENCE
    pillar_of_truth: Optional[str] = None


# =============================================================================
# Persisted Rows
# =============================================================================


class SourceMetadata(FrozenModel):
    """Source link recorded alongside a contribution."""

    url: str
    added_at: datetime


class ContributionDraft(FrozenModel):
    """
    A fully-formed contribution ready for a single insert.

    Every field computed before persistence is resolved here; the store
    never patches these fields after the insert.
    """

    target_entity_id: str
    author_id: Optional[str] = None
    guest_name: Optional[str] = None
    content: str
    parent_id: Optional[str] = None
    post_type: PostType = PostType.COMMUNITY_EXPERIENCE
    pillar_of_truth: Optional[str] = None
    star_rating: Optional[int] = None
    is_official_response: bool = False
    flag_count: int = Field(default=0, ge=0)
    is_flagged: bool = False
    status: ContributionStatus = ContributionStatus.APPROVED
    source_metadata: Optional[SourceMetadata] = None


class Contribution(ContributionDraft):
    """A persisted contribution."""

    id: str
    insight_summary: Optional[str] = None
    created_at: Optional[datetime] = None


class ContributorProfile(FrozenModel):
    """Per-identity reputation profile."""

    id: str
    contributor_score: int = Field(default=0, ge=0)
    is_verified_expert: bool = False
    badge_type: Optional[str] = None
    is_banned: bool = False


class SummonsRequest(FrozenModel):
    """Open request for expert input on a target entity."""

    id: str
    target_entity_id: str
    is_resolved: bool = False
    resolved_by_contribution_id: Optional[str] = None


class CitationRecord(FrozenModel):
    """Evidence link derived from an expert's source link."""

    contribution_id: str
    resource_title: str
    resource_url: str
    is_prescreened: bool = False


class NotificationRecord(FrozenModel):
    """Row from the notifications inbox."""

    id: str
    user_id: str
    title: str
    message: str
    kind: NotificationKind = "info"
    link: Optional[str] = None
    is_read: bool = False
    created_at: Optional[datetime] = None


# =============================================================================
# Collaborator Results
# =============================================================================


class SafetyVerdict(FrozenModel):
    """Result of the guest safety classifier."""

    is_safe: bool
    confidence: Confidence = Confidence.LOW
    reason: str = ""


class BlacklistMatch(FrozenModel):
    """A blacklisted keyword found in submitted content."""

    keyword: str
    reason: Optional[str] = None


# =============================================================================
# Results
# =============================================================================


class SubmissionResult(BaseModel):
    """
    Caller-visible outcome of a submission.

    success is True whenever the contribution row was written, regardless
    of how many post-commit effects failed.
    """

    success: bool
    contribution_id: Optional[str] = None
    status: Optional[ContributionStatus] = None
    error: Optional[str] = None
    error_code: Optional[str] = None

    @classmethod
    def ok(cls, contribution_id: str, status: ContributionStatus) -> "SubmissionResult":
        return cls(success=True, contribution_id=contribution_id, status=status)

    @classmethod
    def failed(cls, error: str, error_code: str) -> "SubmissionResult":
        return cls(success=False, error=error, error_code=error_code)


class SignalToggleResult(BaseModel):
    """Outcome of toggling a raise-hand signal."""

    success: bool
    is_signaled: bool = False
    signal_count: int = 0
    error: Optional[str] = None
