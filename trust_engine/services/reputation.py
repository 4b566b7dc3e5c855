"""
Trust Engine - Reputation Ledger & Chakra Tiers

Contributor scores only ever go up through the ledger (admins may override
directly in the database). Chakra tiers are a display banding of the score,
recomputed on every read and never stored.

Usage:
    from trust_engine.services.reputation import DEFAULT_CHAKRA_LADDER

    progress = DEFAULT_CHAKRA_LADDER.progress(score)
    progress.current.name, progress.next, progress.percent
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Sequence

from pydantic import BaseModel

from ..core.models import ContributorProfile
from .roles import is_expert

if TYPE_CHECKING:
    from ..pipeline.ports import ProfileStore

logger = logging.getLogger(__name__)

# Points awarded per authenticated contribution
BASE_POINTS = 5
SUMMONS_BONUS_POINTS = 20


# =============================================================================
# Tier Table
# =============================================================================


@dataclass(frozen=True)
class ChakraTier:
    """One band of the reputation ladder."""

    level: int
    name: str
    title: str
    threshold: int


@dataclass(frozen=True)
class TierProgress:
    """Where a score sits on the ladder."""

    score: int
    current: ChakraTier
    next: Optional[ChakraTier]
    percent: float

    @property
    def is_max_level(self) -> bool:
        return self.next is None

    @property
    def points_to_next(self) -> int:
        if self.next is None:
            return 0
        return max(self.next.threshold - self.score, 0)


class ChakraLadder:
    """
    Ascending (threshold, tier) table.

    The ladder is plain data passed in by the caller, so alternative tables
    can be tested or configured without touching scoring.
    """

    def __init__(self, tiers: Sequence[ChakraTier]):
        if not tiers:
            raise ValueError("A chakra ladder needs at least one tier")
        thresholds = [tier.threshold for tier in tiers]
        if any(b <= a for a, b in zip(thresholds, thresholds[1:])):
            raise ValueError("Chakra thresholds must be strictly ascending")
        self._tiers = tuple(tiers)

    @property
    def tiers(self) -> tuple[ChakraTier, ...]:
        return self._tiers

    def tier_for(self, score: int) -> ChakraTier:
        """Highest tier whose threshold is at or below the score."""
        for tier in reversed(self._tiers):
            if score >= tier.threshold:
                return tier
        # Scores below the first threshold still sit on the first rung
        return self._tiers[0]

    def next_tier(self, tier: ChakraTier) -> Optional[ChakraTier]:
        index = self._tiers.index(tier)
        if index + 1 >= len(self._tiers):
            return None
        return self._tiers[index + 1]

    def progress(self, score: int) -> TierProgress:
        """
        Progress toward the next tier as a percentage clamped to [0, 100].

        At the top tier progress is complete and there is no next tier.
        """
        current = self.tier_for(score)
        nxt = self.next_tier(current)
        if nxt is None:
            return TierProgress(score=score, current=current, next=None, percent=100.0)

        span = nxt.threshold - current.threshold
        percent = (score - current.threshold) / span * 100
        percent = min(100.0, max(0.0, percent))
        return TierProgress(score=score, current=current, next=nxt, percent=round(percent, 2))


DEFAULT_CHAKRA_TIERS: tuple[ChakraTier, ...] = (
    ChakraTier(1, "Red Chakra", "Rooted Member", 0),
    ChakraTier(2, "Orange Chakra", "Creative Contributor", 100),
    ChakraTier(3, "Yellow Chakra", "Trusted Voice", 300),
    ChakraTier(4, "Green Chakra", "Heart of Community", 600),
    ChakraTier(5, "Blue Chakra", "Insightful Guide", 1000),
    ChakraTier(6, "Indigo Chakra", "Visionary Lead", 2000),
    ChakraTier(7, "Violet Chakra", "Unified Expert", 5000),
)

DEFAULT_CHAKRA_LADDER = ChakraLadder(DEFAULT_CHAKRA_TIERS)


# =============================================================================
# Reputation Status (read side)
# =============================================================================


class ReputationStatus(BaseModel):
    """Profile reputation as shown on profile pages."""

    user_id: str
    contributor_score: int
    is_verified_expert: bool
    is_expert: bool
    badge_type: Optional[str] = None
    chakra_level: int
    chakra_name: str
    chakra_title: str
    next_chakra_name: Optional[str] = None
    next_threshold: Optional[int] = None
    progress_percent: float


def build_reputation_status(
    profile: ContributorProfile,
    ladder: ChakraLadder = DEFAULT_CHAKRA_LADDER,
) -> ReputationStatus:
    """Derive the display status for a profile."""
    progress = ladder.progress(profile.contributor_score)
    return ReputationStatus(
        user_id=profile.id,
        contributor_score=profile.contributor_score,
        is_verified_expert=profile.is_verified_expert,
        is_expert=is_expert(profile),
        badge_type=profile.badge_type,
        chakra_level=progress.current.level,
        chakra_name=progress.current.name,
        chakra_title=progress.current.title,
        next_chakra_name=progress.next.name if progress.next else None,
        next_threshold=progress.next.threshold if progress.next else None,
        progress_percent=progress.percent,
    )


def contribution_points(resolved_summons: bool) -> int:
    """Points for one contribution: the summons bonus replaces the base award."""
    return SUMMONS_BONUS_POINTS if resolved_summons else BASE_POINTS


class ReputationService:
    """Read side of the ledger."""

    def __init__(self, profiles: ProfileStore, ladder: ChakraLadder = DEFAULT_CHAKRA_LADDER):
        self._profiles = profiles
        self._ladder = ladder

    async def get_status(self, user_id: str) -> Optional[ReputationStatus]:
        """Reputation status for a user, or None if no profile exists."""
        profile = await self._profiles.get_profile(user_id)
        if profile is None:
            return None
        return build_reputation_status(profile, self._ladder)
