"""
Trust Engine - Role Classifier

Derives expert (SME) status from a contributor profile. Every gate that
needs the answer calls these functions against a freshly read profile;
results are never cached across gates.
"""

from __future__ import annotations

from typing import Optional

from ..core.models import ContributorProfile

EXPERT_SCORE_THRESHOLD = 100
OFFICIAL_RESPONDER_BADGE = "Trusted Voice"


def is_expert(profile: Optional[ContributorProfile]) -> bool:
    """Verified expert, or a cumulative score of at least 100."""
    if profile is None:
        return False
    return profile.is_verified_expert or profile.contributor_score >= EXPERT_SCORE_THRESHOLD


def is_official_responder(profile: Optional[ContributorProfile]) -> bool:
    """
    Narrower check used for official responses and reply notifications.

    Score alone is not enough: the profile must be a verified expert or
    carry the "Trusted Voice" badge.
    """
    if profile is None:
        return False
    return profile.is_verified_expert or profile.badge_type == OFFICIAL_RESPONDER_BADGE
