"""
Trust Engine - Identity & Ban Gate

First check on the authenticated track. Runs before anything is written.
"""

from __future__ import annotations

import logging

from ..core.errors import AccessDenied, InvalidIdentity
from ..core.models import CallerContext, ContributorProfile
from ..pipeline.ports import ProfileStore

logger = logging.getLogger(__name__)


class IdentityGate:
    """Admits an authenticated caller, or raises."""

    def __init__(self, profiles: ProfileStore):
        self._profiles = profiles

    async def admit(self, caller: CallerContext) -> ContributorProfile:
        """
        Resolve the caller's profile and refuse banned identities.

        A caller without a profile row yet is admitted as a fresh,
        unbanned, score-0 contributor.

        Raises:
            InvalidIdentity: identity is missing or blank
            AccessDenied: the profile is banned
        """
        identity = (caller.identity_id or "").strip()
        if not identity:
            raise InvalidIdentity()

        profile = await self._profiles.get_profile(identity)
        if profile is None:
            return ContributorProfile(id=identity)

        if profile.is_banned:
            logger.warning(
                "Banned contributor refused: author_id=%s",
                identity,
                extra={"author_id": identity},
            )
            raise AccessDenied()

        return profile
