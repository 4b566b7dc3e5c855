"""
Tests for trust_engine.services.reputation and trust_engine.services.roles
"""

from __future__ import annotations

import pytest

from trust_engine.core.models import ContributorProfile
from trust_engine.services.reputation import (
    BASE_POINTS,
    DEFAULT_CHAKRA_LADDER,
    SUMMONS_BONUS_POINTS,
    ChakraLadder,
    ChakraTier,
    ReputationService,
    build_reputation_status,
    contribution_points,
)
from trust_engine.services.roles import is_expert, is_official_responder
from tests.helpers import FakeProfileStore


class TestRoles:
    def test_expert_by_verification_or_score(self):
        assert is_expert(ContributorProfile(id="a", is_verified_expert=True))
        assert is_expert(ContributorProfile(id="b", contributor_score=100))
        assert not is_expert(ContributorProfile(id="c", contributor_score=99))
        assert not is_expert(None)

    def test_official_responder_is_narrower(self):
        assert is_official_responder(ContributorProfile(id="a", is_verified_expert=True))
        assert is_official_responder(ContributorProfile(id="b", badge_type="Trusted Voice"))
        assert not is_official_responder(ContributorProfile(id="c", contributor_score=10_000))
        assert not is_official_responder(None)


class TestChakraLadder:
    @pytest.mark.parametrize(
        "score,name",
        [
            (0, "Red Chakra"),
            (99, "Red Chakra"),
            (100, "Orange Chakra"),
            (299, "Orange Chakra"),
            (300, "Yellow Chakra"),
            (999, "Green Chakra"),
            (1000, "Blue Chakra"),
            (4999, "Indigo Chakra"),
            (5000, "Violet Chakra"),
            (1_000_000, "Violet Chakra"),
        ],
    )
    def test_tier_for_score(self, score, name):
        assert DEFAULT_CHAKRA_LADDER.tier_for(score).name == name

    def test_progress_within_tier(self):
        progress = DEFAULT_CHAKRA_LADDER.progress(200)
        assert progress.current.title == "Creative Contributor"
        assert progress.next.title == "Trusted Voice"
        assert progress.percent == 50.0
        assert progress.points_to_next == 100

    def test_top_tier_is_complete(self):
        progress = DEFAULT_CHAKRA_LADDER.progress(7500)
        assert progress.next is None
        assert progress.percent == 100.0
        assert progress.is_max_level

    def test_custom_ladder_is_injectable(self):
        ladder = ChakraLadder([ChakraTier(1, "Low", "Novice", 0), ChakraTier(2, "High", "Master", 10)])
        assert ladder.tier_for(10).title == "Master"
        assert ladder.progress(5).percent == 50.0

    def test_ladder_rejects_unordered_thresholds(self):
        with pytest.raises(ValueError):
            ChakraLadder([ChakraTier(1, "A", "A", 10), ChakraTier(2, "B", "B", 10)])
        with pytest.raises(ValueError):
            ChakraLadder([])


class TestPoints:
    def test_summons_bonus_replaces_base(self):
        assert contribution_points(resolved_summons=True) == SUMMONS_BONUS_POINTS == 20
        assert contribution_points(resolved_summons=False) == BASE_POINTS == 5


class TestReputationStatus:
    def test_status_fields(self):
        status = build_reputation_status(
            ContributorProfile(id="u1", contributor_score=450, badge_type="Trusted Voice")
        )
        assert status.chakra_level == 3
        assert status.chakra_title == "Trusted Voice"
        assert status.next_chakra_name == "Green Chakra"
        assert status.next_threshold == 600
        assert status.progress_percent == 50.0
        assert status.is_expert is True

    @pytest.mark.asyncio
    async def test_service_returns_none_for_unknown_user(self):
        service = ReputationService(FakeProfileStore([ContributorProfile(id="u1")]))
        assert await service.get_status("nobody") is None
        status = await service.get_status("u1")
        assert status.chakra_name == "Red Chakra"
