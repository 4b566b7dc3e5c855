"""
Tests for trust_engine.services.content_validator
"""

from __future__ import annotations

import pytest

from trust_engine.core.errors import ValidationError
from trust_engine.core.models import PostType
from trust_engine.services.content_validator import validate_submission


class TestContentBounds:
    def test_member_minimum_is_three_after_trim(self):
        assert validate_submission("  abc  ", is_guest=False).content == "abc"
        with pytest.raises(ValidationError):
            validate_submission("  ab  ", is_guest=False)

    def test_guest_minimum_is_ten(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_submission("123456789", is_guest=True, guest_name="Ann")
        assert exc_info.value.field == "content"
        assert validate_submission("1234567890", is_guest=True, guest_name="Ann").content == "1234567890"

    def test_maximum_is_two_thousand(self):
        assert len(validate_submission("x" * 2000, is_guest=False).content) == 2000
        with pytest.raises(ValidationError):
            validate_submission("x" * 2001, is_guest=False)


class TestGuestName:
    @pytest.mark.parametrize("name", [None, "", " A ", "x" * 51])
    def test_rejects_out_of_range_names(self, name):
        with pytest.raises(ValidationError) as exc_info:
            validate_submission("long enough content", is_guest=True, guest_name=name)
        assert exc_info.value.field == "guest_name"

    def test_name_is_trimmed(self):
        result = validate_submission("long enough content", is_guest=True, guest_name="  Bo  ")
        assert result.guest_name == "Bo"

    def test_member_name_is_ignored(self):
        result = validate_submission("hello", is_guest=False, guest_name="Whoever")
        assert result.guest_name is None


class TestStarRating:
    @pytest.mark.parametrize("rating", [1, 3, 5, 4.0])
    def test_accepts_whole_numbers_in_range(self, rating):
        assert validate_submission("hello", is_guest=False, star_rating=rating).star_rating == int(rating)

    @pytest.mark.parametrize("rating", [0, 6, 2.5, True, "4"])
    def test_rejects_everything_else(self, rating):
        with pytest.raises(ValidationError) as exc_info:
            validate_submission("hello", is_guest=False, star_rating=rating)
        assert exc_info.value.field == "star_rating"


class TestPillarOfTruth:
    def test_verified_insight_needs_pillar(self):
        with pytest.raises(ValidationError):
            validate_submission("hello", is_guest=False, post_type=PostType.VERIFIED_INSIGHT)

    def test_verified_insight_with_pillar(self):
        result = validate_submission(
            "hello",
            is_guest=False,
            post_type=PostType.VERIFIED_INSIGHT,
            pillar_of_truth=" Purity ",
        )
        assert result.pillar_of_truth == "Purity"

    def test_community_experience_cannot_carry_pillar(self):
        with pytest.raises(ValidationError):
            validate_submission("hello", is_guest=False, pillar_of_truth="Purity")
