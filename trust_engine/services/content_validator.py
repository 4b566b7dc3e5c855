"""
Trust Engine - Content Validator

Length and format checks on raw submission input. Pure function: no I/O,
no side effects. Runs before any gate so that bad input never reaches the
safety classifier or the database.
"""

from __future__ import annotations

from typing import Any, Optional

from ..core.errors import ValidationError
from ..core.models import PostType, ValidatedInput

# Content bounds per caller class (after trimming)
AUTHENTICATED_MIN_LENGTH = 3
GUEST_MIN_LENGTH = 10
MAX_CONTENT_LENGTH = 2000

GUEST_NAME_MIN_LENGTH = 2
GUEST_NAME_MAX_LENGTH = 50

MIN_STAR_RATING = 1
MAX_STAR_RATING = 5


def _validate_star_rating(star_rating: Any) -> Optional[int]:
    if star_rating is None:
        return None
    # bool is an int subclass; a checkbox value is not a rating
    if isinstance(star_rating, bool):
        raise ValidationError("Rating must be a whole number from 1 to 5", field="star_rating")
    if isinstance(star_rating, float):
        if not star_rating.is_integer():
            raise ValidationError("Rating must be a whole number from 1 to 5", field="star_rating")
        star_rating = int(star_rating)
    if not isinstance(star_rating, int):
        raise ValidationError("Rating must be a whole number from 1 to 5", field="star_rating")
    if not MIN_STAR_RATING <= star_rating <= MAX_STAR_RATING:
        raise ValidationError("Rating must be a whole number from 1 to 5", field="star_rating")
    return star_rating


def validate_submission(
    content: str,
    *,
    is_guest: bool,
    guest_name: Optional[str] = None,
    star_rating: Any = None,
    post_type: PostType = PostType.COMMUNITY_EXPERIENCE,
    pillar_of_truth: Optional[str] = None,
) -> ValidatedInput:
    """
    Validate and normalize a raw submission.

    Args:
        content: Raw content; surrounding whitespace is trimmed
        is_guest: Guests get a stricter minimum length and need a name
        guest_name: Display name for guest posts (2-50 chars after trimming)
        star_rating: Optional integer rating in [1, 5]
        post_type: verified_insight requires a pillar; community_experience forbids one
        pillar_of_truth: Pillar the insight speaks to

    Returns:
        ValidatedInput with trimmed values

    Raises:
        ValidationError: on the first rule that fails
    """
    text = (content or "").strip()
    min_length = GUEST_MIN_LENGTH if is_guest else AUTHENTICATED_MIN_LENGTH

    if len(text) < min_length:
        raise ValidationError(
            f"Content must be at least {min_length} characters",
            field="content",
        )
    if len(text) > MAX_CONTENT_LENGTH:
        raise ValidationError(
            f"Content must be at most {MAX_CONTENT_LENGTH} characters",
            field="content",
        )

    name: Optional[str] = None
    if is_guest:
        name = (guest_name or "").strip()
        if not GUEST_NAME_MIN_LENGTH <= len(name) <= GUEST_NAME_MAX_LENGTH:
            raise ValidationError(
                f"Name must be between {GUEST_NAME_MIN_LENGTH} and "
                f"{GUEST_NAME_MAX_LENGTH} characters",
                field="guest_name",
            )

    rating = _validate_star_rating(star_rating)

    pillar = (pillar_of_truth or "").strip() or None
    if post_type == PostType.VERIFIED_INSIGHT and pillar is None:
        raise ValidationError(
            "A verified insight must name its pillar of truth",
            field="pillar_of_truth",
        )
    if post_type != PostType.VERIFIED_INSIGHT and pillar is not None:
        raise ValidationError(
            "Only verified insights can carry a pillar of truth",
            field="pillar_of_truth",
        )

    return ValidatedInput(
        content=text,
        guest_name=name,
        star_rating=rating,
        post_type=post_type,
        pillar_of_truth=pillar,
    )
