"""
MergeMates — Profile derivations.

Fields recomputed whenever a profile is written: ``age`` from the birth
date, ``profile_completion`` (0-100) and the ``profile_complete`` flag that
gates discovery.
"""

from __future__ import annotations

from datetime import date
from typing import Any

import structlog

from mergemates.utils.timeutils import age_on

logger = structlog.get_logger("mergemates.profile_service")

# (attribute, points, predicate)
_COMPLETION_RULES: list[tuple[str, int, Any]] = [
    ("first_name", 2, bool),
    ("date_of_birth", 2, lambda v: v is not None),
    ("gender", 2, bool),
    ("bio", 2, lambda v: bool(v) and len(v) > 20),
    ("photos", 2, bool),
    ("profession", 1, bool),
    ("education_level", 1, bool),
    ("interests", 1, bool),
    ("skills", 1, bool),
    ("city", 1, bool),
    ("religion", 1, bool),
]
# Points sum to 16 but the percentage is taken over 15, so a fully filled
# profile saturates at 100.
_COMPLETION_TOTAL = 15

_REQUIRED_FOR_COMPLETE = (
    "first_name", "date_of_birth", "gender", "bio", "photos", "profession",
)


def calculate_profile_completion(user: Any) -> int:
    """Weighted share of filled-in profile fields, as a percentage."""
    score = sum(
        points
        for attr, points, filled in _COMPLETION_RULES
        if filled(getattr(user, attr, None))
    )
    return min(100, round(score / _COMPLETION_TOTAL * 100))


def is_profile_complete(user: Any) -> bool:
    return all(getattr(user, attr, None) for attr in _REQUIRED_FOR_COMPLETE)


def apply_profile_derivations(user: Any, today: date) -> None:
    """Refresh ``age``, ``profile_completion`` and ``profile_complete`` in place."""
    if user.date_of_birth is not None:
        user.age = age_on(user.date_of_birth, today)
    user.profile_completion = calculate_profile_completion(user)
    user.profile_complete = is_profile_complete(user)
    logger.debug(
        "profile_derivations_applied",
        age=user.age,
        profile_completion=user.profile_completion,
        profile_complete=user.profile_complete,
    )
