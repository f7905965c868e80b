"""
MergeMates — Matching error taxonomy.

Every error raised by the matching core derives from ``MatchingError`` and
carries a human-readable ``message`` plus a ``detail`` dict naming the
violated constraint.  The HTTP layer maps each subclass to a status code
(see ``mergemates.main``).
"""

from __future__ import annotations

from typing import Any


class MatchingError(Exception):
    """Base class for errors raised by the matching core."""

    status_code: int = 500

    def __init__(self, message: str, **detail: Any) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_dict(self) -> dict:
        return {"message": self.message, **self.detail}


class ValidationError(MatchingError):
    """Invalid action, missing actor/target, or self-swipe."""

    status_code = 400


class ProfileIncompleteError(ValidationError):
    """Actor's own profile is below the completion threshold."""

    def __init__(self, completion: int, required: int) -> None:
        super().__init__(
            "Please complete your profile to start matching",
            profile_completion=completion,
            required_completion=required,
            redirect_to="/onboarding",
        )


class NotFoundError(MatchingError):
    """Actor, target or match does not exist."""

    status_code = 404


class QuotaExceededError(MatchingError):
    """Tier swipe limit or superlike cap reached."""

    status_code = 403

    def __init__(self, message: str, **detail: Any) -> None:
        super().__init__(message, limit_reached=True, **detail)


class ConflictError(MatchingError):
    """Uniqueness violation on a swipe or match pair.

    Recovered inside the store adapters; never surfaced to callers.
    """

    status_code = 409


class TransientStoreError(MatchingError):
    """Store unavailable or timed out; the caller may retry."""

    status_code = 503

    def __init__(self, message: str = "Storage temporarily unavailable", **detail: Any) -> None:
        super().__init__(message, retryable=True, **detail)
