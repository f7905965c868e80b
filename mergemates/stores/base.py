"""
MergeMates — Store ports consumed by the matching core.

The services in ``mergemates.services`` depend only on these protocols.
``mergemates.stores.sql`` provides the SQLAlchemy adapters used in
production; tests substitute in-memory fakes.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Protocol

from mergemates.schemas.match import MatchRecord, SwipeRecord
from mergemates.schemas.profile import Profile


def canonical_pair(user_x: uuid.UUID, user_y: uuid.UUID) -> tuple[uuid.UUID, uuid.UUID]:
    """Return the pair in stored (sorted) order."""
    return (user_x, user_y) if user_x <= user_y else (user_y, user_x)


@dataclass
class GeoConstraint:
    latitude: float
    longitude: float
    max_distance_km: float


@dataclass
class CandidateCriteria:
    """Filter predicate for a candidate query.

    ``None`` on any optional attribute means the constraint is not applied.
    Birth-date bounds are inclusive; ``min_age``/``max_age`` are used for
    targets that have no birth date on record.
    """

    exclude_ids: set[uuid.UUID] = field(default_factory=set)
    require_verified: bool = True
    require_complete: bool = True
    genders: list[str] | None = None
    professions: list[str] | None = None
    religions: list[str] | None = None
    born_on_or_after: date | None = None
    born_on_or_before: date | None = None
    min_age: int | None = None
    max_age: int | None = None
    near: GeoConstraint | None = None


@dataclass
class CandidateRow:
    profile: Profile
    distance_km: float | None = None


class ProfileStore(Protocol):
    async def find_by_id(self, user_id: uuid.UUID) -> Profile | None: ...

    async def find_candidates(
        self, criteria: CandidateCriteria, limit: int
    ) -> list[CandidateRow]:
        """Nearest first when ``criteria.near`` is set, else most recently active first."""
        ...

    async def update_last_active(self, user_id: uuid.UUID, now: datetime) -> None: ...


class SwipeStore(Protocol):
    async def upsert(
        self, swiper_id: uuid.UUID, target_id: uuid.UUID, action: str, now: datetime
    ) -> SwipeRecord: ...

    async def find_one(
        self, swiper_id: uuid.UUID, target_id: uuid.UUID, since: datetime | None = None
    ) -> SwipeRecord | None: ...

    async def distinct_targets(
        self, swiper_id: uuid.UUID, since: datetime | None = None
    ) -> set[uuid.UUID]: ...

    async def count_by_action(
        self, user_id: uuid.UUID, direction: str, since: datetime | None = None
    ) -> dict[str, int]:
        """``direction`` is ``"sent"`` (user is swiper) or ``"received"``."""
        ...

    async def lock_pair(self, user_x: uuid.UUID, user_y: uuid.UUID) -> None:
        """Serialise swipes between the two users until the transaction ends."""
        ...

    async def delete_older_than(self, cutoff: datetime) -> int: ...


class MatchStore(Protocol):
    async def find_by_pair(
        self, user_x: uuid.UUID, user_y: uuid.UUID
    ) -> MatchRecord | None: ...

    async def find_by_id(self, match_id: uuid.UUID) -> MatchRecord | None: ...

    async def create(
        self,
        user_x: uuid.UUID,
        user_y: uuid.UUID,
        initiator_id: uuid.UUID,
        match_type: str,
        match_score: int,
        mutual_interests: list[str],
        now: datetime,
    ) -> tuple[MatchRecord, bool]:
        """Insert the match, or return the existing row for the pair.

        The boolean is ``True`` only when this call inserted the row.
        """
        ...

    async def set_active(
        self, match_id: uuid.UUID, active: bool, now: datetime | None = None
    ) -> MatchRecord:
        """Toggle the active flag.

        With ``now``, reactivation refreshes ``matched_at`` and deactivation
        stamps ``unmatched_at``.
        """
        ...

    async def list_for_user(
        self, user_id: uuid.UUID, active_only: bool = True
    ) -> list[MatchRecord]:
        """Ordered by last_message_at desc (nulls last), then matched_at desc."""
        ...

    async def touch_last_message(self, match_id: uuid.UUID, now: datetime) -> MatchRecord: ...
