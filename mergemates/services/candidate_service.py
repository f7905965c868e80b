"""
MergeMates — Candidate selection.

Builds the exclusion set (the actor plus everyone they swiped on inside the
retention window) and a filter predicate from the actor's preferences, then
asks the profile store for a bounded candidate list.  When the actor has
coordinates the query is constrained to ``max_distance_km`` and ordered
nearest first; otherwise it is ordered by recency.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta

import structlog

from mergemates.config import get_settings
from mergemates.errors import ProfileIncompleteError
from mergemates.schemas.profile import Profile
from mergemates.services.swipe_service import SwipeLedger
from mergemates.stores.base import (
    CandidateCriteria,
    CandidateRow,
    GeoConstraint,
    ProfileStore,
)
from mergemates.utils.timeutils import utcnow, years_before

logger = structlog.get_logger("mergemates.candidate_service")


class CandidateSelector:
    """Selects discovery candidates for an actor.

    Dependencies are injected at construction so that tests can pass
    in-memory stores.
    """

    def __init__(self, profiles: ProfileStore, ledger: SwipeLedger) -> None:
        self.profiles = profiles
        self.ledger = ledger

        settings = get_settings()
        self.min_completion: int = settings.MIN_PROFILE_COMPLETION
        self.limit_free: int = settings.CANDIDATE_LIMIT_FREE
        self.limit_premium: int = settings.CANDIDATE_LIMIT_PREMIUM
        self.default_max_distance_km: float = settings.DEFAULT_MAX_DISTANCE_KM

    def ensure_profile_ready(self, actor: Profile) -> None:
        """Raise ``ProfileIncompleteError`` if the actor cannot use discovery yet."""
        if actor.profile_completion < self.min_completion or not actor.profile_complete:
            raise ProfileIncompleteError(actor.profile_completion, self.min_completion)

    def limit_for(self, actor: Profile) -> int:
        return self.limit_premium if actor.is_premium else self.limit_free

    async def select_rows(
        self, actor: Profile, now: datetime | None = None
    ) -> list[CandidateRow]:
        """Candidate rows including distance, as consumed by the feed ranker."""
        self.ensure_profile_ready(actor)
        now = now or utcnow()
        log = logger.bind(user_id=str(actor.id))

        excluded = await self.ledger.excluded_target_ids(actor.id, now)
        criteria = self.build_criteria(actor, excluded, now)
        limit = self.limit_for(actor)

        rows = await self.profiles.find_candidates(criteria, limit)
        await self.profiles.update_last_active(actor.id, now)

        log.info(
            "candidates_selected",
            count=len(rows),
            excluded=len(excluded),
            limit=limit,
            geo=criteria.near is not None,
        )
        return rows

    async def select_candidates(
        self, actor: Profile, now: datetime | None = None
    ) -> list[Profile]:
        rows = await self.select_rows(actor, now)
        return [row.profile for row in rows]

    def build_criteria(
        self,
        actor: Profile,
        excluded_ids: set,
        now: datetime | None = None,
    ) -> CandidateCriteria:
        """Translate the actor's preferences into a store query predicate."""
        today = (now or utcnow()).date()
        prefs = actor.preferences

        criteria = CandidateCriteria(
            exclude_ids=set(excluded_ids) | {actor.id},
            require_verified=True,
            require_complete=True,
            genders=list(prefs.genders) if prefs.genders else None,
            professions=list(prefs.professions) if prefs.professions else None,
        )

        if prefs.religions and not prefs.accepts_any_religion:
            criteria.religions = list(prefs.religions)

        if prefs.age_max is not None:
            criteria.born_on_or_after = self._earliest_birth_date(today, prefs.age_max)
            criteria.max_age = prefs.age_max
        if prefs.age_min is not None:
            criteria.born_on_or_before = years_before(today, prefs.age_min)
            criteria.min_age = prefs.age_min

        if actor.has_coordinates:
            max_distance = prefs.max_distance_km
            if max_distance is None:
                max_distance = self.default_max_distance_km
            criteria.near = GeoConstraint(
                latitude=actor.latitude,
                longitude=actor.longitude,
                max_distance_km=max_distance,
            )

        return criteria

    @staticmethod
    def _earliest_birth_date(today: date, max_age: int) -> date:
        # Someone born on this day turns max_age + 1 tomorrow.
        return years_before(today, max_age + 1) + timedelta(days=1)
