"""
MergeMates — Feed ranking.

Scores every candidate with the advanced compatibility score, sorts by
score (tie-break: most recently active first), truncates to the tier's page
size and finally shuffles the truncated page.  Free-tier actors get the
"basic" variant, which puts verified accounts ahead of score.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Sequence

import structlog

from mergemates.config import get_settings
from mergemates.schemas.profile import Profile
from mergemates.services.scoring_service import CompatibilityScorer
from mergemates.stores.base import CandidateRow
from mergemates.utils.timeutils import as_utc, utcnow

logger = structlog.get_logger("mergemates.feed_ranker")

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass
class RankedCandidate:
    profile: Profile
    compatibility_score: int
    age: int | None = None
    primary_photo: str | None = None
    distance_km: float | None = None


@dataclass
class FeedPage:
    items: list[RankedCandidate] = field(default_factory=list)
    remaining: int | str = "unlimited"
    algorithm: str = "basic"
    total_found: int = 0


class FeedRanker:
    """Orders a candidate list into a presentable feed page."""

    def __init__(
        self,
        scorer: CompatibilityScorer | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.scorer = scorer or CompatibilityScorer()
        self.rng = rng or random.Random()

        settings = get_settings()
        self.page_size_free: int = settings.FEED_PAGE_SIZE_FREE
        self.page_size_premium: int = settings.FEED_PAGE_SIZE_PREMIUM
        self.verified_first_for_free: bool = settings.FEED_VERIFIED_FIRST_FOR_FREE

    def rank(
        self,
        actor: Profile,
        candidates: Sequence[Profile | CandidateRow],
        now: datetime | None = None,
        remaining: int | str = "unlimited",
    ) -> FeedPage:
        """Score, sort, truncate and shuffle ``candidates``.

        Parameters
        ----------
        actor:
            The user requesting the feed.
        candidates:
            Profiles or ``CandidateRow`` objects (the latter carry distance).
        remaining:
            Actor's remaining swipe quota, passed through to the page.
        """
        now = now or utcnow()
        today = now.date()

        ranked: list[RankedCandidate] = []
        for candidate in candidates:
            if isinstance(candidate, CandidateRow):
                profile, distance = candidate.profile, candidate.distance_km
            else:
                profile, distance = candidate, None
            ranked.append(
                RankedCandidate(
                    profile=profile,
                    compatibility_score=self.scorer.advanced_score(actor, profile, now),
                    age=profile.age_at(today),
                    primary_photo=profile.primary_photo,
                    distance_km=round(distance, 2) if distance is not None else None,
                )
            )

        verified_first = not actor.is_premium and self.verified_first_for_free
        ranked.sort(key=lambda item: self._sort_key(item, verified_first))

        page_size = self.page_size_premium if actor.is_premium else self.page_size_free
        page = ranked[:page_size]
        # Only the truncated page is shuffled.
        self.rng.shuffle(page)

        logger.info(
            "feed_ranked",
            user_id=str(actor.id),
            total_found=len(ranked),
            page_size=len(page),
            verified_first=verified_first,
        )
        return FeedPage(
            items=page,
            remaining=remaining,
            algorithm="advanced" if actor.is_premium else "basic",
            total_found=len(ranked),
        )

    @staticmethod
    def _sort_key(item: RankedCandidate, verified_first: bool) -> tuple:
        last_seen = as_utc(item.profile.last_active or item.profile.updated_at) or _EPOCH
        key = (-item.compatibility_score, -last_seen.timestamp())
        if verified_first:
            return (not item.profile.is_verified,) + key
        return key
