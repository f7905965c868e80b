"""
MergeMates — Feed orchestration.

Glues the candidate selector, feed ranker and quota policy into the feed
endpoint, and aggregates the per-user swipe statistics.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

import structlog

from mergemates.errors import NotFoundError, QuotaExceededError
from mergemates.schemas.profile import Profile
from mergemates.services.candidate_service import CandidateSelector
from mergemates.services.feed_ranker import FeedPage, FeedRanker
from mergemates.services.quota_service import QuotaService
from mergemates.services.swipe_service import SwipeLedger
from mergemates.stores.base import MatchStore, ProfileStore
from mergemates.utils.timeutils import utcnow

logger = structlog.get_logger("mergemates.feed_service")


class FeedService:
    def __init__(
        self,
        profiles: ProfileStore,
        ledger: SwipeLedger,
        matches: MatchStore,
        selector: CandidateSelector,
        ranker: FeedRanker,
        quota: QuotaService,
    ) -> None:
        self.profiles = profiles
        self.ledger = ledger
        self.matches = matches
        self.selector = selector
        self.ranker = ranker
        self.quota = quota

    async def _require_profile(self, user_id: uuid.UUID) -> Profile:
        profile = await self.profiles.find_by_id(user_id)
        if profile is None:
            raise NotFoundError(f"User ({user_id}) not found.", user_id=str(user_id))
        return profile

    async def get_feed(self, actor_id: uuid.UUID, now: datetime | None = None) -> FeedPage:
        """Ranked discovery page for ``actor_id``.

        Raises
        ------
        NotFoundError
            The actor does not exist.
        ProfileIncompleteError
            The actor's profile is below the completion threshold.
        QuotaExceededError
            Quotas are enabled and the actor has no swipes left today.
        """
        now = now or utcnow()
        log = logger.bind(user_id=str(actor_id))
        log.info("feed_request_start")

        actor = await self._require_profile(actor_id)

        remaining = await self.quota.remaining(actor, now)
        if remaining == 0:
            raise QuotaExceededError(
                "Daily swipe limit reached. Upgrade to premium for unlimited swipes.",
                limit=self.quota.daily_swipe_limit,
                upgrade_required=True,
            )

        rows = await self.selector.select_rows(actor, now)
        page = self.ranker.rank(actor, rows, now=now, remaining=remaining)

        log.info(
            "feed_request_complete",
            total_found=page.total_found,
            returned=len(page.items),
            algorithm=page.algorithm,
        )
        return page

    async def feed_stats(self, user_id: uuid.UUID, now: datetime | None = None) -> dict[str, Any]:
        """Swipe counts, match rate and quota for ``user_id``.

        The match rate is received likes over sent likes, as a percentage
        (0 when the user has not liked anyone).
        """
        now = now or utcnow()
        profile = await self._require_profile(user_id)

        stats = await self.ledger.swipe_stats(user_id, now)
        sent, received = stats["sent"], stats["received"]

        likes_sent = sent["like"] + sent["superlike"]
        likes_received = received["like"] + received["superlike"]
        match_rate = round(likes_received / likes_sent * 100) if likes_sent else 0

        active_matches = await self.matches.list_for_user(user_id, active_only=True)

        return {
            "swipes_sent": {
                "likes": sent["like"],
                "passes": sent["pass"],
                "superlikes": sent["superlike"],
            },
            "swipes_received": {
                "likes": received["like"],
                "passes": received["pass"],
                "superlikes": received["superlike"],
            },
            "match_rate": match_rate,
            "match_count": len(active_matches),
            "daily_swipes_remaining": await self.quota.remaining(profile, now),
            "is_verified": profile.is_verified,
            "profile_completion": profile.profile_completion,
        }
