"""
MergeMates — Match engine.

State machine per unordered pair {A, B}:

  NoRecord -> PendingOneSide   one side liked; the other has not acted or passed
           -> Matched          mutual like detected, Match row created
           -> Unmatched        soft delete (is_active = False)
           -> Matched          both sides like again; the same row is reactivated

A pair never owns more than one Match row.  Creation relies on the unique
constraint over the canonical pair: when two swipes race, the loser of the
insert receives the winner's row instead of an error.
"""

from __future__ import annotations

import uuid
from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import structlog

from mergemates.config import get_settings
from mergemates.errors import NotFoundError
from mergemates.schemas.match import MatchRecord
from mergemates.schemas.profile import Profile
from mergemates.services.quota_service import UNLIMITED, QuotaService
from mergemates.services.scoring_service import CompatibilityScorer
from mergemates.services.swipe_service import SwipeLedger
from mergemates.stores.base import MatchStore, ProfileStore
from mergemates.utils.timeutils import utcnow

logger = structlog.get_logger("mergemates.match_service")


@dataclass
class SwipeOutcome:
    status: str  # "recorded" | "matched"
    match: MatchRecord | None = None
    is_new_match: bool = False
    remaining: int | str = UNLIMITED
    actor: Profile | None = None
    target: Profile | None = None


class MatchEngine:
    """Turns swipes into matches and manages their lifecycle.

    Dependencies are injected at construction so that the engine can be
    exercised against in-memory stores.
    """

    TOP_INTERESTS_LIMIT: int = 5

    def __init__(
        self,
        profiles: ProfileStore,
        ledger: SwipeLedger,
        matches: MatchStore,
        scorer: CompatibilityScorer | None = None,
        quota: QuotaService | None = None,
    ) -> None:
        self.profiles = profiles
        self.ledger = ledger
        self.matches = matches
        self.scorer = scorer or CompatibilityScorer()
        self.quota = quota or QuotaService(enabled=False)
        self.mutual_interest_limit: int = get_settings().MUTUAL_INTEREST_LIMIT

    # ── Swipes ────────────────────────────────────────────────────────────

    async def on_swipe(
        self,
        actor_id: uuid.UUID,
        target_id: uuid.UUID,
        action: str,
        now: datetime | None = None,
    ) -> SwipeOutcome:
        """Record a swipe and create or reactivate the match on a mutual like.

        Parameters
        ----------
        actor_id:
            User performing the swipe.
        target_id:
            User being swiped on.
        action:
            ``"like"``, ``"pass"`` or ``"superlike"``.

        Returns
        -------
        SwipeOutcome
            ``status`` is ``"matched"`` whenever an active match exists for
            the pair after this swipe; ``is_new_match`` is ``True`` only when
            this swipe created or reactivated it.

        Raises
        ------
        ValidationError
            Invalid action, missing id, or self-swipe.
        NotFoundError
            Actor or target profile does not exist.
        QuotaExceededError
            Daily limit reached (only when quotas are enabled).
        """
        SwipeLedger.validate(actor_id, target_id, action)
        now = now or utcnow()
        log = logger.bind(actor_id=str(actor_id), target_id=str(target_id), action=action)

        actor = await self._require_profile(actor_id, "Actor")
        target = await self._require_profile(target_id, "Target")

        remaining = await self.quota.check_and_consume(actor, action, now)
        await self.ledger.lock_pair(actor_id, target_id)
        await self.ledger.record_swipe(actor_id, target_id, action, now)

        outcome = SwipeOutcome(status="recorded", remaining=remaining, actor=actor, target=target)
        if action == "pass":
            return outcome

        if not await self.ledger.has_mutual_like(actor_id, target_id, now):
            log.info("swipe_pending_reciprocation")
            return outcome

        existing = await self.matches.find_by_pair(actor_id, target_id)
        if existing is not None:
            if existing.is_active:
                log.info("match_already_active", match_id=str(existing.id))
                outcome.status = "matched"
                outcome.match = existing
                return outcome

            if not await self._reswiped_since_unmatch(existing, actor_id, target_id, now):
                log.info("rematch_pending_reciprocation", match_id=str(existing.id))
                return outcome

            reactivated = await self.matches.set_active(existing.id, True, now)
            log.info("match_reactivated", match_id=str(existing.id))
            outcome.status = "matched"
            outcome.match = reactivated
            outcome.is_new_match = True
            return outcome

        reverse = await self.ledger.get_swipe(target_id, actor_id, now)
        superliked = action == "superlike" or (reverse is not None and reverse.action == "superlike")

        match, created = await self.matches.create(
            actor_id,
            target_id,
            initiator_id=actor_id,
            match_type="superlike" if superliked else "regular",
            match_score=self.scorer.score(actor, target, now),
            mutual_interests=self.scorer.mutual_interests(
                actor, target, limit=self.mutual_interest_limit
            ),
            now=now,
        )
        if created:
            log.info(
                "match_created",
                match_id=str(match.id),
                match_type=match.match_type,
                match_score=match.match_score,
            )
        elif not match.is_active:
            # Lost a race against an unmatch.
            if not await self._reswiped_since_unmatch(match, actor_id, target_id, now):
                return outcome
            match = await self.matches.set_active(match.id, True, now)

        outcome.status = "matched"
        outcome.match = match
        outcome.is_new_match = created
        return outcome

    # ── Match lifecycle ───────────────────────────────────────────────────

    async def unmatch(
        self, user_id: uuid.UUID, match_id: uuid.UUID, now: datetime | None = None
    ) -> MatchRecord:
        """Soft-delete a match the user is part of."""
        match = await self._require_match(match_id, user_id)
        record = await self.matches.set_active(match.id, False, now or utcnow())
        logger.info("match_unmatched", match_id=str(match_id), user_id=str(user_id))
        return record

    async def list_matches(self, user_id: uuid.UUID) -> list[MatchRecord]:
        return await self.matches.list_for_user(user_id, active_only=True)

    async def match_stats(self, user_id: uuid.UUID) -> dict[str, Any]:
        """Totals, type breakdown, average score and top shared interests."""
        active = await self.matches.list_for_user(user_id, active_only=True)

        types = Counter(m.match_type for m in active)
        interests: Counter[str] = Counter()
        for m in active:
            interests.update(m.mutual_interests)

        average = sum(m.match_score for m in active) / len(active) if active else 0.0
        return {
            "total_matches": len(active),
            "match_types": dict(types),
            "average_match_score": round(average, 2),
            "top_mutual_interests": [
                {"interest": name, "count": count}
                for name, count in interests.most_common(self.TOP_INTERESTS_LIMIT)
            ],
        }

    async def record_message_activity(
        self, match_id: uuid.UUID, now: datetime | None = None
    ) -> MatchRecord:
        """Stamp ``last_message_at``; called by the chat collaborator."""
        match = await self.matches.find_by_id(match_id)
        if match is None:
            raise NotFoundError(f"Match {match_id} not found.", match_id=str(match_id))
        return await self.matches.touch_last_message(match_id, now or utcnow())

    # ── Helpers ───────────────────────────────────────────────────────────

    async def _require_profile(self, user_id: uuid.UUID, label: str) -> Profile:
        profile = await self.profiles.find_by_id(user_id)
        if profile is None:
            raise NotFoundError(f"{label} ({user_id}) not found.", user_id=str(user_id))
        return profile

    async def _reswiped_since_unmatch(
        self,
        match: MatchRecord,
        actor_id: uuid.UUID,
        target_id: uuid.UUID,
        now: datetime,
    ) -> bool:
        """Both directions must hold a swipe recorded after the unmatch."""
        if match.unmatched_at is None:
            return True
        for swiper_id, swiped_id in ((actor_id, target_id), (target_id, actor_id)):
            swipe = await self.ledger.get_swipe(swiper_id, swiped_id, now)
            if swipe is None or swipe.created_at <= match.unmatched_at:
                return False
        return True

    async def _require_match(self, match_id: uuid.UUID, user_id: uuid.UUID) -> MatchRecord:
        match = await self.matches.find_by_id(match_id)
        if match is None or not match.involves(user_id):
            raise NotFoundError(f"Match {match_id} not found.", match_id=str(match_id))
        return match
