"""
MergeMates — Swipe ledger.

One row per ordered (swiper, target) pair with last-write-wins semantics:
re-swiping overwrites both the action and the timestamp.  Swipes expire
after ``SWIPE_RETENTION_DAYS``; every read only considers swipes inside the
retention window, and ``purge_expired`` physically deletes the rest.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta

import structlog

from mergemates.config import get_settings
from mergemates.errors import ValidationError
from mergemates.schemas.match import SwipeRecord
from mergemates.stores.base import SwipeStore
from mergemates.utils.timeutils import utcnow

logger = structlog.get_logger("mergemates.swipe_service")

VALID_ACTIONS: frozenset[str] = frozenset({"like", "pass", "superlike"})
POSITIVE_ACTIONS: frozenset[str] = frozenset({"like", "superlike"})


class SwipeLedger:
    """Records swipes and answers mutual-like queries."""

    def __init__(self, store: SwipeStore, retention_days: int | None = None) -> None:
        self.store = store
        if retention_days is None:
            retention_days = get_settings().SWIPE_RETENTION_DAYS
        self.retention = timedelta(days=retention_days)

    def cutoff(self, now: datetime | None = None) -> datetime:
        """Oldest ``created_at`` still inside the retention window."""
        return (now or utcnow()) - self.retention

    @staticmethod
    def validate(actor_id: uuid.UUID | None, target_id: uuid.UUID | None, action: str) -> None:
        if action not in VALID_ACTIONS:
            raise ValidationError(
                f"Invalid swipe action {action!r}.",
                action=action,
                allowed=sorted(VALID_ACTIONS),
            )
        if actor_id is None or target_id is None:
            raise ValidationError("Both actor and target are required.")
        if actor_id == target_id:
            raise ValidationError("You cannot swipe on yourself.", user_id=str(actor_id))

    async def record_swipe(
        self,
        actor_id: uuid.UUID,
        target_id: uuid.UUID,
        action: str,
        now: datetime | None = None,
    ) -> SwipeRecord:
        """Upsert the swipe for ``(actor_id, target_id)``."""
        self.validate(actor_id, target_id, action)
        now = now or utcnow()

        record = await self.store.upsert(actor_id, target_id, action, now)
        logger.info(
            "swipe_recorded",
            swiper_id=str(actor_id),
            target_id=str(target_id),
            action=action,
        )
        return record

    async def lock_pair(self, user_a: uuid.UUID, user_b: uuid.UUID) -> None:
        """Hold the pair until the surrounding transaction commits.

        A swipe recorded under the lock is visible to the opposite swipe once
        that one acquires it, so two crossing likes always see each other.
        """
        await self.store.lock_pair(user_a, user_b)

    async def get_swipe(
        self,
        actor_id: uuid.UUID,
        target_id: uuid.UUID,
        now: datetime | None = None,
    ) -> SwipeRecord | None:
        return await self.store.find_one(actor_id, target_id, since=self.cutoff(now))

    async def has_mutual_like(
        self,
        user_a: uuid.UUID,
        user_b: uuid.UUID,
        now: datetime | None = None,
    ) -> bool:
        """True when both directions hold a non-expired like or superlike."""
        forward = await self.get_swipe(user_a, user_b, now)
        if forward is None or forward.action not in POSITIVE_ACTIONS:
            return False
        backward = await self.get_swipe(user_b, user_a, now)
        return backward is not None and backward.action in POSITIVE_ACTIONS

    async def excluded_target_ids(
        self, actor_id: uuid.UUID, now: datetime | None = None
    ) -> set[uuid.UUID]:
        """Targets the actor swiped on inside the retention window, plus the actor."""
        swiped = await self.store.distinct_targets(actor_id, since=self.cutoff(now))
        return swiped | {actor_id}

    async def swipe_stats(
        self, user_id: uuid.UUID, now: datetime | None = None
    ) -> dict[str, dict[str, int]]:
        """Counts by action for swipes sent and received."""
        since = self.cutoff(now)
        stats: dict[str, dict[str, int]] = {}
        for direction in ("sent", "received"):
            counts = await self.store.count_by_action(user_id, direction, since=since)
            stats[direction] = {action: counts.get(action, 0) for action in sorted(VALID_ACTIONS)}
        return stats

    async def purge_expired(self, now: datetime | None = None) -> int:
        cutoff = self.cutoff(now)
        deleted = await self.store.delete_older_than(cutoff)
        logger.info("expired_swipes_purged", deleted=deleted, cutoff=cutoff.isoformat())
        return deleted
