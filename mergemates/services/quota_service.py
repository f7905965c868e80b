"""
MergeMates — Daily swipe quotas.

Quotas are disabled by default (``SWIPE_QUOTA_ENABLED=false``): every call
returns ``"unlimited"`` without touching Redis.  When enabled, swipes and
superlikes are counted in Redis per user and UTC day:

  quota:swipes:<user_id>:<YYYYMMDD>
  quota:superlikes:<user_id>:<YYYYMMDD>

Each key expires two days after its first increment.  The check reads the
counter before incrementing it, so two concurrent swipes from the same user
may over-count by one.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

import structlog
from redis.exceptions import RedisError

from mergemates.config import get_settings
from mergemates.errors import QuotaExceededError, TransientStoreError
from mergemates.schemas.profile import Profile
from mergemates.utils.timeutils import utcnow

logger = structlog.get_logger("mergemates.quota_service")

UNLIMITED = "unlimited"
_KEY_TTL_SECONDS = 2 * 24 * 60 * 60


class QuotaService:
    """Tier-dependent daily swipe and superlike limits backed by Redis."""

    def __init__(self, redis: Any | None = None, enabled: bool | None = None) -> None:
        settings = get_settings()
        self.redis = redis
        self.enabled: bool = settings.SWIPE_QUOTA_ENABLED if enabled is None else enabled
        self.daily_swipe_limit: int = settings.DAILY_SWIPE_LIMIT
        self.superlike_limit_free: int = settings.DAILY_SUPERLIKE_LIMIT
        self.superlike_limit_premium: int = settings.DAILY_SUPERLIKE_LIMIT_PREMIUM

        if self.enabled and self.redis is None:
            raise ValueError("A Redis client is required when swipe quotas are enabled")

    @staticmethod
    def _key(kind: str, user_id, now: datetime) -> str:
        return f"quota:{kind}:{user_id}:{now.strftime('%Y%m%d')}"

    async def _count(self, key: str) -> int:
        try:
            value = await self.redis.get(key)
        except RedisError as exc:
            logger.warning("quota_store_unavailable", key=key, error=str(exc))
            raise TransientStoreError(operation="quota_read") from exc
        return int(value) if value is not None else 0

    async def _consume(self, key: str) -> int:
        try:
            count = await self.redis.incr(key)
            if count == 1:
                await self.redis.expire(key, _KEY_TTL_SECONDS)
        except RedisError as exc:
            logger.warning("quota_store_unavailable", key=key, error=str(exc))
            raise TransientStoreError(operation="quota_write") from exc
        return int(count)

    async def remaining(
        self, profile: Profile, now: datetime | None = None
    ) -> int | str:
        """Swipes left today, or ``"unlimited"``."""
        if not self.enabled or profile.is_premium:
            return UNLIMITED
        now = now or utcnow()
        used = await self._count(self._key("swipes", profile.id, now))
        return max(0, self.daily_swipe_limit - used)

    async def check_and_consume(
        self, profile: Profile, action: str, now: datetime | None = None
    ) -> int | str:
        """Reject the swipe if a limit is reached, otherwise count it.

        Returns
        -------
        int | str
            Swipes left today after this one, or ``"unlimited"``.
        """
        if not self.enabled:
            return UNLIMITED
        now = now or utcnow()
        log = logger.bind(user_id=str(profile.id), action=action)

        if action == "superlike":
            limit = self.superlike_limit_premium if profile.is_premium else self.superlike_limit_free
            superlike_key = self._key("superlikes", profile.id, now)
            if await self._count(superlike_key) >= limit:
                log.info("superlike_limit_reached", limit=limit)
                raise QuotaExceededError(
                    "Daily superlike limit reached.",
                    limit=limit,
                    upgrade_required=not profile.is_premium,
                )

        swipe_key = self._key("swipes", profile.id, now)
        if not profile.is_premium and await self._count(swipe_key) >= self.daily_swipe_limit:
            log.info("swipe_limit_reached", limit=self.daily_swipe_limit)
            raise QuotaExceededError(
                "Daily swipe limit reached. Upgrade to premium for unlimited swipes.",
                limit=self.daily_swipe_limit,
                upgrade_required=True,
            )

        # Both limits pass; count the swipe against each.
        if action == "superlike":
            await self._consume(superlike_key)
        if profile.is_premium:
            return UNLIMITED
        used = await self._consume(swipe_key)
        return max(0, self.daily_swipe_limit - used)
