"""
MergeMates — SQLAlchemy adapters for the store ports.

Each adapter wraps a request-scoped ``AsyncSession``; committing is left to
the caller (``get_db`` commits once the request succeeds).  Inserts that can
race on a unique pair run inside a SAVEPOINT so the uniqueness violation can
be recovered without discarding the surrounding transaction.
"""

from __future__ import annotations

import functools
import math
import uuid
from datetime import datetime

import structlog
from sqlalchemy import and_, delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession

from mergemates.errors import ConflictError, NotFoundError, TransientStoreError
from mergemates.models.match import Match, Swipe
from mergemates.models.user import User
from mergemates.schemas.match import MatchRecord, SwipeRecord
from mergemates.schemas.profile import Profile
from mergemates.stores.base import CandidateCriteria, CandidateRow, canonical_pair
from mergemates.utils.geo import bounding_box, haversine_km

logger = structlog.get_logger("mergemates.stores.sql")


def translate_store_errors(func):
    """Re-raise connectivity failures as ``TransientStoreError``."""

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except (OperationalError, InterfaceError, PoolTimeoutError) as exc:
            logger.warning(
                "store_unavailable",
                operation=func.__qualname__,
                error=str(exc),
            )
            raise TransientStoreError(operation=func.__qualname__) from exc

    return wrapper


class _SqlStore:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def _insert(self, obj) -> None:
        """Add ``obj`` inside a SAVEPOINT; ``ConflictError`` on a unique clash."""
        try:
            async with self.session.begin_nested():
                self.session.add(obj)
        except IntegrityError as exc:
            raise ConflictError(
                f"{type(obj).__name__} already exists", table=obj.__tablename__
            ) from exc


# ──────────────────────────────────────────────────────────────────────────────
# Profiles
# ──────────────────────────────────────────────────────────────────────────────

class SqlProfileStore(_SqlStore):
    # Rows fetched per requested candidate before the exact distance filter.
    GEO_OVERFETCH: int = 4

    @translate_store_errors
    async def find_by_id(self, user_id: uuid.UUID) -> Profile | None:
        user = await self.session.get(User, user_id)
        if user is None or not user.is_active:
            return None
        return Profile.model_validate(user)

    @translate_store_errors
    async def find_candidates(
        self, criteria: CandidateCriteria, limit: int
    ) -> list[CandidateRow]:
        stmt = select(User).where(User.is_active.is_(True))

        if criteria.exclude_ids:
            stmt = stmt.where(User.id.not_in(list(criteria.exclude_ids)))
        if criteria.require_verified:
            stmt = stmt.where(User.is_verified.is_(True))
        if criteria.require_complete:
            stmt = stmt.where(User.profile_complete.is_(True))
        if criteria.genders:
            stmt = stmt.where(User.gender.in_(criteria.genders))
        if criteria.professions:
            stmt = stmt.where(User.profession.in_(criteria.professions))
        if criteria.religions:
            stmt = stmt.where(User.religion.in_(criteria.religions))

        age_clause = self._age_clause(criteria)
        if age_clause is not None:
            stmt = stmt.where(age_clause)

        near = criteria.near
        if near is None:
            stmt = stmt.order_by(User.last_active.desc().nulls_last()).limit(limit)
            users = (await self.session.execute(stmt)).scalars().all()
            return [CandidateRow(profile=Profile.model_validate(u)) for u in users]

        min_lat, max_lat, min_lon, max_lon = bounding_box(
            near.latitude, near.longitude, near.max_distance_km
        )
        stmt = stmt.where(
            User.latitude.is_not(None),
            User.longitude.is_not(None),
            User.latitude.between(min_lat, max_lat),
        )
        if min_lon is not None:
            stmt = stmt.where(User.longitude.between(min_lon, max_lon))

        # Planar distance in degrees, longitude scaled by cos(latitude). Close
        # enough to pick the nearest rows; haversine below decides the rest.
        d_lat = User.latitude - near.latitude
        d_lon = (User.longitude - near.longitude) * math.cos(math.radians(near.latitude))
        stmt = stmt.order_by(d_lat * d_lat + d_lon * d_lon).limit(limit * self.GEO_OVERFETCH)

        users = (await self.session.execute(stmt)).scalars().all()

        rows: list[CandidateRow] = []
        for user in users:
            distance = haversine_km(
                near.latitude, near.longitude, user.latitude, user.longitude
            )
            if distance <= near.max_distance_km:
                rows.append(
                    CandidateRow(profile=Profile.model_validate(user), distance_km=distance)
                )

        rows.sort(key=lambda row: row.distance_km)
        return rows[:limit]

    @staticmethod
    def _age_clause(criteria: CandidateCriteria):
        dob_conditions = []
        if criteria.born_on_or_after is not None:
            dob_conditions.append(User.date_of_birth >= criteria.born_on_or_after)
        if criteria.born_on_or_before is not None:
            dob_conditions.append(User.date_of_birth <= criteria.born_on_or_before)

        age_conditions = []
        if criteria.min_age is not None:
            age_conditions.append(User.age >= criteria.min_age)
        if criteria.max_age is not None:
            age_conditions.append(User.age <= criteria.max_age)

        if not dob_conditions and not age_conditions:
            return None

        # Targets without a birth date fall back to the stored age.
        return or_(
            and_(User.date_of_birth.is_not(None), *dob_conditions),
            and_(User.date_of_birth.is_(None), User.age.is_not(None), *age_conditions),
        )

    @translate_store_errors
    async def update_last_active(self, user_id: uuid.UUID, now: datetime) -> None:
        stmt = (
            update(User)
            .where(User.id == user_id)
            .values(last_active=now)
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(stmt)


# ──────────────────────────────────────────────────────────────────────────────
# Swipes
# ──────────────────────────────────────────────────────────────────────────────

class SqlSwipeStore(_SqlStore):

    @staticmethod
    def pair_lock_statement(user_x: uuid.UUID, user_y: uuid.UUID):
        # Both user rows, locked in id order so opposite swipes cannot deadlock.
        return (
            select(User.id)
            .where(User.id.in_(list(canonical_pair(user_x, user_y))))
            .order_by(User.id)
            .with_for_update()
        )

    @translate_store_errors
    async def lock_pair(self, user_x: uuid.UUID, user_y: uuid.UUID) -> None:
        await self.session.execute(self.pair_lock_statement(user_x, user_y))

    async def _get(self, swiper_id: uuid.UUID, target_id: uuid.UUID) -> Swipe | None:
        stmt = select(Swipe).where(
            Swipe.swiper_id == swiper_id,
            Swipe.target_id == target_id,
        )
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def _overwrite(self, swipe: Swipe, action: str, now: datetime) -> SwipeRecord:
        swipe.action = action
        swipe.created_at = now
        await self.session.flush()
        return SwipeRecord.model_validate(swipe)

    @translate_store_errors
    async def upsert(
        self, swiper_id: uuid.UUID, target_id: uuid.UUID, action: str, now: datetime
    ) -> SwipeRecord:
        existing = await self._get(swiper_id, target_id)
        if existing is not None:
            return await self._overwrite(existing, action, now)

        swipe = Swipe(
            swiper_id=swiper_id,
            target_id=target_id,
            action=action,
            created_at=now,
        )
        try:
            await self._insert(swipe)
        except ConflictError:
            # A concurrent request inserted the row first; last write wins.
            logger.info(
                "swipe_insert_conflict",
                swiper_id=str(swiper_id),
                target_id=str(target_id),
            )
            existing = await self._get(swiper_id, target_id)
            if existing is None:
                raise TransientStoreError(operation="swipe_upsert")
            return await self._overwrite(existing, action, now)

        return SwipeRecord.model_validate(swipe)

    @translate_store_errors
    async def find_one(
        self, swiper_id: uuid.UUID, target_id: uuid.UUID, since: datetime | None = None
    ) -> SwipeRecord | None:
        stmt = select(Swipe).where(
            Swipe.swiper_id == swiper_id,
            Swipe.target_id == target_id,
        )
        if since is not None:
            stmt = stmt.where(Swipe.created_at >= since)
        swipe = (await self.session.execute(stmt)).scalar_one_or_none()
        return SwipeRecord.model_validate(swipe) if swipe is not None else None

    @translate_store_errors
    async def distinct_targets(
        self, swiper_id: uuid.UUID, since: datetime | None = None
    ) -> set[uuid.UUID]:
        stmt = select(Swipe.target_id).where(Swipe.swiper_id == swiper_id).distinct()
        if since is not None:
            stmt = stmt.where(Swipe.created_at >= since)
        return set((await self.session.execute(stmt)).scalars().all())

    @translate_store_errors
    async def count_by_action(
        self, user_id: uuid.UUID, direction: str, since: datetime | None = None
    ) -> dict[str, int]:
        column = Swipe.swiper_id if direction == "sent" else Swipe.target_id
        stmt = (
            select(Swipe.action, func.count())
            .where(column == user_id)
            .group_by(Swipe.action)
        )
        if since is not None:
            stmt = stmt.where(Swipe.created_at >= since)
        result = await self.session.execute(stmt)
        return {action: count for action, count in result.all()}

    @translate_store_errors
    async def delete_older_than(self, cutoff: datetime) -> int:
        result = await self.session.execute(
            delete(Swipe).where(Swipe.created_at < cutoff)
        )
        return result.rowcount or 0


# ──────────────────────────────────────────────────────────────────────────────
# Matches
# ──────────────────────────────────────────────────────────────────────────────

class SqlMatchStore(_SqlStore):

    async def _get(self, match_id: uuid.UUID) -> Match:
        match = await self.session.get(Match, match_id)
        if match is None:
            raise NotFoundError(f"Match {match_id} not found.", match_id=str(match_id))
        return match

    @translate_store_errors
    async def find_by_pair(
        self, user_x: uuid.UUID, user_y: uuid.UUID
    ) -> MatchRecord | None:
        stmt = select(Match).where(
            or_(
                (Match.user_a_id == user_x) & (Match.user_b_id == user_y),
                (Match.user_a_id == user_y) & (Match.user_b_id == user_x),
            )
        )
        match = (await self.session.execute(stmt)).scalars().first()
        return MatchRecord.model_validate(match) if match is not None else None

    @translate_store_errors
    async def find_by_id(self, match_id: uuid.UUID) -> MatchRecord | None:
        match = await self.session.get(Match, match_id)
        return MatchRecord.model_validate(match) if match is not None else None

    @translate_store_errors
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
        user_a_id, user_b_id = canonical_pair(user_x, user_y)
        match = Match(
            user_a_id=user_a_id,
            user_b_id=user_b_id,
            initiator_id=initiator_id,
            match_type=match_type,
            match_score=match_score,
            mutual_interests=list(mutual_interests),
            is_active=True,
            matched_at=now,
            last_message_at=None,
            unmatched_at=None,
            created_at=now,
            updated_at=now,
        )
        try:
            await self._insert(match)
        except ConflictError:
            existing = await self.find_by_pair(user_a_id, user_b_id)
            if existing is None:
                raise TransientStoreError(operation="match_create")
            logger.info(
                "match_insert_conflict_recovered",
                match_id=str(existing.id),
            )
            return existing, False

        return MatchRecord.model_validate(match), True

    @translate_store_errors
    async def set_active(
        self, match_id: uuid.UUID, active: bool, now: datetime | None = None
    ) -> MatchRecord:
        match = await self._get(match_id)
        match.is_active = active
        if now is not None:
            match.updated_at = now
            if active:
                match.matched_at = now
                match.unmatched_at = None
            else:
                match.unmatched_at = now
        await self.session.flush()
        return MatchRecord.model_validate(match)

    @translate_store_errors
    async def list_for_user(
        self, user_id: uuid.UUID, active_only: bool = True
    ) -> list[MatchRecord]:
        stmt = select(Match).where(
            or_(Match.user_a_id == user_id, Match.user_b_id == user_id)
        )
        if active_only:
            stmt = stmt.where(Match.is_active.is_(True))
        stmt = stmt.order_by(
            Match.last_message_at.desc().nulls_last(),
            Match.matched_at.desc(),
        )
        matches = (await self.session.execute(stmt)).scalars().all()
        return [MatchRecord.model_validate(m) for m in matches]

    @translate_store_errors
    async def touch_last_message(self, match_id: uuid.UUID, now: datetime) -> MatchRecord:
        match = await self._get(match_id)
        match.last_message_at = now
        match.updated_at = now
        await self.session.flush()
        return MatchRecord.model_validate(match)
