"""Unit tests for CandidateSelector — exclusions, filters and geo constraint."""
import uuid
from datetime import date, timedelta

import pytest

from mergemates.errors import ProfileIncompleteError
from mergemates.schemas.profile import Preferences
from mergemates.services.candidate_service import CandidateSelector
from tests.factories import BLR_LAT, BLR_LON, NOW, dob_for_age, make_profile


@pytest.fixture
def selector(profile_store, ledger):
    return CandidateSelector(profile_store, ledger)


class TestProfileGate:
    @pytest.mark.asyncio
    async def test_incomplete_profile_rejected_before_query(self, selector, profile_store):
        actor = profile_store.add(make_profile(profile_completion=55))

        with pytest.raises(ProfileIncompleteError) as exc_info:
            await selector.select_candidates(actor, NOW)

        assert exc_info.value.detail["profile_completion"] == 55
        assert exc_info.value.detail["required_completion"] == 70
        assert profile_store.queries == []

    @pytest.mark.asyncio
    async def test_complete_flag_required(self, selector, profile_store):
        actor = profile_store.add(make_profile(profile_complete=False))
        with pytest.raises(ProfileIncompleteError):
            await selector.select_candidates(actor, NOW)


class TestExclusions:
    """Self and swiped targets never appear."""

    @pytest.mark.asyncio
    async def test_actor_never_in_own_list(self, selector, profile_store):
        actor = profile_store.add(make_profile())
        other = profile_store.add(make_profile())

        result = await selector.select_candidates(actor, NOW)
        assert [p.id for p in result] == [other.id]

    @pytest.mark.asyncio
    async def test_swiped_targets_excluded_for_any_action(self, selector, profile_store, ledger):
        actor = profile_store.add(make_profile())
        liked = profile_store.add(make_profile())
        passed = profile_store.add(make_profile())
        fresh = profile_store.add(make_profile())

        await ledger.record_swipe(actor.id, liked.id, "like", NOW)
        await ledger.record_swipe(actor.id, passed.id, "pass", NOW)

        result = await selector.select_candidates(actor, NOW)
        assert {p.id for p in result} == {fresh.id}

    @pytest.mark.asyncio
    async def test_empty_result_is_not_an_error(self, selector, profile_store):
        actor = profile_store.add(make_profile())
        assert await selector.select_candidates(actor, NOW) == []

    @pytest.mark.asyncio
    async def test_updates_last_active(self, selector, profile_store):
        actor = profile_store.add(make_profile())
        await selector.select_candidates(actor, NOW)
        assert profile_store.last_active_updates == [actor.id]
        assert profile_store.profiles[actor.id].last_active == NOW


class TestFilters:
    @pytest.mark.asyncio
    async def test_unverified_and_incomplete_targets_skipped(self, selector, profile_store):
        actor = profile_store.add(make_profile())
        profile_store.add(make_profile(is_verified=False))
        profile_store.add(make_profile(profile_complete=False))
        ok = profile_store.add(make_profile())

        result = await selector.select_candidates(actor, NOW)
        assert [p.id for p in result] == [ok.id]

    @pytest.mark.asyncio
    async def test_preference_filters(self, selector, profile_store):
        actor = profile_store.add(
            make_profile(
                preferences=Preferences(
                    genders=["female"],
                    professions=["designer"],
                    religions=["hindu"],
                )
            )
        )
        match = profile_store.add(make_profile(gender="female", profession="designer", religion="hindu"))
        profile_store.add(make_profile(gender="male", profession="designer", religion="hindu"))
        profile_store.add(make_profile(gender="female", profession="teacher", religion="hindu"))
        profile_store.add(make_profile(gender="female", profession="designer", religion="sikh"))

        result = await selector.select_candidates(actor, NOW)
        assert [p.id for p in result] == [match.id]

    @pytest.mark.asyncio
    async def test_religion_wildcard_disables_filter(self, selector, profile_store):
        actor = profile_store.add(make_profile(preferences=Preferences(religions=["Any"])))
        profile_store.add(make_profile(religion="hindu"))
        profile_store.add(make_profile(religion=None))

        result = await selector.select_candidates(actor, NOW)
        assert len(result) == 2
        assert profile_store.queries[0].religions is None

    @pytest.mark.asyncio
    async def test_age_range_by_birth_date(self, selector, profile_store):
        actor = profile_store.add(make_profile(preferences=Preferences(age_min=25, age_max=30)))
        inside = profile_store.add(make_profile(date_of_birth=dob_for_age(30)))
        profile_store.add(make_profile(date_of_birth=dob_for_age(31)))
        profile_store.add(make_profile(date_of_birth=dob_for_age(24)))
        stored_age = profile_store.add(make_profile(age=26))

        result = await selector.select_candidates(actor, NOW)
        assert {p.id for p in result} == {inside.id, stored_age.id}


class TestBuildCriteria:
    def test_birth_date_bounds_are_inclusive_on_birthdays(self, selector):
        actor = make_profile(preferences=Preferences(age_min=25, age_max=30))
        criteria = selector.build_criteria(actor, set(), NOW)

        today = NOW.date()
        # Turns 31 tomorrow -> still 30 today.
        assert criteria.born_on_or_after == date(today.year - 31, today.month, today.day) + timedelta(days=1)
        # 25th birthday today.
        assert criteria.born_on_or_before == date(today.year - 25, today.month, today.day)

    def test_exclusions_always_contain_actor(self, selector):
        actor = make_profile()
        other = uuid.uuid4()
        criteria = selector.build_criteria(actor, {other}, NOW)
        assert criteria.exclude_ids == {actor.id, other}

    def test_geo_constraint_uses_default_distance(self, selector):
        actor = make_profile(latitude=BLR_LAT, longitude=BLR_LON)
        criteria = selector.build_criteria(actor, set(), NOW)
        assert criteria.near.max_distance_km == 50

    def test_geo_constraint_honours_explicit_distance(self, selector):
        actor = make_profile(
            latitude=BLR_LAT,
            longitude=BLR_LON,
            preferences=Preferences(max_distance_km=0.5),
        )
        criteria = selector.build_criteria(actor, set(), NOW)
        assert criteria.near.max_distance_km == 0.5

    def test_no_coordinates_no_geo_constraint(self, selector):
        assert selector.build_criteria(make_profile(), set(), NOW).near is None


class TestGeoAndOrdering:
    @pytest.mark.asyncio
    async def test_nearest_first_within_radius(self, selector, profile_store):
        actor = profile_store.add(
            make_profile(
                latitude=BLR_LAT,
                longitude=BLR_LON,
                preferences=Preferences(max_distance_km=25),
            )
        )
        far = profile_store.add(make_profile(latitude=BLR_LAT + 0.2, longitude=BLR_LON))   # ~22 km
        near = profile_store.add(make_profile(latitude=BLR_LAT + 0.05, longitude=BLR_LON))  # ~5.5 km
        profile_store.add(make_profile(latitude=BLR_LAT + 1.0, longitude=BLR_LON))         # ~111 km
        profile_store.add(make_profile())                                                   # no coordinates

        rows = await selector.select_rows(actor, NOW)
        assert [r.profile.id for r in rows] == [near.id, far.id]
        assert rows[0].distance_km == pytest.approx(5.56, abs=0.1)

    @pytest.mark.asyncio
    async def test_recency_order_without_coordinates(self, selector, profile_store):
        actor = profile_store.add(make_profile())
        stale = profile_store.add(make_profile(last_active=NOW - timedelta(days=5)))
        recent = profile_store.add(make_profile(last_active=NOW - timedelta(minutes=5)))

        result = await selector.select_candidates(actor, NOW)
        assert [p.id for p in result] == [recent.id, stale.id]

    @pytest.mark.asyncio
    async def test_cap_by_tier(self, selector, profile_store):
        selector.limit_free = 3
        selector.limit_premium = 5
        free = profile_store.add(make_profile())
        premium = profile_store.add(make_profile(is_premium=True))
        for _ in range(10):
            profile_store.add(make_profile())

        assert len(await selector.select_candidates(free, NOW)) == 3
        assert len(await selector.select_candidates(premium, NOW)) == 5
