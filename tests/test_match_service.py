"""Unit tests for MatchEngine — swipe outcomes and match lifecycle."""
import asyncio
import uuid
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from mergemates.errors import NotFoundError, QuotaExceededError, ValidationError
from mergemates.schemas.profile import Preferences
from tests.factories import NOW, make_profile


@pytest.fixture
def alice(profile_store):
    return profile_store.add(
        make_profile(
            first_name="Alice",
            skills=["Python", "React", "Go"],
            preferences=Preferences(age_min=25, age_max=35),
        )
    )


@pytest.fixture
def bob(profile_store):
    return profile_store.add(make_profile(first_name="Bob", age=28, skills=["Python", "Go"]))


class TestSwipeScenarios:
    """Tests for the pair state machine."""

    @pytest.mark.asyncio
    async def test_like_then_pass_creates_no_match(self, engine, ledger, match_store, alice, bob):
        first = await engine.on_swipe(alice.id, bob.id, "like", NOW)
        second = await engine.on_swipe(bob.id, alice.id, "pass", NOW)

        assert first.status == "recorded"
        assert second.status == "recorded"
        assert match_store.matches == {}
        assert await ledger.has_mutual_like(alice.id, bob.id, NOW) is False

    @pytest.mark.asyncio
    async def test_mutual_like_creates_regular_match(self, engine, match_store, alice, bob):
        await engine.on_swipe(alice.id, bob.id, "like", NOW)
        outcome = await engine.on_swipe(bob.id, alice.id, "like", NOW)

        assert outcome.status == "matched"
        assert outcome.is_new_match is True
        assert len(match_store.matches) == 1

        match = outcome.match
        assert match.initiator_id == bob.id
        assert match.match_type == "regular"
        assert {match.user_a_id, match.user_b_id} == {alice.id, bob.id}
        assert match.user_a_id < match.user_b_id

    @pytest.mark.asyncio
    async def test_completing_swipe_sets_initiator(self, engine, alice, bob):
        await engine.on_swipe(bob.id, alice.id, "like", NOW)
        outcome = await engine.on_swipe(alice.id, bob.id, "like", NOW)
        assert outcome.match.initiator_id == alice.id

    @pytest.mark.asyncio
    async def test_earlier_superlike_makes_superlike_match(self, engine, alice, bob):
        await engine.on_swipe(alice.id, bob.id, "superlike", NOW)
        outcome = await engine.on_swipe(bob.id, alice.id, "like", NOW)
        assert outcome.match.match_type == "superlike"

    @pytest.mark.asyncio
    async def test_match_carries_base_score_and_interests(self, engine, scorer, alice, bob):
        await engine.on_swipe(alice.id, bob.id, "like", NOW)
        outcome = await engine.on_swipe(bob.id, alice.id, "like", NOW)

        assert outcome.match.match_score == scorer.score(bob, alice, NOW)
        assert outcome.match.mutual_interests == ["Python", "Go"]

    @pytest.mark.asyncio
    async def test_mutual_interests_capped(self, engine, profile_store):
        skills = [f"lang-{i}" for i in range(9)]
        x = profile_store.add(make_profile(skills=skills))
        y = profile_store.add(make_profile(skills=skills))

        await engine.on_swipe(x.id, y.id, "like", NOW)
        outcome = await engine.on_swipe(y.id, x.id, "like", NOW)
        assert len(outcome.match.mutual_interests) == 5

    @pytest.mark.asyncio
    async def test_pass_returns_without_match_check(self, engine, match_store, alice, bob):
        match_store.find_by_pair = AsyncMock()
        outcome = await engine.on_swipe(alice.id, bob.id, "pass", NOW)

        assert outcome.status == "recorded"
        match_store.find_by_pair.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_relike_on_active_match_is_not_new(self, engine, match_store, alice, bob):
        await engine.on_swipe(alice.id, bob.id, "like", NOW)
        created = await engine.on_swipe(bob.id, alice.id, "like", NOW)
        again = await engine.on_swipe(alice.id, bob.id, "like", NOW + timedelta(minutes=1))

        assert again.status == "matched"
        assert again.is_new_match is False
        assert again.match.id == created.match.id
        assert len(match_store.matches) == 1


class TestValidation:
    @pytest.mark.asyncio
    async def test_invalid_action(self, engine, swipe_store, alice, bob):
        with pytest.raises(ValidationError):
            await engine.on_swipe(alice.id, bob.id, "wink", NOW)
        assert swipe_store.swipes == {}

    @pytest.mark.asyncio
    async def test_self_swipe(self, engine, alice):
        with pytest.raises(ValidationError):
            await engine.on_swipe(alice.id, alice.id, "like", NOW)

    @pytest.mark.asyncio
    async def test_unknown_target(self, engine, swipe_store, alice):
        with pytest.raises(NotFoundError):
            await engine.on_swipe(alice.id, uuid.uuid4(), "like", NOW)
        assert swipe_store.swipes == {}

    @pytest.mark.asyncio
    async def test_quota_rejection_leaves_no_swipe(self, engine, swipe_store, alice, bob):
        engine.quota = AsyncMock()
        engine.quota.check_and_consume.side_effect = QuotaExceededError("Daily swipe limit reached.")

        with pytest.raises(QuotaExceededError):
            await engine.on_swipe(alice.id, bob.id, "like", NOW)
        assert swipe_store.swipes == {}

    @pytest.mark.asyncio
    async def test_remaining_reported(self, engine, alice, bob):
        engine.quota = AsyncMock()
        engine.quota.check_and_consume.return_value = 7

        outcome = await engine.on_swipe(alice.id, bob.id, "like", NOW)
        assert outcome.remaining == 7


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_racing_swipes_create_one_match(self, engine, ledger, match_store, alice, bob):
        """Both sides observe the mutual like before either match insert lands."""
        await ledger.record_swipe(alice.id, bob.id, "like", NOW)
        await ledger.record_swipe(bob.id, alice.id, "like", NOW)

        results = await asyncio.gather(
            engine.on_swipe(alice.id, bob.id, "like", NOW),
            engine.on_swipe(bob.id, alice.id, "like", NOW),
        )

        assert match_store.create_calls == 2
        assert len(match_store.matches) == 1
        assert all(r.status == "matched" for r in results)
        assert sorted(r.is_new_match for r in results) == [False, True]
        assert results[0].match.id == results[1].match.id

    @pytest.mark.asyncio
    async def test_pair_locked_before_swipe_is_written(self, engine, swipe_store, alice, bob):
        await engine.on_swipe(alice.id, bob.id, "like", NOW)
        await engine.on_swipe(bob.id, alice.id, "pass", NOW)

        pair = tuple(sorted((alice.id, bob.id)))
        assert swipe_store.operations == [
            ("lock", pair),
            ("upsert", alice.id, bob.id),
            ("lock", pair),
            ("upsert", bob.id, alice.id),
        ]

    @pytest.mark.asyncio
    async def test_quota_rejection_takes_no_lock(self, engine, swipe_store, alice, bob):
        engine.quota = AsyncMock()
        engine.quota.check_and_consume.side_effect = QuotaExceededError("Daily swipe limit reached.")

        with pytest.raises(QuotaExceededError):
            await engine.on_swipe(alice.id, bob.id, "like", NOW)
        assert swipe_store.operations == []


class TestLifecycle:
    async def _match(self, engine, x, y):
        await engine.on_swipe(x.id, y.id, "like", NOW)
        return (await engine.on_swipe(y.id, x.id, "like", NOW)).match

    @pytest.mark.asyncio
    async def test_unmatch_soft_deletes(self, engine, match_store, alice, bob):
        match = await self._match(engine, alice, bob)
        await engine.unmatch(alice.id, match.id, NOW)

        assert await match_store.find_by_pair(alice.id, bob.id) is not None
        assert await engine.list_matches(alice.id) == []
        assert await engine.list_matches(bob.id) == []

    @pytest.mark.asyncio
    async def test_unmatch_requires_membership(self, engine, profile_store, alice, bob):
        match = await self._match(engine, alice, bob)
        stranger = profile_store.add(make_profile())

        with pytest.raises(NotFoundError):
            await engine.unmatch(stranger.id, match.id, NOW)

    @pytest.mark.asyncio
    async def test_unmatch_unknown_match(self, engine, alice):
        with pytest.raises(NotFoundError):
            await engine.unmatch(alice.id, uuid.uuid4(), NOW)

    @pytest.mark.asyncio
    async def test_one_sided_relike_after_unmatch_stays_recorded(self, engine, match_store, alice, bob):
        match = await self._match(engine, alice, bob)
        await engine.unmatch(bob.id, match.id, NOW + timedelta(hours=1))

        outcome = await engine.on_swipe(alice.id, bob.id, "like", NOW + timedelta(days=1))

        assert outcome.status == "recorded"
        assert outcome.is_new_match is False
        assert (await match_store.find_by_id(match.id)).is_active is False
        assert await engine.list_matches(alice.id) == []

    @pytest.mark.asyncio
    async def test_unmatcher_alone_cannot_revive_match(self, engine, match_store, alice, bob):
        match = await self._match(engine, alice, bob)
        await engine.unmatch(bob.id, match.id, NOW + timedelta(hours=1))

        outcome = await engine.on_swipe(bob.id, alice.id, "like", NOW + timedelta(days=1))

        assert outcome.status == "recorded"
        assert (await match_store.find_by_id(match.id)).is_active is False

    @pytest.mark.asyncio
    async def test_rematch_reactivates_existing_row(self, engine, match_store, alice, bob):
        match = await self._match(engine, alice, bob)
        await engine.unmatch(bob.id, match.id, NOW + timedelta(hours=1))

        first = await engine.on_swipe(alice.id, bob.id, "like", NOW + timedelta(days=1))
        assert first.status == "recorded"

        later = NOW + timedelta(days=2)
        outcome = await engine.on_swipe(bob.id, alice.id, "like", later)

        assert outcome.status == "matched"
        assert outcome.is_new_match is True
        assert outcome.match.id == match.id
        assert outcome.match.is_active is True
        assert outcome.match.matched_at == later
        assert len(match_store.matches) == 1

    @pytest.mark.asyncio
    async def test_list_orders_by_last_message_then_matched_at(self, engine, profile_store, alice):
        peers = [profile_store.add(make_profile()) for _ in range(3)]
        matches = []
        for offset, peer in enumerate(peers):
            await engine.on_swipe(alice.id, peer.id, "like", NOW + timedelta(minutes=offset))
            outcome = await engine.on_swipe(peer.id, alice.id, "like", NOW + timedelta(minutes=offset))
            matches.append(outcome.match)

        await engine.record_message_activity(matches[0].id, NOW + timedelta(hours=1))

        listed = await engine.list_matches(alice.id)
        assert [m.id for m in listed] == [matches[0].id, matches[2].id, matches[1].id]

    @pytest.mark.asyncio
    async def test_message_activity_unknown_match(self, engine):
        with pytest.raises(NotFoundError):
            await engine.record_message_activity(uuid.uuid4(), NOW)

    @pytest.mark.asyncio
    async def test_match_stats(self, engine, profile_store, alice):
        peers = [
            profile_store.add(make_profile(skills=["Python", "Go"])),
            profile_store.add(make_profile(skills=["Python"])),
        ]
        await engine.on_swipe(alice.id, peers[0].id, "superlike", NOW)
        await engine.on_swipe(peers[0].id, alice.id, "like", NOW)
        await engine.on_swipe(alice.id, peers[1].id, "like", NOW)
        await engine.on_swipe(peers[1].id, alice.id, "like", NOW)

        stats = await engine.match_stats(alice.id)
        assert stats["total_matches"] == 2
        assert stats["match_types"] == {"superlike": 1, "regular": 1}
        assert stats["top_mutual_interests"][0] == {"interest": "Python", "count": 2}

    @pytest.mark.asyncio
    async def test_match_stats_empty(self, engine, alice):
        stats = await engine.match_stats(alice.id)
        assert stats == {
            "total_matches": 0,
            "match_types": {},
            "average_match_score": 0.0,
            "top_mutual_interests": [],
        }
