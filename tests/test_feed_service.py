"""Unit tests for FeedService — feed assembly and swipe statistics."""
import random
import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest

from mergemates.errors import NotFoundError, ProfileIncompleteError, QuotaExceededError
from mergemates.services.candidate_service import CandidateSelector
from mergemates.services.feed_ranker import FeedRanker
from mergemates.services.feed_service import FeedService
from mergemates.services.quota_service import QuotaService
from tests.factories import NOW, make_profile


@pytest.fixture
def quota():
    return QuotaService(enabled=False)


@pytest.fixture
def feed(profile_store, ledger, match_store, scorer, quota):
    rng = MagicMock(spec=random.Random)
    return FeedService(
        profile_store,
        ledger,
        match_store,
        selector=CandidateSelector(profile_store, ledger),
        ranker=FeedRanker(scorer=scorer, rng=rng),
        quota=quota,
    )


class TestGetFeed:
    @pytest.mark.asyncio
    async def test_unknown_actor(self, feed):
        with pytest.raises(NotFoundError):
            await feed.get_feed(uuid.uuid4(), NOW)

    @pytest.mark.asyncio
    async def test_incomplete_actor(self, feed, profile_store):
        actor = profile_store.add(make_profile(profile_completion=40))
        with pytest.raises(ProfileIncompleteError):
            await feed.get_feed(actor.id, NOW)

    @pytest.mark.asyncio
    async def test_exhausted_quota_rejects_before_selection(self, feed, profile_store):
        actor = profile_store.add(make_profile())
        feed.quota = AsyncMock()
        feed.quota.daily_swipe_limit = 50
        feed.quota.remaining.return_value = 0

        with pytest.raises(QuotaExceededError):
            await feed.get_feed(actor.id, NOW)
        assert profile_store.queries == []

    @pytest.mark.asyncio
    async def test_page_excludes_swiped_and_self(self, feed, profile_store, ledger):
        actor = profile_store.add(make_profile(skills=["Python"]))
        swiped = profile_store.add(make_profile(skills=["Python"]))
        fresh = profile_store.add(make_profile(skills=["Python"]))
        await ledger.record_swipe(actor.id, swiped.id, "pass", NOW)

        page = await feed.get_feed(actor.id, NOW)

        assert [i.profile.id for i in page.items] == [fresh.id]
        assert page.total_found == 1
        assert page.remaining == "unlimited"
        assert page.algorithm == "basic"


class TestFeedStats:
    @pytest.mark.asyncio
    async def test_counts_and_match_rate(self, feed, engine, profile_store):
        me = profile_store.add(make_profile())
        peers = [profile_store.add(make_profile()) for _ in range(4)]

        await engine.on_swipe(me.id, peers[0].id, "like", NOW)
        await engine.on_swipe(me.id, peers[1].id, "superlike", NOW)
        await engine.on_swipe(me.id, peers[2].id, "like", NOW)
        await engine.on_swipe(me.id, peers[3].id, "pass", NOW)
        await engine.on_swipe(peers[0].id, me.id, "like", NOW)
        await engine.on_swipe(peers[3].id, me.id, "pass", NOW)

        stats = await feed.feed_stats(me.id, NOW)

        assert stats["swipes_sent"] == {"likes": 2, "passes": 1, "superlikes": 1}
        assert stats["swipes_received"] == {"likes": 1, "passes": 1, "superlikes": 0}
        assert stats["match_rate"] == 33
        assert stats["match_count"] == 1
        assert stats["daily_swipes_remaining"] == "unlimited"
        assert stats["profile_completion"] == 90

    @pytest.mark.asyncio
    async def test_no_likes_sent_gives_zero_rate(self, feed, profile_store):
        me = profile_store.add(make_profile())
        stats = await feed.feed_stats(me.id, NOW)
        assert stats["match_rate"] == 0
        assert stats["match_count"] == 0
