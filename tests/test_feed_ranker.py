"""Unit tests for FeedRanker — ordering, truncation and shuffling."""
import random
from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from mergemates.services.feed_ranker import FeedRanker
from mergemates.services.scoring_service import CompatibilityScorer
from mergemates.stores.base import CandidateRow
from tests.factories import NOW, make_profile

SKILLS = ["Python", "Go", "Rust", "SQL"]


def _no_shuffle():
    rng = MagicMock(spec=random.Random)
    rng.shuffle.side_effect = lambda page: None
    return rng


def _target(overlap: int, **overrides):
    """A target sharing ``overlap`` of the actor's four skills."""
    skills = SKILLS[:overlap] + [f"other-{i}" for i in range(4 - overlap)]
    return make_profile(skills=skills, **overrides)


@pytest.fixture
def actor():
    return make_profile(skills=SKILLS)


@pytest.fixture
def premium_actor():
    return make_profile(skills=SKILLS, is_premium=True)


@pytest.fixture
def ranker():
    return FeedRanker(scorer=CompatibilityScorer(), rng=_no_shuffle())


class TestOrdering:
    """Tests for score ordering before the shuffle."""

    def test_score_descending(self, ranker, premium_actor):
        low, mid, high = _target(1), _target(2), _target(3)
        page = ranker.rank(premium_actor, [low, high, mid], now=NOW)

        assert [i.profile.id for i in page.items] == [high.id, mid.id, low.id]
        assert [i.compatibility_score for i in page.items] == [95, 70, 45]

    def test_tie_broken_by_recent_activity(self, ranker, premium_actor):
        older = _target(2, last_active=NOW - timedelta(hours=5))
        newer = _target(2, last_active=NOW - timedelta(hours=1))
        page = ranker.rank(premium_actor, [older, newer], now=NOW)
        assert [i.profile.id for i in page.items] == [newer.id, older.id]

    def test_free_tier_puts_verified_first(self, ranker, actor):
        unverified = _target(4, is_verified=False)
        verified = _target(1)
        page = ranker.rank(actor, [unverified, verified], now=NOW)

        assert [i.profile.id for i in page.items] == [verified.id, unverified.id]
        assert page.algorithm == "basic"

    def test_premium_ignores_verification(self, ranker, premium_actor):
        unverified = _target(4, is_verified=False)
        verified = _target(1)
        page = ranker.rank(premium_actor, [verified, unverified], now=NOW)

        assert page.items[0].profile.id == unverified.id
        assert page.algorithm == "advanced"


class TestTruncationAndShuffle:
    def test_page_size_by_tier(self, ranker, actor, premium_actor):
        candidates = [_target(i % 5) for i in range(60)]

        free_page = ranker.rank(actor, candidates, now=NOW)
        premium_page = ranker.rank(premium_actor, candidates, now=NOW)

        assert len(free_page.items) == 20
        assert len(premium_page.items) == 50
        assert free_page.total_found == premium_page.total_found == 60

    def test_shuffle_applied_to_truncated_page_only(self, actor):
        rng = _no_shuffle()
        ranker = FeedRanker(scorer=CompatibilityScorer(), rng=rng)
        ranker.rank(actor, [_target(i % 5) for i in range(30)], now=NOW)

        rng.shuffle.assert_called_once()
        (shuffled,), _ = rng.shuffle.call_args
        assert len(shuffled) == 20

    def test_shuffle_keeps_top_candidates(self, premium_actor):
        ranker = FeedRanker(scorer=CompatibilityScorer(), rng=random.Random(7))
        ranker.page_size_premium = 3
        best = [_target(4) for _ in range(3)]
        rest = [_target(1) for _ in range(10)]

        page = ranker.rank(premium_actor, rest + best, now=NOW)
        assert {i.profile.id for i in page.items} == {p.id for p in best}


class TestPageMetadata:
    def test_remaining_passed_through(self, ranker, actor):
        page = ranker.rank(actor, [_target(2)], now=NOW, remaining=12)
        assert page.remaining == 12

    def test_empty_candidates(self, ranker, actor):
        page = ranker.rank(actor, [], now=NOW)
        assert page.items == []
        assert page.total_found == 0

    def test_candidate_rows_carry_distance(self, ranker, actor):
        row = CandidateRow(profile=_target(2, age=29), distance_km=3.14159)
        item = ranker.rank(actor, [row], now=NOW).items[0]
        assert item.distance_km == 3.14
        assert item.age == 29
