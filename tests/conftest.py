"""Shared pytest fixtures for MergeMates tests."""
import os

import pytest

# No test reaches PostgreSQL or Redis.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SWIPE_QUOTA_ENABLED", "false")

from mergemates.services.match_service import MatchEngine
from mergemates.services.quota_service import QuotaService
from mergemates.services.scoring_service import CompatibilityScorer
from mergemates.services.swipe_service import SwipeLedger
from tests.factories import NOW
from tests.fakes import InMemoryMatchStore, InMemoryProfileStore, InMemorySwipeStore


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def profile_store():
    return InMemoryProfileStore()


@pytest.fixture
def swipe_store():
    return InMemorySwipeStore()


@pytest.fixture
def match_store():
    return InMemoryMatchStore()


@pytest.fixture
def ledger(swipe_store):
    return SwipeLedger(swipe_store, retention_days=30)


@pytest.fixture
def scorer():
    return CompatibilityScorer()


@pytest.fixture
def engine(profile_store, ledger, match_store, scorer):
    return MatchEngine(
        profile_store,
        ledger,
        match_store,
        scorer=scorer,
        quota=QuotaService(enabled=False),
    )
