"""
MergeMates — Dependency providers for the API routers.

Stores are bound to the request-scoped session from ``get_db``; FastAPI
caches each provider per request, so every store in one request shares the
same session and transaction.
"""

from __future__ import annotations

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from mergemates.cache import get_redis
from mergemates.database import get_db
from mergemates.services.candidate_service import CandidateSelector
from mergemates.services.feed_ranker import FeedRanker
from mergemates.services.feed_service import FeedService
from mergemates.services.match_service import MatchEngine
from mergemates.services.quota_service import QuotaService
from mergemates.services.scoring_service import CompatibilityScorer
from mergemates.services.swipe_service import SwipeLedger
from mergemates.stores.sql import SqlMatchStore, SqlProfileStore, SqlSwipeStore

# ── Service singletons ────────────────────────────────────────────────────────

_scorer: CompatibilityScorer | None = None
_ranker: FeedRanker | None = None


def get_scorer() -> CompatibilityScorer:
    global _scorer
    if _scorer is None:
        _scorer = CompatibilityScorer()
    return _scorer


def get_ranker() -> FeedRanker:
    global _ranker
    if _ranker is None:
        _ranker = FeedRanker(scorer=get_scorer())
    return _ranker


def get_quota_service() -> QuotaService:
    return QuotaService(redis=get_redis())


# ── Request-scoped stores and services ────────────────────────────────────────

def get_profile_store(db: AsyncSession = Depends(get_db)) -> SqlProfileStore:
    return SqlProfileStore(db)


def get_match_store(db: AsyncSession = Depends(get_db)) -> SqlMatchStore:
    return SqlMatchStore(db)


def get_swipe_ledger(db: AsyncSession = Depends(get_db)) -> SwipeLedger:
    return SwipeLedger(SqlSwipeStore(db))


def get_match_engine(
    profiles: SqlProfileStore = Depends(get_profile_store),
    ledger: SwipeLedger = Depends(get_swipe_ledger),
    matches: SqlMatchStore = Depends(get_match_store),
    scorer: CompatibilityScorer = Depends(get_scorer),
    quota: QuotaService = Depends(get_quota_service),
) -> MatchEngine:
    return MatchEngine(profiles, ledger, matches, scorer=scorer, quota=quota)


def get_feed_service(
    profiles: SqlProfileStore = Depends(get_profile_store),
    ledger: SwipeLedger = Depends(get_swipe_ledger),
    matches: SqlMatchStore = Depends(get_match_store),
    ranker: FeedRanker = Depends(get_ranker),
    quota: QuotaService = Depends(get_quota_service),
) -> FeedService:
    return FeedService(
        profiles,
        ledger,
        matches,
        selector=CandidateSelector(profiles, ledger),
        ranker=ranker,
        quota=quota,
    )
