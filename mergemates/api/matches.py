"""
MergeMates — Matches API

Listing, unmatching, statistics and the message-activity hook used by chat.
"""

from __future__ import annotations

import uuid

import structlog
from fastapi import APIRouter, Depends, status

from mergemates.api.deps import get_match_engine, get_profile_store
from mergemates.schemas.match import MatchListItem, MatchStatsResponse
from mergemates.services.match_service import MatchEngine
from mergemates.stores.sql import SqlProfileStore

logger = structlog.get_logger("mergemates.api.matches")

router = APIRouter()


# ──────────────────────────────────────────────────────────────────────────────
# GET /{user_id} - Active matches
# ──────────────────────────────────────────────────────────────────────────────

@router.get(
    "/{user_id}",
    response_model=list[MatchListItem],
    summary="List active matches for a user",
)
async def list_matches(
    user_id: uuid.UUID,
    engine: MatchEngine = Depends(get_match_engine),
    profiles: SqlProfileStore = Depends(get_profile_store),
) -> list[MatchListItem]:
    """Return active matches, most recent conversation first."""
    log = logger.bind(user_id=str(user_id))
    matches = await engine.list_matches(user_id)

    items: list[MatchListItem] = []
    for match in matches:
        other = await profiles.find_by_id(match.other_user_id(user_id))
        if other is None:
            # Deactivated account
            continue
        items.append(
            MatchListItem(
                match_id=match.id,
                other_user_id=other.id,
                other_user_name=" ".join(filter(None, [other.first_name, other.last_name])),
                photo_url=other.primary_photo,
                match_type=match.match_type,
                match_score=match.match_score,
                mutual_interests=match.mutual_interests,
                matched_at=match.matched_at,
                last_message_at=match.last_message_at,
            )
        )

    log.info("list_matches", count=len(items))
    return items


# ──────────────────────────────────────────────────────────────────────────────
# DELETE /{user_id}/{match_id} - Unmatch
# ──────────────────────────────────────────────────────────────────────────────

@router.delete(
    "/{user_id}/{match_id}",
    summary="Unmatch (soft delete)",
)
async def unmatch(
    user_id: uuid.UUID,
    match_id: uuid.UUID,
    engine: MatchEngine = Depends(get_match_engine),
) -> dict:
    await engine.unmatch(user_id, match_id)
    return {"message": "Unmatched successfully", "match_id": str(match_id)}


# ──────────────────────────────────────────────────────────────────────────────
# GET /{user_id}/stats - Match statistics
# ──────────────────────────────────────────────────────────────────────────────

@router.get(
    "/{user_id}/stats",
    response_model=MatchStatsResponse,
    summary="Get match statistics for a user",
)
async def match_stats(
    user_id: uuid.UUID,
    engine: MatchEngine = Depends(get_match_engine),
) -> MatchStatsResponse:
    return MatchStatsResponse(**await engine.match_stats(user_id))


# ──────────────────────────────────────────────────────────────────────────────
# POST /{match_id}/activity - Message activity hook
# ──────────────────────────────────────────────────────────────────────────────

@router.post(
    "/{match_id}/activity",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Record that a message was exchanged in a match",
)
async def record_activity(
    match_id: uuid.UUID,
    engine: MatchEngine = Depends(get_match_engine),
) -> None:
    await engine.record_message_activity(match_id)
