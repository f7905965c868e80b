"""
MergeMates — Feed API

Discovery feed, swipe actions and swipe statistics.
"""

from __future__ import annotations

import uuid

import structlog
from fastapi import APIRouter, Depends, Response, status

from mergemates.api.deps import get_feed_service, get_match_engine
from mergemates.schemas.match import (
    FeedCandidate,
    FeedResponse,
    FeedStatsResponse,
    MatchedWith,
    MatchSummary,
    SwipeCreate,
    SwipeResponse,
)
from mergemates.services.feed_service import FeedService
from mergemates.services.match_service import MatchEngine

logger = structlog.get_logger("mergemates.api.feed")

router = APIRouter()


# ──────────────────────────────────────────────────────────────────────────────
# GET /{user_id} - Ranked discovery page
# ──────────────────────────────────────────────────────────────────────────────

@router.get(
    "/{user_id}",
    response_model=FeedResponse,
    summary="Get the ranked discovery feed",
)
async def get_feed(
    user_id: uuid.UUID,
    feed_service: FeedService = Depends(get_feed_service),
) -> FeedResponse:
    """Return a ranked, shuffled page of candidates for ``user_id``.

    ``total_found`` is the candidate count before the page was truncated.
    """
    page = await feed_service.get_feed(user_id)

    return FeedResponse(
        data=[
            FeedCandidate(
                user_id=item.profile.id,
                first_name=item.profile.first_name,
                last_name=item.profile.last_name,
                age=item.age,
                gender=item.profile.gender,
                profession=item.profile.profession,
                skills=item.profile.skills,
                city=item.profile.city,
                is_verified=item.profile.is_verified,
                primary_photo=item.primary_photo,
                distance_km=item.distance_km,
                compatibility_score=item.compatibility_score,
            )
            for item in page.items
        ],
        remaining=page.remaining,
        algorithm=page.algorithm,
        total_found=page.total_found,
    )


# ──────────────────────────────────────────────────────────────────────────────
# POST /{user_id}/swipe/{target_id} - Record a swipe
# ──────────────────────────────────────────────────────────────────────────────

@router.post(
    "/{user_id}/swipe/{target_id}",
    response_model=SwipeResponse,
    status_code=status.HTTP_200_OK,
    summary="Like, pass or superlike a candidate",
)
async def swipe(
    user_id: uuid.UUID,
    target_id: uuid.UUID,
    payload: SwipeCreate,
    response: Response,
    engine: MatchEngine = Depends(get_match_engine),
) -> SwipeResponse:
    """Record a swipe; responds 201 with match details on a new match."""
    log = logger.bind(user_id=str(user_id), target_id=str(target_id))
    log.info("swipe_request", action=payload.action)

    outcome = await engine.on_swipe(user_id, target_id, payload.action)

    if outcome.status != "matched" or outcome.match is None:
        return SwipeResponse(
            status="recorded",
            message="Swipe recorded successfully",
            remaining=outcome.remaining,
        )

    if outcome.is_new_match:
        response.status_code = status.HTTP_201_CREATED

    target = outcome.target
    match = outcome.match
    return SwipeResponse(
        status="matched",
        message="It's a match!" if outcome.is_new_match else "You are already matched",
        match=MatchSummary(
            match_id=match.id,
            matched_with=MatchedWith(
                user_id=target.id,
                first_name=target.first_name,
                last_name=target.last_name,
                photo_url=target.primary_photo,
            ),
            match_type=match.match_type,
            match_score=match.match_score,
            mutual_interests=match.mutual_interests,
            is_new_match=outcome.is_new_match,
        ),
        remaining=outcome.remaining,
    )


# ──────────────────────────────────────────────────────────────────────────────
# GET /{user_id}/stats - Swipe statistics
# ──────────────────────────────────────────────────────────────────────────────

@router.get(
    "/{user_id}/stats",
    response_model=FeedStatsResponse,
    summary="Get swipe statistics for a user",
)
async def feed_stats(
    user_id: uuid.UUID,
    feed_service: FeedService = Depends(get_feed_service),
) -> FeedStatsResponse:
    stats = await feed_service.feed_stats(user_id)
    return FeedStatsResponse(**stats)
