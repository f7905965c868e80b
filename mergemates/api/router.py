"""
MergeMates — Main API Router

Aggregates all sub-routers under a single prefix so that ``mergemates.main``
can mount the entire API surface with one ``include_router`` call.
"""

from fastapi import APIRouter

from mergemates.api import feed, matches, users

router = APIRouter()

router.include_router(users.router, prefix="/users", tags=["Users"])
router.include_router(feed.router, prefix="/feed", tags=["Feed"])
router.include_router(matches.router, prefix="/matches", tags=["Matches"])
