"""
MergeMates — Users API

Minimal profile-store CRUD.  Age and profile completion are recomputed on
every write.
"""

from __future__ import annotations

import uuid

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mergemates.database import get_db
from mergemates.models.user import User
from mergemates.schemas.user import UserCreate, UserResponse, UserUpdate
from mergemates.services.profile_service import apply_profile_derivations
from mergemates.utils.timeutils import utcnow

logger = structlog.get_logger("mergemates.api.users")

router = APIRouter()


async def _get_user_or_404(db: AsyncSession, user_id: uuid.UUID, log) -> User:
    user = await db.get(User, user_id)
    if user is None:
        log.warning("user_not_found")
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User {user_id} not found.",
        )
    return user


# ──────────────────────────────────────────────────────────────────────────────
# POST / - Create a new user
# ──────────────────────────────────────────────────────────────────────────────

@router.post(
    "/",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new user",
)
async def create_user(
    payload: UserCreate,
    db: AsyncSession = Depends(get_db),
) -> User:
    """Register a new user profile.

    Validates that the email is not already in use, derives age and
    completion, and returns the stored profile.
    """
    log = logger.bind(email=payload.email)
    log.info("create_user_start")

    stmt = select(User).where(User.email == payload.email)
    existing = (await db.execute(stmt)).scalar_one_or_none()
    if existing is not None:
        log.warning("create_user_duplicate_email")
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A user with this email already exists.",
        )

    now = utcnow()
    new_user = User(
        **payload.model_dump(exclude={"preferences", "photos"}),
        preferences=payload.preferences.model_dump(exclude_none=True),
        photos=[p.model_dump() for p in payload.photos],
        last_active=now,
        created_at=now,
        updated_at=now,
    )
    apply_profile_derivations(new_user, now.date())
    db.add(new_user)
    await db.flush()

    log.info(
        "create_user_complete",
        user_id=str(new_user.id),
        profile_completion=new_user.profile_completion,
    )
    return new_user


# ──────────────────────────────────────────────────────────────────────────────
# GET /{user_id} - Get user by ID
# ──────────────────────────────────────────────────────────────────────────────

@router.get(
    "/{user_id}",
    response_model=UserResponse,
    summary="Get user by ID",
)
async def get_user(
    user_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> User:
    """Retrieve a single user by their UUID."""
    log = logger.bind(user_id=str(user_id))
    log.info("get_user")
    return await _get_user_or_404(db, user_id, log)


# ──────────────────────────────────────────────────────────────────────────────
# PUT /{user_id} - Update user
# ──────────────────────────────────────────────────────────────────────────────

@router.put(
    "/{user_id}",
    response_model=UserResponse,
    summary="Update user details",
)
async def update_user(
    user_id: uuid.UUID,
    payload: UserUpdate,
    db: AsyncSession = Depends(get_db),
) -> User:
    """Update mutable fields on a user record.

    Only fields present in the request body are applied.
    """
    log = logger.bind(user_id=str(user_id))
    log.info("update_user_start")

    user = await _get_user_or_404(db, user_id, log)

    update_data = payload.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        if field == "preferences" and value is not None:
            value = payload.preferences.model_dump(exclude_none=True)
        elif field == "photos" and value is not None:
            value = [p.model_dump() for p in payload.photos]
        setattr(user, field, value)

    if "is_premium" in update_data:
        user.membership_type = "gold" if user.is_premium else "free"

    now = utcnow()
    apply_profile_derivations(user, now.date())
    user.updated_at = now
    await db.flush()

    log.info(
        "update_user_complete",
        updated_fields=list(update_data.keys()),
        profile_completion=user.profile_completion,
    )
    return user
