from pydantic import BaseModel, Field, field_validator
from uuid import UUID
from datetime import datetime
from typing import Literal, Optional, Union

from mergemates.utils.timeutils import as_utc

SwipeActionLiteral = Literal["like", "pass", "superlike"]
Remaining = Union[int, Literal["unlimited"]]


# ── Store records ─────────────────────────────────────────────────────────────

class SwipeRecord(BaseModel):
    id: UUID
    swiper_id: UUID
    target_id: UUID
    action: str
    created_at: datetime

    model_config = {"from_attributes": True}

    @field_validator("created_at")
    @classmethod
    def _aware(cls, v: datetime) -> datetime:
        return as_utc(v)


class MatchRecord(BaseModel):
    id: UUID
    user_a_id: UUID
    user_b_id: UUID
    initiator_id: UUID
    match_type: str = "regular"
    match_score: int = 0
    mutual_interests: list[str] = []
    is_active: bool = True
    matched_at: datetime
    last_message_at: Optional[datetime] = None
    unmatched_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    @field_validator("mutual_interests", mode="before")
    @classmethod
    def _none_to_empty(cls, v):
        return [] if v is None else v

    @field_validator("matched_at", "last_message_at", "unmatched_at")
    @classmethod
    def _aware(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)

    def involves(self, user_id: UUID) -> bool:
        return user_id in (self.user_a_id, self.user_b_id)

    def other_user_id(self, user_id: UUID) -> UUID:
        return self.user_b_id if self.user_a_id == user_id else self.user_a_id


# ── API payloads ──────────────────────────────────────────────────────────────

class SwipeCreate(BaseModel):
    action: SwipeActionLiteral = "like"


class MatchedWith(BaseModel):
    user_id: UUID
    first_name: str
    last_name: Optional[str] = None
    photo_url: Optional[str] = None


class MatchSummary(BaseModel):
    match_id: UUID
    matched_with: MatchedWith
    match_type: str
    match_score: int
    mutual_interests: list[str] = []
    is_new_match: bool = True


class SwipeResponse(BaseModel):
    status: Literal["recorded", "matched"]
    message: str
    match: Optional[MatchSummary] = None
    remaining: Remaining = "unlimited"


class FeedCandidate(BaseModel):
    user_id: UUID
    first_name: str
    last_name: Optional[str] = None
    age: Optional[int] = None
    gender: Optional[str] = None
    profession: Optional[str] = None
    skills: list[str] = []
    city: Optional[str] = None
    is_verified: bool = False
    primary_photo: Optional[str] = None
    distance_km: Optional[float] = None
    compatibility_score: int = Field(ge=0, le=100)


class FeedResponse(BaseModel):
    data: list[FeedCandidate]
    remaining: Remaining
    algorithm: Literal["advanced", "basic"]
    total_found: int


class MatchListItem(BaseModel):
    match_id: UUID
    other_user_id: UUID
    other_user_name: str
    photo_url: Optional[str] = None
    match_type: str
    match_score: int
    mutual_interests: list[str] = []
    matched_at: datetime
    last_message_at: Optional[datetime] = None


class SwipeCounts(BaseModel):
    likes: int = 0
    passes: int = 0
    superlikes: int = 0


class FeedStatsResponse(BaseModel):
    swipes_sent: SwipeCounts
    swipes_received: SwipeCounts
    match_rate: int
    match_count: int
    daily_swipes_remaining: Remaining
    is_verified: bool
    profile_completion: int


class InterestCount(BaseModel):
    interest: str
    count: int


class MatchStatsResponse(BaseModel):
    total_matches: int
    match_types: dict[str, int]
    average_match_score: float
    top_mutual_interests: list[InterestCount]
