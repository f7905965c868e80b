from pydantic import BaseModel, Field
from uuid import UUID
from datetime import date, datetime
from typing import Optional

from mergemates.schemas.profile import Photo, Preferences


class UserCreate(BaseModel):
    email: str
    first_name: str
    last_name: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    religion: Optional[str] = None
    profession: Optional[str] = None
    education_level: Optional[str] = None
    skills: list[str] = []
    interests: list[str] = []
    bio: Optional[str] = Field(None, max_length=500)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    preferences: Preferences = Field(default_factory=Preferences)
    photos: list[Photo] = Field(default_factory=list, max_length=5)


class UserUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    religion: Optional[str] = None
    profession: Optional[str] = None
    education_level: Optional[str] = None
    skills: Optional[list[str]] = None
    interests: Optional[list[str]] = None
    bio: Optional[str] = Field(None, max_length=500)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    preferences: Optional[Preferences] = None
    photos: Optional[list[Photo]] = Field(None, max_length=5)
    is_verified: Optional[bool] = None
    is_premium: Optional[bool] = None


class UserResponse(BaseModel):
    id: UUID
    email: str
    first_name: str
    last_name: Optional[str]
    date_of_birth: Optional[date]
    age: Optional[int]
    gender: Optional[str]
    religion: Optional[str]
    profession: Optional[str]
    education_level: Optional[str]
    skills: Optional[list[str]] = []
    city: Optional[str]
    is_verified: bool
    is_premium: bool
    preferences: Optional[Preferences] = None
    photos: Optional[list[Photo]] = []
    profile_completion: int
    profile_complete: bool
    last_active: Optional[datetime]
    created_at: datetime
    is_active: bool

    model_config = {"from_attributes": True}
