from pydantic import BaseModel, Field, field_validator
from uuid import UUID
from datetime import date, datetime
from typing import Optional

from mergemates.utils.timeutils import age_on, as_utc


class Preferences(BaseModel):
    """Per-user discovery preferences. ``None`` means "no preference"."""

    age_min: Optional[int] = Field(None, ge=18, le=100)
    age_max: Optional[int] = Field(None, ge=18, le=100)
    genders: Optional[list[str]] = None
    religions: Optional[list[str]] = None
    professions: Optional[list[str]] = None
    max_distance_km: Optional[float] = Field(None, gt=0, le=500)

    @property
    def has_age_range(self) -> bool:
        return self.age_min is not None or self.age_max is not None

    @property
    def accepts_any_religion(self) -> bool:
        return any(r.strip().lower() == "any" for r in self.religions or [])


class Photo(BaseModel):
    url: str
    is_primary: bool = False


class Profile(BaseModel):
    """Read-only view of a user record as consumed by the matching core."""

    id: UUID
    first_name: str = ""
    last_name: Optional[str] = None
    date_of_birth: Optional[date] = None
    age: Optional[int] = None
    gender: Optional[str] = None
    religion: Optional[str] = None
    profession: Optional[str] = None
    education_level: Optional[str] = None
    skills: list[str] = []
    interests: list[str] = []
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    is_verified: bool = False
    is_premium: bool = False
    preferences: Preferences = Field(default_factory=Preferences)
    photos: list[Photo] = []
    profile_completion: int = 0
    profile_complete: bool = False
    last_active: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    @field_validator("skills", "interests", "photos", mode="before")
    @classmethod
    def _none_to_empty_list(cls, v):
        return [] if v is None else v

    @field_validator("preferences", mode="before")
    @classmethod
    def _none_to_default_preferences(cls, v):
        return {} if v is None else v

    @field_validator("last_active", "updated_at")
    @classmethod
    def _aware_timestamps(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @property
    def primary_photo(self) -> Optional[str]:
        for photo in self.photos:
            if photo.is_primary:
                return photo.url
        return self.photos[0].url if self.photos else None

    def age_at(self, today: date) -> Optional[int]:
        """Age in whole years on ``today``; stored ``age`` if no birth date."""
        if self.date_of_birth is not None:
            return age_on(self.date_of_birth, today)
        return self.age
