"""
MergeMates — User model (profile attributes used for scoring and filtering).
"""

import uuid
from datetime import date, datetime

from sqlalchemy import Boolean, Date, DateTime, Float, Index, Integer, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from mergemates.database import Base, JSONType


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        Index("ix_users_last_active", "last_active"),
        Index("ix_users_lat_lon", "latitude", "longitude"),
        Index("ix_users_profession", "profession"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    email: Mapped[str] = mapped_column(
        String, unique=True, index=True, nullable=False
    )
    first_name: Mapped[str] = mapped_column(String, nullable=False)
    last_name: Mapped[str | None] = mapped_column(String, nullable=True)
    date_of_birth: Mapped[date | None] = mapped_column(Date, nullable=True)
    age: Mapped[int | None] = mapped_column(Integer, nullable=True)
    gender: Mapped[str | None] = mapped_column(String, nullable=True)
    religion: Mapped[str | None] = mapped_column(String, nullable=True)
    profession: Mapped[str | None] = mapped_column(String, nullable=True)
    education_level: Mapped[str | None] = mapped_column(String, nullable=True)
    skills: Mapped[list | None] = mapped_column(JSONType, nullable=True)
    interests: Mapped[list | None] = mapped_column(JSONType, nullable=True)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)

    # ── Location ───────────────────────────────────────────────────
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    city: Mapped[str | None] = mapped_column(String, nullable=True)
    state: Mapped[str | None] = mapped_column(String, nullable=True)
    country: Mapped[str | None] = mapped_column(String, nullable=True)

    # ── Account status ─────────────────────────────────────────────
    is_verified: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false", nullable=False
    )
    is_premium: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false", nullable=False
    )
    membership_type: Mapped[str] = mapped_column(
        String, default="free", server_default="free", nullable=False,
        comment="free / gold / platinum",
    )
    preferences: Mapped[dict | None] = mapped_column(
        JSONType, nullable=True,
        comment="age_min, age_max, genders, religions, professions, max_distance_km",
    )
    photos: Mapped[list | None] = mapped_column(
        JSONType, nullable=True, comment="Array of {url, is_primary}"
    )
    profile_completion: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0", nullable=False
    )
    profile_complete: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false", nullable=False
    )
    last_active: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default="true", nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), onupdate=func.now(), nullable=True
    )

    def __repr__(self) -> str:
        return f"<User {self.email!r} id={self.id}>"
