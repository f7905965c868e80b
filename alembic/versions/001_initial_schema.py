"""Initial schema — users, swipes and matches.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── 1. users ────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("email", sa.String, unique=True, index=True, nullable=False),
        sa.Column("first_name", sa.String, nullable=False),
        sa.Column("last_name", sa.String, nullable=True),
        sa.Column("date_of_birth", sa.Date, nullable=True),
        sa.Column("age", sa.Integer, nullable=True),
        sa.Column("gender", sa.String, nullable=True),
        sa.Column("religion", sa.String, nullable=True),
        sa.Column("profession", sa.String, nullable=True),
        sa.Column("education_level", sa.String, nullable=True),
        sa.Column("skills", postgresql.JSONB, nullable=True),
        sa.Column("interests", postgresql.JSONB, nullable=True),
        sa.Column("bio", sa.Text, nullable=True),
        sa.Column("latitude", sa.Float, nullable=True),
        sa.Column("longitude", sa.Float, nullable=True),
        sa.Column("city", sa.String, nullable=True),
        sa.Column("state", sa.String, nullable=True),
        sa.Column("country", sa.String, nullable=True),
        sa.Column("is_verified", sa.Boolean, server_default="false", nullable=False),
        sa.Column("is_premium", sa.Boolean, server_default="false", nullable=False),
        sa.Column(
            "membership_type",
            sa.String,
            server_default="free",
            nullable=False,
            comment="free / gold / platinum",
        ),
        sa.Column(
            "preferences",
            postgresql.JSONB,
            nullable=True,
            comment="age_min, age_max, genders, religions, professions, max_distance_km",
        ),
        sa.Column(
            "photos",
            postgresql.JSONB,
            nullable=True,
            comment="Array of {url, is_primary}",
        ),
        sa.Column("profile_completion", sa.Integer, server_default="0", nullable=False),
        sa.Column("profile_complete", sa.Boolean, server_default="false", nullable=False),
        sa.Column("last_active", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_active", sa.Boolean, server_default="true", nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_users_last_active", "users", ["last_active"])
    op.create_index("ix_users_lat_lon", "users", ["latitude", "longitude"])
    op.create_index("ix_users_profession", "users", ["profession"])

    # ── 2. swipes ───────────────────────────────────────────────────
    op.create_table(
        "swipes",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "swiper_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "target_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("action", sa.String, nullable=False, comment="like / pass / superlike"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.UniqueConstraint("swiper_id", "target_id", name="uq_swipe_pair"),
        sa.CheckConstraint("swiper_id != target_id", name="ck_swipe_no_self"),
    )
    op.create_index("ix_swipes_swiper_created", "swipes", ["swiper_id", "created_at"])
    op.create_index("ix_swipes_target_action", "swipes", ["target_id", "action"])

    # ── 3. matches ──────────────────────────────────────────────────
    op.create_table(
        "matches",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "user_a_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "user_b_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "initiator_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "match_type",
            sa.String,
            nullable=False,
            comment="regular / superlike",
        ),
        sa.Column("match_score", sa.Integer, nullable=False),
        sa.Column("mutual_interests", postgresql.JSONB, nullable=True),
        sa.Column("is_active", sa.Boolean, server_default="true", nullable=False),
        sa.Column(
            "matched_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("last_message_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("unmatched_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("user_a_id", "user_b_id", name="uq_match_pair"),
        sa.CheckConstraint("user_a_id != user_b_id", name="ck_match_distinct_users"),
    )
    op.create_index("ix_matches_user_b", "matches", ["user_b_id"])


def downgrade() -> None:
    op.drop_index("ix_matches_user_b", table_name="matches")
    op.drop_table("matches")

    op.drop_index("ix_swipes_target_action", table_name="swipes")
    op.drop_index("ix_swipes_swiper_created", table_name="swipes")
    op.drop_table("swipes")

    op.drop_index("ix_users_profession", table_name="users")
    op.drop_index("ix_users_lat_lon", table_name="users")
    op.drop_index("ix_users_last_active", table_name="users")
    op.drop_table("users")
