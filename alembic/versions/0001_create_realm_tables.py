"""create realm tables

Revision ID: 0001_create_realm_tables
Revises:
Create Date: 2026-10-18 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_create_realm_tables"
down_revision = None
branch_labels = None
depends_on = None


def _json():
    return sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("sl_uuid", sa.String(length=36), nullable=False),
        sa.Column("universe", sa.String(length=32), nullable=False),
        sa.Column("username", sa.String(length=255), nullable=False),
        sa.Column("status", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_active", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("sl_uuid", "universe", name="uq_users_sl_uuid_universe"),
    )
    op.create_index("ix_users_sl_uuid", "users", ["sl_uuid"])

    op.create_table(
        "characters",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(length=36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True),
        sa.Column("character_name", sa.String(length=255), nullable=False),
        sa.Column("base_stats", _json(), nullable=False),
        sa.Column("health_current", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("health_max", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("abilities", _json(), nullable=False),
        sa.Column("active_effects", _json(), nullable=True),
        sa.Column("live_stats", _json(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "social_groups",
        sa.Column("user_id", sa.String(length=36), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("groups", _json(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "events",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("user_id", sa.String(length=36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("type", sa.String(length=64), nullable=False),
        sa.Column("ability_id", sa.String(length=255), nullable=True),
        sa.Column("details", _json(), nullable=False),
        sa.Column("timestamp", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_events_ability_id", "events", ["ability_id"])
    op.create_index("ix_events_timestamp", "events", ["timestamp"])

    op.create_table(
        "profile_tokens",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("user_id", sa.String(length=36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("token", sa.String(length=255), nullable=False, unique=True),
        sa.Column("session_id", sa.String(length=255), nullable=True),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
    )


def downgrade():
    op.drop_table("profile_tokens")
    op.drop_index("ix_events_timestamp", table_name="events")
    op.drop_index("ix_events_ability_id", table_name="events")
    op.drop_table("events")
    op.drop_table("social_groups")
    op.drop_table("characters")
    op.drop_index("ix_users_sl_uuid", table_name="users")
    op.drop_table("users")
