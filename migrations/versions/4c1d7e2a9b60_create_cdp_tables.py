"""create_cdp_tables

Revision ID: 4c1d7e2a9b60
Revises:
Create Date: 2026-10-18 09:12:40.118204

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "4c1d7e2a9b60"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create profiles, events, audiences and audience_members."""
    op.create_table(
        "profiles",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("primary_identifier", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("user_id", sa.String(length=255), nullable=True),
        sa.Column("anonymous_id", sa.String(length=255), nullable=True),
        sa.Column(
            "traits",
            postgresql.JSONB(astext_type=sa.Text()),
            server_default=sa.text("'{}'::jsonb"),
            nullable=False,
        ),
        sa.Column("total_orders", sa.Integer(), server_default="0", nullable=False),
        sa.Column("total_spend", sa.Numeric(14, 2), server_default="0", nullable=False),
        sa.Column("first_seen_at", sa.DateTime(), nullable=False),
        sa.Column("last_seen_at", sa.DateTime(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.CheckConstraint("total_orders >= 0", name="ck_profiles_total_orders_non_negative"),
        sa.CheckConstraint("total_spend >= 0", name="ck_profiles_total_spend_non_negative"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
        sa.UniqueConstraint("user_id"),
    )
    op.create_index("ix_profiles_anonymous_id", "profiles", ["anonymous_id"], unique=False)
    # Profile listings and exports sort by recency
    op.create_index(
        "ix_profiles_last_seen_at",
        "profiles",
        [sa.text("last_seen_at DESC")],
        unique=False,
    )

    op.create_table(
        "events",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("profile_id", sa.UUID(), nullable=True),
        sa.Column("user_id", sa.String(length=255), nullable=True),
        sa.Column("anonymous_id", sa.String(length=255), nullable=True),
        sa.Column("event_type", sa.String(length=255), nullable=False),
        sa.Column(
            "properties",
            postgresql.JSONB(astext_type=sa.Text()),
            server_default=sa.text("'{}'::jsonb"),
            nullable=False,
        ),
        sa.Column("occurred_at", sa.DateTime(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["profile_id"], ["profiles.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    # Per-profile timeline and last-event lookups
    op.create_index(
        "ix_events_profile_occurred",
        "events",
        ["profile_id", "occurred_at"],
        unique=False,
    )

    op.create_table(
        "audiences",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("definition", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("last_built_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "audience_members",
        sa.Column("audience_id", sa.UUID(), nullable=False),
        sa.Column("profile_id", sa.UUID(), nullable=False),
        sa.Column("added_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["audience_id"], ["audiences.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["profile_id"], ["profiles.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("audience_id", "profile_id"),
    )
    op.create_index(
        "ix_audience_members_profile_id",
        "audience_members",
        ["profile_id"],
        unique=False,
    )


def downgrade() -> None:
    """Drop all CDP tables."""
    op.drop_index("ix_audience_members_profile_id", table_name="audience_members")
    op.drop_table("audience_members")
    op.drop_table("audiences")
    op.drop_index("ix_events_profile_occurred", table_name="events")
    op.drop_table("events")
    op.drop_index("ix_profiles_last_seen_at", table_name="profiles")
    op.drop_index("ix_profiles_anonymous_id", table_name="profiles")
    op.drop_table("profiles")
