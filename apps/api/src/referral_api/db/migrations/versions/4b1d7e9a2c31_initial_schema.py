"""initial_schema

Revision ID: 4b1d7e9a2c31
Revises:
Create Date: 2026-10-19 09:12:41.318204

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "4b1d7e9a2c31"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create users and referrals tables."""
    # Users table
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.String(255), unique=True),
        sa.Column("name", sa.String(255)),
    )

    # Referrals table
    op.create_table(
        "referrals",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("referral_code", sa.String(50), unique=True, nullable=False),
        sa.Column(
            "referrer_user_id",
            sa.Uuid(),
            sa.ForeignKey("users.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "referee_user_id",
            sa.Uuid(),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
        ),
        # Lifecycle
        sa.Column("status", sa.String(20), nullable=False),
        # Timestamps
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("installed_at", sa.DateTime(timezone=True)),
        sa.Column("completed_at", sa.DateTime(timezone=True)),
        # Deep link
        sa.Column("shareable_link", sa.String(500), nullable=False),
    )
    op.create_index(
        "ix_referrals_referrer_user_id", "referrals", ["referrer_user_id"]
    )
    op.create_index("ix_referrals_referee_user_id", "referrals", ["referee_user_id"])
    op.create_index("ix_referrals_status", "referrals", ["status"])


def downgrade() -> None:
    """Drop all tables in reverse order."""
    op.drop_table("referrals")
    op.drop_table("users")
