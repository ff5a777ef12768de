"""Create brief_sessions table.

Revision ID: 20261019_brief_sessions
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP

# revision identifiers, used by Alembic.
revision = "20261019_brief_sessions"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "brief_sessions",
        sa.Column("user_id", sa.Text, primary_key=True),
        # Progress
        sa.Column("step", sa.SmallInteger, nullable=False, server_default=sa.text("0")),
        sa.Column("answers", JSONB, nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column(
            "selected_options",
            JSONB,
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column(
            "awaiting_other_text",
            sa.Boolean,
            nullable=False,
            server_default=sa.text("false"),
        ),
        # Addressing
        sa.Column("display_name", sa.Text, nullable=False),
        sa.Column("channel_id", sa.Text, nullable=False),
        # Optimistic concurrency
        sa.Column("version", sa.Integer, nullable=False, server_default=sa.text("1")),
        # Timestamps
        sa.Column(
            "created_at",
            TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column("expires_at", TIMESTAMP(timezone=True), nullable=False),
        sa.CheckConstraint("step >= 0", name="ck_step_non_negative"),
        sa.CheckConstraint("version >= 1", name="ck_version_positive"),
    )
    op.create_index("ix_brief_sessions_expires_at", "brief_sessions", ["expires_at"])


def downgrade() -> None:
    op.drop_index("ix_brief_sessions_expires_at", table_name="brief_sessions")
    op.drop_table("brief_sessions")
