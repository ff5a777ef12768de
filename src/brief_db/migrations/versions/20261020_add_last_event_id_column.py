"""Add last_event_id column for redelivery detection.

Adds a nullable ``last_event_id`` text column to ``brief_sessions``.  It
holds the Telegram ``update_id`` of the last event applied to the row and
is written in the same conditional update as the state change, so a
redelivered update can be recognised and answered without being applied
twice.  Existing rows start with NULL, which matches no update.

Revision ID: 20261020_last_event_id
Revises: 20261019_brief_sessions
Create Date: 2026-10-20
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20261020_last_event_id"
down_revision = "20261019_brief_sessions"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column(
        "brief_sessions",
        sa.Column("last_event_id", sa.Text, nullable=True),
    )


def downgrade() -> None:
    op.drop_column("brief_sessions", "last_event_id")
