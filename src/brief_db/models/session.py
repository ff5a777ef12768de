"""BriefSessionRow ORM model — one row per user with an unfinished brief.

The user identity is the primary key, which is what enforces "one in-flight
brief per user".  Rows are deleted when a brief completes or is cancelled;
abandoned rows stop being readable once ``expires_at`` passes and are
physically removed by ``brief-cleanup``.
"""

from datetime import datetime, timezone

from sqlalchemy import Boolean, CheckConstraint, Index, Integer, SmallInteger, Text, text
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column

from brief_db.models.base import Base


class BriefSessionRow(Base):
    __tablename__ = "brief_sessions"

    # --- Identity ---
    # Chat-platform user id (e.g. Telegram from.id)
    user_id: Mapped[str] = mapped_column(Text, primary_key=True)

    # --- Progress ---
    step: Mapped[int] = mapped_column(SmallInteger, nullable=False, default=0)
    # One string per answered question, in catalog order
    answers: Mapped[list] = mapped_column(
        JSONB, nullable=False, server_default=text("'[]'::jsonb"),
    )
    # In-progress multi-select selection (may hold the "__other__" sentinel)
    selected_options: Mapped[list] = mapped_column(
        JSONB, nullable=False, server_default=text("'[]'::jsonb"),
    )
    awaiting_other_text: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=text("false"),
    )

    # --- Addressing (copied in at start) ---
    display_name: Mapped[str] = mapped_column(Text, nullable=False)
    channel_id: Mapped[str] = mapped_column(Text, nullable=False)

    # --- Optimistic concurrency ---
    # Bumped on every write; conditional updates match on it.
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    # Telegram update_id of the last applied event; a redelivery matches it
    last_event_id: Mapped[str | None] = mapped_column(Text, nullable=True)

    # --- Timestamps ---
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    expires_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    __table_args__ = (
        CheckConstraint("step >= 0", name="ck_step_non_negative"),
        CheckConstraint("version >= 1", name="ck_version_positive"),
        # Cleanup scans by expiry
        Index("ix_brief_sessions_expires_at", "expires_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<BriefSessionRow(user={self.user_id!r}, step={self.step}, "
            f"version={self.version})>"
        )
