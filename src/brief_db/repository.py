"""PostgreSQL implementation of :class:`brief_engine.interfaces.SessionStore`.

Each store call runs in its own short transaction obtained from the async
session factory, because the engine's unit of work is a single store call
rather than a request.

TTL: every write pushes ``expires_at`` to ``now + ttl_seconds``; reads and
conditional updates ignore rows past their expiry, so an abandoned brief
behaves exactly like a missing one.  ``purge_expired`` reclaims the space.

Compare-and-swap: ``set(..., expected_version=v)`` issues
``UPDATE ... WHERE user_id = :u AND version = :v`` and bumps the version;
zero matched rows means another writer got there first.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy import delete, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from brief_engine.errors import CollaboratorUnavailableError, StaleSessionError
from brief_engine.interfaces import SessionStore
from brief_engine.models.session import BriefSession

from brief_db.engine import get_session_factory
from brief_db.models.session import BriefSessionRow

logger = logging.getLogger(__name__)


def session_from_row(row: BriefSessionRow) -> BriefSession:
    """Map an ORM row onto the engine's session model."""
    return BriefSession(
        step=row.step,
        answers=list(row.answers or []),
        selected_options=list(row.selected_options or []),
        awaiting_other_text=row.awaiting_other_text,
        display_name=row.display_name,
        channel_id=row.channel_id,
        version=row.version,
        last_event_id=row.last_event_id,
    )


def row_values(session: BriefSession) -> dict[str, Any]:
    """Column values for a write (identity, version and timestamps excluded)."""
    return {
        "step": session.step,
        "answers": list(session.answers),
        "selected_options": list(session.selected_options),
        "awaiting_other_text": session.awaiting_other_text,
        "display_name": session.display_name,
        "channel_id": session.channel_id,
        "last_event_id": session.last_event_id,
    }


class SqlSessionStore(SessionStore):
    """Session records in the ``brief_sessions`` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
        self._factory = session_factory

    @property
    def factory(self) -> async_sessionmaker[AsyncSession]:
        if self._factory is None:
            self._factory = get_session_factory()
        return self._factory

    # ------------------------------------------------------------------
    # SessionStore
    # ------------------------------------------------------------------

    async def get(self, user_id: str) -> BriefSession | None:
        now = datetime.now(timezone.utc)
        stmt = select(BriefSessionRow).where(
            BriefSessionRow.user_id == user_id,
            BriefSessionRow.expires_at > now,
        )
        try:
            async with self.factory() as db:
                row = (await db.execute(stmt)).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise CollaboratorUnavailableError("session store read failed") from exc
        if row is None:
            return None
        return session_from_row(row)

    async def set(
        self,
        user_id: str,
        session: BriefSession,
        ttl_seconds: int,
        *,
        expected_version: int | None = None,
    ) -> int:
        now = datetime.now(timezone.utc)
        expires_at = now + timedelta(seconds=ttl_seconds)
        values = row_values(session)

        if expected_version is None:
            # Unconditional create-or-replace (start of a new brief)
            insert_stmt = pg_insert(BriefSessionRow).values(
                user_id=user_id,
                version=1,
                created_at=now,
                updated_at=now,
                expires_at=expires_at,
                **values,
            )
            stmt = insert_stmt.on_conflict_do_update(
                index_elements=[BriefSessionRow.user_id],
                set_={
                    **values,
                    "version": BriefSessionRow.version + 1,
                    "created_at": now,
                    "updated_at": now,
                    "expires_at": expires_at,
                },
            ).returning(BriefSessionRow.version)
        else:
            stmt = (
                update(BriefSessionRow)
                .where(
                    BriefSessionRow.user_id == user_id,
                    BriefSessionRow.version == expected_version,
                    BriefSessionRow.expires_at > now,
                )
                .values(
                    **values,
                    version=BriefSessionRow.version + 1,
                    updated_at=now,
                    expires_at=expires_at,
                )
                .returning(BriefSessionRow.version)
                .execution_options(synchronize_session=False)
            )

        try:
            async with self.factory() as db:
                new_version = (await db.execute(stmt)).scalar_one_or_none()
                await db.commit()
        except SQLAlchemyError as exc:
            raise CollaboratorUnavailableError("session store write failed") from exc

        if new_version is None:
            logger.warning(
                "Conditional write lost for user %s (expected version %s)",
                user_id, expected_version,
            )
            raise StaleSessionError(
                f"session for user {user_id} changed since version {expected_version}"
            )
        return new_version

    async def delete(self, user_id: str) -> None:
        stmt = delete(BriefSessionRow).where(BriefSessionRow.user_id == user_id)
        try:
            async with self.factory() as db:
                await db.execute(stmt)
                await db.commit()
        except SQLAlchemyError as exc:
            raise CollaboratorUnavailableError("session store delete failed") from exc

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    async def purge_expired(self, *, grace: timedelta = timedelta(0)) -> int:
        """Delete rows that expired more than *grace* ago; returns the count."""
        cutoff = datetime.now(timezone.utc) - grace
        stmt = delete(BriefSessionRow).where(BriefSessionRow.expires_at <= cutoff)
        async with self.factory() as db:
            result = await db.execute(stmt)
            await db.commit()
        return result.rowcount
