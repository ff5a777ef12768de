"""Process-wide connection pool for the brief session store.

``SqlSessionStore`` opens one short transaction per read or write, so the
bot needs a single pool shared by every webhook request.  It is built on
first use (importing this module never connects) and released by
``dispose_engine()`` when the server or the cleanup job shuts down; the
next call after that builds a fresh one.
"""

import os

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from brief_db.config import get_async_url

# One webhook request holds at most one connection at a time
POOL_SIZE = int(os.getenv("PG_POOL_SIZE", "5"))
MAX_OVERFLOW = int(os.getenv("PG_MAX_OVERFLOW", "10"))

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_engine() -> AsyncEngine:
    """The shared engine; ``/health`` also pings through it."""
    global _engine
    if _engine is None:
        # Pre-ping: the bot can sit idle long enough for PostgreSQL to drop connections
        _engine = create_async_engine(
            get_async_url(),
            pool_size=POOL_SIZE,
            max_overflow=MAX_OVERFLOW,
            pool_pre_ping=True,
        )
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Sessions for ``SqlSessionStore``.

    Rows stay readable after commit, since the store maps them to
    ``BriefSession`` once the transaction is over.
    """
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(get_engine(), expire_on_commit=False)
    return _session_factory


async def dispose_engine() -> None:
    global _engine, _session_factory
    if _engine is None:
        return
    await _engine.dispose()
    _engine = None
    _session_factory = None
