"""Where the brief session table lives.

The bot and the cleanup job read the same settings: either ``DATABASE_URL``
(any PostgreSQL URL, with or without a driver suffix) or the ``PG_*``
variables used by the docker-compose setup.  The runtime talks to the
database through asyncpg; Alembic migrations run synchronously through
psycopg2, so the same target is exposed under both drivers.
"""

import os

from sqlalchemy.engine import URL, make_url

ASYNC_DRIVER = "postgresql+asyncpg"
SYNC_DRIVER = "postgresql"


def _configured_url() -> URL:
    url = os.getenv("DATABASE_URL")
    if url:
        return make_url(url)
    return URL.create(
        SYNC_DRIVER,
        username=os.getenv("PG_USER", "brief"),
        password=os.getenv("PG_PASSWORD", "brief"),
        host=os.getenv("PG_HOST", "localhost"),
        port=int(os.getenv("PG_PORT", "5432")),
        database=os.getenv("PG_DATABASE", "brief"),
    )


def _with_driver(driver: str) -> str:
    url = _configured_url().set(drivername=driver)
    return url.render_as_string(hide_password=False)


def get_sync_url() -> str:
    """URL for Alembic (psycopg2)."""
    return _with_driver(SYNC_DRIVER)


def get_async_url() -> str:
    """URL for the bot's async engine (asyncpg)."""
    return _with_driver(ASYNC_DRIVER)
