"""brief_db — PostgreSQL persistence layer for brief sessions.

Provides the ORM model, the async engine factory and ``SqlSessionStore``,
the production implementation of ``brief_engine.interfaces.SessionStore``.
"""

from brief_db.engine import dispose_engine, get_engine, get_session_factory
from brief_db.models.session import BriefSessionRow
from brief_db.repository import SqlSessionStore

__all__ = [
    "BriefSessionRow",
    "SqlSessionStore",
    "dispose_engine",
    "get_engine",
    "get_session_factory",
]
