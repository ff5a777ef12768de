"""FastAPI dependency injection — provides the engine and settings.

Both are built once in the lifespan handler and stashed on ``app.state``.
"""

from fastapi import Request

from brief_engine.engine import BriefEngine

from brief_server.config import ServerSettings


def get_brief_engine(request: Request) -> BriefEngine:
    """Return the engine singleton from ``app.state``."""
    return request.app.state.engine


def get_settings(request: Request) -> ServerSettings:
    return request.app.state.settings
