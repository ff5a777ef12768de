"""Route registration — mounts all routers under ``/api/v1``."""

from fastapi import FastAPI

from brief_server.routes.webhook import router as webhook_router

API_PREFIX = "/api/v1"


def register_routes(app: FastAPI) -> None:
    """Include all sub-routers under the versioned API prefix."""
    app.include_router(webhook_router, prefix=API_PREFIX)
