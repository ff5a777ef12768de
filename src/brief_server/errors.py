"""Global exception handlers — map brief engine exceptions to HTTP status codes.

Telegram redelivers a webhook update when the response is not a 2xx, so the
status code doubles as the retry decision:
  - ``InvalidOptionError``            → 400 (bad input, retrying cannot help)
  - ``CollaboratorUnavailableError``  → 503 (store / Bot API trouble, retry)
  - anything else                     → 500
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from brief_engine.errors import CollaboratorUnavailableError, InvalidOptionError

logger = logging.getLogger(__name__)


async def invalid_option_handler(request: Request, exc: InvalidOptionError) -> JSONResponse:
    """Reject an action that does not fit the current question.

    The raw message stays server-side; the client receives a generic detail.
    """
    logger.warning("InvalidOptionError at %s: %s", request.url.path, exc)
    return JSONResponse(status_code=400, content={"detail": "Invalid request"})


async def collaborator_error_handler(
    request: Request, exc: CollaboratorUnavailableError
) -> JSONResponse:
    logger.error("Collaborator unavailable at %s: %s", request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": "Service temporarily unavailable"})


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions — log full traceback, return 500."""
    logger.exception("Unhandled exception at %s", request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})
