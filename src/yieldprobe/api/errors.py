"""JSON error envelope for anything that escapes a request."""

from __future__ import annotations

import logging
import traceback

from fastapi.responses import JSONResponse

from yieldprobe.api.schemas import ErrorResponse
from yieldprobe.config.settings import settings

logger = logging.getLogger(__name__)


def error_response(e: Exception) -> JSONResponse:
    """Must be called from inside the `except` block so the traceback is available."""
    logger.exception("Diagnostics request failed")
    body = ErrorResponse(
        error=str(e) or type(e).__name__,
        stack=traceback.format_exc() if settings.include_stack else None,
    )
    return JSONResponse(status_code=500, content=body.model_dump(by_alias=True, exclude_none=True))
