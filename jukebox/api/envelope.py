"""Uniform {success, data?, error?, error_type?} response envelope."""
import logging
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse

from jukebox.core.errors import DuplicateTrackError, ErrorType, JukeboxError

logger = logging.getLogger(__name__)


def ok(data: Any = None) -> dict:
    return {"success": True, "data": data}


def failure(message: str, error_type: ErrorType = ErrorType.UNKNOWN, status_code: int = 400) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message, "error_type": error_type.value},
    )


async def jukebox_error_handler(request: Request, exc: JukeboxError) -> JSONResponse:
    if isinstance(exc, DuplicateTrackError):
        logger.info("%s %s: %s", request.method, request.url.path, exc.message)
    else:
        logger.warning("%s %s failed: %s (%s)", request.method, request.url.path, exc.message, exc.error_type.value)
    return failure(exc.message, exc.error_type, exc.http_status)
