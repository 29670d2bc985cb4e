"""FastAPI exception handlers rendering ``{"error": {...}}`` bodies."""

import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse
from qa_agent.core.exceptions import BaseAppException

logger = logging.getLogger(__name__)


def _error_response(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": {"code": code, "message": message, "status_code": status_code}
        },
    )


async def base_exception_handler(
    request: Request, exc: BaseAppException
) -> JSONResponse:
    # 4xx are logged as warnings
    level = logging.WARNING if exc.status_code < 500 else logging.ERROR
    logger.log(
        level,
        "%s %s -> %s: %s",
        request.method,
        request.url.path,
        exc.error_code,
        exc.detail,
    )
    return _error_response(exc.status_code, str(exc.error_code), str(exc.detail))


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log the failure and answer with a generic 500 that leaks no details."""
    logger.exception(
        "Unhandled %s on %s %s",
        type(exc).__name__,
        request.method,
        request.url.path,
    )
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "INTERNAL_SERVER_ERROR",
        "An unexpected error occurred",
    )
