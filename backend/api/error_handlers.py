"""Map domain failures and validation errors to JSON responses."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from services.errors import FeedError, InternalError, Unauthenticated

logger = logging.getLogger(__name__)

SERVER_ERROR_MESSAGE = "Server error"


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(FeedError, _feed_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)


async def _feed_error_handler(request: Request, exc: FeedError) -> JSONResponse:
    if isinstance(exc, InternalError):
        logger.error(
            exc.message,
            extra={"path": request.url.path},
            exc_info=exc.__cause__ or exc,
        )
        return JSONResponse(
            {"message": SERVER_ERROR_MESSAGE},
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthenticated) else None
    return JSONResponse(
        {"message": exc.message},
        status_code=exc.http_status,
        headers=headers,
    )


async def _validation_error_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    errors = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ())),
            "message": error.get("msg", ""),
        }
        for error in exc.errors()
    ]
    logger.warning(
        "Request validation failed",
        extra={"path": request.url.path},
    )
    return JSONResponse(
        {"message": "Invalid request", "errors": errors},
        status_code=status.HTTP_400_BAD_REQUEST,
    )


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled exception",
        extra={"path": request.url.path},
        exc_info=exc,
    )
    return JSONResponse(
        {"message": SERVER_ERROR_MESSAGE},
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
