"""
Exception handlers.

Module exceptions are translated into {success: false, error} responses
here, so routes just let them propagate.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from shared.exceptions import AccountsError, AuthenticationError, StatusError

from .models.errors import ErrorResponse

logger = logging.getLogger(__name__)


def _error_response(status: int, message: str, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status,
        content=ErrorResponse(error=message).model_dump(),
        headers={"Cache-Control": "no-store", **(headers or {})},
    )


async def status_error_handler(request: Request, exc: StatusError) -> JSONResponse:
    logger.info(f"{request.method} {request.url.path} failed with {exc.status}: {exc.message}")
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
    return _error_response(exc.status, exc.message, headers)


async def accounts_error_handler(request: Request, exc: AccountsError) -> JSONResponse:
    logger.error(f"{request.method} {request.url.path} failed: {exc.message}", exc_info=exc)
    return _error_response(500, exc.message)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error in {request.method} {request.url.path}", exc_info=exc)
    return _error_response(500, "Internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    """Register the accounts exception handlers, most specific first."""
    app.add_exception_handler(StatusError, status_error_handler)
    app.add_exception_handler(AccountsError, accounts_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
