from enum import Enum
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from shared.errors.identity import IdentityErrors
from shared.utils.logger import TsLogger

logger = TsLogger(name=__name__)


def error_message(detail: Any) -> str:
    if isinstance(detail, Enum):
        return detail.value
    return detail if isinstance(detail, str) else str(detail)


def error_response(status_code: int, message: str, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"code": status_code, "message": message},
        headers=headers,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return error_response(exc.status_code, error_message(exc.detail), getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    messages = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path"))
        messages.append(f"{field}: {error.get('msg')}" if field else str(error.get("msg")))
    return error_response(status.HTTP_400_BAD_REQUEST, "; ".join(messages))


async def rate_limit_exception_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    logger.warning(f"Rate limit exceeded on {request.url.path}: {exc.detail}")
    return error_response(status.HTTP_429_TOO_MANY_REQUESTS, IdentityErrors.RATE_LIMITED.value)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.method} {request.url.path}", exception=exc)
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, IdentityErrors.INTERNAL_SERVER_ERROR.value)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
