"""Error responses: every failure leaves the API as ``{"error": ..., "message": ...}``."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from challonge.client import ChallongeError, ChallongeNotConfiguredError
from domain.errors import DuplicateUserError, LadderError, NotFoundError

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """An error the route wants returned to the client as-is."""

    def __init__(self, status_code: int, error: str, message: str | None = None) -> None:
        super().__init__(message or error)
        self.status_code = status_code
        self.error = error
        self.message = message


def error_body(error: str, message: str | None = None) -> dict[str, str]:
    body = {"error": error}
    if message is not None:
        body["message"] = message
    return body


def _ladder_status(exc: LadderError) -> int:
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, DuplicateUserError):
        return 409
    return 400


async def _api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.error, exc.message))


async def _ladder_error_handler(request: Request, exc: LadderError) -> JSONResponse:
    return JSONResponse(status_code=_ladder_status(exc), content=error_body(str(exc)))


async def _challonge_error_handler(request: Request, exc: ChallongeError) -> JSONResponse:
    if isinstance(exc, ChallongeNotConfiguredError):
        return JSONResponse(status_code=500, content=error_body(str(exc)))
    logger.error("Unhandled Challonge failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=502, content=error_body("Challonge request failed"))


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg', 'invalid value')}" if location else str(first.get("msg"))
    return JSONResponse(status_code=400, content=error_body("Validation error", message))


async def _http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content=error_body("Internal server error"))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, _api_error_handler)
    app.add_exception_handler(LadderError, _ladder_error_handler)
    app.add_exception_handler(ChallongeError, _challonge_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)


__all__ = ["ApiError", "error_body", "register_exception_handlers"]
