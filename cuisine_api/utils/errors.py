"""
Domain errors and their JSON rendering.

Handlers raise these instead of building responses by hand; the handlers
registered in ``register_error_handlers`` turn them into the response bodies
the API has always returned:

- 400/401/403/404 -> ``{"message": ...}``
- 500            -> ``{"error": ..., "details": ...}``
"""
import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class DomainError(Exception):
    status_code = 400

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationFailure(DomainError):
    status_code = 400


class NotFound(DomainError):
    status_code = 404


class AuthFailure(DomainError):
    """Missing header -> 403, bad token or credentials -> 401."""
    status_code = 401


class UpstreamFailure(DomainError):
    status_code = 500

    def __init__(self, message: str, details: str = ""):
        super().__init__(message)
        self.details = details


def register_error_handlers(app: FastAPI) -> None:

    @app.exception_handler(UpstreamFailure)
    async def _upstream(request: Request, exc: UpstreamFailure):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.message, "details": exc.details},
        )

    @app.exception_handler(DomainError)
    async def _domain(request: Request, exc: DomainError):
        return JSONResponse(status_code=exc.status_code, content={"message": exc.message})

    @app.exception_handler(RequestValidationError)
    async def _request_validation(request: Request, exc: RequestValidationError):
        logger.warning(f"Rejected invalid input on {request.url.path}")
        return JSONResponse(
            status_code=400,
            content={"message": "Invalid input", "errors": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(StarletteHTTPException)
    async def _http(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"message": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "details": str(exc)},
        )
