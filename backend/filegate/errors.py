"""
Gateway error taxonomy and the FastAPI handlers that render it.

Every failure path ends in an explicit HTTP response:
- InvalidRequest  -> 400 JSON {"error": reason}
- ObjectNotFound  -> 404 text/plain
- RouteNotFound   -> 404 text/plain (also covers Starlette 404/405)
- StoreFailure    -> 502 JSON {"error": ...}
"""
import logging
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.requests import ClientDisconnect

from filegate.utils.logging import log_store_failure
from filegate.utils.metrics import errors_total

logger = logging.getLogger(__name__)

NOT_FOUND_BODY = "Not found"


class GatewayError(Exception):
    """Base class for all gateway errors."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class ConfigurationError(GatewayError):
    """Settings are incomplete or inconsistent; raised at startup."""


class InvalidRequest(GatewayError):
    """Malformed or incomplete client request (missing filename or body)."""

    status_code = status.HTTP_400_BAD_REQUEST


class ObjectNotFound(GatewayError):
    """Requested key is absent from the store."""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, key: str):
        super().__init__(f"Object not found: {key}")
        self.key = key


class RouteNotFound(GatewayError):
    """No handler matches method + path."""

    status_code = status.HTTP_404_NOT_FOUND


class StoreFailure(GatewayError):
    """
    Any failure originating in the object store.

    The underlying exception is kept on `cause` (and chained) for logging;
    callers only ever see a generic 5xx.
    """

    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(self, operation: str, cause: Optional[BaseException] = None, key: Optional[str] = None):
        detail = f"{operation} failed"
        if key is not None:
            detail += f" for key {key!r}"
        if cause is not None:
            detail += f": {cause}"
        super().__init__(detail)
        self.operation = operation
        self.cause = cause
        self.key = key


def not_found_response() -> PlainTextResponse:
    return PlainTextResponse(NOT_FOUND_BODY, status_code=status.HTTP_404_NOT_FOUND)


async def invalid_request_handler(request: Request, exc: InvalidRequest) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def not_found_handler(request: Request, exc: GatewayError) -> PlainTextResponse:
    return not_found_response()


async def store_failure_handler(request: Request, exc: StoreFailure) -> JSONResponse:
    """Log the store failure with its cause and return an opaque 502."""
    errors_total.labels(error_type="store").inc()
    log_store_failure(
        logger,
        operation=exc.operation,
        error=str(exc.cause) if exc.cause is not None else exc.message,
        key=exc.key,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": "Storage operation failed"}
    )


async def client_disconnect_handler(request: Request, exc: ClientDisconnect) -> JSONResponse:
    # The client is gone; this only keeps the abort out of the 500 error path
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": "Upload interrupted"})


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> Response:
    """
    Route misses and method mismatches both become plain-text 404s.

    Any other HTTPException keeps FastAPI's default JSON shape.
    """
    if exc.status_code in (status.HTTP_404_NOT_FOUND, status.HTTP_405_METHOD_NOT_ALLOWED):
        return not_found_response()
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None)
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the gateway error handlers to an application."""
    app.add_exception_handler(InvalidRequest, invalid_request_handler)
    app.add_exception_handler(ObjectNotFound, not_found_handler)
    app.add_exception_handler(RouteNotFound, not_found_handler)
    app.add_exception_handler(StoreFailure, store_failure_handler)
    app.add_exception_handler(ClientDisconnect, client_disconnect_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
