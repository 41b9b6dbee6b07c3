"""Registry errors and their HTTP rendering."""

import structlog
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = structlog.get_logger()


class RegistryError(Exception):
    """Base class for registry errors.

    ``kind`` is the machine-readable tag returned to callers, ``message`` the
    human-readable explanation.
    """

    kind = "registry_error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class ValidationError(RegistryError):
    """Malformed or missing input, raised before any write."""

    kind = "validation_error"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class ConfigurationError(RegistryError):
    """Required reference data is missing (e.g. no verification stages)."""

    kind = "configuration_error"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class InvalidStateError(RegistryError):
    """Operation not allowed in the entity's current state."""

    kind = "invalid_state"
    status_code = status.HTTP_409_CONFLICT


class NotFoundError(RegistryError):
    """Referenced entity does not exist."""

    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(RegistryError):
    """Uniqueness constraint violated; the caller may retry with new values."""

    kind = "conflict"
    status_code = status.HTTP_409_CONFLICT


async def registry_exception_handler(request: Request, exc: RegistryError) -> JSONResponse:
    """Handle registry errors."""
    request_id = getattr(request.state, "request_id", "unknown")

    logger.warning(
        "Registry error",
        request_id=request_id,
        kind=exc.kind,
        message=exc.message,
        status_code=exc.status_code,
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": {
                "kind": exc.kind,
                "message": exc.message,
                "request_id": request_id,
            }
        },
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTP exceptions raised by routes."""
    request_id = getattr(request.state, "request_id", "unknown")

    logger.info(
        "HTTP exception occurred",
        request_id=request_id,
        status_code=exc.status_code,
        detail=exc.detail,
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": {
                "kind": "not_found" if exc.status_code == status.HTTP_404_NOT_FOUND else "http_error",
                "message": exc.detail,
                "request_id": request_id,
            }
        },
    )


async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Handle SQLAlchemy exceptions."""
    request_id = getattr(request.state, "request_id", "unknown")

    logger.error(
        "Database exception occurred",
        request_id=request_id,
        error=str(exc),
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": {
                "kind": "database_error",
                "message": "Internal server error",
                "request_id": request_id,
            }
        },
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle general exceptions."""
    request_id = getattr(request.state, "request_id", "unknown")

    logger.error(
        "Unhandled exception occurred",
        request_id=request_id,
        exception_type=type(exc).__name__,
        error=str(exc),
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": {
                "kind": "internal_error",
                "message": "Internal server error",
                "request_id": request_id,
            }
        },
    )


def add_exception_handlers(app: FastAPI) -> None:
    """Add exception handlers to the FastAPI app."""
    app.add_exception_handler(RegistryError, registry_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
