import logging
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)

# Shared detail strings so every route reports the same message for a category
AUTH_REQUIRED_MESSAGE = "Authentication required"
ADMIN_REQUIRED_MESSAGE = "Admin privileges required"
INVALID_CREDENTIALS_MESSAGE = "Invalid email or password"
DATABASE_ERROR_MESSAGE = "Database error occurred"
INTERNAL_ERROR_MESSAGE = "Internal server error"


def _format_location(loc) -> str:
    # Drop the "body"/"query" prefix FastAPI adds so clients see field names
    parts = [str(part) for part in loc if part not in ("body", "query", "path")]
    return ".".join(parts)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report client-fixable input problems as 400 with per-field messages"""
    errors = [
        {"path": _format_location(error.get("loc", ())), "message": error.get("msg", "Invalid value")}
        for error in exc.errors()
    ]
    logger.info(f"Validation failed for {request.method} {request.url.path}: {errors}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "Invalid request data", "errors": errors},
    )


async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    # Full detail stays in the server log, the client gets a generic message
    logger.exception(f"Database error during {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": DATABASE_ERROR_MESSAGE},
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error during {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": INTERNAL_ERROR_MESSAGE},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, database_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
