"""Translate the social error taxonomy into HTTP responses."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from kinship.services.errors import (
    InvalidOperation,
    NotFound,
    PermissionDenied,
    RelationshipCorrupted,
    RequestNotFound,
    SocialError,
    StoreUnavailable,
)

logger = logging.getLogger(__name__)

STATUS_BY_ERROR: dict[type[SocialError], int] = {
    InvalidOperation: status.HTTP_400_BAD_REQUEST,
    PermissionDenied: status.HTTP_403_FORBIDDEN,
    NotFound: status.HTTP_404_NOT_FOUND,
    RequestNotFound: status.HTTP_404_NOT_FOUND,
    RelationshipCorrupted: status.HTTP_500_INTERNAL_SERVER_ERROR,
    StoreUnavailable: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def status_for(error: SocialError) -> int:
    """Return the HTTP status code for a social error."""
    for error_type in type(error).__mro__:
        if error_type in STATUS_BY_ERROR:
            return STATUS_BY_ERROR[error_type]
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def social_error_handler(request: Request, exc: SocialError) -> JSONResponse:
    """Render a :class:`SocialError` as ``{"detail", "error", "step"}``."""
    code = status_for(exc)
    if code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("%s %s failed: %s (step=%s)", request.method, request.url.path, exc, exc.step)
    return JSONResponse(
        status_code=code,
        content={"detail": exc.message, "error": type(exc).__name__, "step": exc.step},
    )


def register_error_handlers(app: FastAPI) -> None:
    """Install the social error handler on ``app``."""
    app.add_exception_handler(SocialError, social_error_handler)
