"""Service-level errors mapped onto HTTP statuses by the API layer."""
from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"


class ServiceError(Exception):
    """Base class for errors a service raises on purpose."""
    status_code: int = 500
    error: str = "service_error"

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class ValidationError(ServiceError):
    status_code = 400
    error = "validation_error"


class AuthenticationError(ServiceError):
    status_code = 401
    error = "authentication_error"


class ForbiddenError(ServiceError):
    status_code = 403
    error = "forbidden"


class NotFoundError(ServiceError):
    status_code = 404
    error = "not_found"


class ConflictError(ServiceError):
    status_code = 409
    error = "conflict"


class UpstreamError(ServiceError):
    """An externally invoked function failed or returned something unusable."""
    status_code = 502
    error = "upstream_error"


def is_unique_violation(exc: IntegrityError) -> bool:
    """True when ``exc`` wraps a unique-key violation (Postgres or SQLite)."""
    orig = getattr(exc, "orig", None)
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if code == UNIQUE_VIOLATION:
        return True
    return "UNIQUE constraint failed" in str(orig)


def translate_integrity_error(
    exc: IntegrityError,
    *,
    unique_message: str,
    fallback_message: str = "The request conflicts with existing data",
) -> ConflictError:
    """Turn a database integrity error into a friendly ``ConflictError``."""
    if is_unique_violation(exc):
        return ConflictError(unique_message)
    logger.warning(f"Integrity error: {exc.orig}")
    return ConflictError(fallback_message)
