"""Application error taxonomy.

Every error carries an HTTP status and a stable machine-readable code. The
exception handlers in ``testimonial_hub.main`` render them as
``{"code": ..., "detail": ...}`` without exposing internals.
"""

from fastapi import status


class AppError(Exception):
    """Base exception for all application errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "internal_error"
    default_detail: str = "Internal server error"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class AuthorizationError(AppError):
    """Raised when a request carries no valid identity."""

    status_code = status.HTTP_401_UNAUTHORIZED
    code = "unauthorized"
    default_detail = "Unauthorized"


class ValidationError(AppError):
    """Raised for malformed or missing input."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "validation_error"
    default_detail = "Invalid request"


class NotFoundError(AppError):
    """Raised when a referenced entity does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"
    default_detail = "Not found"


class ConflictError(AppError):
    """Raised when a unique field is already taken."""

    status_code = status.HTTP_409_CONFLICT
    code = "conflict"
    default_detail = "Conflict"


class UpstreamError(AppError):
    """Raised when an external service (media host, OAuth provider) fails."""

    status_code = status.HTTP_502_BAD_GATEWAY
    code = "upstream_error"
    default_detail = "Upstream service failure"


class StorageError(AppError):
    """Raised when a database operation fails."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "storage_error"
    default_detail = "Storage failure"
