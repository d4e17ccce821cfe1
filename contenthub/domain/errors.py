"""
Error taxonomy for lifecycle, resolution and access operations.

Every error carries a stable machine code and a human-readable message.
The HTTP shell maps them to status codes; the core never formats responses.
"""

from __future__ import annotations


class ContentHubError(Exception):
    """Base class for all domain errors."""

    code: str = "ERROR"
    http_status: int = 500
    default_message: str = "Unexpected error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


# --- Resolution errors (terminal for the caller) ---


class NotFound(ContentHubError):
    code = "NOT_FOUND"
    http_status = 404
    default_message = "Share link not found"


class Revoked(ContentHubError):
    code = "REVOKED"
    http_status = 404
    default_message = "Share link has been revoked"


class Expired(ContentHubError):
    code = "EXPIRED"
    http_status = 404
    default_message = "Share link has expired"


class ExpiredWithAsset(ContentHubError):
    code = "EXPIRED_WITH_ASSET"
    http_status = 404
    default_message = "Share link has expired with asset"


class NotAvailable(ContentHubError):
    code = "NOT_AVAILABLE"
    http_status = 404
    default_message = "Version is not available"


# --- Lifecycle and access errors ---


class InvalidTransition(ContentHubError):
    code = "INVALID_TRANSITION"
    http_status = 409
    default_message = "Invalid lifecycle transition"

    def __init__(self, current: str, target: str, message: str | None = None):
        self.current = current
        self.target = target
        super().__init__(message or f"Invalid transition from {current} to {target}")


class BadRequest(ContentHubError):
    code = "BAD_REQUEST"
    http_status = 400
    default_message = "Bad request"


class Unauthorized(ContentHubError):
    code = "UNAUTHORIZED"
    http_status = 401
    default_message = "Invalid verification token"


class VerificationRequired(ContentHubError):
    """emailVerify link accessed without a verified recipient email."""

    code = "VERIFICATION_REQUIRED"
    http_status = 403
    default_message = "Email verification required"


class Forbidden(ContentHubError):
    code = "FORBIDDEN"
    http_status = 403
    default_message = "Not allowed"


class Conflict(ContentHubError):
    """Lost a conditional write. Re-read and retry."""

    code = "CONFLICT"
    http_status = 409
    default_message = "Concurrent modification detected, retry the operation"


class StoreError(ContentHubError):
    """Persistence failure (I/O, timeout, integrity)."""

    code = "STORE_ERROR"
    http_status = 500
    default_message = "Storage operation failed"


# Resolution errors that public routes collapse to 404 NOT_FOUND.
RESOLUTION_ERRORS: tuple[type[ContentHubError], ...] = (
    NotFound,
    Revoked,
    Expired,
    ExpiredWithAsset,
    NotAvailable,
)
