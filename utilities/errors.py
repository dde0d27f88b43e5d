"""
Error taxonomy shared by the service layer and the HTTP boundary.

Each error carries the HTTP status it maps to and a short machine code;
the API exception handler renders them into the standard error envelope.
"""

from typing import Any, Optional


class ApiError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = 500
    code: str = "internal_error"
    default_message: str = "Internal Server Error"

    def __init__(self, message: Optional[str] = None, details: Any = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class ValidationError(ApiError):
    """Malformed or missing input."""

    status_code = 400
    code = "validation_error"
    default_message = "Bad Request"


class Unauthorized(ApiError):
    """Missing or bad credentials."""

    status_code = 401
    code = "unauthorized"
    default_message = "Unauthorized"


class InvalidTokenError(Unauthorized):
    """Token could not be decrypted, has a bad signature or is not the current one."""

    code = "invalid_token"
    default_message = "Invalid or expired token"


class TokenExpiredError(InvalidTokenError):
    """Token is well formed and signed but past its expiry."""

    code = "token_expired"
    default_message = "Token expired"


class Forbidden(ApiError):
    """Authenticated but not allowed."""

    status_code = 403
    code = "forbidden"
    default_message = "Forbidden"


class NotFound(ApiError):
    status_code = 404
    code = "not_found"
    default_message = "Not Found"


class Conflict(ApiError):
    status_code = 409
    code = "conflict"
    default_message = "Conflict"


class InternalError(ApiError):
    """Unexpected failure, including crypto and serialization faults."""
