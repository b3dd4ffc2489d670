"""Domain error taxonomy shared by the storefront services.

Service functions raise these; ``libs.common.error_handler`` turns them into
JSON responses at the HTTP boundary.
"""

from typing import Optional


class ServiceError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code = 500
    code = "INTERNAL_ERROR"
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthenticated(ServiceError):
    """Missing, malformed or expired token, or the token's subject is gone."""

    status_code = 401
    code = "UNAUTHENTICATED"
    default_message = "Could not validate credentials"


class Forbidden(ServiceError):
    status_code = 403
    code = "FORBIDDEN"
    default_message = "Not authorized"


class NotFound(ServiceError):
    status_code = 404
    code = "NOT_FOUND"
    default_message = "Resource not found"


class Conflict(ServiceError):
    status_code = 409
    code = "CONFLICT"
    default_message = "Resource already exists"


class ValidationFailed(ServiceError):
    status_code = 422
    code = "VALIDATION_FAILED"
    default_message = "Validation failed"


class InvalidReference(ValidationFailed):
    """A referenced entity (category, subcategory, product) does not exist."""

    code = "INVALID_REFERENCE"
    default_message = "Invalid reference"


class UpstreamFailure(ServiceError):
    """The asset host or another remote dependency failed."""

    status_code = 502
    code = "UPSTREAM_FAILURE"
    default_message = "Upstream service unavailable"
