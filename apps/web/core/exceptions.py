"""Service-layer exceptions shared by every app.

Views translate these into JSON error responses (see decorators.py).
"""

from pydantic import BaseModel


class ErrorDetail(BaseModel):
    """A single field-level problem."""

    field: str
    message: str


class ServiceError(Exception):
    """Base exception for service-layer failures."""

    status_code = 500
    error_code = "server_error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    @property
    def public_message(self) -> str:
        """Message safe to show to API callers."""
        return self.message


class InvalidInputError(ServiceError):
    """Payload failed validation. Nothing was written."""

    status_code = 400
    error_code = "validation_error"

    def __init__(self, message: str, details: list[ErrorDetail] | None = None) -> None:
        super().__init__(message)
        self.details = details or []

    @classmethod
    def for_field(cls, field: str, message: str) -> "InvalidInputError":
        return cls(message, details=[ErrorDetail(field=field, message=message)])


class NotFoundError(ServiceError):
    """Referenced record does not exist."""

    status_code = 404
    error_code = "not_found"


class AuthorizationError(ServiceError):
    """
    Acting user may not touch the referenced record.

    Raised with the same message whether the record belongs to someone
    else or does not exist at all.
    """

    status_code = 403
    error_code = "forbidden"


class ConflictError(ServiceError):
    """Unique constraint would be violated (e.g. email already registered)."""

    status_code = 409
    error_code = "conflict"
