"""Menu management exceptions."""

from apps.web.core.exceptions import (
    AuthorizationError,
    InvalidInputError,
    NotFoundError,
    ServiceError,
)


class MenuError(ServiceError):
    """Base exception for menu management errors."""


class MenuValidationError(InvalidInputError, MenuError):
    """Menu item payload failed validation. Nothing was written."""


class MenuItemNotFound(NotFoundError, MenuError):
    """Menu item (or restaurant for public reads) does not exist."""


class MenuAuthorizationError(AuthorizationError, MenuError):
    """Acting user does not own the restaurant, or it does not exist."""

    def __init__(self, message: str = "You do not have access to this restaurant") -> None:
        super().__init__(message)


class CSVFormatError(MenuValidationError):
    """Uploaded CSV is unusable as a whole (e.g. missing header columns)."""
