"""Integration exceptions."""

from apps.web.core.exceptions import ServiceError


class ImageStoreError(ServiceError):
    """Upload to the external image store failed."""

    status_code = 502
    error_code = "image_store_error"

    def __init__(self, message: str, upstream_status: int | None = None) -> None:
        super().__init__(message)
        self.upstream_status = upstream_status

    @property
    def public_message(self) -> str:
        # Upstream details stay in the logs
        return "Image storage is unavailable, please try again later"


class ImageStoreAuthError(ImageStoreError):
    """Access token rejected and could not be refreshed."""
