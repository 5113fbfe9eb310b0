"""Django app configuration for integrations module."""

from django.apps import AppConfig
from django.conf import settings


class IntegrationsConfig(AppConfig):
    """External image store and webhook clients."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.web.integrations"
    verbose_name = "Integrations"

    def ready(self) -> None:
        from .image_store import ImageStoreClient  # noqa: PLC0415

        self.image_store: ImageStoreClient | None = None
        if settings.IMAGE_STORE_ACCESS_TOKEN:
            self.image_store = ImageStoreClient(
                access_token=settings.IMAGE_STORE_ACCESS_TOKEN,
                refresh_token=settings.IMAGE_STORE_REFRESH_TOKEN,
                app_key=settings.IMAGE_STORE_APP_KEY,
                app_secret=settings.IMAGE_STORE_APP_SECRET,
            )
