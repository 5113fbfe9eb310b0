"""Django app configuration for menu module."""

from django.apps import AppConfig


class MenuConfig(AppConfig):
    """
    Menu app configuration.

    Builds the process-wide change broker and menu services once, with
    the broker injected as the services' notifier.
    """

    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.web.menu"
    verbose_name = "Menu"

    def ready(self) -> None:
        from .notifications import MenuUpdateBroker  # noqa: PLC0415
        from .services import ConsumerMenuItemService, MenuItemService  # noqa: PLC0415

        self.broker = MenuUpdateBroker()
        self.service = MenuItemService(notifier=self.broker)
        self.consumer_service = ConsumerMenuItemService()
