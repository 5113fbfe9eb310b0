"""Django app configuration for core module."""

from django.apps import AppConfig


class CoreConfig(AppConfig):
    """Accounts and restaurants."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.web.core"
    verbose_name = "Core"
