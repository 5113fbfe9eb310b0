"""
Custom managers for users.

Users log in by email; there is no username. Each owner variant
(restaurant operator, consumer) gets a manager scoped to its kind.
"""

from typing import Any

from django.contrib.auth.base_user import BaseUserManager


class UserManager(BaseUserManager):  # type: ignore[type-arg]
    """
    Manager that creates users keyed by email.

    Emails are lower-cased so lookups are case-insensitive.
    """

    use_in_migrations = True

    @classmethod
    def normalize_email(cls, email: str | None) -> str:
        return super().normalize_email(email or "").strip().lower()

    def create_user(
        self, email: str, password: str | None = None, **extra_fields: Any
    ) -> Any:
        if not email:
            msg = "The email field must be set"
            raise ValueError(msg)
        user = self.model(email=self.normalize_email(email), **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(
        self, email: str, password: str | None = None, **extra_fields: Any
    ) -> Any:
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)

        if extra_fields.get("is_staff") is not True:
            msg = "Superuser must have is_staff=True."
            raise ValueError(msg)
        if extra_fields.get("is_superuser") is not True:
            msg = "Superuser must have is_superuser=True."
            raise ValueError(msg)

        return self.create_user(email, password, **extra_fields)


class UserKindManager(UserManager):
    """
    Manager restricted to one kind of user.

    Usage:
        RestaurantOwner.objects.all()  # only kind="restaurant"
    """

    use_in_migrations = False

    def __init__(self, kind: str) -> None:
        super().__init__()
        self.kind = kind

    def get_queryset(self) -> Any:
        return super().get_queryset().filter(kind=self.kind)

    def create_user(
        self, email: str, password: str | None = None, **extra_fields: Any
    ) -> Any:
        extra_fields.setdefault("kind", self.kind)
        return super().create_user(email, password, **extra_fields)
