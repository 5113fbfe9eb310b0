"""
Core models - accounts and restaurants.

A User is either a restaurant operator or a consumer. The two variants are
proxy models over the same table, selected by ``kind``.
"""

import copy
from typing import Any

from django.contrib.auth.models import AbstractUser
from django.db import models

from .managers import UserKindManager, UserManager

ALLERGEN_KEYS = (
    "milk",
    "eggs",
    "peanuts",
    "nuts",
    "shellfish",
    "fish",
    "soy",
    "gluten",
)


class TimeStampedModel(models.Model):
    """Abstract base with created/updated timestamps."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class User(AbstractUser):
    """
    Custom user model keyed by email.

    ``kind`` decides which owner variant the account is. Accounts are
    never hard-deleted by the API.
    """

    class Kind(models.TextChoices):
        RESTAURANT = "restaurant", "Restaurant"
        CONSUMER = "consumer", "Consumer"

    class Language(models.TextChoices):
        ENGLISH = "en", "English"
        SPANISH = "es", "Spanish"
        FRENCH = "fr", "French"
        GERMAN = "de", "German"
        ITALIAN = "it", "Italian"
        JAPANESE = "ja", "Japanese"
        KOREAN = "ko", "Korean"
        CHINESE = "zh", "Chinese"

    username = None  # type: ignore[assignment]
    email = models.EmailField(unique=True)

    kind = models.CharField(
        max_length=20,
        choices=Kind.choices,
        default=Kind.RESTAURANT,
    )
    preferred_language = models.CharField(
        max_length=5,
        choices=Language.choices,
        default=Language.ENGLISH,
    )
    saved_allergens = models.JSONField(
        default=list,
        blank=True,
        help_text="Allergen names the user always wants filtered out",
    )

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS: list[str] = []

    objects = UserManager()

    class Meta:
        ordering = ["email"]

    def __str__(self) -> str:
        return self.email

    @property
    def is_restaurant_owner(self) -> bool:
        return self.kind == self.Kind.RESTAURANT

    @property
    def is_consumer(self) -> bool:
        return self.kind == self.Kind.CONSUMER

    def as_owner(self) -> "RestaurantOwner | Consumer":
        """Return this account as its owner variant (same row, proxy class)."""
        variant: Any = copy.copy(self)
        variant.__class__ = RestaurantOwner if self.is_restaurant_owner else Consumer
        return variant


class RestaurantOwner(User):
    """A user who operates one or more restaurants."""

    objects = UserKindManager(User.Kind.RESTAURANT)

    class Meta:
        proxy = True


class Consumer(User):
    """A diner who keeps a personal list of digitized menu items."""

    objects = UserKindManager(User.Kind.CONSUMER)

    class Meta:
        proxy = True


class Restaurant(TimeStampedModel):
    """A restaurant whose menu is managed by its owner."""

    owner = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name="restaurants",
    )
    name = models.CharField(max_length=200)

    class Meta:
        ordering = ["name", "pk"]

    def __str__(self) -> str:
        return self.name

    def is_owned_by(self, user: Any) -> bool:
        return bool(user and user.is_authenticated and self.owner_id == user.pk)
