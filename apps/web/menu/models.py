"""
Menu models - published restaurant items, consumer items and images.

Restaurant items and consumer items share their fields through
BaseMenuItem; they differ only in who owns them.
"""

from typing import Any

from django.db import models

from apps.web.core.models import ALLERGEN_KEYS, Restaurant, TimeStampedModel, User

from .managers import MenuItemQuerySet

DIETARY_KEYS = ("vegan", "vegetarian", "kosher", "halal")


def default_allergens() -> dict[str, bool]:
    return dict.fromkeys(ALLERGEN_KEYS, False)


def default_dietary_preferences() -> dict[str, bool]:
    return dict.fromkeys(DIETARY_KEYS, False)


class MenuItemStatus(models.TextChoices):
    """Publication state. Only live items are visible to diners."""

    DRAFT = "draft", "Draft"
    LIVE = "live", "Live"


class BaseMenuItem(TimeStampedModel):
    """
    Fields common to every kind of menu item.

    Allergen and dietary records always hold every key with a boolean value;
    the service layer fills missing keys before saving.
    """

    name = models.CharField(max_length=200, blank=True)
    name_original = models.CharField(
        max_length=200,
        blank=True,
        help_text="Name in the menu's original language",
    )
    description = models.TextField()
    price = models.CharField(max_length=50, blank=True)
    image = models.TextField(
        blank=True,
        help_text="Inline data URL or external image URL",
    )
    course_tags = models.JSONField(default=list, blank=True)
    course_original = models.CharField(max_length=200, blank=True)
    display_order = models.IntegerField(default=0)
    status = models.CharField(
        max_length=10,
        choices=MenuItemStatus.choices,
        default=MenuItemStatus.DRAFT,
    )
    allergens = models.JSONField(default=default_allergens)
    dietary_preferences = models.JSONField(default=default_dietary_preferences)

    class Meta:
        abstract = True
        ordering = ["display_order", "pk"]

    def __str__(self) -> str:
        return self.name or self.description[:40]

    @property
    def active_allergens(self) -> list[str]:
        """Names of allergens flagged true, in canonical order."""
        return [key for key in ALLERGEN_KEYS if self.allergens.get(key)]

    @property
    def display_image(self) -> str:
        return self.image


class Image(models.Model):
    """Uploaded image bytes (base64 text) plus the external store reference."""

    restaurant = models.ForeignKey(
        Restaurant,
        on_delete=models.CASCADE,
        related_name="images",
    )
    filename = models.CharField(max_length=255)
    content_type = models.CharField(max_length=100)
    data = models.TextField(help_text="Base64-encoded image bytes")
    storage_path = models.CharField(
        max_length=500,
        blank=True,
        help_text="Direct download URL from the image store",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return self.filename

    @property
    def url(self) -> str:
        """Store URL when uploaded, otherwise an inline data URL."""
        if self.storage_path:
            return self.storage_path
        return f"data:{self.content_type};base64,{self.data}"


class MenuItem(BaseMenuItem):
    """
    An item on a restaurant's menu.

    When ``image_ref`` is set it wins over the inline ``image`` field.
    """

    restaurant = models.ForeignKey(
        Restaurant,
        on_delete=models.CASCADE,
        related_name="menu_items",
    )
    image_ref = models.ForeignKey(
        Image,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="menu_items",
    )

    objects = MenuItemQuerySet.as_manager()

    class Meta(BaseMenuItem.Meta):
        indexes = [
            models.Index(
                fields=["restaurant", "status"], name="menuitem_restaurant_status_idx"
            ),
            models.Index(
                fields=["restaurant", "display_order"],
                name="menuitem_restaurant_order_idx",
            ),
        ]

    @property
    def display_image(self) -> str:
        if self.image_ref_id is not None and self.image_ref is not None:
            return self.image_ref.url
        return self.image


class ConsumerMenuItem(BaseMenuItem):
    """A dish a diner digitized into their personal list."""

    class Source(models.TextChoices):
        UPLOAD = "upload", "Upload"
        MANUAL = "manual", "Manual"

    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name="consumer_menu_items",
    )
    source = models.CharField(
        max_length=20,
        choices=Source.choices,
        default=Source.UPLOAD,
    )

    class Meta(BaseMenuItem.Meta):
        pass

    def is_owned_by(self, user: Any) -> bool:
        return bool(user and user.is_authenticated and self.user_id == user.pk)
