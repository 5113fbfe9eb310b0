"""
Query helpers for menu items.

Usage:
    MenuItem.objects.for_restaurant(restaurant_id).live()
"""

from django.db import models


class MenuItemQuerySet(models.QuerySet):  # type: ignore[type-arg]
    """QuerySet with restaurant and publication filters."""

    def for_restaurant(self, restaurant_id: int) -> "MenuItemQuerySet":
        return self.filter(restaurant_id=restaurant_id)

    def with_status(self, status: str | None) -> "MenuItemQuerySet":
        if status is None:
            return self
        return self.filter(status=status)

    def live(self) -> "MenuItemQuerySet":
        return self.filter(status="live")

    def in_display_order(self) -> "MenuItemQuerySet":
        return self.order_by("display_order", "pk")
