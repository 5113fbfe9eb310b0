"""
Public menu queries - the diner-facing, filtered view of a live menu.

Read-only. Text search runs in the database; tag, allergen and dietary
filters run over the fetched rows because they live in JSON columns whose
containment lookups are not portable across database backends.
"""

from collections.abc import Iterable

from django.db.models import Q

from apps.web.core.models import Restaurant

from .exceptions import MenuItemNotFound
from .models import MenuItem
from .schemas import MenuFilters


def matches_filters(item: MenuItem, filters: MenuFilters) -> bool:
    """True when ``item`` passes every tag, allergen and dietary filter."""
    if filters.tags and not set(filters.tags).issubset(item.course_tags):
        return False
    if any(item.allergens.get(name) for name in filters.exclude_allergens):
        return False
    return all(item.dietary_preferences.get(name) for name in filters.dietary)


def available_tags(items: Iterable[MenuItem]) -> list[str]:
    """Sorted set of course tags across ``items``, for the tag picker."""
    return sorted({tag for item in items for tag in item.course_tags})


def get_public_restaurant(restaurant_id: int) -> Restaurant:
    try:
        return Restaurant.objects.get(pk=restaurant_id)
    except Restaurant.DoesNotExist as e:
        raise MenuItemNotFound("Restaurant not found") from e


def public_menu(
    restaurant: Restaurant | int, filters: MenuFilters | None = None
) -> tuple[list[MenuItem], list[str]]:
    """
    Live items of a restaurant that pass ``filters``, in display order.

    ``restaurant`` is a loaded Restaurant or an id to look up (missing ids
    raise MenuItemNotFound).

    Returns the matching items plus the tags available across all live
    items (unfiltered), so the tag picker does not shrink as tags are
    selected.
    """
    filters = filters or MenuFilters()
    if not isinstance(restaurant, Restaurant):
        restaurant = get_public_restaurant(restaurant)
    restaurant_id = restaurant.pk

    live = list(
        MenuItem.objects.for_restaurant(restaurant_id)
        .live()
        .select_related("image_ref")
        .in_display_order()
    )
    tags = available_tags(live)

    if filters.search:
        matching_ids = set(
            MenuItem.objects.for_restaurant(restaurant_id)
            .live()
            .filter(
                Q(name__icontains=filters.search)
                | Q(description__icontains=filters.search)
            )
            .values_list("pk", flat=True)
        )
        live = [item for item in live if item.pk in matching_ids]

    return [item for item in live if matches_filters(item, filters)], tags
