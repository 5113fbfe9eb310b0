"""
Menu item lifecycle - validated mutations with ownership enforcement.

Services are built once at app start (MenuConfig.ready) with their
notifier injected; views fetch them via get_menu_service() and
get_consumer_service().

Every successful mutation of a restaurant's items publishes one
MenuUpdateEvent for that restaurant after the transaction commits, so a
rolled-back write never notifies and a slow stream never delays a write.
"""

import logging
from collections.abc import Iterable
from typing import Any, Protocol, TypeVar

from django.apps import apps
from django.db import transaction

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from apps.web.core.models import ALLERGEN_KEYS, Consumer, Restaurant
from apps.web.core.responses import details_from_pydantic

from .exceptions import MenuAuthorizationError, MenuItemNotFound, MenuValidationError
from .models import (
    DIETARY_KEYS,
    ConsumerMenuItem,
    Image,
    MenuItem,
    MenuItemStatus,
)
from .schemas import (
    BulkDeleteResult,
    BulkFailure,
    ConsumerMenuItemCreate,
    MenuAction,
    MenuItemCreate,
    MenuItemPatch,
    MenuUpdateEvent,
    ReorderRequest,
    StatusUpdate,
)

logger = logging.getLogger(__name__)

SchemaT = TypeVar("SchemaT", bound=BaseModel)


class MenuNotifier(Protocol):
    """Anything that can fan an event out to a restaurant's open streams."""

    def publish(self, restaurant_id: int, event: MenuUpdateEvent) -> int: ...


def _validate(schema: type[SchemaT], data: Any) -> SchemaT:
    if isinstance(data, schema):
        return data
    try:
        return schema.model_validate(data)
    except PydanticValidationError as e:
        raise MenuValidationError(
            "Invalid menu item data", details=details_from_pydantic(e)
        ) from e


def _merge_flags(
    current: dict[str, Any], updates: dict[str, bool], keys: Iterable[str]
) -> dict[str, bool]:
    """Overlay ``updates`` on ``current``, keeping every key boolean."""
    merged = {key: bool(current.get(key, False)) for key in keys}
    merged.update(updates)
    return merged


class MenuItemService:
    """Create, change and delete a restaurant's menu items."""

    def __init__(self, notifier: MenuNotifier) -> None:
        self.notifier = notifier

    # =========================================================================
    # Ownership
    # =========================================================================

    def get_owned_restaurant(self, restaurant_id: int, acting_user: Any) -> Restaurant:
        """
        Restaurant ``restaurant_id`` if ``acting_user`` owns it.

        Raises MenuAuthorizationError for foreign and missing restaurants
        alike so callers cannot probe which ids exist.
        """
        restaurant = Restaurant.objects.filter(pk=restaurant_id).first()
        if restaurant is None or not restaurant.is_owned_by(acting_user):
            raise MenuAuthorizationError()
        return restaurant

    def get_owned_item(self, item_id: int, acting_user: Any) -> MenuItem:
        try:
            item = MenuItem.objects.select_related("restaurant").get(pk=item_id)
        except MenuItem.DoesNotExist as e:
            raise MenuItemNotFound(f"Menu item {item_id} not found") from e
        if not item.restaurant.is_owned_by(acting_user):
            raise MenuAuthorizationError()
        return item

    def _resolve_image(self, image_id: int | None, restaurant: Restaurant) -> Image | None:
        if image_id is None:
            return None
        image = Image.objects.filter(pk=image_id, restaurant=restaurant).first()
        if image is None:
            raise MenuValidationError.for_field(
                "image_id", "Image not found for this restaurant"
            )
        return image

    # =========================================================================
    # Notifications
    # =========================================================================

    def notify(self, restaurant_id: int, action: MenuAction, item_ids: Iterable[int]) -> None:
        """Publish a change event once the surrounding transaction commits."""
        event = MenuUpdateEvent(
            restaurant_id=restaurant_id, action=action, item_ids=list(item_ids)
        )
        transaction.on_commit(lambda: self._publish(event))

    def _publish(self, event: MenuUpdateEvent) -> None:
        try:
            self.notifier.publish(event.restaurant_id, event)
        except Exception:
            # Delivery is best effort; the mutation already committed
            logger.exception(
                "Failed to publish %s for restaurant %s",
                event.action,
                event.restaurant_id,
            )

    # =========================================================================
    # Mutations
    # =========================================================================

    def create(
        self,
        payload: MenuItemCreate | dict[str, Any],
        acting_user: Any,
        notify: bool = True,
    ) -> MenuItem:
        """
        Validate and persist a new item for a restaurant the user owns.

        ``notify=False`` lets batch callers (CSV import) publish a single
        event for the whole batch.
        """
        data = _validate(MenuItemCreate, payload)
        restaurant = self.get_owned_restaurant(data.restaurant_id, acting_user)
        image_ref = self._resolve_image(data.image_id, restaurant)

        item = MenuItem.objects.create(
            restaurant=restaurant,
            image_ref=image_ref,
            **data.to_model_fields(),
        )
        logger.info("Menu item %s created for restaurant %s", item.pk, restaurant.pk)

        if notify:
            self.notify(restaurant.pk, "created", [item.pk])
        return item

    def _apply(self, item: MenuItem, changes: dict[str, Any]) -> None:
        """Merge patch fields onto ``item`` (no save)."""
        for field, value in changes.items():
            if field == "allergens":
                value = _merge_flags(item.allergens, value, ALLERGEN_KEYS)
            elif field == "dietary_preferences":
                value = _merge_flags(item.dietary_preferences, value, DIETARY_KEYS)
            setattr(item, field, value)

    def update(
        self,
        item_id: int,
        patch: MenuItemPatch | dict[str, Any],
        acting_user: Any,
    ) -> MenuItem:
        """
        Merge the fields present in ``patch`` over the stored item.

        Ownership is checked before the patch is validated. Moving the item
        (``restaurant_id``) requires owning the target restaurant too.
        """
        item = self.get_owned_item(item_id, acting_user)
        changes = _validate(MenuItemPatch, patch).changes()

        previous_restaurant_id = item.restaurant_id
        target_id = changes.pop("restaurant_id", None)
        if target_id is not None and target_id != previous_restaurant_id:
            item.restaurant = self.get_owned_restaurant(target_id, acting_user)
            if item.image_ref_id is not None:
                # Images belong to a restaurant; do not carry one across
                item.image_ref = None

        self._apply(item, changes)
        item.save()
        logger.info("Menu item %s updated (%s)", item.pk, ", ".join(changes) or "move")

        self.notify(item.restaurant_id, "updated", [item.pk])
        if item.restaurant_id != previous_restaurant_id:
            self.notify(previous_restaurant_id, "deleted", [item.pk])
        return item

    def update_status(self, item_id: int, status: str, acting_user: Any) -> MenuItem:
        """Publish (``live``) or unpublish (``draft``) an item."""
        item = self.get_owned_item(item_id, acting_user)
        new_status = _validate(StatusUpdate, {"status": status}).status

        item.status = new_status
        item.save(update_fields=["status", "updated_at"])
        logger.info("Menu item %s is now %s", item.pk, new_status)

        self.notify(item.restaurant_id, "status_changed", [item.pk])
        return item

    def attach_image(self, item_id: int, image: Image, acting_user: Any) -> MenuItem:
        """Point ``image_ref`` at a stored image of the same restaurant."""
        item = self.get_owned_item(item_id, acting_user)
        if image.restaurant_id != item.restaurant_id:
            raise MenuValidationError.for_field(
                "menu_item_id", "Image and menu item belong to different restaurants"
            )
        item.image_ref = image
        item.save(update_fields=["image_ref", "updated_at"])

        self.notify(item.restaurant_id, "updated", [item.pk])
        return item

    def delete(self, item_id: int, acting_user: Any) -> None:
        restaurant_id, pk = self._delete_owned(item_id, acting_user)
        self.notify(restaurant_id, "deleted", [pk])

    def _delete_owned(self, item_id: int, acting_user: Any) -> tuple[int, int]:
        item = self.get_owned_item(item_id, acting_user)
        restaurant_id, pk = item.restaurant_id, item.pk
        item.delete()
        logger.info("Menu item %s deleted from restaurant %s", pk, restaurant_id)
        return restaurant_id, pk

    def delete_many(self, item_ids: Iterable[int], acting_user: Any) -> BulkDeleteResult:
        """
        Delete each item independently.

        Not transactional: items that fail (missing, not owned) are reported
        and the rest are still deleted. Publishes one ``deleted`` event per
        affected restaurant.
        """
        result = BulkDeleteResult()
        deleted: dict[int, list[int]] = {}
        for item_id in dict.fromkeys(item_ids):
            try:
                restaurant_id, pk = self._delete_owned(item_id, acting_user)
            except (MenuItemNotFound, MenuAuthorizationError) as e:
                result.failed.append(BulkFailure(id=item_id, error=e.message))
            else:
                result.succeeded.append(pk)
                deleted.setdefault(restaurant_id, []).append(pk)

        for restaurant_id, pks in deleted.items():
            self.notify(restaurant_id, "deleted", pks)

        if result.failed:
            logger.warning(
                "Bulk delete: %d deleted, %d failed",
                len(result.succeeded),
                len(result.failed),
            )
        return result

    def bulk_update(
        self,
        restaurant_ids: Iterable[int],
        patch: MenuItemPatch | dict[str, Any],
        acting_user: Any,
    ) -> int:
        """
        Apply one patch to every item of several restaurants.

        All restaurants are checked for ownership before anything is
        written. Returns the number of items updated.
        """
        restaurants = [
            self.get_owned_restaurant(rid, acting_user)
            for rid in dict.fromkeys(restaurant_ids)
        ]
        changes = _validate(MenuItemPatch, patch).changes()
        if "restaurant_id" in changes:
            raise MenuValidationError.for_field(
                "restaurant_id", "Bulk updates cannot move items between restaurants"
            )

        updated = 0
        with transaction.atomic():
            for restaurant in restaurants:
                items = list(MenuItem.objects.for_restaurant(restaurant.pk))
                for item in items:
                    self._apply(item, changes)
                    item.save()
                if items:
                    self.notify(restaurant.pk, "bulk_updated", [i.pk for i in items])
                updated += len(items)

        logger.info(
            "Bulk update of %s across %d restaurant(s): %d item(s)",
            ", ".join(changes),
            len(restaurants),
            updated,
        )
        return updated

    def reorder(
        self, restaurant_id: int, ordered_ids: list[int], acting_user: Any
    ) -> list[MenuItem]:
        """
        Set ``display_order`` to each id's position in ``ordered_ids``.

        Items left out keep their current order value.
        """
        restaurant = self.get_owned_restaurant(restaurant_id, acting_user)
        ids = _validate(ReorderRequest, {"item_ids": ordered_ids}).item_ids

        items = {
            item.pk: item
            for item in MenuItem.objects.for_restaurant(restaurant.pk).filter(pk__in=ids)
        }
        missing = [pk for pk in ids if pk not in items]
        if missing:
            raise MenuValidationError.for_field(
                "item_ids",
                "Items not on this restaurant's menu: "
                + ", ".join(str(pk) for pk in missing),
            )

        with transaction.atomic():
            for position, pk in enumerate(ids):
                item = items[pk]
                item.display_order = position
                item.save(update_fields=["display_order", "updated_at"])

        self.notify(restaurant.pk, "reordered", ids)
        return [items[pk] for pk in ids]

    # =========================================================================
    # Reads
    # =========================================================================

    def list(self, restaurant_id: int, status: str | None = None) -> list[MenuItem]:
        """
        Items of a restaurant in display order, optionally by status.

        No ownership check; callers decide what the requester may see.
        """
        if status is not None and status not in MenuItemStatus.values:
            raise MenuValidationError.for_field("status", f"Unknown status '{status}'")
        return list(
            MenuItem.objects.for_restaurant(restaurant_id)
            .with_status(status)
            .select_related("image_ref")
            .in_display_order()
        )


class ConsumerMenuItemService:
    """A consumer's personal list of digitized menu items."""

    def _consumer(self, acting_user: Any) -> Consumer:
        if not getattr(acting_user, "is_authenticated", False) or not acting_user.is_consumer:
            raise MenuAuthorizationError("Consumer account required")
        return acting_user.as_owner()  # type: ignore[no-any-return]

    def create(
        self, payload: ConsumerMenuItemCreate | dict[str, Any], acting_user: Any
    ) -> ConsumerMenuItem:
        consumer = self._consumer(acting_user)
        data = _validate(ConsumerMenuItemCreate, payload)
        item = ConsumerMenuItem.objects.create(user=consumer, **data.to_model_fields())
        logger.info("Consumer item %s saved for user %s", item.pk, consumer.pk)
        return item

    def list(self, acting_user: Any) -> list[ConsumerMenuItem]:
        consumer = self._consumer(acting_user)
        return list(ConsumerMenuItem.objects.filter(user=consumer))

    def delete(self, item_id: int, acting_user: Any) -> None:
        consumer = self._consumer(acting_user)
        try:
            item = ConsumerMenuItem.objects.get(pk=item_id)
        except ConsumerMenuItem.DoesNotExist as e:
            raise MenuItemNotFound(f"Menu item {item_id} not found") from e
        if not item.is_owned_by(consumer):
            raise MenuAuthorizationError("You do not have access to this menu item")
        item.delete()


def get_menu_service() -> MenuItemService:
    return apps.get_app_config("menu").service  # type: ignore[attr-defined,no-any-return]


def get_consumer_service() -> ConsumerMenuItemService:
    return apps.get_app_config("menu").consumer_service  # type: ignore[attr-defined,no-any-return]
