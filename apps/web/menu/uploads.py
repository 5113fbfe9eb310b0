"""
Menu image uploads.

The external store is written first: if it fails nothing is saved and the
caller gets a generic 502. The upload webhook fires only after a
successful store upload.
"""

import logging
from typing import Any

from django.conf import settings
from django.db import transaction

from apps.web.integrations.image_store import decode_image_data, get_image_store
from apps.web.integrations.webhooks import notify_upload_webhook

from .exceptions import MenuAuthorizationError, MenuValidationError
from .models import Image
from .schemas import ImageUploadRequest
from .services import MenuItemService

logger = logging.getLogger(__name__)


def _decode(data: str) -> tuple[str, bytes]:
    try:
        return decode_image_data(data)
    except ValueError as e:
        raise MenuValidationError.for_field("data", str(e)) from e


def upload_restaurant_image(
    service: MenuItemService, payload: ImageUploadRequest, acting_user: Any
) -> Image:
    """
    Store an image for a restaurant and optionally link it to an item.

    With ``menu_item_id`` the item's ``image_ref`` points at the new image,
    which makes it the item's displayed image.
    """
    if payload.restaurant_id is None:
        raise MenuValidationError.for_field("restaurant_id", "Restaurant is required")

    restaurant = service.get_owned_restaurant(payload.restaurant_id, acting_user)
    if payload.menu_item_id is not None:
        item = service.get_owned_item(payload.menu_item_id, acting_user)
        if item.restaurant_id != restaurant.pk:
            raise MenuValidationError.for_field(
                "menu_item_id", "Menu item belongs to a different restaurant"
            )

    encoded, raw = _decode(payload.data)

    storage_path = ""
    store = get_image_store()
    if store is not None:
        stored = store.upload_restaurant_image(raw, payload.filename)
        storage_path = stored.download_url
        notify_upload_webhook(settings.UPLOAD_WEBHOOK_URL, stored.download_url)
    else:
        logger.debug("Image store not configured, keeping image inline only")

    with transaction.atomic():
        image = Image.objects.create(
            restaurant=restaurant,
            filename=payload.filename,
            content_type=payload.content_type,
            data=encoded,
            storage_path=storage_path,
        )
        if payload.menu_item_id is not None:
            service.attach_image(payload.menu_item_id, image, acting_user)

    logger.info(
        "Image %s stored for restaurant %s (%d bytes)", image.pk, restaurant.pk, len(raw)
    )
    return image


def upload_consumer_image(payload: ImageUploadRequest, acting_user: Any) -> str:
    """
    Store a consumer's menu photo and return its URL.

    Consumer photos are not kept in the database; without a configured
    store the photo comes back as a data URL.
    """
    if not acting_user.is_consumer:
        raise MenuAuthorizationError("Consumer account required")

    encoded, raw = _decode(payload.data)

    store = get_image_store()
    if store is None:
        return f"data:{payload.content_type};base64,{encoded}"

    stored = store.upload_consumer_image(raw, payload.filename, acting_user.pk)
    notify_upload_webhook(settings.UPLOAD_WEBHOOK_URL, stored.download_url)
    logger.info("Consumer %s uploaded %d bytes", acting_user.pk, len(raw))
    return stored.download_url
