"""
Menu API views.

Owner endpoints mutate menus through MenuItemService; diner endpoints read
the live menu; the update stream pushes change events over SSE.

Errors raised by services are mapped to JSON responses by the
``service_errors`` decorator.
"""

import logging
from typing import Any

from django.conf import settings
from django.http import HttpRequest, HttpResponse, JsonResponse, StreamingHttpResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from apps.web.core.decorators import api_login_required, service_errors
from apps.web.core.exceptions import InvalidInputError
from apps.web.core.models import Restaurant
from apps.web.core.responses import json_response, load_json, parse_body, validate_payload

from .csv_io import export_filename, export_menu_csv, import_menu_csv
from .models import ConsumerMenuItem, Image, MenuItem
from .notifications import get_menu_broker
from .queries import get_public_restaurant, public_menu
from .schemas import (
    BulkDeleteRequest,
    BulkUpdateRequest,
    ConsumerMenuItemSchema,
    ImageSchema,
    ImageUploadRequest,
    ImportRequest,
    MenuFilters,
    MenuItemSchema,
    PublicMenuResponse,
    PublicRestaurantSchema,
)
from .services import get_consumer_service, get_menu_service
from .uploads import upload_consumer_image, upload_restaurant_image

logger = logging.getLogger(__name__)


def serialize_menu_item(item: MenuItem) -> dict[str, Any]:
    """Serialize a MenuItem; ``image`` carries the authoritative image."""
    return MenuItemSchema(
        id=item.pk,
        restaurant_id=item.restaurant_id,
        name=item.name,
        name_original=item.name_original,
        description=item.description,
        price=item.price,
        image=item.display_image,
        image_id=item.image_ref_id,
        course_tags=item.course_tags,
        course_original=item.course_original,
        display_order=item.display_order,
        status=item.status,
        allergens=item.allergens,
        dietary_preferences=item.dietary_preferences,
        created_at=item.created_at,
        updated_at=item.updated_at,
    ).model_dump(mode="json")


def _serialize_consumer_item(item: ConsumerMenuItem) -> dict[str, Any]:
    return ConsumerMenuItemSchema(
        id=item.pk,
        name=item.name,
        name_original=item.name_original,
        description=item.description,
        price=item.price,
        image=item.display_image,
        course_tags=item.course_tags,
        course_original=item.course_original,
        status=item.status,
        allergens=item.allergens,
        dietary_preferences=item.dietary_preferences,
        source=item.source,
        created_at=item.created_at,
    ).model_dump(mode="json")


def _serialize_image(image: Image) -> dict[str, Any]:
    return ImageSchema(
        id=image.pk,
        restaurant_id=image.restaurant_id,
        filename=image.filename,
        content_type=image.content_type,
        url=image.url,
        created_at=image.created_at,
    ).model_dump(mode="json")


def _int_param(request: HttpRequest, name: str) -> int:
    raw = request.GET.get(name)
    if raw is None or raw == "":
        raise InvalidInputError.for_field(name, f"{name} is required")
    try:
        return int(raw)
    except ValueError as e:
        raise InvalidInputError.for_field(name, f"{name} must be an integer") from e


# =============================================================================
# Owner: menu items
# =============================================================================


@csrf_exempt
@require_http_methods(["GET", "POST"])
@service_errors
def menu_items(request: HttpRequest) -> JsonResponse:
    """
    GET /api/menu-items?restaurant_id=&status=
        Items of a restaurant in display order. Only the owner sees drafts;
        everyone else gets live items whatever ``status`` says.

    POST /api/menu-items
        Create an item (owner only). Response: 201 with the item.
    """
    service = get_menu_service()

    if request.method == "GET":
        restaurant_id = _int_param(request, "restaurant_id")
        status = request.GET.get("status") or None
        restaurant = Restaurant.objects.filter(pk=restaurant_id).first()
        if restaurant is None or not restaurant.is_owned_by(request.user):
            status = "live"
        items = service.list(restaurant_id, status=status)
        return json_response([serialize_menu_item(item) for item in items])

    if not request.user.is_authenticated:
        return json_response({"error": "Authentication required"}, status=401)
    item = service.create(load_json(request), request.user)
    return json_response(serialize_menu_item(item), status=201)


@csrf_exempt
@require_http_methods(["PATCH", "DELETE"])
@api_login_required
@service_errors
def menu_item_detail(request: HttpRequest, item_id: int) -> HttpResponse:
    """
    PATCH /api/menu-items/{id} - merge the given fields over the item
    DELETE /api/menu-items/{id} - Response: 204
    """
    service = get_menu_service()

    if request.method == "DELETE":
        service.delete(item_id, request.user)
        return HttpResponse(status=204)

    item = service.update(item_id, load_json(request), request.user)
    return json_response(serialize_menu_item(item))


@csrf_exempt
@require_http_methods(["PATCH"])
@api_login_required
@service_errors
def menu_item_status(request: HttpRequest, item_id: int) -> JsonResponse:
    """
    PATCH /api/menu-items/{id}/status

    Request body: {"status": "draft" | "live"}
    """
    body = load_json(request)
    status = body.get("status") if isinstance(body, dict) else None
    item = get_menu_service().update_status(item_id, status, request.user)
    return json_response(serialize_menu_item(item))


@csrf_exempt
@require_POST
@api_login_required
@service_errors
def bulk_delete(request: HttpRequest) -> JsonResponse:
    """
    POST /api/menu-items/bulk-delete

    Best effort: 200 with the ids deleted and the ids that failed.
    """
    payload = parse_body(request, BulkDeleteRequest)
    result = get_menu_service().delete_many(payload.ids, request.user)
    return json_response(result.model_dump(mode="json"))


@csrf_exempt
@require_http_methods(["PATCH"])
@api_login_required
@service_errors
def bulk_update(request: HttpRequest) -> JsonResponse:
    """
    PATCH /api/menu-items/bulk-update

    Request body: {"restaurant_ids": [...], "updates": {...}}
    """
    payload = parse_body(request, BulkUpdateRequest)
    updated = get_menu_service().bulk_update(
        payload.restaurant_ids, payload.updates, request.user
    )
    return json_response({"updated": updated})


@csrf_exempt
@require_POST
@api_login_required
@service_errors
def reorder(request: HttpRequest, restaurant_id: int) -> JsonResponse:
    """
    POST /api/restaurants/{id}/reorder

    Request body: {"item_ids": [...]} in the desired display order
    """
    body = load_json(request)
    item_ids = body.get("item_ids") if isinstance(body, dict) else None
    items = get_menu_service().reorder(restaurant_id, item_ids, request.user)
    return json_response([serialize_menu_item(item) for item in items])


@csrf_exempt
@require_POST
@api_login_required
@service_errors
def upload_image(request: HttpRequest) -> JsonResponse:
    """
    POST /api/menu-items/upload

    Owners: stores an Image for ``restaurant_id`` (201 with the image).
    Consumers: stores a personal photo (201 with ``{"url": ...}``).
    """
    payload = parse_body(request, ImageUploadRequest)
    if request.user.is_consumer:
        url = upload_consumer_image(payload, request.user)
        return json_response({"url": url}, status=201)

    image = upload_restaurant_image(get_menu_service(), payload, request.user)
    return json_response(_serialize_image(image), status=201)


# =============================================================================
# CSV
# =============================================================================


@require_GET
@api_login_required
@service_errors
def export_menu(request: HttpRequest, restaurant_id: int) -> HttpResponse:
    """
    GET /api/restaurants/{id}/menu/export

    All items (draft and live) as a CSV attachment.
    """
    restaurant = get_menu_service().get_owned_restaurant(restaurant_id, request.user)
    response = HttpResponse(export_menu_csv(restaurant), content_type="text/csv")
    response["Content-Disposition"] = (
        f'attachment; filename="{export_filename(restaurant)}"'
    )
    return response


@csrf_exempt
@require_POST
@api_login_required
@service_errors
def import_menu(request: HttpRequest, restaurant_id: int) -> JsonResponse:
    """
    POST /api/restaurants/{id}/menu/import

    Body: raw ``text/csv`` or JSON ``{"csv_data": "..."}``.
    Response: 200 with success/failed counts and per-row errors; 400 when
    the header is missing required columns.
    """
    if request.content_type == "text/csv":
        try:
            text = request.body.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise InvalidInputError.for_field("body", "CSV must be UTF-8") from e
    else:
        text = parse_body(request, ImportRequest).csv_data

    result = import_menu_csv(get_menu_service(), restaurant_id, text, request.user)
    return json_response(result.model_dump(mode="json"))


# =============================================================================
# Diners
# =============================================================================


@require_GET
@service_errors
def public_menu_view(request: HttpRequest, restaurant_id: int) -> JsonResponse:
    """
    GET /api/restaurants/{id}/public-menu?search=&tags=a,b&exclude=milk&dietary=vegan

    Live items only, all filters combined with AND, in display order.
    """
    filters = validate_payload(MenuFilters, MenuFilters.query_data(request.GET))
    restaurant = get_public_restaurant(restaurant_id)
    items, tags = public_menu(restaurant, filters)

    response = PublicMenuResponse(
        restaurant=PublicRestaurantSchema(id=restaurant.pk, name=restaurant.name),
        items=[serialize_menu_item(item) for item in items],
        available_tags=tags,
    )
    return json_response(response.model_dump(mode="json"))


@require_GET
async def menu_updates(request: HttpRequest, restaurant_id: int) -> StreamingHttpResponse:
    """
    GET /api/menu-updates/{restaurant_id}

    Server-Sent Events stream of change notifications for one restaurant.
    Unauthenticated; carries no menu data, only "refetch now" signals.
    Requires an ASGI server.
    """
    stream = get_menu_broker().stream(
        restaurant_id, keepalive=settings.MENU_UPDATES_KEEPALIVE_SECONDS
    )
    response = StreamingHttpResponse(stream, content_type="text/event-stream")
    response["Cache-Control"] = "no-cache"
    response["X-Accel-Buffering"] = "no"
    return response


# =============================================================================
# Consumers
# =============================================================================


@csrf_exempt
@require_http_methods(["GET", "POST"])
@api_login_required
@service_errors
def consumer_menu_items(request: HttpRequest) -> JsonResponse:
    """
    GET /api/consumer/menu-items - the caller's saved items
    POST /api/consumer/menu-items - save one (201)
    """
    service = get_consumer_service()

    if request.method == "GET":
        items = service.list(request.user)
        return json_response([_serialize_consumer_item(item) for item in items])

    item = service.create(load_json(request), request.user)
    return json_response(_serialize_consumer_item(item), status=201)


@csrf_exempt
@require_http_methods(["DELETE"])
@api_login_required
@service_errors
def consumer_menu_item_detail(request: HttpRequest, item_id: int) -> HttpResponse:
    """DELETE /api/consumer/menu-items/{id} - Response: 204"""
    get_consumer_service().delete(item_id, request.user)
    return HttpResponse(status=204)
