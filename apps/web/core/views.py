"""
Account and restaurant API views.

Session-cookie authentication: register and login establish the session,
every other endpoint here (except the public restaurant lookup) requires it.
"""

import logging

from django.conf import settings
from django.contrib.auth import (
    authenticate,
    login,
    logout,
    update_session_auth_hash,
)
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction
from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from apps.web.core.decorators import (
    api_login_required,
    restaurant_owner_required,
    service_errors,
)
from apps.web.core.exceptions import (
    ConflictError,
    ErrorDetail,
    InvalidInputError,
    NotFoundError,
)
from apps.web.core.models import Restaurant, User
from apps.web.core.responses import json_response, parse_body
from apps.web.core.schemas import (
    AccountUpdateRequest,
    LoginRequest,
    PreferencesUpdate,
    RegisterRequest,
    RestaurantCreate,
    RestaurantSchema,
    UserSchema,
)

logger = logging.getLogger(__name__)

AUTH_BACKEND = "django.contrib.auth.backends.ModelBackend"


def _serialize_user(user: User) -> dict:
    return UserSchema.model_validate(user).model_dump(mode="json")


def public_menu_url(request: HttpRequest, restaurant: Restaurant) -> str:
    """Shareable link diners open (clients render it as a QR code)."""
    base = settings.PUBLIC_MENU_BASE_URL or request.build_absolute_uri("/")
    return f"{base.rstrip('/')}/menu/{restaurant.pk}"


def _serialize_restaurant(request: HttpRequest, restaurant: Restaurant) -> dict:
    return RestaurantSchema(
        id=restaurant.pk,
        name=restaurant.name,
        public_url=public_menu_url(request, restaurant),
    ).model_dump(mode="json")


def _check_password_strength(password: str, user: User, field: str) -> None:
    """Run Django's password validators, reporting failures against ``field``."""
    try:
        validate_password(password, user=user)
    except DjangoValidationError as e:
        raise InvalidInputError(
            "Password is too weak",
            details=[ErrorDetail(field=field, message=msg) for msg in e.messages],
        ) from e


def _email_taken(email: str, exclude_pk: int | None = None) -> bool:
    qs = User.objects.filter(email=email)
    if exclude_pk is not None:
        qs = qs.exclude(pk=exclude_pk)
    return qs.exists()


# =============================================================================
# Authentication
# =============================================================================


@csrf_exempt
@require_POST
@service_errors
def register(request: HttpRequest) -> JsonResponse:
    """
    POST /api/register

    Create an account (and optionally its first restaurant) and log in.

    Response: 201 with user and restaurants, 400 validation, 409 duplicate email
    """
    payload = parse_body(request, RegisterRequest)
    email = User.objects.normalize_email(payload.email)

    if _email_taken(email):
        raise ConflictError("Email already registered")

    _check_password_strength(payload.password, User(email=email), "password")

    try:
        with transaction.atomic():
            user = User.objects.create_user(
                email=email,
                password=payload.password,
                kind=payload.kind,
            )
            restaurants = []
            if payload.kind == User.Kind.RESTAURANT and payload.restaurant_name:
                restaurants.append(
                    Restaurant.objects.create(owner=user, name=payload.restaurant_name)
                )
    except IntegrityError as e:
        raise ConflictError("Email already registered") from e

    login(request, user, backend=AUTH_BACKEND)
    logger.info("Registered %s account %s", user.kind, user.pk)

    return json_response(
        {
            "user": _serialize_user(user),
            "restaurants": [_serialize_restaurant(request, r) for r in restaurants],
        },
        status=201,
    )


@csrf_exempt
@require_POST
@service_errors
def login_view(request: HttpRequest) -> JsonResponse:
    """
    POST /api/login

    Response: 200 with user, 401 on bad credentials
    """
    payload = parse_body(request, LoginRequest)
    user = authenticate(
        request,
        email=User.objects.normalize_email(payload.email),
        password=payload.password,
    )
    if user is None:
        logger.info("Failed login attempt")
        return json_response({"error": "Invalid email or password"}, status=401)

    login(request, user, backend=AUTH_BACKEND)
    return json_response({"user": _serialize_user(user)})


@csrf_exempt
@require_POST
def logout_view(request: HttpRequest) -> JsonResponse:
    """POST /api/logout"""
    logout(request)
    return json_response({"status": "logged_out"})


# =============================================================================
# Account
# =============================================================================


@csrf_exempt
@require_http_methods(["GET", "PATCH"])
@api_login_required
@service_errors
def current_user(request: HttpRequest) -> JsonResponse:
    """
    GET /api/user - the logged-in account
    PATCH /api/user - change email and/or password (needs current_password)
    """
    user = request.user
    if request.method == "GET":
        return json_response(_serialize_user(user))

    payload = parse_body(request, AccountUpdateRequest)
    if not user.check_password(payload.current_password):
        raise InvalidInputError.for_field(
            "current_password", "Current password is incorrect"
        )

    update_fields = []
    if payload.email is not None:
        email = User.objects.normalize_email(payload.email)
        if email != user.email:
            if _email_taken(email, exclude_pk=user.pk):
                raise ConflictError("Email already registered")
            user.email = email
            update_fields.append("email")

    if payload.new_password is not None:
        _check_password_strength(payload.new_password, user, "new_password")
        user.set_password(payload.new_password)
        update_fields.append("password")

    if update_fields:
        user.save(update_fields=update_fields)
        if "password" in update_fields:
            # Keep this session alive; other sessions are invalidated
            update_session_auth_hash(request, user)
        logger.info("Account %s updated: %s", user.pk, ", ".join(update_fields))

    return json_response(_serialize_user(user))


@csrf_exempt
@require_http_methods(["PATCH"])
@api_login_required
@service_errors
def preferences(request: HttpRequest) -> JsonResponse:
    """
    PATCH /api/user/preferences

    Request body: preferred_language and/or saved_allergens
    """
    payload = parse_body(request, PreferencesUpdate)
    user = request.user

    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    for field, value in changes.items():
        setattr(user, field, value)
    if changes:
        user.save(update_fields=list(changes))

    return json_response(_serialize_user(user))


# =============================================================================
# Restaurants
# =============================================================================


@csrf_exempt
@require_http_methods(["GET", "POST"])
@api_login_required
@restaurant_owner_required
@service_errors
def restaurants(request: HttpRequest) -> JsonResponse:
    """
    GET /api/restaurants - restaurants owned by the caller
    POST /api/restaurants - create one
    """
    if request.method == "GET":
        owned = Restaurant.objects.filter(owner=request.user)
        return json_response([_serialize_restaurant(request, r) for r in owned])

    payload = parse_body(request, RestaurantCreate)
    restaurant = Restaurant.objects.create(owner=request.user, name=payload.name)
    logger.info("Restaurant %s created by %s", restaurant.pk, request.user.pk)
    return json_response(_serialize_restaurant(request, restaurant), status=201)


@require_GET
@service_errors
def restaurant_detail(request: HttpRequest, restaurant_id: int) -> JsonResponse:
    """
    GET /api/restaurants/{id}

    Public: diners resolve the restaurant name from a shared link.
    """
    try:
        restaurant = Restaurant.objects.get(pk=restaurant_id)
    except Restaurant.DoesNotExist as e:
        raise NotFoundError("Restaurant not found") from e
    return json_response(_serialize_restaurant(request, restaurant))
