"""
Decorators for request handling and validation.
"""

import logging
from collections.abc import Callable
from functools import wraps
from typing import Any

from django.http import HttpRequest, JsonResponse

from .exceptions import ServiceError
from .responses import error_response, json_response

logger = logging.getLogger(__name__)


def api_login_required(view_func: Callable[..., Any]) -> Callable[..., Any]:
    """
    Decorator that rejects anonymous callers with a 401 JSON body.

    Django's ``login_required`` redirects to a login page, which API
    clients cannot follow.

    Usage:
        @api_login_required
        def current_user(request):
            ...
    """

    @wraps(view_func)
    def wrapper(request: HttpRequest, *args: Any, **kwargs: Any) -> Any:
        if not request.user.is_authenticated:
            return json_response({"error": "Authentication required"}, status=401)
        return view_func(request, *args, **kwargs)

    return wrapper


def service_errors(view_func: Callable[..., Any]) -> Callable[..., Any]:
    """
    Decorator that converts ServiceError subclasses into JSON responses.

    Status codes come from the exception class (400, 403, 404, 409, 502).
    """

    @wraps(view_func)
    def wrapper(request: HttpRequest, *args: Any, **kwargs: Any) -> Any:
        try:
            return view_func(request, *args, **kwargs)
        except ServiceError as e:
            if e.status_code >= 500:
                logger.warning(
                    "%s %s failed: %s", request.method, request.path, e.message
                )
            return error_response(e)

    return wrapper


def restaurant_owner_required(view_func: Callable[..., Any]) -> Callable[..., Any]:
    """Decorator that limits a view to restaurant accounts (403 otherwise)."""

    @wraps(view_func)
    def wrapper(request: HttpRequest, *args: Any, **kwargs: Any) -> Any:
        if not getattr(request.user, "is_restaurant_owner", False):
            return JsonResponse(
                {"error": "Restaurant account required"},
                status=403,
            )
        return view_func(request, *args, **kwargs)

    return wrapper
