"""
JSON request/response helpers shared by the API views.
"""

import json
from typing import Any, TypeVar

from django.http import HttpRequest, JsonResponse

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from .exceptions import ErrorDetail, InvalidInputError, ServiceError

SchemaT = TypeVar("SchemaT", bound=BaseModel)


def json_response(data: Any, status: int = 200) -> JsonResponse:
    """Create a JSON response. Lists are allowed at the top level."""
    return JsonResponse(data, status=status, safe=False)


def error_response(exc: ServiceError) -> JsonResponse:
    """Translate a service error into its JSON error body."""
    if isinstance(exc, InvalidInputError):
        body: dict[str, Any] = {
            "error": exc.error_code,
            "message": exc.message,
            "details": [d.model_dump() for d in exc.details],
        }
    else:
        body = {"error": exc.public_message}
    return json_response(body, status=exc.status_code)


def details_from_pydantic(exc: PydanticValidationError) -> list[ErrorDetail]:
    """Flatten pydantic errors into field/message pairs."""
    return [
        ErrorDetail(
            field=".".join(str(loc) for loc in err["loc"]) or "body",
            message=err["msg"],
        )
        for err in exc.errors()
    ]


def load_json(request: HttpRequest) -> Any:
    """Decode the request body as JSON. Empty bodies decode to ``{}``."""
    if not request.body:
        return {}
    try:
        return json.loads(request.body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise InvalidInputError.for_field("body", "Invalid JSON in request body") from e


def validate_payload(schema: type[SchemaT], data: Any) -> SchemaT:
    """Validate ``data`` against ``schema`` or raise InvalidInputError."""
    try:
        return schema.model_validate(data)
    except PydanticValidationError as e:
        raise InvalidInputError(
            "Invalid request payload", details=details_from_pydantic(e)
        ) from e


def parse_body(request: HttpRequest, schema: type[SchemaT]) -> SchemaT:
    """Decode and validate a JSON request body."""
    return validate_payload(schema, load_json(request))
