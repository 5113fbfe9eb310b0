"""
Pydantic schemas for the menu API.

Request models validate owner input before anything is written; response
models define the public contract for menu data.
"""

from collections.abc import Iterable
from datetime import datetime
from typing import Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from apps.web.core.schemas import AllergenName

DietaryName = Literal["vegan", "vegetarian", "kosher", "halal"]
StatusName = Literal["draft", "live"]
MenuAction = Literal[
    "created",
    "updated",
    "status_changed",
    "deleted",
    "imported",
    "reordered",
    "bulk_updated",
]


def normalize_course_tags(tags: Iterable[str]) -> list[str]:
    """Trim tags, drop empties and collapse exact duplicates (first one wins)."""
    cleaned = (tag.strip() for tag in tags)
    return list(dict.fromkeys(tag for tag in cleaned if tag))


def _item_tags(tags: Iterable[str]) -> list[str]:
    cleaned = normalize_course_tags(tags)
    if any(";" in tag for tag in cleaned):
        raise ValueError("Course tags must not contain ';'")
    return cleaned


def _require_text(value: str) -> str:
    if not value.strip():
        raise ValueError("Description is required")
    return value


# =============================================================================
# Flag records
# =============================================================================


class AllergenFlags(BaseModel):
    """All eight allergens; unspecified ones are false, unknown keys rejected."""

    model_config = ConfigDict(extra="forbid")

    milk: bool = False
    eggs: bool = False
    peanuts: bool = False
    nuts: bool = False
    shellfish: bool = False
    fish: bool = False
    soy: bool = False
    gluten: bool = False


class DietaryFlags(BaseModel):
    """All four dietary preferences; unspecified ones are false."""

    model_config = ConfigDict(extra="forbid")

    vegan: bool = False
    vegetarian: bool = False
    kosher: bool = False
    halal: bool = False


# =============================================================================
# Item payloads
# =============================================================================


class MenuItemFields(BaseModel):
    """Fields shared by restaurant and consumer item payloads."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(default="", max_length=200)
    name_original: str = Field(default="", max_length=200)
    description: str = Field(min_length=1)
    price: str = Field(default="", max_length=50)
    image: str = ""
    course_tags: list[str] = Field(default_factory=list)
    course_original: str = Field(default="", max_length=200)
    display_order: int = 0
    status: StatusName = "draft"
    allergens: AllergenFlags = Field(default_factory=AllergenFlags)
    dietary_preferences: DietaryFlags = Field(default_factory=DietaryFlags)

    @field_validator("description")
    @classmethod
    def check_description(cls, v: str) -> str:
        return _require_text(v)

    @field_validator("course_tags")
    @classmethod
    def clean_tags(cls, v: list[str]) -> list[str]:
        return _item_tags(v)

    def to_model_fields(self) -> dict[str, Any]:
        """Column values ready for the ORM."""
        return self.model_dump(mode="json")


class MenuItemCreate(MenuItemFields):
    """Request body for POST /api/menu-items."""

    restaurant_id: int
    image_id: int | None = None

    def to_model_fields(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude={"restaurant_id", "image_id"})


class ConsumerMenuItemCreate(MenuItemFields):
    """Request body for POST /api/consumer/menu-items."""

    source: Literal["upload", "manual"] = "upload"


class MenuItemPatch(BaseModel):
    """
    Partial update for a menu item.

    Only fields present in the payload are applied. Explicit nulls are
    rejected. Allergen and dietary maps are merged key by key over the
    stored record.
    """

    model_config = ConfigDict(extra="forbid")

    restaurant_id: int | None = None
    name: str | None = Field(default=None, max_length=200)
    name_original: str | None = Field(default=None, max_length=200)
    description: str | None = None
    price: str | None = Field(default=None, max_length=50)
    image: str | None = None
    course_tags: list[str] | None = None
    course_original: str | None = Field(default=None, max_length=200)
    display_order: int | None = None
    status: StatusName | None = None
    allergens: dict[AllergenName, bool] | None = None
    dietary_preferences: dict[DietaryName, bool] | None = None

    @field_validator("*", mode="before")
    @classmethod
    def reject_null(cls, v: Any) -> Any:
        if v is None:
            raise ValueError("Field may be omitted but not null")
        return v

    @field_validator("description")
    @classmethod
    def check_description(cls, v: str) -> str:
        return _require_text(v)

    @field_validator("course_tags")
    @classmethod
    def clean_tags(cls, v: list[str]) -> list[str]:
        return _item_tags(v)

    def changes(self) -> dict[str, Any]:
        """Fields the caller actually sent."""
        return self.model_dump(exclude_unset=True)


class StatusUpdate(BaseModel):
    """Request body for PATCH /api/menu-items/{id}/status."""

    status: StatusName


# =============================================================================
# Batch operations
# =============================================================================


class BulkDeleteRequest(BaseModel):
    """Request body for POST /api/menu-items/bulk-delete."""

    ids: list[int] = Field(min_length=1)


class BulkUpdateRequest(BaseModel):
    """Request body for PATCH /api/menu-items/bulk-update."""

    model_config = ConfigDict(extra="forbid")

    restaurant_ids: list[int] = Field(min_length=1)
    updates: MenuItemPatch

    @model_validator(mode="after")
    def no_moves(self) -> "BulkUpdateRequest":
        if "restaurant_id" in self.updates.model_fields_set:
            raise ValueError("Bulk updates cannot move items between restaurants")
        if not self.updates.model_fields_set:
            raise ValueError("No updates given")
        return self


class ReorderRequest(BaseModel):
    """Request body for POST /api/restaurants/{id}/reorder."""

    item_ids: list[int] = Field(min_length=1)

    @field_validator("item_ids")
    @classmethod
    def unique_ids(cls, v: list[int]) -> list[int]:
        if len(set(v)) != len(v):
            raise ValueError("Item ids must be unique")
        return v


class BulkFailure(BaseModel):
    id: int
    error: str


class BulkDeleteResult(BaseModel):
    """Best-effort batch outcome; successful deletions are never rolled back."""

    succeeded: list[int] = Field(default_factory=list)
    failed: list[BulkFailure] = Field(default_factory=list)


class ImportRequest(BaseModel):
    """JSON form of POST /api/restaurants/{id}/menu/import."""

    csv_data: str = Field(min_length=1)


class ImportRowError(BaseModel):
    row: int  # 1-based data row (header not counted)
    message: str


class ImportResult(BaseModel):
    success: int = 0
    failed: int = 0
    errors: list[ImportRowError] = Field(default_factory=list)


# =============================================================================
# Public menu filters
# =============================================================================


class MenuFilters(BaseModel):
    """Diner-side filters. All of them must match (AND)."""

    model_config = ConfigDict(extra="forbid")

    search: str = ""
    tags: list[str] = Field(default_factory=list)
    exclude_allergens: list[AllergenName] = Field(default_factory=list)
    dietary: list[DietaryName] = Field(default_factory=list)

    @field_validator("search")
    @classmethod
    def strip_search(cls, v: str) -> str:
        return v.strip()

    @field_validator("tags")
    @classmethod
    def clean_tags(cls, v: list[str]) -> list[str]:
        return normalize_course_tags(v)

    @field_validator("exclude_allergens", "dietary", mode="before")
    @classmethod
    def lower_names(cls, v: Any) -> Any:
        if isinstance(v, list):
            return [s.strip().lower() if isinstance(s, str) else s for s in v]
        return v

    @staticmethod
    def query_data(query: Any) -> dict[str, Any]:
        """
        Raw filter data from a query string.

        Multi-value params accept comma-separated values and/or repeats:
        ``?tags=Lunch,Vegan&tags=Spicy``.
        """

        def split(key: str) -> list[str]:
            values: list[str] = []
            for raw in query.getlist(key):
                values.extend(part for part in raw.split(",") if part.strip())
            return values

        return {
            "search": query.get("search", ""),
            "tags": split("tags"),
            "exclude_allergens": split("exclude"),
            "dietary": split("dietary"),
        }


# =============================================================================
# Images
# =============================================================================


class ImageUploadRequest(BaseModel):
    """Request body for POST /api/menu-items/upload."""

    model_config = ConfigDict(extra="forbid")

    restaurant_id: int | None = None
    filename: str = Field(min_length=1, max_length=255)
    content_type: str = "image/jpeg"
    data: str = Field(min_length=1)
    menu_item_id: int | None = None

    @field_validator("filename")
    @classmethod
    def plain_filename(cls, v: str) -> str:
        v = v.strip()
        if not v or "/" in v or "\\" in v:
            raise ValueError("Filename must not contain path separators")
        return v

    @field_validator("content_type")
    @classmethod
    def image_only(cls, v: str) -> str:
        if not v.startswith("image/"):
            raise ValueError("Only image uploads are accepted")
        return v


class ImageSchema(BaseModel):
    id: int
    restaurant_id: int
    filename: str
    content_type: str
    url: str
    created_at: datetime


# =============================================================================
# Responses
# =============================================================================


class MenuItemSchema(BaseModel):
    """A restaurant menu item. ``image`` is the authoritative image."""

    id: int
    restaurant_id: int
    name: str
    name_original: str
    description: str
    price: str
    image: str
    image_id: int | None
    course_tags: list[str]
    course_original: str
    display_order: int
    status: StatusName
    allergens: AllergenFlags
    dietary_preferences: DietaryFlags
    created_at: datetime
    updated_at: datetime


class ConsumerMenuItemSchema(BaseModel):
    id: int
    name: str
    name_original: str
    description: str
    price: str
    image: str
    course_tags: list[str]
    course_original: str
    status: StatusName
    allergens: AllergenFlags
    dietary_preferences: DietaryFlags
    source: str
    created_at: datetime


class PublicRestaurantSchema(BaseModel):
    id: int
    name: str


class PublicMenuResponse(BaseModel):
    """Response for GET /api/restaurants/{id}/public-menu."""

    restaurant: PublicRestaurantSchema
    items: list[MenuItemSchema]
    available_tags: list[str]


# =============================================================================
# Change notification events
# =============================================================================


class ConnectedEvent(BaseModel):
    type: Literal["connected"] = "connected"
    restaurant_id: int


class MenuUpdateEvent(BaseModel):
    """Sent on a restaurant's stream after each committed menu mutation."""

    type: Literal["menuUpdate"] = "menuUpdate"
    restaurant_id: int
    action: MenuAction
    item_ids: list[int] = Field(default_factory=list)
