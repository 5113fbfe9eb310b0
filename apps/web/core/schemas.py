"""
Pydantic schemas for account and restaurant endpoints.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

AllergenName = Literal[
    "milk", "eggs", "peanuts", "nuts", "shellfish", "fish", "soy", "gluten"
]
LanguageCode = Literal["en", "es", "fr", "de", "it", "ja", "ko", "zh"]


# =============================================================================
# Requests
# =============================================================================


class RegisterRequest(BaseModel):
    """Request body for POST /api/register."""

    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    password: str = Field(min_length=1)
    kind: Literal["restaurant", "consumer"] = "restaurant"
    restaurant_name: str | None = Field(default=None, max_length=200)

    @field_validator("restaurant_name")
    @classmethod
    def blank_name_is_none(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            return None
        return v.strip() if v else v


class LoginRequest(BaseModel):
    """Request body for POST /api/login."""

    email: EmailStr
    password: str = Field(min_length=1)


class AccountUpdateRequest(BaseModel):
    """Request body for PATCH /api/user. Re-authentication is mandatory."""

    model_config = ConfigDict(extra="forbid")

    current_password: str = Field(min_length=1)
    email: EmailStr | None = None
    new_password: str | None = Field(default=None, min_length=1)


class PreferencesUpdate(BaseModel):
    """Request body for PATCH /api/user/preferences."""

    model_config = ConfigDict(extra="forbid")

    preferred_language: LanguageCode | None = None
    saved_allergens: list[AllergenName] | None = None

    @field_validator("saved_allergens")
    @classmethod
    def dedupe(cls, v: list[str] | None) -> list[str] | None:
        if v is None:
            return v
        return list(dict.fromkeys(v))


class RestaurantCreate(BaseModel):
    """Request body for POST /api/restaurants."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1, max_length=200)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name must not be blank")
        return v


# =============================================================================
# Responses
# =============================================================================


class UserSchema(BaseModel):
    """Public view of an account. Never includes the password hash."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    kind: str
    preferred_language: str
    saved_allergens: list[str]


class RestaurantSchema(BaseModel):
    """A restaurant with its shareable public menu link."""

    id: int
    name: str
    public_url: str
