"""User and role models."""

from __future__ import annotations

from pydantic import AliasChoices, Field, field_validator

from quvo.models._base import QuvoBaseModel, QuvoEnum


class UserRole(QuvoEnum):
    SALES_MANAGER = "sales-manager"
    SALES_PERSON = "sales-person"
    VIEWER = "viewer"
    UNKNOWN = "unknown"


class User(QuvoBaseModel):
    """The authenticated user as returned by ``POST /auth/login``."""

    id: str = Field(validation_alias=AliasChoices("id", "userId", "_id"))
    name: str = Field(default="", validation_alias=AliasChoices("name", "fullName", "username", "email"))
    role: UserRole = Field(default=UserRole.UNKNOWN, validation_alias=AliasChoices("role", "userRole"))

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: object) -> str:
        text = str(value).strip()
        if not text:
            raise ValueError("user id must be non-empty")
        return text
