"""Facility and product reference data models.

Fields map the bundled facility dataset (``quvo/data/facilities.json``).
"""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, ConfigDict, Field, field_validator

from quvo.models._base import QuvoBaseModel
from quvo.normalize import safe_float


class Product(QuvoBaseModel):
    """A product offered at a facility.

    Only ``price_per_unit`` is ever mutated, and only through
    :meth:`quvo.facilities.FacilityIndex.update_price`.
    """

    model_config = ConfigDict(frozen=False, validate_assignment=True)

    code: str
    category: str = ""
    description: str = ""
    unit: str = "tons"
    price_per_unit: float | None = Field(
        default=None,
        validation_alias=AliasChoices("pricePerUnit", "pricePerTon", "price", "price_per_unit"),
    )

    @field_validator("code", mode="before")
    @classmethod
    def _coerce_code(cls, value: Any) -> str:
        return str(value).strip()

    @field_validator("price_per_unit", mode="before")
    @classmethod
    def _parse_price(cls, value: Any) -> float | None:
        return safe_float(value)


class Facility(QuvoBaseModel):
    """A physical site with location, contacts and products.

    ``categories`` holds the high-level product lines (``"Aggregates"``,
    ``"Asphalt"``...) while ``products`` holds the detailed product list.
    The dataset uses ``products`` for the former, so this model is only
    populated through its aliases.
    """

    model_config = ConfigDict(populate_by_name=False)

    id: str = Field(validation_alias=AliasChoices("facilityId", "id"))
    name: str = Field(validation_alias=AliasChoices("name"))
    address: str = Field(default="", validation_alias=AliasChoices("address"))
    city: str = Field(default="", validation_alias=AliasChoices("city"))
    state: str = Field(default="", validation_alias=AliasChoices("state"))
    zip_code: str = Field(default="", validation_alias=AliasChoices("zipCode", "zip"))
    district: str = Field(default="", validation_alias=AliasChoices("district"))
    latitude: float | None = Field(default=None, validation_alias=AliasChoices("latitude", "lat"))
    longitude: float | None = Field(default=None, validation_alias=AliasChoices("longitude", "lng", "lon"))
    contact_phone: str = Field(default="", validation_alias=AliasChoices("contactPhone", "phone"))
    contact_email: str = Field(default="", validation_alias=AliasChoices("contactEmail", "email"))
    hours_of_operation: str = Field(default="", validation_alias=AliasChoices("hoursOfOperation", "hours"))
    categories: list[str] = Field(default_factory=list, validation_alias=AliasChoices("products", "categories"))
    products_available: str = Field(default="", validation_alias=AliasChoices("productsAvailable"))
    products: list[Product] = Field(
        default_factory=list,
        validation_alias=AliasChoices("detailedProducts", "productList"),
    )

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        return str(value).strip()

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def _parse_coordinate(cls, value: Any) -> float | None:
        return safe_float(value)

    @field_validator("categories", mode="before")
    @classmethod
    def _split_categories(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return value

    @property
    def coordinates(self) -> tuple[float, float] | None:
        """``(latitude, longitude)`` or ``None`` when either is missing."""
        if self.latitude is None or self.longitude is None:
            return None
        return (self.latitude, self.longitude)

    @property
    def full_address(self) -> str:
        return ", ".join(part for part in (self.address, self.city, self.state) if part)

    def find_product(self, code: str) -> Product | None:
        for product in self.products:
            if product.code == code:
                return product
        return None

    def offers_category(self, category: str) -> bool:
        return category in self.categories or any(p.category == category for p in self.products)


class ProductCatalog(QuvoBaseModel):
    """Category → product-code mapping plus per-code product info."""

    categories: dict[str, list[str]] = Field(default_factory=dict)
    product_codes: dict[str, dict[str, Any]] = Field(default_factory=dict)
