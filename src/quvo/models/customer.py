"""Customer, site and site-product models.

Fields map the bundled customer dataset (``quvo/data/customers.json``),
where sites and products are keyed objects rather than lists.
"""

from __future__ import annotations

from typing import Any

from pydantic import ConfigDict, Field, field_validator, model_validator

from quvo.models._base import QuvoBaseModel
from quvo.normalize import safe_float


class SiteProduct(QuvoBaseModel):
    """A product stocked at a customer site.

    ``price_per_unit`` is the only mutable field.
    """

    model_config = ConfigDict(frozen=False, validate_assignment=True)

    code: str = ""
    name: str = ""
    description: str = ""
    category: str = ""
    unit: str = "tons"
    max_capacity: float = 0.0
    price_per_unit: float | None = None
    critical_level: float = 0.0
    """Utilization percentage at or below which the bay is critical."""

    @field_validator("max_capacity", "critical_level", mode="before")
    @classmethod
    def _parse_number(cls, value: Any) -> float:
        return safe_float(value) or 0.0

    @field_validator("price_per_unit", mode="before")
    @classmethod
    def _parse_price(cls, value: Any) -> float | None:
        return safe_float(value)


class Site(QuvoBaseModel):
    id: str = ""
    name: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    contact_phone: str = ""
    contact_email: str = ""
    contact_name: str = ""
    contact_title: str = ""
    sales_rep_phone: str = ""
    hours_of_operation: str = ""
    railway_access: bool = False
    products: dict[str, SiteProduct] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _fill_product_codes(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        products = values.get("products")
        if isinstance(products, dict):
            filled: dict[str, Any] = {}
            for code, product in products.items():
                if isinstance(product, dict) and not product.get("code"):
                    product = {**product, "code": code}
                filled[code] = product
            values = {**values, "products": filled}
        return values

    @property
    def full_address(self) -> str:
        return ", ".join(part for part in (self.address, self.city, self.state) if part)


class Customer(QuvoBaseModel):
    id: str = ""
    name: str = ""
    color: str = ""
    sites: dict[str, Site] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _fill_site_ids(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        sites = values.get("sites")
        if isinstance(sites, dict):
            filled: dict[str, Any] = {}
            for site_id, site in sites.items():
                if isinstance(site, dict) and not site.get("id"):
                    site = {**site, "id": site_id}
                filled[site_id] = site
            values = {**values, "sites": filled}
        return values
