"""In-memory customer directory.

Indexes the customer dataset (customers → sites → products) and applies
role visibility when listing bays.  As with the facility index, the only
mutation is a permission-gated price update.
"""

from __future__ import annotations

import importlib.resources
import json
import logging
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from quvo.models.bay import Bay
from quvo.models.customer import Customer, Site, SiteProduct
from quvo.models.user import UserRole
from quvo.normalize import contains_text, fold
from quvo.permissions import PermissionPolicy
from quvo.readings import VolumeReadingProvider

_logger = logging.getLogger(__name__)

BUNDLED_DATASET = "data/customers.json"

_BAY_NAMES: dict[str, tuple[str, ...]] = {
    "Aggregates": ("Stockpile {n}", "Pile {letter}", "Bay {n}"),
    "Sand": ("Sand Pit {n}", "Wash Plant {letter}", "Sand Bay {n}"),
    "Concrete": ("Plant {n}", "Mixer {letter}", "Unit {n}"),
}


def site_key(customer_id: str, site_id: str) -> str:
    """Key used in role ``visible_sites`` lists."""
    return f"{customer_id}_{site_id}"


def _bay_name(category: str, index: int) -> str:
    patterns = _BAY_NAMES.get(category, ("Storage {n}", "Bay {letter}", "Unit {n}"))
    return patterns[index % len(patterns)].format(n=index + 1, letter=chr(ord("A") + index % 26))


class CustomerDirectory:
    """Lookup and visibility rules over the customer dataset."""

    def __init__(
        self,
        customers: list[Customer],
        *,
        policy: PermissionPolicy | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> None:
        self._customers: dict[str, Customer] = {c.id: c for c in customers}
        self._policy = policy or PermissionPolicy()
        self._metadata: dict[str, Any] = dict(metadata or {})

    @classmethod
    def from_dataset(cls, dataset: Mapping[str, Any], *, policy: PermissionPolicy | None = None) -> CustomerDirectory:
        """Build from a raw dataset dict.

        When *policy* is omitted it is read from the dataset's
        ``userRoles`` block, falling back to the default policy.
        """
        raw_customers = dataset.get("customers") or {}
        customers: list[Customer] = []
        for customer_id, item in raw_customers.items():
            if not item.get("id"):
                item = {**item, "id": customer_id}
            customers.append(Customer.model_validate(item))
        if policy is None:
            user_roles = dataset.get("userRoles")
            policy = PermissionPolicy.from_dataset(user_roles) if user_roles else PermissionPolicy()
        return cls(customers, policy=policy, metadata=dataset.get("metadata") or {})

    @classmethod
    def from_bundled(cls, *, policy: PermissionPolicy | None = None) -> CustomerDirectory:
        _logger.debug("Loading customer dataset from package data")
        ref = importlib.resources.files("quvo").joinpath(BUNDLED_DATASET)
        return cls.from_dataset(json.loads(ref.read_text(encoding="utf-8")), policy=policy)

    @property
    def policy(self) -> PermissionPolicy:
        return self._policy

    @property
    def metadata(self) -> dict[str, Any]:
        return dict(self._metadata)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def customers(self) -> list[Customer]:
        return list(self._customers.values())

    def get_customer(self, customer_id: str) -> Customer | None:
        return self._customers.get(customer_id)

    def customer_sites(self, customer_id: str) -> list[Site]:
        customer = self.get_customer(customer_id)
        return list(customer.sites.values()) if customer is not None else []

    def get_site(self, customer_id: str, site_id: str) -> Site | None:
        customer = self.get_customer(customer_id)
        return customer.sites.get(site_id) if customer is not None else None

    def all_sites(self) -> list[tuple[Customer, Site]]:
        """Every site paired with its customer, in dataset order."""
        return [(customer, site) for customer in self._customers.values() for site in customer.sites.values()]

    def site_products(self, customer_id: str, site_id: str) -> list[SiteProduct]:
        site = self.get_site(customer_id, site_id)
        return list(site.products.values()) if site is not None else []

    def get_product(self, customer_id: str, site_id: str, product_code: str) -> SiteProduct | None:
        site = self.get_site(customer_id, site_id)
        return site.products.get(product_code) if site is not None else None

    # ------------------------------------------------------------------
    # Visibility
    # ------------------------------------------------------------------

    def visible_customers(self, role: UserRole | str) -> list[str]:
        allowed = self._policy.permissions(role).visible_customers
        if allowed is None:
            return list(self._customers)
        return [customer_id for customer_id in allowed if customer_id in self._customers]

    def visible_sites(self, role: UserRole | str) -> list[str]:
        """Site keys the role is restricted to; empty means every site."""
        if self._policy.can_view_all_sites(role):
            return []
        return list(self._policy.permissions(role).visible_sites)

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    @staticmethod
    def _site_matches(site: Site, needle: str) -> bool:
        if any(contains_text(value, needle) for value in (site.name, site.city, site.state)):
            return True
        return any(
            contains_text(product.name, needle) or contains_text(product.description, needle)
            for product in site.products.values()
        )

    def _candidate_sites(self, customer_id: str | None) -> list[tuple[Customer, Site]]:
        if customer_id is None:
            return self.all_sites()
        customer = self.get_customer(customer_id)
        if customer is None:
            return []
        return [(customer, site) for site in customer.sites.values()]

    def search_sites(self, query: str, customer_id: str | None = None) -> list[tuple[Customer, Site]]:
        candidates = self._candidate_sites(customer_id)
        needle = fold(query)
        if not needle:
            return candidates
        return [(customer, site) for customer, site in candidates if self._site_matches(site, needle)]

    def filter_by_product_category(self, category: str, customer_id: str | None = None) -> list[tuple[Customer, Site]]:
        return [
            (customer, site)
            for customer, site in self._candidate_sites(customer_id)
            if any(product.category == category for product in site.products.values())
        ]

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def update_product_price(
        self,
        customer_id: str,
        site_id: str,
        product_code: str,
        new_price: float,
        *,
        role: UserRole | str,
    ) -> bool:
        """Set a site product's price if *role* may edit prices.

        Returns ``False`` when the product does not exist.
        """
        self._policy.require_edit_prices(role)
        if new_price < 0:
            raise ValueError(f"price must be non-negative, got {new_price}")
        product = self.get_product(customer_id, site_id, product_code)
        if product is None:
            return False
        product.price_per_unit = float(new_price)
        _logger.info(
            "Price updated customer=%s site=%s product=%s -> %s",
            customer_id,
            site_id,
            product_code,
            new_price,
        )
        return True

    # ------------------------------------------------------------------
    # Bays and statistics
    # ------------------------------------------------------------------

    def generate_site_bays(self, customer_id: str, site_id: str, provider: VolumeReadingProvider) -> list[Bay]:
        customer = self.get_customer(customer_id)
        site = self.get_site(customer_id, site_id)
        if customer is None or site is None:
            return []

        location = site_key(customer_id, site_id)
        now = datetime.now(UTC)
        bays: list[Bay] = []
        for index, (code, product) in enumerate(site.products.items()):
            reading = provider.read(location, code)
            max_volume = product.max_capacity
            if reading is not None and reading.max_volume is not None:
                max_volume = reading.max_volume
            price = product.price_per_unit
            if price is None and reading is not None:
                price = reading.price_per_unit
            bays.append(
                Bay(
                    id=f"{customer_id}_{site_id}_{code}",
                    name=_bay_name(product.category, index),
                    facility_id=location,
                    facility_name=site.name,
                    address=site.full_address,
                    product_code=code,
                    product_description=product.description,
                    product_category=product.category,
                    unit=product.unit,
                    volume=reading.volume if reading is not None else 0.0,
                    max_volume=max_volume,
                    price_per_unit=price,
                    timestamp=reading.observed_at if reading is not None else now,
                    customer_id=customer_id,
                    site_id=site_id,
                    critical_level=product.critical_level,
                )
            )
        return bays

    def _role_sites(self, role: UserRole | str) -> list[tuple[Customer, Site]]:
        restricted = set(self.visible_sites(role))
        pairs: list[tuple[Customer, Site]] = []
        for customer_id in self.visible_customers(role):
            for site in self.customer_sites(customer_id):
                if restricted and site_key(customer_id, site.id) not in restricted:
                    continue
                pairs.append((self._customers[customer_id], site))
        return pairs

    def generate_all_bays(self, role: UserRole | str, provider: VolumeReadingProvider) -> list[Bay]:
        """Bays of every site visible to *role*."""
        bays: list[Bay] = []
        for customer, site in self._role_sites(role):
            bays.extend(self.generate_site_bays(customer.id, site.id, provider))
        return bays

    def critical_bays(self, role: UserRole | str, provider: VolumeReadingProvider) -> list[Bay]:
        return [bay for bay in self.generate_all_bays(role, provider) if bay.is_critical]

    @staticmethod
    def _bay_totals(bays: list[Bay]) -> dict[str, Any]:
        total_capacity = sum(bay.max_volume for bay in bays)
        total_volume = sum(bay.volume for bay in bays)
        prices = [bay.price_per_unit for bay in bays if bay.price_per_unit is not None]
        return {
            "total_bays": len(bays),
            "total_capacity": total_capacity,
            "total_volume": total_volume,
            "utilization": (total_volume / total_capacity * 100) if total_capacity > 0 else 0.0,
            "critical_bays": sum(1 for bay in bays if bay.is_critical),
            "average_price": (sum(prices) / len(prices)) if prices else 0.0,
        }

    def site_utilization(self, customer_id: str, site_id: str, provider: VolumeReadingProvider) -> dict[str, Any]:
        return self._bay_totals(self.generate_site_bays(customer_id, site_id, provider))

    def customer_stats(self, customer_id: str, provider: VolumeReadingProvider) -> dict[str, Any] | None:
        customer = self.get_customer(customer_id)
        if customer is None:
            return None
        bays: list[Bay] = []
        for site in customer.sites.values():
            bays.extend(self.generate_site_bays(customer_id, site.id, provider))
        return {"customer_name": customer.name, "total_sites": len(customer.sites), **self._bay_totals(bays)}

    def summary(self, role: UserRole | str, provider: VolumeReadingProvider) -> dict[str, Any]:
        """Directory-wide totals over the customers and sites *role* can see."""
        pairs = self._role_sites(role)
        bays = self.generate_all_bays(role, provider)
        totals = self._bay_totals(bays)
        site_counts: dict[str, int] = {customer_id: 0 for customer_id in self.visible_customers(role)}
        for customer, _site in pairs:
            site_counts[customer.id] += 1
        if self.visible_sites(role):
            site_counts = {customer_id: count for customer_id, count in site_counts.items() if count}
        return {
            "total_customers": len(site_counts),
            "total_sites": len(pairs),
            "total_bays": totals["total_bays"],
            "critical_bays": totals["critical_bays"],
            "critical_percentage": (totals["critical_bays"] / len(bays) * 100) if bays else 0.0,
            "total_capacity": totals["total_capacity"],
            "total_volume": totals["total_volume"],
            "customers": [
                {
                    "id": customer_id,
                    "name": self._customers[customer_id].name,
                    "color": self._customers[customer_id].color,
                    "site_count": count,
                }
                for customer_id, count in site_counts.items()
            ],
        }
