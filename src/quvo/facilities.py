"""In-memory facility index.

The facility dataset is loaded once and indexed by id and by state so
lookups and filter queries do not rescan it at every call site.  The only
mutation allowed is a permission-gated product price update.
"""

from __future__ import annotations

import importlib.resources
import json
import logging
from collections import Counter
from collections.abc import Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from quvo.exceptions import QuvoConfigError
from quvo.geo import within_radius
from quvo.models.bay import Bay
from quvo.models.facility import Facility, Product, ProductCatalog
from quvo.models.user import UserRole
from quvo.normalize import contains_text, fold
from quvo.permissions import PermissionPolicy
from quvo.readings import VolumeReadingProvider

_logger = logging.getLogger(__name__)

BUNDLED_DATASET = "data/facilities.json"

# Bay naming per facility type; cycled by product position.
_BAY_NAMES: dict[str, tuple[str, ...]] = {
    "Aggregates": ("Stockpile {n}", "Pile {letter}", "Bay {n}"),
    "Ready Mixed Concrete": ("Plant {n}", "Mixer {letter}", "Unit {n}"),
    "Asphalt": ("Tank {n}", "Silo {letter}", "Storage {n}"),
    "Magnesia Specialties": ("Kiln {n}", "Unit {letter}", "Processing {n}"),
}
_FACILITY_TYPE_ORDER = ("Aggregates", "Ready Mixed Concrete", "Asphalt", "Magnesia Specialties")


class SearchFilters(BaseModel):
    """Optional filters for :meth:`FacilityIndex.search`.

    The geo filter only applies when ``latitude``, ``longitude`` and
    ``radius_miles`` are all given.  ``radius_miles`` is in statute miles.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    state: str | None = None
    product_category: str | None = Field(default=None, alias="productCategory")
    product_code: str | None = Field(default=None, alias="productCode")
    latitude: float | None = None
    longitude: float | None = None
    radius_miles: float | None = Field(default=None, gt=0, alias="radius")

    @model_validator(mode="before")
    @classmethod
    def _drop_empty(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        return {k: v for k, v in values.items() if v is not None and v != ""}

    @property
    def geo(self) -> tuple[float, float, float] | None:
        if self.latitude is None or self.longitude is None or self.radius_miles is None:
            return None
        return (self.latitude, self.longitude, self.radius_miles)


def _bay_name(facility_type: str, index: int) -> str:
    patterns = _BAY_NAMES.get(facility_type, ("Bay {n}", "Storage {letter}", "Unit {n}"))
    pattern = patterns[index % len(patterns)]
    return pattern.format(n=index + 1, letter=chr(ord("A") + index % 26))


class FacilityIndex:
    """Lookup structures over a static facility dataset.

    Parameters
    ----------
    facilities : list of Facility
        Facilities in dataset order.  Ids must be unique.
    catalog : ProductCatalog
        Category and product-code reference data.
    policy : PermissionPolicy
        Consulted before any price update.
    metadata : dict
        Free-form dataset metadata (source, generated date...).
    """

    def __init__(
        self,
        facilities: list[Facility],
        *,
        catalog: ProductCatalog | None = None,
        policy: PermissionPolicy | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> None:
        self._facilities: tuple[Facility, ...] = tuple(facilities)
        self._catalog = catalog or ProductCatalog()
        self._policy = policy or PermissionPolicy()
        self._metadata: dict[str, Any] = dict(metadata or {})

        self._by_id: dict[str, Facility] = {}
        self._by_state: dict[str, list[Facility]] = {}
        for facility in self._facilities:
            if facility.id in self._by_id:
                raise QuvoConfigError(f"Duplicate facility id {facility.id!r} in dataset")
            self._by_id[facility.id] = facility
            self._by_state.setdefault(facility.state, []).append(facility)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_dataset(cls, dataset: Mapping[str, Any], *, policy: PermissionPolicy | None = None) -> FacilityIndex:
        """Build from a raw dataset dict (``facilities``, ``productCodeMapping``, ``metadata``)."""
        raw_facilities = dataset.get("facilities") or []
        facilities = [Facility.model_validate(item) for item in raw_facilities]
        catalog = ProductCatalog.model_validate(dataset.get("productCodeMapping") or {})
        return cls(facilities, catalog=catalog, policy=policy, metadata=dataset.get("metadata") or {})

    @classmethod
    def from_path(cls, path: str | Path, *, policy: PermissionPolicy | None = None) -> FacilityIndex:
        try:
            dataset = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise QuvoConfigError(f"Cannot load facility dataset {path}: {exc}") from exc
        return cls.from_dataset(dataset, policy=policy)

    @classmethod
    def from_bundled(cls, *, policy: PermissionPolicy | None = None) -> FacilityIndex:
        """Load the facility dataset shipped with the package."""
        _logger.debug("Loading facility dataset from package data")
        ref = importlib.resources.files("quvo").joinpath(BUNDLED_DATASET)
        dataset = json.loads(ref.read_text(encoding="utf-8"))
        index = cls.from_dataset(dataset, policy=policy)
        _logger.debug("Indexed %d facilities across %d states", len(index), len(index.states()))
        return index

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._facilities)

    @property
    def metadata(self) -> dict[str, Any]:
        return dict(self._metadata)

    def all(self) -> list[Facility]:
        return list(self._facilities)

    def get_by_id(self, facility_id: str) -> Facility | None:
        return self._by_id.get(str(facility_id))

    def get_by_state(self, state: str) -> list[Facility]:
        return list(self._by_state.get(state, ()))

    def states(self) -> list[str]:
        return sorted(self._by_state)

    def top_states(self, limit: int = 10) -> list[tuple[str, int]]:
        """``(state, facility_count)`` pairs, busiest first."""
        counts = Counter({state: len(items) for state, items in self._by_state.items()})
        return counts.most_common(limit)

    def by_product_category(self, category: str) -> list[Facility]:
        return [f for f in self._facilities if f.offers_category(category)]

    def by_product_code(self, code: str) -> list[Facility]:
        return [f for f in self._facilities if f.find_product(code) is not None]

    # ------------------------------------------------------------------
    # Product catalog
    # ------------------------------------------------------------------

    def product_categories(self) -> list[str]:
        return list(self._catalog.categories)

    def product_codes_for_category(self, category: str) -> list[str]:
        return list(self._catalog.categories.get(category, ()))

    def product_info(self, code: str) -> dict[str, Any] | None:
        info = self._catalog.product_codes.get(code)
        return dict(info) if info is not None else None

    def product_codes(self) -> list[str]:
        return list(self._catalog.product_codes)

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    @staticmethod
    def _matches_text(facility: Facility, needle: str) -> bool:
        if any(
            contains_text(value, needle)
            for value in (facility.name, facility.city, facility.state, facility.products_available)
        ):
            return True
        return any(contains_text(product.description, needle) for product in facility.products)

    def search(
        self,
        query: str | None = "",
        filters: SearchFilters | Mapping[str, Any] | None = None,
    ) -> list[Facility]:
        """Filter the dataset; results keep dataset order.

        Filters apply in order: free text (name, city, state, product
        descriptions), ``state``, ``product_category``, ``product_code``,
        then the geo radius.  Empty or missing filters pass everything.
        """
        if filters is None:
            criteria = SearchFilters()
        elif isinstance(filters, SearchFilters):
            criteria = filters
        else:
            criteria = SearchFilters.model_validate(dict(filters))

        results: list[Facility] = list(self._facilities)

        needle = fold(query)
        if needle:
            results = [f for f in results if self._matches_text(f, needle)]

        if criteria.state:
            results = [f for f in results if f.state == criteria.state]

        if criteria.product_category:
            category = criteria.product_category
            results = [f for f in results if f.offers_category(category)]

        if criteria.product_code:
            code = criteria.product_code
            results = [f for f in results if f.find_product(code) is not None]

        geo = criteria.geo
        if geo is not None:
            lat, lon, radius = geo
            results = [f for f in results if within_radius((lat, lon), f.coordinates, radius)]

        return results

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def update_price(
        self,
        facility_id: str,
        product_code: str,
        new_price: float,
        *,
        role: UserRole | str,
    ) -> bool:
        """Set a product's price if *role* may edit prices.

        Returns ``False`` when the facility or product does not exist.

        Raises
        ------
        QuvoPermissionDeniedError
            If the role lacks the edit-prices permission.  The stored
            price is left untouched.
        ValueError
            If *new_price* is negative.
        """
        self._policy.require_edit_prices(role)
        if new_price < 0:
            raise ValueError(f"price must be non-negative, got {new_price}")

        facility = self.get_by_id(facility_id)
        product = facility.find_product(product_code) if facility is not None else None
        if product is None:
            return False
        old_price = product.price_per_unit
        product.price_per_unit = float(new_price)
        _logger.info(
            "Price updated facility=%s product=%s %s -> %s by role=%s",
            facility_id,
            product_code,
            old_price,
            new_price,
            UserRole(role).value,
        )
        return True

    # ------------------------------------------------------------------
    # Bays and statistics
    # ------------------------------------------------------------------

    @staticmethod
    def facility_type(facility: Facility) -> str:
        for category in _FACILITY_TYPE_ORDER:
            if category in facility.categories:
                return category
        return "Aggregates"

    def generate_bays(self, facility_id: str, provider: VolumeReadingProvider) -> list[Bay]:
        """One bay per facility product, volumes from *provider*.

        Products without a reading are reported empty with zero capacity.
        """
        facility = self.get_by_id(facility_id)
        if facility is None:
            return []

        facility_type = self.facility_type(facility)
        now = datetime.now(UTC)
        bays: list[Bay] = []
        for index, product in enumerate(facility.products):
            bays.append(self._build_bay(facility, product, index, facility_type, provider, now))
        return bays

    @staticmethod
    def _build_bay(
        facility: Facility,
        product: Product,
        index: int,
        facility_type: str,
        provider: VolumeReadingProvider,
        now: datetime,
    ) -> Bay:
        reading = provider.read(facility.id, product.code)
        volume = reading.volume if reading is not None else 0.0
        max_volume = reading.max_volume if reading is not None and reading.max_volume is not None else volume
        price = product.price_per_unit
        if price is None and reading is not None:
            price = reading.price_per_unit
        return Bay(
            id=f"{facility.id}_{product.code}_{index}",
            name=_bay_name(facility_type, index),
            facility_id=facility.id,
            facility_name=facility.name,
            address=facility.full_address,
            product_code=product.code,
            product_description=product.description,
            product_category=product.category,
            unit=product.unit,
            volume=volume,
            max_volume=max_volume,
            price_per_unit=price,
            timestamp=reading.observed_at if reading is not None else now,
        )

    def summary(self) -> dict[str, Any]:
        categories = self.product_categories()
        return {
            "total_facilities": len(self._facilities),
            "state_count": len(self._by_state),
            "product_categories": len(categories),
            "total_product_codes": len(self._catalog.product_codes),
            "top_states": self.top_states(5),
            "category_breakdown": [
                {"category": category, "facility_count": len(self.by_product_category(category))}
                for category in categories
            ],
        }
