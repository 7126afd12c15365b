"""Bay (stockpile) models.

Bays are derived on demand from reference data plus a volume reading; they
are never persisted.
"""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field


class VolumeReading(BaseModel):
    """A single volume measurement for one product at one location."""

    model_config = ConfigDict(frozen=True)

    volume: float = Field(ge=0)
    max_volume: float | None = Field(default=None, gt=0)
    price_per_unit: float | None = None
    observed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class Bay(BaseModel):
    """Current state of one stockpile/bay.

    ``facility_id`` is the facility id for facility bays and
    ``"<customer>_<site>"`` for customer-site bays.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    facility_id: str
    facility_name: str = ""
    address: str = ""
    product_code: str
    product_description: str = ""
    product_category: str = ""
    unit: str = "tons"
    volume: float
    max_volume: float
    price_per_unit: float | None = None
    timestamp: datetime
    customer_id: str | None = None
    site_id: str | None = None
    critical_level: float | None = None

    @property
    def utilization(self) -> float:
        """Fill level in percent of ``max_volume`` (0 when capacity is unknown)."""
        if self.max_volume <= 0:
            return 0.0
        return self.volume / self.max_volume * 100

    @property
    def is_critical(self) -> bool:
        if self.critical_level is None:
            return False
        return self.utilization <= self.critical_level
