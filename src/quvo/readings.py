"""Volume reading providers.

Bay volumes come from an external sensor feed.  The index and directory
ask a :class:`VolumeReadingProvider` for each product and never generate
readings themselves, so a live feed can replace a static export without
touching either of them.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Protocol

from quvo.models.bay import VolumeReading


class VolumeReadingProvider(Protocol):
    """Source of the latest volume reading for a location/product pair."""

    def read(self, location_id: str, product_code: str) -> VolumeReading | None:
        ...


class StaticReadingProvider:
    """Readings supplied up front, e.g. from a sensor feed export.

    Keys are ``(location_id, product_code)``; a ``("*", product_code)``
    entry applies to every location without its own reading.
    """

    WILDCARD = "*"

    def __init__(self, readings: Mapping[tuple[str, str], VolumeReading] | None = None) -> None:
        self._readings: dict[tuple[str, str], VolumeReading] = dict(readings or {})

    def update(self, location_id: str, product_code: str, reading: VolumeReading) -> None:
        self._readings[(location_id, product_code)] = reading

    def read(self, location_id: str, product_code: str) -> VolumeReading | None:
        reading = self._readings.get((location_id, product_code))
        if reading is None:
            reading = self._readings.get((self.WILDCARD, product_code))
        return reading
