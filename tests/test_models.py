from __future__ import annotations

import pytest
from pydantic import ValidationError

from quvo.models.bay import Bay, VolumeReading
from quvo.models.dashboard import DashboardSnapshot
from quvo.models.facility import Facility, Product
from quvo.models.user import User, UserRole
from quvo.normalize import safe_float


def test_user_accepts_backend_aliases() -> None:
    user = User.model_validate({"userId": 42, "fullName": "Ann Rep", "role": "SALES_PERSON"})

    assert user.id == "42"
    assert user.name == "Ann Rep"
    assert user.role is UserRole.SALES_PERSON


def test_user_unknown_role_and_missing_id() -> None:
    assert User.model_validate({"id": "u1", "role": "admin"}).role is UserRole.UNKNOWN
    assert User.model_validate({"id": "u1"}).role is UserRole.UNKNOWN
    with pytest.raises(ValidationError):
        User.model_validate({"id": "", "role": "viewer"})


def test_facility_placeholders_fall_back_to_defaults() -> None:
    facility = Facility.model_validate(
        {
            "facilityId": 101,
            "name": "Garner Quarry",
            "state": "NC",
            "latitude": "--",
            "longitude": "N/A",
            "products": "Aggregates, Asphalt",
            "zip": "27529",
        }
    )

    assert facility.id == "101"
    assert facility.coordinates is None
    assert facility.categories == ["Aggregates", "Asphalt"]
    assert facility.zip_code == "27529"
    assert facility.full_address == "NC"
    assert facility.offers_category("Asphalt")


def test_product_price_aliases_and_assignment_validation() -> None:
    product = Product.model_validate({"code": 57, "pricePerTon": "18.50"})
    assert product.code == "57"
    assert product.price_per_unit == 18.5

    product.price_per_unit = 21
    assert product.price_per_unit == 21.0
    assert Product.model_validate({"code": "A1", "price": "call"}).price_per_unit is None


def test_dashboard_snapshot_drops_non_dict_entries() -> None:
    snapshot = DashboardSnapshot.model_validate(
        {
            "recordsById": {"r1": {"id": "r1", "storageId": 9}, "r2": "broken"},
            "storagesById": {"9": {"id": 9, "maxVolume": 100}},
        }
    )

    assert list(snapshot.records_by_id) == ["r1"]
    assert snapshot.storage_for(snapshot.records[0]) == {"id": 9, "maxVolume": 100}
    assert snapshot.storage_for({"id": "orphan"}) is None
    assert DashboardSnapshot.model_validate({"recordsById": None}).records == []


def test_volume_reading_bounds() -> None:
    with pytest.raises(ValidationError):
        VolumeReading(volume=-1)
    with pytest.raises(ValidationError):
        VolumeReading(volume=1, max_volume=0)


def test_bay_utilization_with_unknown_capacity() -> None:
    reading = VolumeReading(volume=10)
    bay = Bay(
        id="b",
        name="Stockpile 1",
        facility_id="F1",
        product_code="57",
        volume=reading.volume,
        max_volume=0,
        timestamp=reading.observed_at,
        critical_level=5,
    )

    assert bay.utilization == 0.0
    assert bay.is_critical


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("12.5", 12.5), (3, 3.0), ("--", None), ("", None), (True, None), (float("nan"), None), ("abc", None), (" 1,250 ", 1250.0)],
)
def test_safe_float(raw: object, expected: float | None) -> None:
    assert safe_float(raw) == expected
