"""Endpoint paths and payload shaping for the data endpoints.

Endpoints:
  - GET  /projects
  - POST /dashboard/initial-fetch
  - GET  /notifications
  - GET  /api/<client>/{facilities,districts,products,bays}
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from quvo._constants import DASHBOARD_ENDPOINT
from quvo.exceptions import QuvoTransportError
from quvo.models.dashboard import DashboardSnapshot

# Facility filter keys forwarded as query parameters, snake_case → wire name.
_FACILITY_QUERY_PARAMS: dict[str, str] = {
    "district": "district",
    "state": "state",
    "product_code": "productCode",
    "limit": "limit",
}


def client_endpoint(client_id: str, *parts: str) -> str:
    """``/api/<client>[/part...]``."""
    return "/".join(["/api", client_id, *parts])


def facility_query_params(filters: Mapping[str, Any] | None) -> dict[str, str]:
    """Query parameters for ``GET /api/<client>/facilities``.

    Accepts snake_case or wire names; empty values are dropped.
    """
    params: dict[str, str] = {}
    if not filters:
        return params
    wire_names = set(_FACILITY_QUERY_PARAMS.values())
    for key, value in filters.items():
        if value is None or value == "":
            continue
        wire = _FACILITY_QUERY_PARAMS.get(key, key if key in wire_names else None)
        if wire is None:
            raise ValueError(f"Unsupported facility filter {key!r}")
        params[wire] = str(value)
    return dict(sorted(params.items()))


def dashboard_params(project_id: str | None) -> dict[str, str] | None:
    return {"project": str(project_id)} if project_id else None


def parse_dashboard_snapshot(data: Any) -> DashboardSnapshot:
    if not isinstance(data, dict):
        raise QuvoTransportError(
            f"Unexpected payload from {DASHBOARD_ENDPOINT}: {type(data).__name__}",
            endpoint=DASHBOARD_ENDPOINT,
        )
    return DashboardSnapshot.model_validate(data)


def bays_to_bay_data(response: Any) -> dict[str, Any]:
    """Reshape ``GET /api/<client>/bays`` into ``records`` + ``storages`` lists."""
    bays = response.get("bays") if isinstance(response, dict) else None
    bays = [bay for bay in bays or [] if isinstance(bay, dict)]
    return {
        "records": bays,
        "storages": [
            {
                "id": bay.get("storageId") or bay.get("id"),
                "maxVolume": bay.get("maxVolume"),
                "facilityName": bay.get("facilityName"),
                "materialType": bay.get("materialType"),
            }
            for bay in bays
        ],
    }
