"""Dashboard snapshot model (``POST /dashboard/initial-fetch``)."""

from __future__ import annotations

from typing import Any

from pydantic import Field, field_validator

from quvo.models._base import QuvoBaseModel


class DashboardSnapshot(QuvoBaseModel):
    """Bay records and storages keyed by id.

    Records and storages are kept as plain dicts: their shape varies per
    deployment and the dashboard only reads a handful of fields.
    """

    records_by_id: dict[str, dict[str, Any]] = Field(default_factory=dict)
    storages_by_id: dict[str, dict[str, Any]] = Field(default_factory=dict)

    @field_validator("records_by_id", "storages_by_id", mode="before")
    @classmethod
    def _keep_dict_entries(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            return {}
        return {str(k): v for k, v in value.items() if isinstance(v, dict)}

    @property
    def records(self) -> list[dict[str, Any]]:
        return list(self.records_by_id.values())

    @property
    def storages(self) -> list[dict[str, Any]]:
        return list(self.storages_by_id.values())

    def storage_for(self, record: dict[str, Any]) -> dict[str, Any] | None:
        """The storage a record belongs to, looked up by ``storageId``."""
        storage_id = record.get("storageId") or record.get("storage_id")
        if storage_id is None:
            return None
        return self.storages_by_id.get(str(storage_id))
