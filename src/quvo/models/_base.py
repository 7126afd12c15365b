"""Shared base classes for quvo models.

Backend payloads and the bundled datasets use camelCase keys and mark
missing values with placeholders such as ``"--"`` or ``"N/A"``.
:class:`QuvoBaseModel` maps the keys to snake_case fields and drops the
placeholders before validation so each field falls back to its default.

Role-like enums derive from :class:`QuvoEnum`, which resolves values it
does not know to ``UNKNOWN``.
"""

from __future__ import annotations

import math
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel

_PLACEHOLDERS = frozenset({"", "--", "N/A", "n/a", "NaN", "nan"})


def is_placeholder(value: Any) -> bool:
    """``True`` for ``None``, NaN and the dataset "not available" markers."""
    if value is None:
        return True
    if isinstance(value, float):
        return math.isnan(value)
    return isinstance(value, str) and value.strip() in _PLACEHOLDERS


class QuvoEnum(StrEnum):
    """String enum whose subclasses **must** define ``UNKNOWN``.

    Lookups ignore case and accept ``_`` for ``-``, so ``"SALES_MANAGER"``
    resolves to ``"sales-manager"``.
    """

    @classmethod
    def _missing_(cls, value: object) -> QuvoEnum:
        if isinstance(value, str):
            wanted = value.strip().lower().replace("_", "-")
            for member in cls:
                if member.value == wanted:
                    return member
        fallback: QuvoEnum = cls["UNKNOWN"]
        return fallback


class QuvoBaseModel(BaseModel):
    """Frozen model with camelCase aliases that ignores unknown keys."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_placeholders(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if not is_placeholder(value)}
        return data
