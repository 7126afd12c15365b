"""Value parsing and text matching for dataset and backend input."""

from __future__ import annotations

import math
from typing import Any


def safe_float(value: Any) -> float | None:
    """Parse a finite number, or ``None`` for anything else.

    Strings may carry surrounding blanks and thousands separators
    (``" 1,250 "``).
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip().replace(",", "")
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def fold(value: Any) -> str:
    """Lower-cased, stripped text used for case-insensitive matching."""
    if value is None:
        return ""
    return str(value).strip().casefold()


def contains_text(haystack: Any, needle: str) -> bool:
    """Case-insensitive substring test; *needle* must already be folded."""
    return needle in fold(haystack)
