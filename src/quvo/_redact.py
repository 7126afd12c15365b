"""Redaction of credentials and bearer tokens in DEBUG log output."""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

REDACTED = "<redacted>"

_SECRET_KEYS: frozenset[str] = frozenset(
    {
        "password",
        "token",
        "authtoken",
        "accesstoken",
        "refreshtoken",
        "authorization",
        "cookie",
        "setcookie",
    }
)
_BEARER_RE = re.compile(r"(Bearer\s+)\S+", re.IGNORECASE)
_MAX_DEPTH = 20


def _is_secret_key(key: object) -> bool:
    return str(key).lower().replace("_", "").replace("-", "") in _SECRET_KEYS


def _scrub_text(text: str, max_string: int) -> str:
    text = _BEARER_RE.sub(rf"\g<1>{REDACTED}", text)
    if len(text) > max_string:
        return f"{text[:max_string]}...<truncated>"
    return text


def redact_for_log(value: Any, *, max_string: int = 512) -> Any:
    """Return a copy of *value* safe to include in DEBUG logs.

    Values stored under credential-like keys (``password``, ``token``,
    ``Authorization``, ``Set-Cookie``...) are replaced, bearer tokens inside
    strings are masked and long strings are truncated.  The input is never
    mutated.
    """
    return _redact(value, max_string, 0)


def _redact(value: Any, max_string: int, depth: int) -> Any:
    if depth > _MAX_DEPTH:
        return "<max-depth>"
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, str):
        return _scrub_text(value, max_string)
    if isinstance(value, (bytes, bytearray)):
        return f"<{len(value)} bytes>"
    if isinstance(value, Mapping):
        return {
            str(key): REDACTED if _is_secret_key(key) else _redact(item, max_string, depth + 1)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_redact(item, max_string, depth + 1) for item in value]
    return repr(value)
