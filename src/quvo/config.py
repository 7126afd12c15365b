"""Client configuration for quvo."""

from __future__ import annotations

import dataclasses
import os
from enum import StrEnum
from typing import Any

from quvo._constants import DEFAULT_CLIENT, DEFAULT_INVENTORY_TTL, DEFAULT_REFERENCE_TTL
from quvo.exceptions import QuvoConfigError


class QuvoEnvironment(StrEnum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


API_BASE_URLS: dict[QuvoEnvironment, str] = {
    QuvoEnvironment.DEVELOPMENT: "http://localhost:3001",
    QuvoEnvironment.STAGING: "http://localhost:3001",
    QuvoEnvironment.PRODUCTION: "https://quvo-api.vercel.app",
}


def _parse_environment(value: str) -> QuvoEnvironment:
    normalized = value.strip().lower()
    aliases = {"dev": "development", "prod": "production", "stage": "staging"}
    normalized = aliases.get(normalized, normalized)
    try:
        return QuvoEnvironment(normalized)
    except ValueError as exc:
        choices = ", ".join(env.value for env in QuvoEnvironment)
        raise QuvoConfigError(f"Unknown environment {value!r} (expected one of: {choices})") from exc


@dataclasses.dataclass(frozen=True)
class QuvoConfig:
    """Client configuration.

    Parameters
    ----------
    username : str
        Account used for the automatic re-login after a 401.  May be empty
        when credentials are always passed to :meth:`QuvoClient.login`.
    password : str
        Password for *username*.
    environment : QuvoEnvironment
        Selects the default base URL (see :data:`API_BASE_URLS`).
    base_url : str or None
        Explicit API base URL.  Overrides *environment* when set.
    client_id : str
        Backend tenant used in ``/api/<client>/...`` paths and cache keys.
    request_timeout : float
        Total timeout in seconds for a single HTTP request.
    reference_ttl : float
        Cache lifetime in seconds for slowly changing reference data
        (facilities, products, districts, projects).
    inventory_ttl : float
        Cache lifetime in seconds for bay/inventory data.  Must be shorter
        than *reference_ttl*.
    storage_path : str or None
        Location of the JSON file used for durable storage.  ``None``
        keeps everything in memory.
    """

    username: str = ""
    password: str = ""
    environment: QuvoEnvironment = QuvoEnvironment.PRODUCTION
    base_url: str | None = None
    client_id: str = DEFAULT_CLIENT
    request_timeout: float = 30.0
    reference_ttl: float = DEFAULT_REFERENCE_TTL
    inventory_ttl: float = DEFAULT_INVENTORY_TTL
    storage_path: str | None = None

    def __post_init__(self) -> None:
        if self.request_timeout <= 0:
            raise QuvoConfigError("request_timeout must be positive")
        if self.inventory_ttl <= 0 or self.reference_ttl <= 0:
            raise QuvoConfigError("cache TTLs must be positive")
        if self.inventory_ttl >= self.reference_ttl:
            raise QuvoConfigError(
                f"inventory_ttl ({self.inventory_ttl}s) must be shorter than reference_ttl ({self.reference_ttl}s)"
            )

    @property
    def api_base_url(self) -> str:
        """Base URL with any trailing slash removed."""
        url = self.base_url or API_BASE_URLS[self.environment]
        return url.rstrip("/")

    @property
    def credentials(self) -> dict[str, str] | None:
        """Configured login credentials, or ``None`` when not set."""
        if not self.username:
            return None
        return {"email": self.username, "password": self.password}

    @classmethod
    def from_env(cls, **overrides: Any) -> QuvoConfig:
        """Create configuration from environment variables.

        Reads ``QUVO_ENV``, ``QUVO_BASE_URL``, ``QUVO_USERNAME``,
        ``QUVO_PASSWORD``, ``QUVO_CLIENT``, ``QUVO_REQUEST_TIMEOUT``,
        ``QUVO_REFERENCE_TTL``, ``QUVO_INVENTORY_TTL`` and
        ``QUVO_STORAGE_PATH``.  Explicit keyword arguments override
        environment values.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        _ENV_CONFIG_MAP = {
            "QUVO_BASE_URL": "base_url",
            "QUVO_USERNAME": "username",
            "QUVO_PASSWORD": "password",
            "QUVO_CLIENT": "client_id",
            "QUVO_STORAGE_PATH": "storage_path",
        }
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        env_name = env.get("QUVO_ENV")
        if env_name is not None and "environment" not in overrides:
            config_kwargs["environment"] = _parse_environment(env_name)

        _ENV_FLOAT_MAP = {
            "QUVO_REQUEST_TIMEOUT": "request_timeout",
            "QUVO_REFERENCE_TTL": "reference_ttl",
            "QUVO_INVENTORY_TTL": "inventory_ttl",
        }
        for env_key, field_name in _ENV_FLOAT_MAP.items():
            val = env.get(env_key)
            if val is None or field_name in overrides:
                continue
            try:
                config_kwargs[field_name] = float(val)
            except ValueError as exc:
                raise QuvoConfigError(f"{env_key} must be a number, got {val!r}") from exc

        environment = overrides.get("environment")
        if isinstance(environment, str) and not isinstance(environment, QuvoEnvironment):
            overrides["environment"] = _parse_environment(environment)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
