"""Internal read operations for :class:`quvo.client.QuvoClient`.

These functions keep `client.py` small without changing the public API.
Every cached read goes through :func:`cached_fetch`, which applies the
stale-on-error rule.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import TYPE_CHECKING, Any

from quvo._api import backend as _backend
from quvo._constants import (
    CLIENTS_ENDPOINT,
    DASHBOARD_ENDPOINT,
    HEALTH_ENDPOINT,
    NOTIFICATIONS_ENDPOINT,
    PROJECTS_ENDPOINT,
)
from quvo.cache import cache_key
from quvo.exceptions import QuvoTransportError
from quvo.models.dashboard import DashboardSnapshot

if TYPE_CHECKING:
    from quvo.client import QuvoClient

_logger = logging.getLogger(__name__)


def is_fallback_eligible(exc: QuvoTransportError) -> bool:
    """Network-level failures and 5xx may be served from stale cache.

    4xx answers (including a 401 that survived re-login) mean the request
    itself is wrong or unauthorized, so they always propagate.
    """
    return exc.status_code is None or exc.status_code >= 500


async def cached_fetch(
    client: QuvoClient,
    key: str,
    fetch: Callable[[], Awaitable[Any]],
    *,
    force_refresh: bool = False,
) -> Any:
    """Return fresh cached data, or fetch and cache it.

    When the live fetch fails with a fallback-eligible error, the last
    stored payload is returned regardless of its age.  With nothing stored
    the original error propagates.
    """
    cache = client.cache
    cached, entry = await cache.lookup(key)
    if cached is not None and not force_refresh:
        return cached

    try:
        data = await fetch()
    except QuvoTransportError as exc:
        if not is_fallback_eligible(exc):
            raise
        if entry is None:
            raise
        _logger.warning("Serving stale cache for key=%s after fetch failure: %s", key, exc)
        # Kept for the next failure; still evicted by any later read.
        await cache.restore(entry)
        return entry.data

    await cache.set(key, data)
    return data


async def get_projects(client: QuvoClient, *, force_refresh: bool = False) -> Any:
    key = cache_key(client.current_client, "projects")
    return await cached_fetch(client, key, lambda: client.request(PROJECTS_ENDPOINT), force_refresh=force_refresh)


async def get_bay_data(
    client: QuvoClient,
    *,
    project_id: str | None = None,
    force_refresh: bool = False,
) -> DashboardSnapshot:
    key = cache_key(client.current_client, "baydata", project_id or "all")

    async def _fetch() -> Any:
        data = await client.request(
            DASHBOARD_ENDPOINT,
            method="POST",
            params=_backend.dashboard_params(project_id),
        )
        # Cached in validated form only.
        return _backend.parse_dashboard_snapshot(data).model_dump(mode="json")

    data = await cached_fetch(client, key, _fetch, force_refresh=force_refresh)
    return _backend.parse_dashboard_snapshot(data)


async def get_notifications(client: QuvoClient, *, limit: int = 50, force_refresh: bool = False) -> Any:
    if limit <= 0:
        raise ValueError(f"limit must be positive, got {limit}")
    key = cache_key(client.current_client, "notifications", limit)
    return await cached_fetch(
        client,
        key,
        lambda: client.request(NOTIFICATIONS_ENDPOINT, params={"limit": str(limit)}),
        force_refresh=force_refresh,
    )


async def get_facilities(
    client: QuvoClient,
    *,
    filters: Mapping[str, Any] | None = None,
    force_refresh: bool = False,
) -> Any:
    params = _backend.facility_query_params(filters)
    qualifier = "&".join(f"{k}={v}" for k, v in params.items()) or None
    key = cache_key(client.current_client, "facilities", qualifier)
    endpoint = _backend.client_endpoint(client.current_client, "facilities")
    return await cached_fetch(
        client,
        key,
        lambda: client.request(endpoint, params=params or None),
        force_refresh=force_refresh,
    )


async def get_facility(client: QuvoClient, facility_id: str) -> Any:
    return await client.request(_backend.client_endpoint(client.current_client, "facilities", str(facility_id)))


async def get_districts(client: QuvoClient, *, force_refresh: bool = False) -> Any:
    key = cache_key(client.current_client, "districts")
    endpoint = _backend.client_endpoint(client.current_client, "districts")
    return await cached_fetch(client, key, lambda: client.request(endpoint), force_refresh=force_refresh)


async def get_products(client: QuvoClient, *, force_refresh: bool = False) -> Any:
    key = cache_key(client.current_client, "products")
    endpoint = _backend.client_endpoint(client.current_client, "products")
    return await cached_fetch(client, key, lambda: client.request(endpoint), force_refresh=force_refresh)


async def get_bays(client: QuvoClient, *, force_refresh: bool = False) -> Any:
    key = cache_key(client.current_client, "bays")
    endpoint = _backend.client_endpoint(client.current_client, "bays")
    return await cached_fetch(client, key, lambda: client.request(endpoint), force_refresh=force_refresh)


async def get_client_bay_data(client: QuvoClient, *, force_refresh: bool = False) -> dict[str, Any]:
    """Tenant bays reshaped into the ``records`` / ``storages`` dashboard shape."""
    return _backend.bays_to_bay_data(await get_bays(client, force_refresh=force_refresh))


async def get_health(client: QuvoClient) -> Any:
    return await client.request(HEALTH_ENDPOINT)


async def check_connection(client: QuvoClient) -> bool:
    """``True`` when the health endpoint answers; never raises on transport errors."""
    try:
        await get_health(client)
    except QuvoTransportError:
        _logger.debug("Health check failed; backend unreachable", exc_info=True)
        return False
    return True


async def get_supported_clients(client: QuvoClient) -> Any:
    return await client.request(CLIENTS_ENDPOINT)


async def get_client_info(client: QuvoClient) -> Any:
    return await client.request(_backend.client_endpoint(client.current_client))
