from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import pytest

from quvo._transport import TransportResponse
from quvo.cache import TtlCache, TtlPolicy
from quvo.client import QuvoClient
from quvo.config import QuvoConfig
from quvo.exceptions import QuvoRequestFailedError, QuvoTransportError
from quvo.storage import MemoryStorage


class _Clock:
    def __init__(self) -> None:
        self.now_ms = 1_700_000_000_000

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, seconds: float) -> None:
        self.now_ms += int(seconds * 1000)


@dataclass
class FakeDataBackend:
    calls: list[tuple[str, str, dict[str, str] | None]] = field(default_factory=list)
    version: int = 1
    failure: Exception | None = None
    status: int = 200

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        json_body: Any = None,
        params: Mapping[str, str] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> TransportResponse:
        self.calls.append((method, endpoint, dict(params) if params else None))
        if self.failure is not None:
            raise self.failure
        if self.status != 200:
            return TransportResponse(status=self.status, text="unavailable")

        if endpoint == "/projects":
            return TransportResponse(status=200, data={"projects": [], "version": self.version})
        if endpoint == "/dashboard/initial-fetch":
            return TransportResponse(
                status=200,
                data={
                    "recordsById": {"r1": {"id": "r1", "storageId": "s1", "volume": 1200 * self.version}},
                    "storagesById": {"s1": {"id": "s1", "maxVolume": 5000}},
                },
            )
        if endpoint == "/notifications":
            return TransportResponse(status=200, data={"notifications": [], "limit": params and params["limit"]})
        if endpoint.startswith("/api/"):
            return TransportResponse(
                status=200,
                data={
                    "endpoint": endpoint,
                    "version": self.version,
                    "bays": [{"id": "b1", "storageId": "s1", "maxVolume": 900, "facilityName": "Brooksville"}],
                },
            )
        raise AssertionError(f"Unexpected endpoint in fake backend: {endpoint}")

    def count(self, endpoint: str) -> int:
        return sum(1 for _m, ep, _p in self.calls if ep == endpoint)


@pytest.fixture
def backend(monkeypatch: pytest.MonkeyPatch) -> FakeDataBackend:
    fake_backend = FakeDataBackend()

    async def fake_request(_self: Any, method: str, endpoint: str, **kwargs: Any) -> TransportResponse:
        return await fake_backend.request(method, endpoint, **kwargs)

    monkeypatch.setattr("quvo._transport.HttpTransport.request", fake_request)
    return fake_backend


@pytest.fixture
def clock() -> _Clock:
    return _Clock()


@pytest.fixture
def client(clock: _Clock) -> QuvoClient:
    storage = MemoryStorage()
    cache = TtlCache(storage, policy=TtlPolicy(reference_ttl=600, inventory_ttl=120), clock=clock)
    return QuvoClient(QuvoConfig(base_url="https://api.test"), storage=storage, cache=cache)


@pytest.mark.asyncio
async def test_projects_are_served_from_cache_within_ttl(
    client: QuvoClient, backend: FakeDataBackend, clock: _Clock
) -> None:
    async with client:
        first = await client.get_projects()
        backend.version = 2
        clock.advance(60)
        second = await client.get_projects()
        refreshed = await client.get_projects(force_refresh=True)

    assert first == second == {"projects": [], "version": 1}
    assert refreshed["version"] == 2
    assert backend.count("/projects") == 2


@pytest.mark.asyncio
async def test_bay_data_uses_short_ttl(client: QuvoClient, backend: FakeDataBackend, clock: _Clock) -> None:
    async with client:
        snapshot = await client.get_bay_data()
        backend.version = 2
        clock.advance(121)
        refreshed = await client.get_bay_data()

    assert snapshot.records_by_id["r1"]["volume"] == 1200
    assert refreshed.records_by_id["r1"]["volume"] == 2400
    assert refreshed.storage_for(refreshed.records[0]) == {"id": "s1", "maxVolume": 5000}
    assert backend.count("/dashboard/initial-fetch") == 2


@pytest.mark.asyncio
async def test_bay_data_for_project_is_cached_separately(client: QuvoClient, backend: FakeDataBackend) -> None:
    async with client:
        await client.get_bay_data()
        await client.get_bay_data("p-1")
        await client.get_bay_data("p-1")

    assert backend.calls == [
        ("POST", "/dashboard/initial-fetch", None),
        ("POST", "/dashboard/initial-fetch", {"project": "p-1"}),
    ]


@pytest.mark.asyncio
async def test_network_failure_falls_back_to_stale_entry(
    client: QuvoClient, backend: FakeDataBackend, clock: _Clock
) -> None:
    async with client:
        await client.get_projects()
        clock.advance(3600)
        backend.version = 2
        backend.failure = QuvoTransportError("Request to /projects failed", endpoint="/projects")

        stale = await client.get_projects()

    assert stale == {"projects": [], "version": 1}


@pytest.mark.asyncio
async def test_server_error_falls_back_to_stale_entry(
    client: QuvoClient, backend: FakeDataBackend, clock: _Clock
) -> None:
    async with client:
        await client.get_bays()
        clock.advance(600)
        backend.status = 502

        stale = await client.get_bays()

    assert stale["version"] == 1


@pytest.mark.asyncio
async def test_network_failure_without_cache_propagates(client: QuvoClient, backend: FakeDataBackend) -> None:
    backend.failure = QuvoTransportError("Request to /projects failed", endpoint="/projects")
    async with client:
        with pytest.raises(QuvoTransportError):
            await client.get_projects()


@pytest.mark.asyncio
async def test_client_errors_do_not_fall_back(client: QuvoClient, backend: FakeDataBackend, clock: _Clock) -> None:
    async with client:
        await client.get_projects()
        clock.advance(3600)
        backend.status = 404
        with pytest.raises(QuvoRequestFailedError) as exc_info:
            await client.get_projects()

    assert exc_info.value.status_code == 404


@pytest.mark.asyncio
async def test_notifications_are_cached_per_limit(client: QuvoClient, backend: FakeDataBackend) -> None:
    async with client:
        await client.get_notifications()
        await client.get_notifications(limit=10)
        await client.get_notifications(limit=10)

    assert backend.calls == [
        ("GET", "/notifications", {"limit": "50"}),
        ("GET", "/notifications", {"limit": "10"}),
    ]


@pytest.mark.asyncio
async def test_facility_filters_become_query_params_and_cache_keys(
    client: QuvoClient, backend: FakeDataBackend
) -> None:
    async with client:
        await client.get_facilities({"state": "FL", "product_code": "57"})
        await client.get_facilities({"productCode": "57", "state": "FL"})
        await client.get_facilities()

    assert backend.calls == [
        ("GET", "/api/martin-marietta/facilities", {"productCode": "57", "state": "FL"}),
        ("GET", "/api/martin-marietta/facilities", None),
    ]


@pytest.mark.asyncio
async def test_switching_client_changes_endpoints_and_cache_namespace(
    client: QuvoClient, backend: FakeDataBackend
) -> None:
    async with client:
        await client.get_products()
        client.set_client("vulcan")
        await client.get_products()
        assert await client.clear_cache("martin-marietta") == 1
        assert await client.cache.get("vulcan:products") is not None

    assert [endpoint for _m, endpoint, _p in backend.calls] == [
        "/api/martin-marietta/products",
        "/api/vulcan/products",
    ]


@pytest.mark.asyncio
async def test_client_bay_data_is_reshaped(client: QuvoClient, backend: FakeDataBackend) -> None:
    async with client:
        data = await client.get_client_bay_data()

    assert data["records"][0]["id"] == "b1"
    assert data["storages"] == [{"id": "s1", "maxVolume": 900, "facilityName": "Brooksville", "materialType": None}]


@pytest.mark.asyncio
async def test_expired_entry_survives_failed_refresh_until_next_success(
    client: QuvoClient, backend: FakeDataBackend, clock: _Clock
) -> None:
    async with client:
        await client.get_districts()
        clock.advance(700)
        backend.failure = QuvoTransportError("Request timed out", endpoint="/api/martin-marietta/districts")

        first = await client.get_districts()
        second = await client.get_districts()
        # A plain read still treats the restored entry as expired.
        assert await client.cache.get("martin-marietta:districts") is None

        backend.failure = None
        backend.version = 2
        refreshed = await client.get_districts()

    assert first == second
    assert first["version"] == 1
    assert refreshed["version"] == 2
    assert backend.count("/api/martin-marietta/districts") == 4
