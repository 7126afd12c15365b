"""High-level async client for the quvo REST backend."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, TypeVar

import aiohttp

from quvo._api.login import build_login_payload, parse_login_response
from quvo._client import reads as _reads
from quvo._constants import LOGIN_ENDPOINT
from quvo._transport import HttpTransport, Transport, TransportResponse
from quvo.cache import TtlCache, TtlPolicy
from quvo.config import QuvoConfig
from quvo.exceptions import QuvoAuthenticationError, QuvoError, QuvoRequestFailedError
from quvo.models.dashboard import DashboardSnapshot
from quvo.session import Session, SessionStore
from quvo.storage import JsonFileStorage, KeyValueStorage, MemoryStorage

_logger = logging.getLogger(__name__)

T = TypeVar("T")

_UNAUTHORIZED = 401


class _Unauthorized(Exception):
    """Internal signal: the backend answered 401."""

    def __init__(self, endpoint: str) -> None:
        self.endpoint = endpoint
        super().__init__(endpoint)


def _default_storage(config: QuvoConfig) -> KeyValueStorage:
    if config.storage_path:
        return JsonFileStorage(config.storage_path)
    return MemoryStorage()


class QuvoClient:
    """Async client for the quvo backend.

    Usage::

        async with QuvoClient(config) as client:
            await client.login({"email": "rep@example.com", "password": "..."})
            projects = await client.get_projects()

    Parameters
    ----------
    config : QuvoConfig
        Client configuration.
    storage : KeyValueStorage or None
        Durable storage for the session and the cache.  Defaults to a
        :class:`~quvo.storage.JsonFileStorage` at ``config.storage_path``,
        or in-memory storage when no path is configured.
    cache : TtlCache or None
        Response cache.  Defaults to a cache over *storage* using the
        TTLs from *config*.
    session : aiohttp.ClientSession or None
        Externally owned HTTP session.  When omitted the client creates
        one and closes it on exit.
    """

    def __init__(
        self,
        config: QuvoConfig,
        *,
        storage: KeyValueStorage | None = None,
        cache: TtlCache | None = None,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._config = config
        self._storage = storage if storage is not None else _default_storage(config)
        self._cache = cache or TtlCache(
            self._storage,
            policy=TtlPolicy(reference_ttl=config.reference_ttl, inventory_ttl=config.inventory_ttl),
        )
        self._session_store = SessionStore(self._storage)
        self._external_session = session is not None
        self._http_session = session
        self._transport: Transport | None = None
        self._session: Session | None = None
        self._credentials: dict[str, str] | None = config.credentials
        self._client_id = config.client_id

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> QuvoClient:
        if self._http_session is None:
            self._http_session = aiohttp.ClientSession()
        self._transport = HttpTransport(self._config, self._http_session)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        self._transport = None

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def config(self) -> QuvoConfig:
        return self._config

    @property
    def cache(self) -> TtlCache:
        return self._cache

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None

    @property
    def current_client(self) -> str:
        return self._client_id

    def set_client(self, client_id: str) -> None:
        """Switch the backend tenant used for ``/api/<client>`` calls and cache keys."""
        client_id = client_id.strip()
        if not client_id:
            raise ValueError("client_id must be non-empty")
        self._client_id = client_id
        _logger.debug("Switched to client %s", client_id)

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    async def login(self, credentials: Mapping[str, str] | None = None) -> Session:
        """Authenticate and persist the session.

        The credentials are kept in memory for the automatic re-login
        after a 401.  Without *credentials* the last used (or configured)
        ones are sent.
        """
        creds = dict(credentials) if credentials is not None else self._credentials
        if creds is None:
            raise QuvoAuthenticationError("No credentials available (pass credentials or set config.username)")
        payload = build_login_payload(creds)

        transport = self._require_transport()
        response = await transport.request("POST", LOGIN_ENDPOINT, json_body=payload)
        session = parse_login_response(response)

        self._credentials = creds
        self._session = session
        try:
            await self._session_store.save(session)
        except Exception:
            _logger.warning("Failed to persist session; continuing with in-memory session", exc_info=True)
        _logger.debug("Logged in user=%s role=%s", session.user.id, session.user.role.value)
        return session

    async def logout(self) -> None:
        """Forget the session in memory and in durable storage.  Idempotent."""
        self._session = None
        try:
            await self._session_store.clear()
        except Exception:
            _logger.warning("Failed to clear stored session", exc_info=True)

    async def get_stored_session(self) -> Session | None:
        """Restore a persisted session, or ``None`` if absent or corrupt."""
        session = await self._session_store.load()
        if session is not None:
            self._session = session
        return session

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def _require_transport(self) -> Transport:
        if self._transport is None:
            raise QuvoError("Client not initialized. Use 'async with QuvoClient(...) as client:'")
        return self._transport

    def _auth_headers(self) -> dict[str, str]:
        if self._session is None:
            return {}
        return {"authorization": self._session.authorization_header}

    async def _send(
        self,
        method: str,
        path: str,
        json_body: Any,
        params: Mapping[str, str] | None,
    ) -> TransportResponse:
        transport = self._require_transport()
        response = await transport.request(
            method,
            path,
            json_body=json_body,
            params=params,
            headers=self._auth_headers(),
        )
        if response.status == _UNAUTHORIZED:
            raise _Unauthorized(path)
        return response

    async def _call_with_reauth(self, fn: Callable[[], Awaitable[T]]) -> T:
        """Run a call, re-logging in and retrying once on 401."""
        try:
            return await fn()
        except _Unauthorized as first:
            _logger.debug("HTTP 401 from %s; re-authenticating once", first.endpoint)
            await self.login()
        try:
            return await fn()
        except _Unauthorized as second:
            raise QuvoRequestFailedError(
                f"HTTP 401 from {second.endpoint} after re-authentication",
                status_code=_UNAUTHORIZED,
                endpoint=second.endpoint,
            ) from None

    async def request(
        self,
        path: str,
        *,
        method: str = "GET",
        json: Any = None,
        params: Mapping[str, str] | None = None,
    ) -> Any:
        """Issue an authenticated request and return the decoded JSON body.

        Raises
        ------
        QuvoRequestFailedError
            On any non-2xx status (including a 401 that survives the
            single re-login and retry).
        QuvoTransportError
            On network failures, timeouts or invalid JSON.
        QuvoAuthenticationError
            If the re-login after a 401 fails.
        """

        async def _fetch() -> TransportResponse:
            return await self._send(method, path, json, params)

        response = await self._call_with_reauth(_fetch)
        if not response.ok:
            raise QuvoRequestFailedError(
                f"HTTP {response.status} from {path}: {response.text[:200]}",
                status_code=response.status,
                endpoint=path,
            )
        return response.data

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------

    async def clear_cache(self, namespace: str | None = None) -> int:
        """Drop cached responses, all or for one namespace (e.g. a client id)."""
        return await self._cache.clear(f"{namespace}:" if namespace else None)

    # ------------------------------------------------------------------
    # Data
    # ------------------------------------------------------------------

    async def get_projects(self, *, force_refresh: bool = False) -> Any:
        return await _reads.get_projects(self, force_refresh=force_refresh)

    async def get_bay_data(
        self,
        project_id: str | None = None,
        *,
        force_refresh: bool = False,
    ) -> DashboardSnapshot:
        return await _reads.get_bay_data(self, project_id=project_id, force_refresh=force_refresh)

    async def get_notifications(self, limit: int = 50, *, force_refresh: bool = False) -> Any:
        return await _reads.get_notifications(self, limit=limit, force_refresh=force_refresh)

    async def get_facilities(
        self,
        filters: Mapping[str, Any] | None = None,
        *,
        force_refresh: bool = False,
    ) -> Any:
        return await _reads.get_facilities(self, filters=filters, force_refresh=force_refresh)

    async def get_facility(self, facility_id: str) -> Any:
        return await _reads.get_facility(self, facility_id)

    async def get_districts(self, *, force_refresh: bool = False) -> Any:
        return await _reads.get_districts(self, force_refresh=force_refresh)

    async def get_products(self, *, force_refresh: bool = False) -> Any:
        return await _reads.get_products(self, force_refresh=force_refresh)

    async def get_bays(self, *, force_refresh: bool = False) -> Any:
        return await _reads.get_bays(self, force_refresh=force_refresh)

    async def get_client_bay_data(self, *, force_refresh: bool = False) -> dict[str, Any]:
        return await _reads.get_client_bay_data(self, force_refresh=force_refresh)

    async def get_health(self) -> Any:
        return await _reads.get_health(self)

    async def check_connection(self) -> bool:
        return await _reads.check_connection(self)

    async def get_supported_clients(self) -> Any:
        return await _reads.get_supported_clients(self)

    async def get_client_info(self) -> Any:
        return await _reads.get_client_info(self)
