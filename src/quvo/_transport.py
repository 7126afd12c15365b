"""HTTP transport for the quvo REST backend."""

from __future__ import annotations

import dataclasses
import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from quvo._constants import ACCEPT, USER_AGENT
from quvo.config import QuvoConfig
from quvo.exceptions import QuvoTransportError

_logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class TransportResponse:
    """Status plus decoded JSON body (``None`` for an empty body)."""

    status: int
    data: Any = None
    text: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class Transport(Protocol):
    """Structural transport interface used by the client.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (`HttpTransport`) concrete.
    """

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        json_body: Any = None,
        params: Mapping[str, str] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> TransportResponse:
        ...


class HttpTransport:
    """aiohttp-based JSON transport with a per-request timeout."""

    def __init__(self, config: QuvoConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=config.request_timeout)

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        json_body: Any = None,
        params: Mapping[str, str] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> TransportResponse:
        request_headers: dict[str, str] = {
            "accept": ACCEPT,
            "content-type": "application/json",
            "user-agent": USER_AGENT,
        }
        if headers:
            request_headers.update(headers)

        url = f"{self._config.api_base_url}{endpoint}"
        body = json.dumps(json_body, separators=(",", ":")) if json_body is not None else None

        _logger.debug("%s %s params=%s", method, url, dict(params) if params else None)

        try:
            async with self._http.request(
                method,
                url,
                data=body,
                params=dict(params) if params else None,
                headers=request_headers,
                timeout=self._timeout,
            ) as resp:
                text = await resp.text()
                status = resp.status
        except TimeoutError as exc:
            raise QuvoTransportError(f"Request to {endpoint} timed out", endpoint=endpoint) from exc
        except aiohttp.ClientError as exc:
            raise QuvoTransportError(f"Request to {endpoint} failed: {exc}", endpoint=endpoint) from exc

        _logger.debug("%s %s -> HTTP %d", method, endpoint, status)

        if not text.strip():
            return TransportResponse(status=status, data=None, text=text)

        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            if not 200 <= status < 300:
                # Error pages are often HTML; the status is what matters.
                return TransportResponse(status=status, data=None, text=text)
            raise QuvoTransportError(
                f"Invalid JSON from {endpoint}: {text[:200]}",
                endpoint=endpoint,
            ) from exc

        return TransportResponse(status=status, data=data, text=text)
