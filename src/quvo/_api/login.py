"""Login endpoint.

Endpoint:
  - POST /auth/login
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from quvo._constants import LOGIN_ENDPOINT, SESSION_BASED_TOKEN
from quvo._redact import redact_for_log
from quvo._transport import TransportResponse
from quvo.exceptions import QuvoAuthenticationError
from quvo.models.user import User
from quvo.session import Session

_logger = logging.getLogger(__name__)


def build_login_payload(credentials: Mapping[str, str]) -> dict[str, str]:
    """Validate credentials and build the login request body.

    Accepts ``email`` or ``username`` as the identifier key.
    """
    identifier = credentials.get("email") or credentials.get("username")
    password = credentials.get("password")
    if not identifier or not password:
        raise QuvoAuthenticationError("Credentials must include an email/username and a password")
    return {"email": identifier, "password": password}


def parse_login_response(response: TransportResponse) -> Session:
    """Turn a login response into a :class:`Session`.

    Raises
    ------
    QuvoAuthenticationError
        If the status is not 2xx or the body has no usable ``user`` object.
    """
    if not response.ok:
        raise QuvoAuthenticationError(
            f"Login failed: HTTP {response.status}",
            status_code=response.status,
        )

    body: Any = response.data
    _logger.debug("POST %s response=%s", LOGIN_ENDPOINT, redact_for_log(body))
    if not isinstance(body, dict) or not isinstance(body.get("user"), dict):
        raise QuvoAuthenticationError("Invalid login response: missing user object", status_code=response.status)

    try:
        user = User.model_validate(body["user"])
    except ValidationError as exc:
        raise QuvoAuthenticationError(f"Invalid login response: {exc}", status_code=response.status) from exc

    token = body.get("token")
    if not isinstance(token, str) or not token.strip():
        # Cookie-session backends return the user without a bearer token.
        token = SESSION_BASED_TOKEN
    return Session(token=token, user=user)
