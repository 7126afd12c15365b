"""Session state and its durable persistence."""

from __future__ import annotations

import logging

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from quvo._constants import AUTH_TOKEN_KEY, USER_DATA_KEY
from quvo.models.user import User
from quvo.storage import KeyValueStorage

_logger = logging.getLogger(__name__)


class Session(BaseModel):
    """Authenticated session after a successful login.

    Parameters
    ----------
    token : str
        Opaque bearer token sent as ``Authorization: Bearer <token>``.
    user : User
        The logged-in user.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        str_strip_whitespace=True,
    )

    token: str = Field(min_length=1)
    user: User

    @property
    def authorization_header(self) -> str:
        return f"Bearer {self.token}"


class SessionStore:
    """Persists the session as ``auth_token`` + ``user_data`` entries."""

    def __init__(self, storage: KeyValueStorage) -> None:
        self._storage = storage

    async def save(self, session: Session) -> None:
        await self._storage.set_item(AUTH_TOKEN_KEY, session.token)
        await self._storage.set_item(USER_DATA_KEY, session.user.model_dump_json())

    async def load(self) -> Session | None:
        """Return the stored session, or ``None`` if absent or corrupt.

        Never raises: a broken entry is treated like no session at all.
        """
        try:
            token = await self._storage.get_item(AUTH_TOKEN_KEY)
            user_data = await self._storage.get_item(USER_DATA_KEY)
        except Exception:
            _logger.warning("Failed to read stored session", exc_info=True)
            return None
        if not token or not user_data:
            return None
        try:
            user = User.model_validate_json(user_data)
            return Session(token=token, user=user)
        except ValidationError:
            _logger.warning("Stored session is corrupt; ignoring it")
            return None

    async def clear(self) -> None:
        """Remove the stored session.  Safe to call when nothing is stored."""
        await self._storage.multi_remove([AUTH_TOKEN_KEY, USER_DATA_KEY])
