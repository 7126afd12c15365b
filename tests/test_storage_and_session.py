from __future__ import annotations

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from quvo.exceptions import QuvoStorageError
from quvo.models.user import User, UserRole
from quvo.session import Session, SessionStore
from quvo.storage import JsonFileStorage, MemoryStorage


def _session() -> Session:
    return Session(token="tok-123", user=User(id="u-1", name="Dana Reyes", role=UserRole.SALES_MANAGER))


@pytest.mark.asyncio
async def test_json_file_storage_persists_across_instances(tmp_path: Path) -> None:
    path = tmp_path / "state" / "storage.json"
    storage = JsonFileStorage(path)

    await storage.set_item("a", "1")
    await storage.set_item("b", "2")
    await storage.remove_item("a")

    reopened = JsonFileStorage(path)
    assert await reopened.get_item("a") is None
    assert await reopened.get_item("b") == "2"
    assert json.loads(path.read_text(encoding="utf-8")) == {"b": "2"}


@pytest.mark.asyncio
async def test_json_file_storage_starts_empty_on_corrupt_file(tmp_path: Path) -> None:
    path = tmp_path / "storage.json"
    path.write_text("[1, 2", encoding="utf-8")

    storage = JsonFileStorage(path)
    assert await storage.get_all_keys() == []

    await storage.set_item("k", "v")
    assert await JsonFileStorage(path).get_item("k") == "v"


@pytest.mark.asyncio
async def test_failed_write_keeps_memory_and_disk_in_sync(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = tmp_path / "store.json"
    storage = JsonFileStorage(path)
    await storage.set_item("a", "1")

    def failing_replace(src: str, dst: object) -> None:
        raise OSError("disk full")

    monkeypatch.setattr("quvo.storage.os.replace", failing_replace)
    with pytest.raises(QuvoStorageError):
        await storage.set_item("b", "2")
    with pytest.raises(QuvoStorageError):
        await storage.multi_remove(["a"])

    assert await storage.get_item("b") is None
    assert await storage.get_item("a") == "1"
    assert json.loads(path.read_text(encoding="utf-8")) == {"a": "1"}
    assert sorted(p.name for p in tmp_path.iterdir()) == ["store.json"]


@pytest.mark.asyncio
async def test_multi_remove_ignores_missing_keys() -> None:
    storage = MemoryStorage({"x": "1"})
    await storage.multi_remove(["x", "y"])
    assert await storage.get_all_keys() == []


@pytest.mark.asyncio
async def test_session_store_round_trip() -> None:
    storage = MemoryStorage()
    store = SessionStore(storage)

    await store.save(_session())
    loaded = await store.load()

    assert loaded is not None
    assert loaded.token == "tok-123"
    assert loaded.user == User(id="u-1", name="Dana Reyes", role=UserRole.SALES_MANAGER)
    assert await storage.get_item("auth_token") == "tok-123"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "user_data",
    ["{broken", "null", "[]", json.dumps({"name": "no id"})],
)
async def test_session_store_treats_corrupt_user_data_as_absent(user_data: str) -> None:
    storage = MemoryStorage({"auth_token": "tok", "user_data": user_data})
    assert await SessionStore(storage).load() is None


@pytest.mark.asyncio
async def test_session_store_without_token_is_absent() -> None:
    storage = MemoryStorage({"user_data": json.dumps({"id": "u-1"})})
    assert await SessionStore(storage).load() is None


@pytest.mark.asyncio
async def test_session_store_clear_is_idempotent() -> None:
    storage = MemoryStorage()
    store = SessionStore(storage)

    await store.save(_session())
    await store.clear()
    await store.clear()

    assert await store.load() is None
    assert await storage.get_all_keys() == []


def test_session_authorization_header() -> None:
    assert _session().authorization_header == "Bearer tok-123"


def test_session_holds_only_token_and_user() -> None:
    assert set(Session.model_fields) == {"token", "user"}
    with pytest.raises(ValidationError):
        Session.model_validate({"token": "tok", "user": {"id": "u-1"}, "created_at": 1.0})
