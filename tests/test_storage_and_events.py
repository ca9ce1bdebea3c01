"""Unit tests for local store backends, the event emitter and identity lookup."""

import asyncio
import json

import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from pymongo.errors import ServerSelectionTimeoutError

from common.database import MongoDB
from common.events import EventEmitter
from common.storage import MemoryLocalStore, MongoLocalStore
from common.utils.exceptions import StorageUnavailableException
from app.services.notifications.identity import SubjectUserIdentity


# ─────────────────────────────────────────────────────────────────
# Fixtures
# ─────────────────────────────────────────────────────────────────


@pytest.fixture
def mock_store_collection():
    return AsyncMock()


@pytest.fixture
def mock_store_db(mock_store_collection):
    db = MagicMock()
    db.__getitem__ = MagicMock(return_value=mock_store_collection)
    return db


@pytest.fixture
def mongo_store(mock_store_db):
    return MongoLocalStore(mock_store_db)


# ─────────────────────────────────────────────────────────────────
# MemoryLocalStore
# ─────────────────────────────────────────────────────────────────


class TestMemoryLocalStore:
    @pytest.mark.asyncio
    async def test_set_get_remove(self):
        store = MemoryLocalStore()

        await store.set("k", "v")
        assert await store.get("k") == "v"

        await store.remove("k")
        assert await store.get("k") is None

    @pytest.mark.asyncio
    async def test_initial_values_are_copied(self):
        initial = {"k": "v"}
        store = MemoryLocalStore(initial)

        await store.set("k", "w")

        assert initial == {"k": "v"}

    @pytest.mark.asyncio
    async def test_remove_missing_key(self):
        await MemoryLocalStore().remove("missing")


# ─────────────────────────────────────────────────────────────────
# MongoLocalStore
# ─────────────────────────────────────────────────────────────────


class TestMongoLocalStore:
    def test_uses_configured_collection(self, mock_store_db):
        MongoLocalStore(mock_store_db, collection_name="kv")

        mock_store_db.__getitem__.assert_called_with("kv")

    @pytest.mark.asyncio
    async def test_get_returns_value(self, mongo_store, mock_store_collection):
        mock_store_collection.find_one.return_value = {"_id": "readNotifications", "value": "{}"}

        assert await mongo_store.get("readNotifications") == "{}"
        mock_store_collection.find_one.assert_called_once_with({"_id": "readNotifications"})

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, mongo_store, mock_store_collection):
        mock_store_collection.find_one.return_value = None

        assert await mongo_store.get("readNotifications") is None

    @pytest.mark.asyncio
    async def test_set_upserts(self, mongo_store, mock_store_collection):
        await mongo_store.set("readNotifications", '{"u_g": true}')

        call_args = mock_store_collection.update_one.call_args
        assert call_args.args[0] == {"_id": "readNotifications"}
        assert call_args.args[1]["$set"]["value"] == '{"u_g": true}'
        assert "updatedAt" in call_args.args[1]["$set"]
        assert call_args.kwargs["upsert"] is True

    @pytest.mark.asyncio
    async def test_remove_deletes(self, mongo_store, mock_store_collection):
        await mongo_store.remove("readNotifications")

        mock_store_collection.delete_one.assert_called_once_with({"_id": "readNotifications"})

    @pytest.mark.asyncio
    async def test_driver_errors_become_storage_unavailable(self, mongo_store, mock_store_collection):
        error = ServerSelectionTimeoutError("no servers")
        mock_store_collection.find_one.side_effect = error
        mock_store_collection.update_one.side_effect = error
        mock_store_collection.delete_one.side_effect = error

        with pytest.raises(StorageUnavailableException):
            await mongo_store.get("k")
        with pytest.raises(StorageUnavailableException):
            await mongo_store.set("k", "v")
        with pytest.raises(StorageUnavailableException):
            await mongo_store.remove("k")


# ─────────────────────────────────────────────────────────────────
# MongoDB connection
# ─────────────────────────────────────────────────────────────────


class TestMongoDB:
    @pytest.mark.asyncio
    async def test_connect_pings_server(self):
        client = MagicMock()
        client.admin.command = AsyncMock(return_value={"ok": 1})

        with patch("common.database.mongodb.AsyncIOMotorClient", return_value=client):
            db = MongoDB()
            await db.connect(uri="mongodb://localhost:27017", database_name="interaction_feed")

        client.admin.command.assert_called_once_with("ping")
        assert db.is_connected is True

    @pytest.mark.asyncio
    async def test_connect_failure_raises(self):
        client = MagicMock()
        client.admin.command = AsyncMock(side_effect=ServerSelectionTimeoutError("no servers"))

        with patch("common.database.mongodb.AsyncIOMotorClient", return_value=client):
            db = MongoDB()
            with pytest.raises(ServerSelectionTimeoutError):
                await db.connect(uri="mongodb://localhost:27017", database_name="interaction_feed")

        assert db.is_connected is False


# ─────────────────────────────────────────────────────────────────
# EventEmitter
# ─────────────────────────────────────────────────────────────────


class TestEventEmitter:
    def test_emit_calls_listeners_in_order(self):
        events = EventEmitter()
        calls = []
        events.add_listener("changed", lambda value: calls.append(("a", value)))
        events.add_listener("changed", lambda value: calls.append(("b", value)))

        events.emit("changed", "user-1")

        assert calls == [("a", "user-1"), ("b", "user-1")]

    def test_subscription_remove(self):
        events = EventEmitter()
        calls = []
        subscription = events.add_listener("changed", calls.append)

        subscription.remove()
        events.emit("changed", "user-1")

        assert calls == []
        assert events.listener_count("changed") == 0

    def test_failing_listener_does_not_stop_others(self):
        events = EventEmitter()
        calls = []

        def broken(value):
            raise RuntimeError("boom")

        events.add_listener("changed", broken)
        events.add_listener("changed", calls.append)

        events.emit("changed", "user-1")

        assert calls == ["user-1"]

    def test_emit_without_listeners(self):
        EventEmitter().emit("nobody-listens")

    def test_remove_all_listeners(self):
        events = EventEmitter()
        events.add_listener("a", print)
        events.add_listener("b", print)

        events.remove_all_listeners("a")
        assert events.listener_count("a") == 0
        assert events.listener_count("b") == 1

        events.remove_all_listeners()
        assert events.listener_count("b") == 0

    @pytest.mark.asyncio
    async def test_coroutine_listener_is_scheduled(self):
        events = EventEmitter()
        received = asyncio.Event()

        async def listener(value):
            received.set()

        events.add_listener("changed", listener)
        events.emit("changed", "user-1")

        await asyncio.wait_for(received.wait(), timeout=1.0)

    @pytest.mark.asyncio
    async def test_failing_coroutine_listener_is_logged(self, caplog):
        events = EventEmitter()

        async def broken(value):
            raise RuntimeError("boom")

        events.add_listener("changed", broken)
        events.emit("changed", "user-1")
        assert events.pending_count == 1

        for _ in range(5):
            await asyncio.sleep(0)

        assert events.pending_count == 0
        assert "Error in event listener for changed: boom" in caplog.text

    @pytest.mark.asyncio
    async def test_finished_coroutine_listener_is_released(self):
        events = EventEmitter()
        done = asyncio.Event()

        async def listener(value):
            done.set()

        events.add_listener("changed", listener)
        events.emit("changed", "user-1")
        await asyncio.wait_for(done.wait(), timeout=1.0)
        await asyncio.sleep(0)

        assert events.pending_count == 0


# ─────────────────────────────────────────────────────────────────
# SubjectUserIdentity
# ─────────────────────────────────────────────────────────────────


class TestSubjectUserIdentity:
    @pytest.mark.asyncio
    async def test_reads_cached_user(self, local_store):
        await local_store.set("sanity_user", json.dumps({"_id": "user-owner", "username": "owner"}))

        assert await SubjectUserIdentity(local_store).current_user_id() == "user-owner"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("cached", [None, "{bad json", json.dumps([1]), json.dumps({"username": "x"})])
    async def test_unusable_cache_means_no_user(self, local_store, cached):
        if cached is not None:
            await local_store.set("sanity_user", cached)

        assert await SubjectUserIdentity(local_store).current_user_id() is None

    @pytest.mark.asyncio
    async def test_storage_failure_means_no_user(self):
        store = AsyncMock()
        store.get = AsyncMock(side_effect=StorageUnavailableException())

        assert await SubjectUserIdentity(store).current_user_id() is None
