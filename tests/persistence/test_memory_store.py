"""Tests for the in-memory store and the shared notification contract."""

import pytest

from wbp_app.persistence.base import StorageChange
from wbp_app.persistence.memory_store import InMemoryStore


class TestInMemoryStore:
    """Test get/set/on_change on the in-memory store."""

    @pytest.mark.asyncio
    async def test_get_returns_only_present_keys(self):
        store = InMemoryStore({"a": 1})

        assert await store.get(["a", "b"]) == {"a": 1}
        assert await store.get_value("b", "fallback") == "fallback"

    @pytest.mark.asyncio
    async def test_values_are_copied(self):
        store = InMemoryStore()
        value = {"nested": [1]}
        await store.set({"k": value})

        value["nested"].append(2)
        read = await store.get_value("k")
        read["nested"].append(3)

        assert store.snapshot()["k"] == {"nested": [1]}

    @pytest.mark.asyncio
    async def test_change_notification_payload(self):
        store = InMemoryStore({"k": 1})
        received = []
        store.on_change(received.append)

        await store.set({"k": 2})

        assert received == [{"k": StorageChange(old_value=1, new_value=2)}]

    @pytest.mark.asyncio
    async def test_unchanged_value_does_not_notify(self):
        store = InMemoryStore({"k": 1})
        received = []
        store.on_change(received.append)

        await store.set({"k": 1})

        assert received == []
        assert store.write_count == 1

    @pytest.mark.asyncio
    async def test_first_write_of_none_notifies(self):
        store = InMemoryStore()
        received = []
        store.on_change(received.append)

        await store.set({"k": None})

        assert received == [{"k": StorageChange(old_value=None, new_value=None)}]

    @pytest.mark.asyncio
    async def test_async_and_sync_listeners(self):
        store = InMemoryStore()
        sync_calls, async_calls = [], []

        async def async_listener(changes):
            async_calls.append(changes)

        store.on_change(sync_calls.append)
        store.on_change(async_listener)

        await store.set({"k": 1})

        assert len(sync_calls) == 1
        assert len(async_calls) == 1

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_block_others(self):
        store = InMemoryStore()
        received = []

        def broken(changes):
            raise RuntimeError("view crashed")

        store.on_change(broken)
        store.on_change(received.append)

        await store.set({"k": 1})

        assert len(received) == 1

    @pytest.mark.asyncio
    async def test_unsubscribe(self):
        store = InMemoryStore()
        received = []
        unsubscribe = store.on_change(received.append)
        assert store.listener_count == 1

        unsubscribe()
        unsubscribe()
        await store.set({"k": 1})

        assert received == []
        assert store.listener_count == 0
