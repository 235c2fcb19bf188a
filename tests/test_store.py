"""Tests for the cache store."""

import asyncio

import pytest

from swrcache import CacheEntry, CacheStore, StoreClosedError, start_fetch


class TestReadWrite:
    """Tests for read / write merge semantics."""

    def test_read_missing_returns_none(self, store: CacheStore) -> None:
        assert store.read(["clients"]) is None

    def test_write_creates_entry_with_defaults(self, store: CacheStore) -> None:
        entry = store.write(["clients"], data=[1])
        assert entry == CacheEntry(data=[1], error=None, updated_at=0, in_flight=None)
        assert store.read(["clients"]) is entry

    def test_write_merges_unset_fields(self, store: CacheStore) -> None:
        store.write("k", data="v", error="old", updated_at=5)
        entry = store.write("k", updated_at=0)
        assert entry.data == "v"
        assert entry.error == "old"
        assert entry.updated_at == 0

    def test_explicit_none_clears_field(self, store: CacheStore) -> None:
        store.write("k", data="v", error="old", updated_at=5)
        entry = store.write("k", error=None)
        assert entry.error is None
        assert entry.data == "v"

    def test_list_and_tuple_keys_share_entry(self, store: CacheStore) -> None:
        store.write(("dash", 1), data="x")
        assert store.read(["dash", 1]).data == "x"
        assert ["dash", 1] in store
        assert len(store) == 1
        assert store.keys() == ['["dash",1]']

    def test_write_always_notifies(self, store: CacheStore) -> None:
        calls: list[int] = []
        store.subscribe("k", lambda: calls.append(1))
        store.write("k", data=1)
        store.write("k", data=1)
        store.write("k")
        assert len(calls) == 3

    def test_subscribers_see_the_new_entry(self, store: CacheStore) -> None:
        seen: list[object] = []
        store.subscribe("k", lambda: seen.append(store.read("k").data))
        store.write("k", data="first")
        store.write("k", data="second")
        assert seen == ["first", "second"]

    def test_unsubscribe_stops_notifications(self, store: CacheStore) -> None:
        calls: list[int] = []
        unsubscribe = store.subscribe("k", lambda: calls.append(1))
        assert store.subscriber_count("k") == 1
        unsubscribe()
        store.write("k", data=1)
        assert calls == []
        assert store.subscriber_count("k") == 0

    def test_now_uses_injected_clock(self, store: CacheStore, clock) -> None:
        assert store.now() == clock.now
        clock.advance(250)
        assert store.now() == clock.now

    def test_default_clock_is_milliseconds(self) -> None:
        import time

        store = CacheStore()
        assert abs(store.now() - time.time() * 1000) < 5_000


class TestLifecycle:
    """Tests for create / teardown."""

    def test_stores_are_isolated(self) -> None:
        a = CacheStore.create()
        b = CacheStore.create()
        a.write("k", data=1)
        assert b.read("k") is None

    def test_teardown_closes_store(self) -> None:
        store = CacheStore.create()
        store.write("k", data=1)
        store.teardown()

        assert store.closed
        with pytest.raises(StoreClosedError):
            store.read("k")
        with pytest.raises(StoreClosedError):
            store.write("k", data=2)
        with pytest.raises(StoreClosedError):
            store.subscribe("k", lambda: None)

    def test_teardown_is_idempotent(self) -> None:
        store = CacheStore.create()
        store.teardown()
        store.teardown()
        assert store.closed

    def test_context_manager_tears_down(self) -> None:
        with CacheStore.create() as store:
            store.write("k", data=1)
        assert store.closed

    async def test_teardown_cancels_in_flight_fetches(self) -> None:
        gate = asyncio.Event()

        async def fetch() -> str:
            await gate.wait()
            return "never"

        store = CacheStore.create()
        task = start_fetch(store, ["slow"], fetch)
        await asyncio.sleep(0)

        store.teardown()
        await task.join()
        assert task.cancelled()
