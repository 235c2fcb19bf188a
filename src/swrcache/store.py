"""CacheStore - the shared map of canonical keys to cache entries."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import replace
from typing import Any

from swrcache.errors import StoreClosedError
from swrcache.keys import serialize_key
from swrcache.registry import SubscriberRegistry
from swrcache.types import UNSET, CacheEntry, KeyLike, Subscriber

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


class CacheStore:
    """In-memory cache entries plus their subscribers.

    Every method is synchronous; callers on one event loop never see a
    half-applied write. Entries live until ``teardown()``.

    Usage:
        with CacheStore.create() as store:
            store.write(["clients"], data=[...], updated_at=store.now())
            store.read(["clients"]).data
    """

    def __init__(self, *, clock: Callable[[], int] | None = None) -> None:
        self._entries: dict[str, CacheEntry[Any]] = {}
        self._registry = SubscriberRegistry()
        self._clock = clock or _now_ms
        self._closed = False

    @classmethod
    def create(cls, *, clock: Callable[[], int] | None = None) -> CacheStore:
        return cls(clock=clock)

    def teardown(self) -> None:
        """Cancel running fetches and drop every entry and subscriber."""
        if self._closed:
            return
        for entry in self._entries.values():
            if entry.in_flight is not None:
                entry.in_flight.cancel()
        self._entries.clear()
        self._registry.clear()
        self._closed = True
        logger.debug("Cache store torn down")

    @property
    def closed(self) -> bool:
        return self._closed

    def __enter__(self) -> CacheStore:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.teardown()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: KeyLike) -> bool:
        return serialize_key(key) in self._entries

    def now(self) -> int:
        """Current time in milliseconds, from the store's clock."""
        return self._clock()

    def read(self, key: KeyLike) -> CacheEntry[Any] | None:
        self._check_open()
        return self._entries.get(serialize_key(key))

    def write(
        self,
        key: KeyLike,
        *,
        data: Any = UNSET,
        error: Any = UNSET,
        updated_at: Any = UNSET,
        in_flight: Any = UNSET,
    ) -> CacheEntry[Any]:
        """Merge fields into the entry for ``key`` and notify its subscribers.

        Fields left UNSET keep their previous value. Subscribers are
        notified even if nothing changed.
        """
        self._check_open()
        canonical = serialize_key(key)
        changes = {
            name: value
            for name, value in (
                ("data", data),
                ("error", error),
                ("updated_at", updated_at),
                ("in_flight", in_flight),
            )
            if value is not UNSET
        }
        previous = self._entries.get(canonical)
        entry = (
            replace(previous, **changes)
            if previous is not None
            else CacheEntry(**changes)
        )
        self._entries[canonical] = entry
        self._registry.notify(canonical)
        return entry

    def keys(self) -> list[str]:
        """Canonical keys currently stored."""
        self._check_open()
        return list(self._entries)

    def subscribe(self, key: KeyLike, callback: Subscriber) -> Callable[[], None]:
        """Watch writes to ``key``. Returns an unsubscribe function."""
        self._check_open()
        return self._registry.subscribe(serialize_key(key), callback)

    def subscriber_count(self, key: KeyLike) -> int:
        return self._registry.subscriber_count(serialize_key(key))

    def _check_open(self) -> None:
        if self._closed:
            raise StoreClosedError("Cache store has been torn down")
