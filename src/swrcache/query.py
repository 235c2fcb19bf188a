"""QueryBinding - one consumer's live handle on a cached query.

Provides:
- start_fetch(): Run a fetch and record its outcome in the store
- QueryBinding: Fresh-hit / coalesce / fetch orchestration for a consumer
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any, Generic, TypeVar

from swrcache.duration import parse_duration
from swrcache.errors import error_message
from swrcache.keys import serialize_key
from swrcache.store import CacheStore
from swrcache.task import FetchTask
from swrcache.types import (
    UNSET,
    CacheEntry,
    Duration,
    FetchFn,
    KeyLike,
    QueryState,
)

T = TypeVar("T")

DEFAULT_STALE_TIME = 60_000

logger = logging.getLogger(__name__)


def start_fetch(store: CacheStore, key: KeyLike, fetch_fn: FetchFn[T]) -> FetchTask[T]:
    """Start ``fetch_fn`` and register it as the key's in-flight task.

    On settlement the outcome is written to the entry: a result replaces
    ``data`` and clears ``error``; a failure sets ``error`` and leaves
    ``data`` alone. Both refresh ``updated_at``.
    """
    canonical = serialize_key(key)
    task = FetchTask.spawn(canonical, fetch_fn)

    def settle(settled: FetchTask[T]) -> None:
        if store.closed:
            return
        current = store.read(canonical)
        # A newer fetch may own the slot after an optimistic write cleared ours
        owns_slot = current is not None and current.in_flight is settled
        in_flight = None if owns_slot else UNSET

        if settled.cancelled():
            if owns_slot:
                store.write(canonical, in_flight=None)
            return

        failure = settled.exception()
        if failure is not None:
            message = error_message(failure)
            logger.warning("Fetch for %s failed: %s", canonical, message)
            store.write(
                canonical,
                error=message,
                updated_at=store.now(),
                in_flight=in_flight,
            )
            return

        result = settled.result()
        store.write(
            canonical,
            data=UNSET if result is None else result,
            error=None,
            updated_at=store.now(),
            in_flight=in_flight,
        )

    task.add_done_callback(settle)
    store.write(canonical, in_flight=task)
    logger.debug("Started fetch for %s", canonical)
    return task


class QueryBinding(Generic[T]):
    """A consumer's view of one cached query.

    Reads ``data`` and ``error`` straight from the shared entry, so every
    binding on the same key sees the same value. Fetch failures are never
    raised; they show up in ``error``.

    Usage:
        binding = QueryBinding(store, ["clients"], fetch_clients)
        binding.attach()          # fresh-hit, coalesce or fetch
        ...
        await binding.refetch()   # ignore freshness, wait for settlement
        binding.detach()

        async with QueryBinding(store, ["clients"], fetch_clients) as b:
            print(b.data)
    """

    def __init__(
        self,
        store: CacheStore,
        key: KeyLike,
        fetch_fn: FetchFn[T],
        *,
        stale_time: Duration = DEFAULT_STALE_TIME,
        enabled: bool = True,
        on_change: Callable[[], None] | None = None,
    ) -> None:
        self._store = store
        self._key = key
        self._canonical = serialize_key(key)
        self._fetch_fn = fetch_fn
        self._stale_time = parse_duration(stale_time)
        self._enabled = enabled
        self._on_change = on_change
        self._fetching = 0
        self._attached = False
        self._unsubscribe: Callable[[], None] | None = None
        self._pending: asyncio.Task[None] | None = None

    # -------------------------------------------------------------------------
    # Exposed state
    # -------------------------------------------------------------------------

    @property
    def key(self) -> KeyLike:
        return self._key

    @property
    def canonical_key(self) -> str:
        return self._canonical

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def attached(self) -> bool:
        return self._attached

    @property
    def stale_time(self) -> int:
        return self._stale_time

    @property
    def data(self) -> T | None:
        entry = self._entry()
        return entry.data if entry is not None else None

    @property
    def error(self) -> str | None:
        entry = self._entry()
        return entry.error if entry is not None else None

    @property
    def is_fetching(self) -> bool:
        return self._fetching > 0

    @property
    def is_loading(self) -> bool:
        """True during a first load, false while revalidating visible data."""
        return self._enabled and self.data is None and self.is_fetching

    @property
    def state(self) -> QueryState[T]:
        entry = self._entry()
        data = entry.data if entry is not None else None
        return QueryState(
            data=data,
            error=entry.error if entry is not None else None,
            is_loading=self._enabled and data is None and self.is_fetching,
            is_fetching=self.is_fetching,
        )

    @property
    def pending(self) -> asyncio.Task[None] | None:
        """The background load started by the last ``attach()``, if any."""
        return self._pending

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def attach(self) -> asyncio.Task[None] | None:
        """Start observing the key and load it if needed.

        Returns the task awaiting the fetch, or None when cached data was
        fresh (or the binding is disabled).
        """
        self._attached = True
        if not self._enabled:
            return None
        if self._unsubscribe is None:
            self._unsubscribe = self._store.subscribe(self._canonical, self._changed)

        task = self._begin(force=False)
        if task is None:
            return None
        self._pending = asyncio.ensure_future(self._join(task))
        return self._pending

    def detach(self) -> None:
        """Stop observing. A running fetch still completes and fills the cache."""
        self._attached = False
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def refetch(self) -> None:
        """Re-run the load ignoring freshness and wait for it to settle.

        Joins a fetch already in flight for the key instead of starting a
        second one. Never raises the fetch's exception; inspect ``error``.
        """
        task = self._begin(force=True)
        if task is not None:
            await self._join(task)

    def update(
        self,
        *,
        key: Any = UNSET,
        fetch_fn: Any = UNSET,
        stale_time: Any = UNSET,
        enabled: Any = UNSET,
    ) -> asyncio.Task[None] | None:
        """Change options; an attached binding re-attaches with the new ones."""
        was_attached = self._attached
        if was_attached:
            self.detach()

        if key is not UNSET:
            self._key = key
            self._canonical = serialize_key(key)
        if fetch_fn is not UNSET:
            self._fetch_fn = fetch_fn
        if stale_time is not UNSET:
            self._stale_time = parse_duration(stale_time)
        if enabled is not UNSET:
            self._enabled = enabled

        if was_attached:
            return self.attach()
        return None

    async def __aenter__(self) -> QueryBinding[T]:
        task = self.attach()
        if task is not None:
            await task
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.detach()

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    def _entry(self) -> CacheEntry[T] | None:
        if self._store.closed:
            return None
        return self._store.read(self._canonical)

    def _is_fresh(self, entry: CacheEntry[T] | None) -> bool:
        if entry is None or entry.data is None or entry.is_stale:
            return False
        return self._store.now() - entry.updated_at < self._stale_time

    def _begin(self, *, force: bool) -> FetchTask[T] | None:
        """Pick fresh-hit, coalesce or fetch. Synchronous up to the join."""
        if not self._enabled or self._store.closed:
            return None

        entry = self._store.read(self._canonical)
        if not force and self._is_fresh(entry):
            logger.debug("Fresh hit for %s", self._canonical)
            return None

        if entry is not None and entry.in_flight is not None:
            task: FetchTask[T] = entry.in_flight
            logger.debug("Joining in-flight fetch for %s", self._canonical)
        else:
            task = start_fetch(self._store, self._canonical, self._fetch_fn)

        self._fetching += 1
        self._changed()
        return task

    async def _join(self, task: FetchTask[T]) -> None:
        try:
            await task.join()
        finally:
            self._fetching -= 1
            self._changed()

    def _changed(self) -> None:
        if self._on_change is None:
            return
        try:
            self._on_change()
        except Exception:
            logger.exception("on_change for %s raised", self._canonical)

    def __repr__(self) -> str:
        return (
            f"QueryBinding({self._canonical!r}, fetching={self.is_fetching}, "
            f"attached={self._attached})"
        )
