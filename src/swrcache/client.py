"""QueryClient - a cache store with its query and mutation operations."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable
from functools import wraps
from typing import Any, ParamSpec, TypeVar

from swrcache.duration import parse_duration
from swrcache.mutations import (
    get_cached_query_data,
    invalidate_cached_query,
    invalidate_queries_by_prefix,
    optimistic_mutation,
    set_cached_query_data,
)
from swrcache.query import DEFAULT_STALE_TIME, QueryBinding
from swrcache.store import CacheStore
from swrcache.types import Duration, FetchFn, KeyLike, MutationResult, Updater

P = ParamSpec("P")
R = TypeVar("R")
T = TypeVar("T")


class QueryClient:
    """Entry point for screens that read and write cached queries.

    Usage:
        client = create_client(default_stale_time="30s")
        clients = client.query(["clients"], fetch_clients)
        clients.attach()

        @client.mutation
        async def add_client(payload: dict) -> MutationResult[dict]:
            created = await backend.send("POST", "/clients", payload)
            return MutationResult(created, invalidates_prefixes=[["clients"]])
    """

    def __init__(self, store: CacheStore, *, default_stale_time: int) -> None:
        self._store = store
        self._default_stale_time = default_stale_time

    @property
    def store(self) -> CacheStore:
        return self._store

    @property
    def default_stale_time(self) -> int:
        return self._default_stale_time

    def query(
        self,
        key: KeyLike,
        fetch_fn: FetchFn[T],
        *,
        stale_time: Duration | None = None,
        enabled: bool = True,
        on_change: Callable[[], None] | None = None,
    ) -> QueryBinding[T]:
        """Create an unattached binding; call ``attach()`` to start loading."""
        return QueryBinding(
            self._store,
            key,
            fetch_fn,
            stale_time=self._default_stale_time if stale_time is None else stale_time,
            enabled=enabled,
            on_change=on_change,
        )

    async def fetch_query(
        self,
        key: KeyLike,
        fetch_fn: FetchFn[T],
        *,
        stale_time: Duration | None = None,
    ) -> T | None:
        """Read ``key`` through the cache once and return its data.

        Failures are recorded on the entry rather than raised; the previous
        data (or None) is returned.
        """
        async with self.query(key, fetch_fn, stale_time=stale_time) as binding:
            return binding.data

    def get_query_data(self, key: KeyLike) -> Any | None:
        return get_cached_query_data(self._store, key)

    def set_query_data(self, key: KeyLike, updater: Updater[T]) -> T | None:
        return set_cached_query_data(self._store, key, updater)

    def invalidate(self, *keys: KeyLike) -> None:
        for key in keys:
            invalidate_cached_query(self._store, key)

    def invalidate_prefix(self, *prefixes: KeyLike) -> list[str]:
        invalidated: list[str] = []
        for prefix in prefixes:
            invalidated.extend(invalidate_queries_by_prefix(self._store, prefix))
        return invalidated

    async def mutate(
        self,
        key: KeyLike,
        updater: Updater[T],
        effect: Callable[[], Awaitable[R] | R],
        *,
        invalidate: Iterable[KeyLike] = (),
        invalidate_prefixes: Iterable[KeyLike] = (),
        refetch: Iterable[QueryBinding[Any]] = (),
    ) -> R:
        """Optimistic write around a remote effect, rolled back on failure."""
        return await optimistic_mutation(
            self._store,
            key,
            updater,
            effect,
            invalidate=invalidate,
            invalidate_prefixes=invalidate_prefixes,
            refetch=refetch,
        )

    def mutation(
        self,
        fn: Callable[P, Awaitable[MutationResult[R]]],
    ) -> Callable[P, Awaitable[R]]:
        """Decorator that runs a remote write, then invalidates what it lists."""

        @wraps(fn)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            outcome = await fn(*args, **kwargs)
            self.invalidate(*outcome.invalidates)
            self.invalidate_prefix(*outcome.invalidates_prefixes)
            return outcome.result

        return wrapper

    def teardown(self) -> None:
        self._store.teardown()

    def __enter__(self) -> QueryClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.teardown()


def create_client(
    *,
    store: CacheStore | None = None,
    default_stale_time: Duration = DEFAULT_STALE_TIME,
    clock: Callable[[], int] | None = None,
) -> QueryClient:
    """Create a query client.

    Args:
        store: Existing store to share (default: a new isolated store)
        default_stale_time: Staleness threshold for bindings that set none
        clock: Millisecond clock for a new store (default: wall clock)

    Returns:
        QueryClient with query, fetch_query, set/get/invalidate, mutate, mutation
    """
    if store is not None and clock is not None:
        raise ValueError("Pass either store or clock, not both")

    return QueryClient(
        store if store is not None else CacheStore.create(clock=clock),
        default_stale_time=parse_duration(default_stale_time),
    )
