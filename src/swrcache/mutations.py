"""Optimistic writes and invalidation.

Provides:
- set_cached_query_data(): Write a value (or updater result) as fresh data
- get_cached_query_data(): Read current data without fetching
- invalidate_cached_query(): Mark one entry stale, keeping its data
- invalidate_queries_by_prefix(): Mark a whole key family stale
- optimistic_mutation(): Snapshot, write, run the effect, then reconcile or roll back
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import TYPE_CHECKING, Any, TypeVar

from swrcache.keys import prefix_matcher, serialize_key
from swrcache.store import CacheStore
from swrcache.types import KeyLike, Updater

if TYPE_CHECKING:
    from swrcache.query import QueryBinding

T = TypeVar("T")
R = TypeVar("R")

logger = logging.getLogger(__name__)


def set_cached_query_data(
    store: CacheStore, key: KeyLike, updater: Updater[T]
) -> T | None:
    """Write new data for ``key``.

    ``updater`` is either the value itself or a function of the previous
    data (None when there is none). A None result is a no-op, so an updater
    can decline to write, e.g. when nothing is cached yet:

        set_cached_query_data(store, ["counter"], lambda prev: (prev or 0) + 1)

    The write counts as fresh: ``error`` and any in-flight marker are
    cleared. Returns the written value, or None if nothing was written.
    """
    canonical = serialize_key(key)
    entry = store.read(canonical)
    previous = entry.data if entry is not None else None
    value = updater(previous) if callable(updater) else updater

    if value is None:
        return None

    store.write(
        canonical,
        data=value,
        error=None,
        updated_at=store.now(),
        in_flight=None,
    )
    return value


def get_cached_query_data(store: CacheStore, key: KeyLike) -> Any | None:
    entry = store.read(key)
    return entry.data if entry is not None else None


def invalidate_cached_query(store: CacheStore, key: KeyLike) -> bool:
    """Mark ``key`` stale without touching its data.

    Returns False when there is no entry to invalidate.
    """
    canonical = serialize_key(key)
    if store.read(canonical) is None:
        return False
    store.write(canonical, updated_at=0)
    logger.debug("Invalidated %s", canonical)
    return True


def invalidate_queries_by_prefix(store: CacheStore, prefix: KeyLike) -> list[str]:
    """Mark every stored key under ``prefix`` stale.

    Sequence prefixes match at element boundaries, so ``["dash", "a"]``
    covers ``["dash", "a", "b"]`` but not ``["dash", "ab"]``.

    Returns the canonical keys that were invalidated.
    """
    matches = prefix_matcher(prefix)
    invalidated = [canonical for canonical in store.keys() if matches(canonical)]
    for canonical in invalidated:
        store.write(canonical, updated_at=0)
    logger.debug(
        "Invalidated %d queries under %s", len(invalidated), serialize_key(prefix)
    )
    return invalidated


async def optimistic_mutation(
    store: CacheStore,
    key: KeyLike,
    updater: Updater[T],
    effect: Callable[[], Awaitable[R] | R],
    *,
    invalidate: Iterable[KeyLike] = (),
    invalidate_prefixes: Iterable[KeyLike] = (),
    refetch: Iterable[QueryBinding[Any]] = (),
) -> R:
    """Apply ``updater`` locally, then run the remote ``effect``.

    If the effect raises, the entry's data is restored to the snapshot taken
    before the optimistic write and the exception propagates. A snapshot of
    None cannot be written back, so the entry is invalidated instead.

    If the effect succeeds, ``key`` and every key in ``invalidate`` /
    ``invalidate_prefixes`` are marked stale and each binding in ``refetch``
    is refetched so the cache converges on the remote state.

    Usage:
        await optimistic_mutation(
            store,
            keys["visits"](week),
            lambda visits: [*visits, new_visit] if visits is not None else None,
            lambda: backend.send("POST", "/visits", new_visit),
            refetch=[visits_binding],
        )
    """
    canonical = serialize_key(key)
    entry = store.read(canonical)
    snapshot = entry.data if entry is not None else None

    set_cached_query_data(store, canonical, updater)

    try:
        result = effect()
        if inspect.isawaitable(result):
            result = await result
    except (Exception, asyncio.CancelledError):
        if store.closed:
            raise
        logger.info("Rolling back optimistic write to %s", canonical)
        if snapshot is not None:
            set_cached_query_data(store, canonical, lambda _: snapshot)
        else:
            invalidate_cached_query(store, canonical)
        raise

    invalidate_cached_query(store, canonical)
    for other in invalidate:
        invalidate_cached_query(store, other)
    for prefix in invalidate_prefixes:
        invalidate_queries_by_prefix(store, prefix)
    for binding in refetch:
        await binding.refetch()
    return result
