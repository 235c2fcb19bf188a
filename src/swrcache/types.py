"""Core types for swrcache."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from datetime import timedelta
from typing import TYPE_CHECKING, Any, Final, Generic, TypeVar, Union

if TYPE_CHECKING:
    from swrcache.keys import QueryKey
    from swrcache.task import FetchTask

T = TypeVar("T")


class _Unset:
    """Marker for fields left out of a partial entry write."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Final = _Unset()

# A plain string, an ordered sequence of JSON-able segments, or a typed QueryKey
KeyLike = Union[str, Sequence[Any], "QueryKey"]

# "30s", "5m", "1m30s", timedelta, or milliseconds
Duration = Union[str, int, timedelta]

FetchFn = Callable[[], Union[Awaitable[T], T]]
Updater = Union[T, Callable[[Union[T, None]], Union[T, None]]]
Subscriber = Callable[[], None]


@dataclass(frozen=True, slots=True)
class CacheEntry(Generic[T]):
    """One canonical key's cached state."""

    data: T | None = None
    error: str | None = None
    updated_at: int = 0  # Unix timestamp ms, 0 = stale
    in_flight: FetchTask | None = None

    @property
    def is_stale(self) -> bool:
        return self.updated_at == 0


@dataclass(frozen=True, slots=True)
class QueryState(Generic[T]):
    """Snapshot of what a query binding exposes to its consumer."""

    data: T | None
    error: str | None
    is_loading: bool
    is_fetching: bool


@dataclass(frozen=True, slots=True)
class MutationResult(Generic[T]):
    """Result of a mutation with the queries it makes stale."""

    result: T
    invalidates: list[KeyLike] = field(default_factory=list)
    invalidates_prefixes: list[KeyLike] = field(default_factory=list)
