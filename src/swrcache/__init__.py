"""swrcache - cached queries with coalescing, SWR reads and optimistic writes."""

from contextlib import suppress

# Adapters
from swrcache.adapters import MemoryBackend, RemoteBackend

# QueryClient API
from swrcache.client import QueryClient, create_client

# Duration parsing
from swrcache.duration import parse_duration
from swrcache.errors import (
    BackendError,
    InvalidQueryKeyError,
    StoreClosedError,
    SwrCacheError,
)
from swrcache.keys import KeyFamily, QueryKey, define_keys, serialize_key

# Mutation / invalidation API
from swrcache.mutations import (
    get_cached_query_data,
    invalidate_cached_query,
    invalidate_queries_by_prefix,
    optimistic_mutation,
    set_cached_query_data,
)
from swrcache.query import DEFAULT_STALE_TIME, QueryBinding, start_fetch
from swrcache.store import CacheStore
from swrcache.task import FetchTask, TaskState

# Core types
from swrcache.types import (
    UNSET,
    CacheEntry,
    Duration,
    KeyLike,
    MutationResult,
    QueryState,
)

# Optional adapter imports - only available when httpx is installed
with suppress(ImportError):
    from swrcache.adapters import HttpBackend

__version__ = "0.1.0"

__all__ = [
    "DEFAULT_STALE_TIME",
    "UNSET",
    "BackendError",
    "CacheEntry",
    "CacheStore",
    "Duration",
    "FetchTask",
    "HttpBackend",
    "InvalidQueryKeyError",
    "KeyFamily",
    "KeyLike",
    "MemoryBackend",
    "MutationResult",
    "QueryBinding",
    "QueryClient",
    "QueryKey",
    "QueryState",
    "RemoteBackend",
    "StoreClosedError",
    "SwrCacheError",
    "TaskState",
    "create_client",
    "define_keys",
    "get_cached_query_data",
    "invalidate_cached_query",
    "invalidate_queries_by_prefix",
    "optimistic_mutation",
    "parse_duration",
    "serialize_key",
    "set_cached_query_data",
    "start_fetch",
]
