"""Remote backend adapters."""

from contextlib import suppress

from swrcache.adapters.base import FetcherMixin, RemoteBackend
from swrcache.adapters.memory import MemoryBackend

# Optional adapters - only available when dependencies are installed
with suppress(ImportError):
    from swrcache.adapters.http import HttpBackend

__all__ = [
    "FetcherMixin",
    "HttpBackend",
    "MemoryBackend",
    "RemoteBackend",
]
