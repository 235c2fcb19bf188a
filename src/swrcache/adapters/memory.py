"""In-memory remote backend for demos and tests."""

import asyncio
import copy
import itertools
from collections.abc import Mapping
from typing import Any

from swrcache.adapters.base import FetcherMixin
from swrcache.errors import BackendError


def _split(path: str) -> tuple[str, str | None]:
    """Split "/clients/7" into ("clients", "7")."""
    parts = [p for p in path.split("/") if p]
    if len(parts) == 1:
        return parts[0], None
    if len(parts) == 2:
        return parts[0], parts[1]
    raise BackendError(f"Unsupported path: {path!r}", status=400)


class MemoryBackend(FetcherMixin):
    """Collections of records behind an async, optionally slow, API.

    Paths are ``/<collection>`` or ``/<collection>/<id>``. Records are
    dicts with a string ``id``. ``fail_next()`` makes the next call raise.
    """

    def __init__(
        self,
        collections: Mapping[str, list[dict[str, Any]]] | None = None,
        *,
        latency: float = 0.0,
    ) -> None:
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        for name, records in (collections or {}).items():
            self._collections[name] = {str(r["id"]): dict(r) for r in records}
        self._latency = latency
        self._ids = itertools.count(1)
        self._failures: list[BackendError] = []
        self._lock = asyncio.Lock()
        self.calls: list[tuple[str, str]] = []

    def fail_next(self, message: str = "Backend unavailable", status: int = 503) -> None:
        """Queue a failure for the next fetch or send."""
        self._failures.append(BackendError(message, status=status))

    def _next_id(self, records: dict[str, dict[str, Any]]) -> str:
        while True:
            candidate = str(next(self._ids))
            if candidate not in records:
                return candidate

    async def _enter(self, method: str, path: str) -> None:
        self.calls.append((method, path))
        if self._latency:
            await asyncio.sleep(self._latency)
        if self._failures:
            raise self._failures.pop(0)

    async def fetch(self, path: str, params: Mapping[str, Any] | None = None) -> Any:
        """List a collection (filtered by ``params``) or get one record."""
        await self._enter("GET", path)
        name, record_id = _split(path)
        async with self._lock:
            records = self._collections.get(name, {})
            if record_id is not None:
                if record_id not in records:
                    raise BackendError(f"{name}/{record_id} not found", status=404)
                return copy.deepcopy(records[record_id])
            return [
                copy.deepcopy(record)
                for record in records.values()
                if all(record.get(k) == v for k, v in (params or {}).items())
            ]

    async def send(self, method: str, path: str, body: Any = None) -> Any:
        """POST creates, PUT replaces, PATCH merges, DELETE removes."""
        method = method.upper()
        await self._enter(method, path)
        name, record_id = _split(path)
        async with self._lock:
            records = self._collections.setdefault(name, {})

            if method == "POST" and record_id is None:
                record = dict(body or {})
                if "id" not in record:
                    record["id"] = self._next_id(records)
                record["id"] = str(record["id"])
                records[record["id"]] = record
                return copy.deepcopy(record)

            if record_id is None:
                raise BackendError(f"{method} requires a record id", status=400)
            if record_id not in records:
                raise BackendError(f"{name}/{record_id} not found", status=404)

            if method == "PUT":
                records[record_id] = {**dict(body or {}), "id": record_id}
            elif method == "PATCH":
                records[record_id].update(body or {})
                records[record_id]["id"] = record_id
            elif method == "DELETE":
                return copy.deepcopy(records.pop(record_id))
            else:
                raise BackendError(f"Unsupported method: {method}", status=405)
            return copy.deepcopy(records[record_id])

    async def disconnect(self) -> None:
        """Disconnect from the backend (no-op for memory)."""
        pass
