"""Remote backend protocol and fetch/effect builders."""

from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class RemoteBackend(Protocol):
    """Async backend that bindings read from and mutations write to."""

    async def fetch(self, path: str, params: Mapping[str, Any] | None = None) -> Any:
        """Read a resource."""
        ...

    async def send(self, method: str, path: str, body: Any = None) -> Any:
        """Perform a remote write."""
        ...

    async def disconnect(self) -> None:
        """Release the backend's resources."""
        ...


class FetcherMixin:
    """Builds the zero-argument callables that bindings and mutations take."""

    def fetcher(
        self: RemoteBackend,
        path: str,
        params: Mapping[str, Any] | None = None,
    ) -> Callable[[], Awaitable[Any]]:
        """Fetch function for ``QueryBinding``."""

        async def fetch() -> Any:
            return await self.fetch(path, params)

        return fetch

    def effect(
        self: RemoteBackend,
        method: str,
        path: str,
        body: Any = None,
    ) -> Callable[[], Awaitable[Any]]:
        """Remote effect for ``optimistic_mutation``."""

        async def send() -> Any:
            return await self.send(method, path, body)

        return send
