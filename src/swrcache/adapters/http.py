"""HTTP backend over httpx."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from swrcache.adapters.base import FetcherMixin
from swrcache.errors import BackendError


class HttpBackend(FetcherMixin):
    """JSON REST backend.

    Non-success responses raise ``BackendError`` with the body's ``error``
    field as the message, so the message lands in the cache entry as-is.
    """

    def __init__(
        self,
        base_url: str,
        *,
        token: str | None = None,
        timeout: float = 30.0,
        transport: Any = None,
    ) -> None:
        import httpx

        headers = {"Content-Type": "application/json"}
        if token is not None:
            headers["Authorization"] = f"Bearer {token}"

        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        body: Any = None,
    ) -> Any:
        response = await self._client.request(
            method,
            path,
            params=dict(params) if params else None,
            json=body,
        )
        if not response.is_success:
            try:
                error = response.json().get("error", "Request failed")
            except Exception:
                error = f"HTTP {response.status_code}"
            raise BackendError(error, status=response.status_code)
        if not response.content:
            return None
        return response.json()

    async def fetch(self, path: str, params: Mapping[str, Any] | None = None) -> Any:
        """GET a resource."""
        return await self._request("GET", path, params=params)

    async def send(self, method: str, path: str, body: Any = None) -> Any:
        """Send a write request with a JSON body."""
        return await self._request(method.upper(), path, body=body)

    async def disconnect(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> HttpBackend:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.disconnect()
