"""HTTP adapter backed by a shared httpx.AsyncClient."""

from __future__ import annotations

import logging

from typing import Any

import httpx

from ..types import HttpResponse
from .base import HttpAdapter


logger = logging.getLogger("oauthcore.adapters")


class HttpxAdapter(HttpAdapter):
    """Send token and revocation requests with httpx.

    Parameters
    ----------
    timeout : float, optional
        Request timeout in seconds. Defaults to ``get_settings().http.timeout``.
    client : httpx.AsyncClient, optional
        An existing client to reuse. It is not closed by ``close()``.
    """

    def __init__(self, timeout: float | None = None, client: httpx.AsyncClient | None = None) -> None:
        if timeout is None:
            from ..config import get_settings

            timeout = get_settings().http.timeout
        self._timeout = timeout
        self._http_client = client
        self._owns_client = client is None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the shared HTTP client."""
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(timeout=self._timeout)
            self._owns_client = True
        return self._http_client

    async def close(self) -> None:
        """Close the shared HTTP client. Call from app shutdown lifecycle."""
        if self._owns_client and self._http_client is not None and not self._http_client.is_closed:
            await self._http_client.aclose()
            self._http_client = None

    async def post(
        self,
        url: str,
        data: dict[str, str],
        headers: dict[str, str] | None = None,
    ) -> HttpResponse:
        client = await self._get_client()
        resp = await client.post(url, data=data, headers=headers)
        return _to_response(resp)

    async def get(self, url: str, headers: dict[str, str] | None = None) -> HttpResponse:
        client = await self._get_client()
        resp = await client.get(url, headers=headers)
        return _to_response(resp)


def _to_response(resp: httpx.Response) -> HttpResponse:
    body: Any
    if not resp.content:
        body = None
    else:
        try:
            body = resp.json()
        except ValueError:
            body = resp.text
    return HttpResponse(status=resp.status_code, data=body, headers=dict(resp.headers))
