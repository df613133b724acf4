"""Abstract adapter contracts.

All methods are async so that local and network-backed implementations
share one interface.
"""

from __future__ import annotations

import json

from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from ..types import HttpResponse, PKCEChallenge


class StorageAdapter(ABC):
    """Flat string key-value store for tokens, PKCE material and state."""

    @abstractmethod
    async def set_item(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""

    @abstractmethod
    async def get_item(self, key: str) -> str | None:
        """Return the value under ``key``, or None if absent."""

    @abstractmethod
    async def remove_item(self, key: str) -> None:
        """Remove ``key``. Removing an absent key is not an error."""

    async def remove_items(self, keys: Iterable[str]) -> None:
        """Remove several keys. Override for stores with a batch delete."""
        for key in keys:
            await self.remove_item(key)

    async def set_token_data(self, key: str, data: dict[str, Any]) -> None:
        """Store a structured token record under ``key``."""
        await self.set_item(key, json.dumps(data))

    async def get_token_data(self, key: str) -> dict[str, Any] | None:
        """Load a structured token record, or None if absent."""
        raw = await self.get_item(key)
        if raw is None:
            return None
        return json.loads(raw)

    async def remove_token_data(self, key: str) -> None:
        await self.remove_item(key)


class HttpAdapter(ABC):
    """Transport used to reach the token and revocation endpoints."""

    @abstractmethod
    async def post(
        self,
        url: str,
        data: dict[str, str],
        headers: dict[str, str] | None = None,
    ) -> HttpResponse:
        """POST ``data`` form-encoded to ``url``.

        Non-2xx responses are returned, not raised. Raise only when no
        response was received at all.
        """

    @abstractmethod
    async def get(self, url: str, headers: dict[str, str] | None = None) -> HttpResponse:
        """GET ``url``."""


class PKCEAdapter(ABC):
    """Source of PKCE pairs and CSRF state values."""

    @abstractmethod
    async def generate_code_challenge(self) -> PKCEChallenge:
        """Return a fresh verifier/challenge pair."""

    @abstractmethod
    async def generate_state(self) -> str:
        """Return a fresh unguessable state string."""


@dataclass(frozen=True)
class OAuthAdapters:
    """The three capabilities a coordinator is built from."""

    storage: StorageAdapter
    http: HttpAdapter
    pkce: PKCEAdapter
