"""Pytest configuration and fixtures."""

# pylint: disable=redefined-outer-name

from __future__ import annotations

import os

from typing import TYPE_CHECKING, Any

import pytest

from oauthcore.adapters import MemoryStorageAdapter, OAuthAdapters
from oauthcore.config import OAuthConfig, OAuthEndpoints, clear_settings
from oauthcore.events import EventEmitter
from fakes import FakeHttpAdapter, FakePKCEAdapter


if TYPE_CHECKING:
    from collections.abc import Generator


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Isolate every test from cached settings and OAUTHCORE_* variables."""
    for key in list(os.environ):
        if key.startswith("OAUTHCORE_"):
            monkeypatch.delenv(key, raising=False)
    clear_settings()
    yield
    clear_settings()


@pytest.fixture()
def storage() -> MemoryStorageAdapter:
    """Create an empty in-memory storage adapter."""
    return MemoryStorageAdapter()


@pytest.fixture()
def http() -> FakeHttpAdapter:
    """Create a fake HTTP adapter with an empty response queue."""
    return FakeHttpAdapter()


@pytest.fixture()
def pkce() -> FakePKCEAdapter:
    """Create a deterministic PKCE adapter."""
    return FakePKCEAdapter()


@pytest.fixture()
def adapters(
    storage: MemoryStorageAdapter, http: FakeHttpAdapter, pkce: FakePKCEAdapter
) -> OAuthAdapters:
    """Bundle the fake adapters."""
    return OAuthAdapters(storage=storage, http=http, pkce=pkce)


@pytest.fixture()
def emitter() -> EventEmitter:
    """Create a fresh event emitter."""
    return EventEmitter()


@pytest.fixture()
def endpoints() -> OAuthEndpoints:
    """Create a set of HTTPS endpoints."""
    return OAuthEndpoints(
        authorization="https://auth.example.com/authorize",
        token="https://auth.example.com/token",
        revocation="https://auth.example.com/revoke",
    )


@pytest.fixture()
def config(endpoints: OAuthEndpoints) -> OAuthConfig:
    """Create a valid client configuration with scopes ``read`` and ``write``."""
    return OAuthConfig(
        client_id="client-123",
        endpoints=endpoints,
        redirect_uri="https://app.example.com/callback",
        scopes=("read", "write"),
    )


@pytest.fixture()
def recorder(emitter: EventEmitter) -> list[tuple[str, tuple[Any, ...]]]:
    """Subscribe to every event and collect ``(event, args)`` pairs."""
    from oauthcore.events import OAuthEvent

    events: list[tuple[str, tuple[Any, ...]]] = []
    for event in OAuthEvent:
        emitter.on(event, lambda *args, _name=event.value: events.append((_name, args)))
    return events
