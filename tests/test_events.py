"""Tests for the EventEmitter."""

# pylint: disable=redefined-outer-name

from __future__ import annotations

import logging

from typing import Any

import pytest

from oauthcore.events import EventEmitter, OAuthEvent


class TestSubscription:
    """on / once / off behaviour."""

    def test_emit_calls_listener_with_args(self, emitter: EventEmitter) -> None:
        """Listeners receive the positional arguments of emit."""
        received: list[tuple[Any, ...]] = []
        emitter.on(OAuthEvent.FLOW_DETECTED, lambda *args: received.append(args))
        assert emitter.emit(OAuthEvent.FLOW_DETECTED, "magic_link", 70, "because")
        assert received == [("magic_link", 70, "because")]

    def test_emit_without_listeners(self, emitter: EventEmitter) -> None:
        """emit reports whether anyone was listening."""
        assert not emitter.emit(OAuthEvent.LOGOUT)

    def test_string_and_enum_keys_equivalent(self, emitter: EventEmitter) -> None:
        """Events may be named by enum member or by value."""
        received: list[str] = []
        emitter.on("auth_success", lambda data: received.append(data))
        emitter.emit(OAuthEvent.AUTH_SUCCESS, "ok")
        assert received == ["ok"]
        assert emitter.listener_count(OAuthEvent.AUTH_SUCCESS) == 1

    def test_unsubscribe_callable(self, emitter: EventEmitter) -> None:
        """on() returns a function that removes the listener."""
        received: list[str] = []
        unsubscribe = emitter.on(OAuthEvent.LOGOUT, received.append)
        unsubscribe()
        emitter.emit(OAuthEvent.LOGOUT, "x")
        assert not received
        assert not emitter.has_listeners(OAuthEvent.LOGOUT)

    def test_duplicate_listener_ignored(self, emitter: EventEmitter) -> None:
        """The same listener is registered only once."""
        received: list[str] = []
        emitter.on(OAuthEvent.LOGOUT, received.append)
        emitter.on(OAuthEvent.LOGOUT, received.append)
        emitter.emit(OAuthEvent.LOGOUT, "x")
        assert received == ["x"]

    def test_once(self, emitter: EventEmitter) -> None:
        """once() listeners fire a single time."""
        received: list[str] = []
        emitter.once(OAuthEvent.STATE_GENERATED, received.append)
        emitter.emit(OAuthEvent.STATE_GENERATED, "s1")
        emitter.emit(OAuthEvent.STATE_GENERATED, "s2")
        assert received == ["s1"]

    def test_off_without_listener_removes_all(self, emitter: EventEmitter) -> None:
        """off(event) drops every listener of that event."""
        emitter.on(OAuthEvent.LOGOUT, lambda *_: None)
        emitter.on(OAuthEvent.LOGOUT, lambda *_: None)
        emitter.off(OAuthEvent.LOGOUT)
        assert emitter.listener_count(OAuthEvent.LOGOUT) == 0

    def test_remove_all_listeners(self, emitter: EventEmitter) -> None:
        """remove_all_listeners clears one event or everything."""
        emitter.on(OAuthEvent.LOGOUT, lambda *_: None)
        emitter.on(OAuthEvent.AUTH_ERROR, lambda *_: None)
        emitter.remove_all_listeners(OAuthEvent.LOGOUT)
        assert emitter.event_names() == ["auth_error"]
        emitter.remove_all_listeners()
        assert emitter.event_names() == []


class TestRobustness:
    """A misbehaving listener never breaks emission."""

    def test_raising_listener_logged_and_skipped(
        self, emitter: EventEmitter, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Later listeners still run after one raises."""
        received: list[str] = []

        def broken(_: str) -> None:
            raise RuntimeError("listener bug")

        emitter.on(OAuthEvent.STATE_GENERATED, broken)
        emitter.on(OAuthEvent.STATE_GENERATED, received.append)
        with caplog.at_level(logging.ERROR, logger="oauthcore.events"):
            assert emitter.emit(OAuthEvent.STATE_GENERATED, "s1")
        assert received == ["s1"]
        assert "listener bug" in caplog.text

    def test_listener_may_unsubscribe_during_emit(self, emitter: EventEmitter) -> None:
        """Removing a listener while emitting does not skip others."""
        received: list[str] = []

        def first(value: str) -> None:
            emitter.off(OAuthEvent.STATE_GENERATED, first)
            received.append(f"first:{value}")

        emitter.on(OAuthEvent.STATE_GENERATED, first)
        emitter.on(OAuthEvent.STATE_GENERATED, lambda value: received.append(f"second:{value}"))
        emitter.emit(OAuthEvent.STATE_GENERATED, "s1")
        assert received == ["first:s1", "second:s1"]

    def test_max_listener_warning(self, caplog: pytest.LogCaptureFixture) -> None:
        """Exceeding max_listeners logs a leak warning."""
        emitter = EventEmitter(max_listeners=1)
        with caplog.at_level(logging.WARNING, logger="oauthcore.events"):
            emitter.on(OAuthEvent.LOGOUT, lambda *_: None)
            emitter.on(OAuthEvent.LOGOUT, lambda *_: None)
        assert "Possible listener leak" in caplog.text

    def test_max_listener_warning_disabled(self, caplog: pytest.LogCaptureFixture) -> None:
        """The leak warning can be turned off."""
        emitter = EventEmitter(max_listeners=1, warn_on_max_listeners=False)
        with caplog.at_level(logging.WARNING, logger="oauthcore.events"):
            emitter.on(OAuthEvent.LOGOUT, lambda *_: None)
            emitter.on(OAuthEvent.LOGOUT, lambda *_: None)
        assert "Possible listener leak" not in caplog.text
