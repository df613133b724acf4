"""Lifecycle events and the publish/subscribe sink that carries them.

Listeners are plain synchronous callables invoked with the positional
arguments documented on each ``OAuthEvent`` member. A listener that raises
is logged and skipped; emission never fails because of a subscriber.
"""

from __future__ import annotations

import logging

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Literal


if TYPE_CHECKING:
    from .exceptions import OAuthError
    from .types import OAuthTokens


logger = logging.getLogger("oauthcore.events")

Listener = Callable[..., Any]


class OAuthEvent(str, Enum):
    """Events emitted by the coordinator and its components.

    Listener arguments per event:

    - ``AUTH_STATUS_CHANGE``: ``(status: AuthStatus, previous: AuthStatus | None)``
    - ``TOKEN_REFRESH``: ``(tokens: OAuthTokens)``
    - ``TOKEN_EXPIRED``: ``(data: TokenExpirationData)``
    - ``TOKEN_REFRESH_SCHEDULED``: ``(scheduled_at: datetime, buffer_ms: int)``
    - ``AUTH_SUCCESS``: ``(data: AuthSuccessData)``
    - ``AUTH_ERROR``: ``(data: AuthErrorData)``
    - ``LOADING_START``: ``(context: LoadingContext)``
    - ``LOADING_END``: ``(data: LoadingEndData)``
    - ``LOGOUT``: ``(data: LogoutData)``
    - ``CONFIG_VALIDATION``: ``(data: ConfigValidationData)``
    - ``PKCE_GENERATED``: ``(challenge: dict)`` with code_challenge and method only
    - ``STATE_GENERATED``: ``(state: str)``
    - ``AUTH_URL_GENERATED``: ``(url: str, state: str)``
    - ``CALLBACK_START``: ``(params: dict, flow_name: str | None)``, params redacted
    - ``CALLBACK_COMPLETE``: ``(result: OAuthResult, flow_name: str, duration_ms: int)``
    - ``FLOW_DETECTED``: ``(flow_name: str, confidence: int, reason: str)``
    - ``TOKENS_STORED``: ``(tokens: OAuthTokens)``
    - ``TOKENS_CLEARED``: ``(reason: str)``
    - ``NETWORK_REQUEST_START``: ``(url: str, method: str)``
    - ``NETWORK_REQUEST_COMPLETE``: ``(url: str, method: str, status: int, duration_ms: int)``
    - ``NETWORK_REQUEST_ERROR``: ``(url: str, method: str, error: BaseException)``
    """

    AUTH_STATUS_CHANGE = "auth_status_change"
    TOKEN_REFRESH = "token_refresh"  # noqa: S105
    TOKEN_EXPIRED = "token_expired"  # noqa: S105
    TOKEN_REFRESH_SCHEDULED = "token_refresh_scheduled"  # noqa: S105
    AUTH_SUCCESS = "auth_success"
    AUTH_ERROR = "auth_error"
    LOADING_START = "loading_start"
    LOADING_END = "loading_end"
    LOGOUT = "logout"
    CONFIG_VALIDATION = "config_validation"
    PKCE_GENERATED = "pkce_generated"
    STATE_GENERATED = "state_generated"
    AUTH_URL_GENERATED = "auth_url_generated"
    CALLBACK_START = "callback_start"
    CALLBACK_COMPLETE = "callback_complete"
    FLOW_DETECTED = "flow_detected"
    TOKENS_STORED = "tokens_stored"  # noqa: S105
    TOKENS_CLEARED = "tokens_cleared"  # noqa: S105
    NETWORK_REQUEST_START = "network_request_start"
    NETWORK_REQUEST_COMPLETE = "network_request_complete"
    NETWORK_REQUEST_ERROR = "network_request_error"


# ── Payloads ────────────────────────────────────────────────────────


@dataclass
class TokenExpirationData:
    tokens: OAuthTokens
    expired_at: datetime
    time_until_expiration: int


@dataclass
class AuthSuccessData:
    """Payload of ``AUTH_SUCCESS``."""

    access_token: str | None
    refresh_token: str | None = None
    expires_in: int | None = None
    flow_name: str | None = None
    duration_ms: int = 0
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class AuthErrorData:
    """Payload of ``AUTH_ERROR``."""

    error: OAuthError
    operation: str | None = None
    recoverable: bool = False
    retry_count: int = 0


LogoutReason = Literal["user", "expired", "error", "revoked"]


@dataclass
class LogoutData:
    reason: LogoutReason = "user"
    clear_storage: bool = True


@dataclass
class ConfigValidationData:
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass
class LoadingContext:
    """An operation tracked by the loading manager."""

    operation: str
    start_time: int
    operation_id: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class LoadingEndData:
    context: LoadingContext
    success: bool
    duration_ms: int


# ── Emitter ─────────────────────────────────────────────────────────


class EventEmitter:
    """Synchronous publish/subscribe sink.

    Parameters
    ----------
    max_listeners : int
        Listener count per event above which a leak warning is logged.
    warn_on_max_listeners : bool
        Whether to log that warning at all.
    """

    def __init__(self, max_listeners: int = 10, warn_on_max_listeners: bool = True) -> None:
        self._listeners: dict[str, list[Listener]] = {}
        self.max_listeners = max_listeners
        self.warn_on_max_listeners = warn_on_max_listeners

    @staticmethod
    def _key(event: OAuthEvent | str) -> str:
        return event.value if isinstance(event, OAuthEvent) else event

    def on(self, event: OAuthEvent | str, listener: Listener) -> Callable[[], None]:
        """Subscribe ``listener`` to ``event``.

        Returns
        -------
        Callable[[], None]
            Call it to unsubscribe.
        """
        key = self._key(event)
        listeners = self._listeners.setdefault(key, [])
        if listener not in listeners:
            listeners.append(listener)
        if self.warn_on_max_listeners and len(listeners) > self.max_listeners:
            logger.warning(
                "Possible listener leak: %d listeners for '%s' (max %d)",
                len(listeners),
                key,
                self.max_listeners,
            )
        return lambda: self.off(event, listener)

    def once(self, event: OAuthEvent | str, listener: Listener) -> Callable[[], None]:
        """Subscribe ``listener`` for the next emission of ``event`` only."""

        def wrapper(*args: Any) -> Any:
            self.off(event, wrapper)
            return listener(*args)

        return self.on(event, wrapper)

    def off(self, event: OAuthEvent | str, listener: Listener | None = None) -> None:
        """Unsubscribe ``listener``, or every listener of ``event`` when omitted."""
        key = self._key(event)
        if listener is None:
            self._listeners.pop(key, None)
            return
        listeners = self._listeners.get(key)
        if not listeners:
            return
        if listener in listeners:
            listeners.remove(listener)
        if not listeners:
            del self._listeners[key]

    def emit(self, event: OAuthEvent | str, *args: Any) -> bool:
        """Invoke every listener of ``event`` with ``args``.

        Returns
        -------
        bool
            True if at least one listener was registered.
        """
        key = self._key(event)
        listeners = list(self._listeners.get(key, ()))
        for listener in listeners:
            try:
                listener(*args)
            except Exception:
                logger.exception("Listener for '%s' raised", key)
        return bool(listeners)

    def remove_all_listeners(self, event: OAuthEvent | str | None = None) -> None:
        if event is None:
            self._listeners.clear()
        else:
            self._listeners.pop(self._key(event), None)

    def listener_count(self, event: OAuthEvent | str) -> int:
        return len(self._listeners.get(self._key(event), ()))

    def has_listeners(self, event: OAuthEvent | str) -> bool:
        return self.listener_count(event) > 0

    def event_names(self) -> list[str]:
        return list(self._listeners)
