"""Authentication status state machine.

No transition table is enforced: any status may move to any other. Observers
follow along through ``AUTH_STATUS_CHANGE`` events, which fire only when the
status actually changes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal

from ..events import OAuthEvent
from ..types import AuthStatus


if TYPE_CHECKING:
    from ..events import EventEmitter


_DESCRIPTIONS: dict[AuthStatus, str] = {
    AuthStatus.UNAUTHENTICATED: "Not authenticated",
    AuthStatus.AUTHENTICATING: "Authentication in progress",
    AuthStatus.AUTHENTICATED: "Successfully authenticated",
    AuthStatus.REFRESHING: "Refreshing authentication tokens",
    AuthStatus.EXPIRED: "Authentication tokens have expired",
    AuthStatus.ERROR: "Authentication error occurred",
}

_ALLOWED_FROM: dict[str, frozenset[AuthStatus]] = {
    "login": frozenset({AuthStatus.UNAUTHENTICATED, AuthStatus.ERROR}),
    "logout": frozenset({AuthStatus.AUTHENTICATED, AuthStatus.EXPIRED}),
    "refresh": frozenset({AuthStatus.AUTHENTICATED, AuthStatus.EXPIRED}),
}


class AuthStatusManager:
    """Tracks the current AuthStatus and announces changes.

    Parameters
    ----------
    emitter : EventEmitter, optional
        Sink for ``AUTH_STATUS_CHANGE`` events.
    initial_status : AuthStatus
        Starting status (default ``UNAUTHENTICATED``).
    emit_events : bool
        Set False to track status silently.
    """

    def __init__(
        self,
        emitter: EventEmitter | None = None,
        initial_status: AuthStatus = AuthStatus.UNAUTHENTICATED,
        emit_events: bool = True,
    ) -> None:
        self._emitter = emitter
        self._status = initial_status
        self._emit_events = emit_events

    @property
    def status(self) -> AuthStatus:
        return self._status

    @property
    def is_authenticated(self) -> bool:
        return self._status is AuthStatus.AUTHENTICATED

    @property
    def is_authenticating(self) -> bool:
        return self._status is AuthStatus.AUTHENTICATING

    @property
    def is_refreshing(self) -> bool:
        return self._status is AuthStatus.REFRESHING

    @property
    def is_expired(self) -> bool:
        return self._status is AuthStatus.EXPIRED

    @property
    def has_error(self) -> bool:
        return self._status is AuthStatus.ERROR

    def set_status(self, status: AuthStatus) -> None:
        """Move to ``status``, emitting a change event if it differs."""
        previous = self._status
        if previous is status:
            return
        self._status = status
        if self._emit_events and self._emitter is not None:
            self._emitter.emit(OAuthEvent.AUTH_STATUS_CHANGE, status, previous)

    def start_authenticating(self) -> None:
        self.set_status(AuthStatus.AUTHENTICATING)

    def set_authenticated(self) -> None:
        self.set_status(AuthStatus.AUTHENTICATED)

    def set_unauthenticated(self) -> None:
        self.set_status(AuthStatus.UNAUTHENTICATED)

    def start_refreshing(self) -> None:
        self.set_status(AuthStatus.REFRESHING)

    def set_expired(self) -> None:
        self.set_status(AuthStatus.EXPIRED)

    def set_error(self) -> None:
        self.set_status(AuthStatus.ERROR)

    def reset(self) -> None:
        self.set_status(AuthStatus.UNAUTHENTICATED)

    @property
    def status_description(self) -> str:
        return _DESCRIPTIONS[self._status]

    def can_perform_operation(self, operation: Literal["login", "logout", "refresh"]) -> bool:
        """Return whether ``operation`` makes sense from the current status.

        Advisory only; the coordinator does not enforce it.
        """
        return self._status in _ALLOWED_FROM.get(operation, frozenset())
