"""Automatic token refresh scheduling on the running asyncio loop."""

# pylint: disable=logging-too-many-args

from __future__ import annotations

import asyncio
import inspect
import logging

from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

from . import token_utils
from .events import OAuthEvent
from .types import now_ms


if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from .events import EventEmitter
    from .types import OAuthTokens


logger = logging.getLogger("oauthcore.scheduler")

DEFAULT_MIN_REFRESH_DELAY_MS = 1_000
DEFAULT_MAX_REFRESH_DELAY_MS = 86_400_000
DEFAULT_REFRESH_BUFFER_MS = 300_000


class TokenScheduler:
    """Arms at most one cancellable refresh timer at a time.

    The delay is ``time_until_expiration - buffer_ms`` clamped to
    ``[min_refresh_delay_ms, max_refresh_delay_ms]``. When the unclamped
    delay is already below the minimum nothing is scheduled and a warning
    is logged: the token needs refreshing now, which is the caller's call.

    A failing refresh callback is logged and not rescheduled.

    Parameters
    ----------
    emitter : EventEmitter, optional
        Receives ``TOKEN_REFRESH_SCHEDULED`` events.
    min_refresh_delay_ms : int
        Lower clamp and scheduling threshold (1s).
    max_refresh_delay_ms : int
        Upper clamp (24h).
    """

    def __init__(
        self,
        emitter: EventEmitter | None = None,
        min_refresh_delay_ms: int = DEFAULT_MIN_REFRESH_DELAY_MS,
        max_refresh_delay_ms: int = DEFAULT_MAX_REFRESH_DELAY_MS,
    ) -> None:
        self._emitter = emitter
        self.min_refresh_delay_ms = min_refresh_delay_ms
        self.max_refresh_delay_ms = max_refresh_delay_ms
        self._handle: asyncio.TimerHandle | None = None
        self._generation = 0
        self._scheduled_at: int | None = None
        self._tasks: set[asyncio.Task[Any]] = set()

    def schedule_refresh(
        self,
        tokens: OAuthTokens,
        buffer_ms: int,
        callback: Callable[[], Awaitable[Any] | Any],
    ) -> bool:
        """Arm a refresh for ``tokens``, replacing any armed one.

        Must be called with a running event loop.

        Returns
        -------
        bool
            True if a timer was armed.
        """
        self.cancel_scheduled_refresh()

        remaining = token_utils.get_time_until_expiration(tokens)
        if remaining == token_utils.NO_EXPIRATION:
            logger.debug("Token has no known lifetime; not scheduling a refresh")
            return False
        delay = max(0, remaining - buffer_ms)
        if delay < self.min_refresh_delay_ms:
            logger.warning(
                "Token refresh needed immediately or very soon (in %dms); not scheduling", delay
            )
            return False

        bounded = min(self.max_refresh_delay_ms, max(self.min_refresh_delay_ms, delay))
        loop = asyncio.get_running_loop()
        self._generation += 1
        generation = self._generation
        self._handle = loop.call_later(bounded / 1000, self._fire, generation, callback)
        self._scheduled_at = now_ms() + bounded

        scheduled_at = datetime.now(timezone.utc) + timedelta(milliseconds=bounded)
        logger.debug("Token refresh scheduled at %s (in %ds)", scheduled_at.isoformat(), bounded // 1000)
        if self._emitter is not None:
            self._emitter.emit(OAuthEvent.TOKEN_REFRESH_SCHEDULED, scheduled_at, buffer_ms)
        return True

    def _fire(self, generation: int, callback: Callable[[], Awaitable[Any] | Any]) -> None:
        # A handle cancelled after the loop already dequeued it must not run
        if generation != self._generation or self._handle is None:
            return
        self._handle = None
        self._scheduled_at = None
        logger.debug("Executing scheduled token refresh")
        task = asyncio.ensure_future(self._run(callback))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    @staticmethod
    async def _run(callback: Callable[[], Awaitable[Any] | Any]) -> None:
        try:
            result = callback()
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Scheduled token refresh failed")

    def cancel_scheduled_refresh(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
            self._scheduled_at = None
            self._generation += 1
            logger.debug("Cancelled scheduled token refresh")

    def is_refresh_scheduled(self) -> bool:
        return self._handle is not None

    def get_time_until_scheduled_refresh(self) -> int | None:
        """Milliseconds until the armed refresh fires, or None."""
        if self._scheduled_at is None:
            return None
        return max(0, self._scheduled_at - now_ms())

    def destroy(self) -> None:
        """Cancel any armed refresh and detach from the event sink."""
        self.cancel_scheduled_refresh()
        self._emitter = None
