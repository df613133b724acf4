"""In-flight operation tracking for loading indicators."""

from __future__ import annotations

import itertools
import logging

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ..events import LoadingContext, LoadingEndData, OAuthEvent
from ..types import now_ms


if TYPE_CHECKING:
    from ..config import LoadingSettings
    from ..events import EventEmitter


logger = logging.getLogger("oauthcore.state")


@dataclass
class CompletedOperation:
    context: LoadingContext
    success: bool
    duration_ms: int
    completed_at: int


class LoadingManager:
    """Tracks which named operations are running.

    Emits ``LOADING_START`` / ``LOADING_END`` around each operation and keeps
    a bounded history of completed ones for diagnostics.

    Parameters
    ----------
    emitter : EventEmitter, optional
        Sink for loading events.
    settings : LoadingSettings, optional
        Thresholds and history bounds. Defaults to ``get_settings().loading``.
    """

    def __init__(
        self,
        emitter: EventEmitter | None = None,
        settings: LoadingSettings | None = None,
    ) -> None:
        if settings is None:
            from ..config import get_settings

            settings = get_settings().loading
        self._emitter = emitter
        self._settings = settings
        self._active: dict[str, LoadingContext] = {}
        self._completed: list[CompletedOperation] = []
        self._ids = itertools.count(1)

    def start_operation(self, operation: str, metadata: dict[str, Any] | None = None) -> LoadingContext:
        """Mark ``operation`` as running and return its context."""
        if len(self._active) >= self._settings.max_tracked_operations:
            oldest = min(self._active.values(), key=lambda ctx: ctx.start_time)
            logger.warning("Dropping stale loading operation '%s'", oldest.operation)
            del self._active[oldest.operation_id]

        context = LoadingContext(
            operation=operation,
            start_time=now_ms(),
            operation_id=f"{operation}-{next(self._ids)}",
            metadata=dict(metadata or {}),
        )
        self._active[context.operation_id] = context
        if self._emitter is not None:
            self._emitter.emit(OAuthEvent.LOADING_START, context)
        return context

    def end_operation(self, context: LoadingContext, success: bool) -> None:
        """Mark the operation of ``context`` as finished."""
        self._active.pop(context.operation_id, None)
        finished = now_ms()
        duration = finished - context.start_time
        if duration >= self._settings.long_operation_threshold_ms:
            logger.warning("Operation '%s' took %dms", context.operation, duration)

        self._completed.append(CompletedOperation(context, success, duration, finished))
        self._prune_completed(finished)
        if self._emitter is not None:
            self._emitter.emit(OAuthEvent.LOADING_END, LoadingEndData(context, success, duration))

    def _prune_completed(self, now: int) -> None:
        cutoff = now - self._settings.completed_retention_ms
        kept = [op for op in self._completed if op.completed_at >= cutoff]
        self._completed = kept[-self._settings.max_tracked_operations :]

    @property
    def is_loading(self) -> bool:
        return bool(self._active)

    @property
    def active_operations(self) -> list[str]:
        return [ctx.operation for ctx in self._active.values()]

    def is_operation_active(self, operation: str) -> bool:
        return any(ctx.operation == operation for ctx in self._active.values())

    @property
    def completed_operations(self) -> list[CompletedOperation]:
        return list(self._completed)

    def cancel_all_operations(self) -> None:
        """End every active operation as unsuccessful."""
        for context in list(self._active.values()):
            self.end_operation(context, success=False)

    def clear_completed_operations(self) -> None:
        self._completed.clear()
