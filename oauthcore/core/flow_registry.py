"""Priority-ordered registry of flow handlers."""

# pylint: disable=logging-too-many-args

from __future__ import annotations

import copy
import logging

from typing import TYPE_CHECKING

from ..exceptions import ConfigError, ConfigErrorCode, FlowError
from ..types import FlowDetectionResult


if TYPE_CHECKING:
    from collections.abc import Iterable

    from ..config import OAuthConfig
    from ..flows.base import FlowHandler
    from ..params import CallbackParams


logger = logging.getLogger("oauthcore.core")


def confidence_for_priority(priority: int) -> int:
    """Confidence score of a match: ``max(0, 100 - priority)``."""
    return max(0, 100 - int(priority))


class FlowRegistry:
    """Holds flow handlers by name and picks one for a callback.

    Handlers are ordered by ascending ``priority``; handlers with equal
    priority keep their registration order.

    Parameters
    ----------
    allow_duplicates : bool
        When True, registering an existing name replaces the old handler.
        Otherwise it raises ConfigError.
    """

    def __init__(self, allow_duplicates: bool = False) -> None:
        self.allow_duplicates = allow_duplicates
        self._handlers: dict[str, FlowHandler] = {}

    def register(self, handler: FlowHandler) -> None:
        if handler.name in self._handlers and not self.allow_duplicates:
            raise ConfigError(
                f"Flow handler '{handler.name}' is already registered",
                ConfigErrorCode.INVALID_VALUE,
                metadata={"field": "flows", "value": handler.name},
            )
        self._handlers[handler.name] = handler

    def register_multiple(self, handlers: Iterable[FlowHandler]) -> None:
        for handler in handlers:
            self.register(handler)

    def unregister(self, name: str) -> bool:
        """Remove ``name``. Returns whether a handler was removed."""
        return self._handlers.pop(name, None) is not None

    def has_handler(self, name: str) -> bool:
        return name in self._handlers

    def get_handler(self, name: str) -> FlowHandler | None:
        return self._handlers.get(name)

    def get_all_handlers(self) -> list[FlowHandler]:
        """All handlers, highest priority (lowest number) first."""
        return sorted(self._handlers.values(), key=lambda handler: handler.priority)

    def get_handler_names(self) -> list[str]:
        return [handler.name for handler in self.get_all_handlers()]

    def __len__(self) -> int:
        return len(self._handlers)

    def __contains__(self, name: object) -> bool:
        return name in self._handlers

    def clear(self) -> None:
        self._handlers.clear()

    def _applies(self, handler: FlowHandler, params: CallbackParams, config: OAuthConfig) -> bool:
        try:
            return bool(handler.can_handle(params, config))
        except Exception:
            logger.warning("Flow handler '%s' raised in can_handle; skipping", handler.name, exc_info=True)
            return False

    def get_compatible_handlers(self, params: CallbackParams, config: OAuthConfig) -> list[FlowHandler]:
        """Every handler whose ``can_handle`` is True, in priority order.

        A handler that raises is treated as not applicable.
        """
        return [h for h in self.get_all_handlers() if self._applies(h, params, config)]

    def detect_flow(self, params: CallbackParams, config: OAuthConfig) -> FlowHandler | None:
        result = self.detect_flow_with_confidence(params, config)
        return result.handler if result is not None else None

    def detect_flow_with_confidence(
        self, params: CallbackParams, config: OAuthConfig
    ) -> FlowDetectionResult | None:
        """Return the highest-priority compatible handler and its confidence."""
        for handler in self.get_all_handlers():
            if self._applies(handler, params, config):
                compatible = len(self.get_compatible_handlers(params, config))
                reason = f"Handler '{handler.name}' can process the provided parameters"
                if compatible > 1:
                    reason += f" (chosen by priority {int(handler.priority)} among {compatible} candidates)"
                return FlowDetectionResult(
                    handler=handler,
                    confidence=confidence_for_priority(handler.priority),
                    reason=reason,
                )
        return None

    def validate_required_handlers(self, names: Iterable[str]) -> None:
        """Raise FlowError naming every handler in ``names`` that is not registered."""
        missing = [name for name in names if name not in self._handlers]
        if missing:
            raise FlowError.handlers_missing(missing)

    def clone(self) -> FlowRegistry:
        """Return an independent registry holding copies of every handler."""
        other = FlowRegistry(allow_duplicates=self.allow_duplicates)
        for handler in self._handlers.values():
            other.register(copy.copy(handler))
        return other
