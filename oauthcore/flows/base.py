"""Flow handler contract.

A flow handler owns one kind of callback. It declares a ``name`` and a
numeric ``priority`` (lower number wins), answers ``can_handle``
synchronously from the raw parameters, may veto in an async ``validate``
step, and performs the exchange in ``handle``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import IntEnum
from typing import TYPE_CHECKING, Any


if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from ..adapters.base import OAuthAdapters
    from ..config import OAuthConfig
    from ..core.pkce_manager import PKCEManager
    from ..core.state_validator import StateValidator
    from ..core.token_manager import TokenManager
    from ..params import CallbackParams
    from ..types import OAuthResult


class FlowPriority(IntEnum):
    """Conventional priority ranks. Lower values are tried first."""

    HIGHEST = 1
    HIGH = 25
    NORMAL = 50
    LOW = 75
    LOWEST = 100


@dataclass(frozen=True)
class FlowContext:
    """Everything a handler may use while executing.

    The components are the coordinator's own instances, so handlers share
    its storage view and event sink.
    """

    config: OAuthConfig
    adapters: OAuthAdapters
    token_manager: TokenManager
    pkce_manager: PKCEManager
    state_validator: StateValidator


class FlowHandler(ABC):
    """Base class for flow handlers."""

    name: str
    priority: int = FlowPriority.NORMAL

    @abstractmethod
    def can_handle(self, params: CallbackParams, config: OAuthConfig) -> bool:
        """Return whether this handler applies to ``params``."""

    async def validate(self, params: CallbackParams, config: OAuthConfig) -> bool:
        """Optional pre-execution check. Returning False aborts the callback."""
        return True

    @abstractmethod
    async def handle(self, params: CallbackParams, context: FlowContext) -> OAuthResult:
        """Run the flow and return its result."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, priority={int(self.priority)})"


class SimpleFlowHandler(FlowHandler):
    """A handler assembled from plain callables.

    Parameters
    ----------
    name : str
        Unique handler name.
    can_handle : callable
        ``(params, config) -> bool``.
    handle : callable
        ``async (params, context) -> OAuthResult``.
    priority : int
        Rank, lower first (default ``FlowPriority.NORMAL``).
    validate : callable, optional
        ``async (params, config) -> bool``.
    """

    def __init__(
        self,
        name: str,
        can_handle: Callable[[CallbackParams, OAuthConfig], bool],
        handle: Callable[[CallbackParams, FlowContext], Awaitable[OAuthResult]],
        priority: int = FlowPriority.NORMAL,
        validate: Callable[[CallbackParams, OAuthConfig], Awaitable[bool]] | None = None,
    ) -> None:
        self.name = name
        self.priority = priority
        self._can_handle = can_handle
        self._handle = handle
        self._validate = validate

    def can_handle(self, params: CallbackParams, config: OAuthConfig) -> bool:
        return self._can_handle(params, config)

    async def validate(self, params: CallbackParams, config: OAuthConfig) -> bool:
        if self._validate is None:
            return True
        return await self._validate(params, config)

    async def handle(self, params: CallbackParams, context: FlowContext) -> OAuthResult:
        return await self._handle(params, context)


def create_flow_handler(
    name: str,
    can_handle: Callable[[CallbackParams, OAuthConfig], bool],
    handle: Callable[[CallbackParams, FlowContext], Awaitable[OAuthResult]],
    priority: int = FlowPriority.NORMAL,
    **kwargs: Any,
) -> SimpleFlowHandler:
    """Build a SimpleFlowHandler. ``validate`` may be passed as a keyword."""
    return SimpleFlowHandler(name, can_handle, handle, priority=priority, **kwargs)
