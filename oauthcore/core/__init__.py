"""Core orchestration components.

The coordinator composes the flow registry, state validator, PKCE manager
and token manager around one set of adapters.
"""

from __future__ import annotations

from .coordinator import OAuthCore
from .flow_registry import FlowRegistry, confidence_for_priority
from .pkce_manager import PKCEManager
from .state_validator import DEFAULT_STATE_TTL_MS, StateValidator
from .token_manager import TokenManager


__all__ = [
    "DEFAULT_STATE_TTL_MS",
    "FlowRegistry",
    "OAuthCore",
    "PKCEManager",
    "StateValidator",
    "TokenManager",
    "confidence_for_priority",
]
