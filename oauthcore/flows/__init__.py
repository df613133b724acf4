"""Flow handlers and their shared contract."""

from .authorization_code import AuthorizationCodeFlowHandler
from .base import FlowContext, FlowHandler, FlowPriority, SimpleFlowHandler, create_flow_handler
from .magic_link import (
    MagicLinkFlowHandler,
    MagicLinkLoginFlowHandler,
    MagicLinkRegisteredFlowHandler,
    MagicLinkVerifyFlowHandler,
)


__all__ = [
    "AuthorizationCodeFlowHandler",
    "FlowContext",
    "FlowHandler",
    "FlowPriority",
    "MagicLinkFlowHandler",
    "MagicLinkLoginFlowHandler",
    "MagicLinkRegisteredFlowHandler",
    "MagicLinkVerifyFlowHandler",
    "SimpleFlowHandler",
    "create_flow_handler",
]
