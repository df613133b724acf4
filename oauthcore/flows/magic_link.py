"""Magic-link callbacks: a one-time token delivered out of band."""

from __future__ import annotations

import logging

from typing import TYPE_CHECKING

from ..exceptions import ValidationError
from .base import FlowHandler, FlowPriority
from .helpers import (
    build_magic_link_params,
    check_for_oauth_error,
    extract_magic_link_token,
    has_magic_link_token,
    is_flow_disabled,
    measure_execution_time,
)


if TYPE_CHECKING:
    from ..config import OAuthConfig
    from ..params import CallbackParams
    from ..types import OAuthResult
    from .base import FlowContext


logger = logging.getLogger("oauthcore.flows")


class MagicLinkFlowHandler(FlowHandler):
    """Generic magic-link handler.

    Applies to any callback carrying ``token`` or ``magic_link_token``. It
    ranks just below the flow-specific variants so that ``flow=login`` and
    friends reach their dedicated handler first.
    """

    name = "magic_link"
    priority = FlowPriority.HIGH + 5
    flow_type: str | None = None

    def can_handle(self, params: CallbackParams, config: OAuthConfig) -> bool:
        if is_flow_disabled(self.name, config) or not has_magic_link_token(params):
            return False
        return self.flow_type is None or params.get("flow") == self.flow_type

    async def validate(self, params: CallbackParams, config: OAuthConfig) -> bool:
        return "error" not in params and self.can_handle(params, config)

    async def handle(self, params: CallbackParams, context: FlowContext) -> OAuthResult:
        check_for_oauth_error(params)
        token = extract_magic_link_token(params)

        with measure_execution_time(self.name, "magic link exchange"):
            state = params.get("state")
            if state:
                await context.state_validator.validate_state_or_raise(state)

            result = await context.token_manager.exchange_magic_link_token(
                token, context.config, build_magic_link_params(params)
            )

        try:
            await context.pkce_manager.clear_pkce_data()
        except ValidationError as exc:
            logger.warning("Failed to clean up PKCE data: %s", exc)
        return result


class MagicLinkLoginFlowHandler(MagicLinkFlowHandler):
    """Magic link sent for signing in (``flow=login``)."""

    name = "magic_link_login"
    priority = FlowPriority.HIGH
    flow_type = "login"


class MagicLinkVerifyFlowHandler(MagicLinkFlowHandler):
    """Magic link confirming an email address (``flow=verify``)."""

    name = "magic_link_verify"
    priority = FlowPriority.HIGH
    flow_type = "verify"


class MagicLinkRegisteredFlowHandler(MagicLinkFlowHandler):
    """Magic link sent after account registration (``flow=registered``)."""

    name = "magic_link_registered"
    priority = FlowPriority.HIGH
    flow_type = "registered"
