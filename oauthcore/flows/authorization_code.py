"""Standard OAuth 2.0 authorization code callback with PKCE."""

from __future__ import annotations

import logging

from typing import TYPE_CHECKING

from ..exceptions import ValidationError, ValidationErrorCode
from .base import FlowHandler, FlowPriority
from .helpers import check_for_oauth_error, has_magic_link_token, measure_execution_time, require_param


if TYPE_CHECKING:
    from ..config import OAuthConfig
    from ..params import CallbackParams
    from ..types import OAuthResult
    from .base import FlowContext


logger = logging.getLogger("oauthcore.flows")


class AuthorizationCodeFlowHandler(FlowHandler):
    """Handles ``?code=...&state=...`` redirects.

    Applies when ``code`` is present and no magic-link token is. A present
    ``state`` must pass the single-use CSRF check. The stored PKCE verifier
    is required, and PKCE material is cleared after a successful exchange.
    """

    name = "authorization_code"
    priority = FlowPriority.NORMAL

    def can_handle(self, params: CallbackParams, config: OAuthConfig) -> bool:
        return "code" in params and not has_magic_link_token(params)

    async def validate(self, params: CallbackParams, config: OAuthConfig) -> bool:
        return "error" not in params and bool(params.get("code"))

    async def handle(self, params: CallbackParams, context: FlowContext) -> OAuthResult:
        check_for_oauth_error(params)
        code = require_param(params, "code")

        with measure_execution_time(self.name, "authorization code exchange"):
            state = params.get("state")
            if state:
                await context.state_validator.validate_state_or_raise(state)

            verifier = await context.pkce_manager.get_code_verifier()
            if not verifier:
                raise ValidationError(
                    "PKCE code verifier not found in storage",
                    ValidationErrorCode.MISSING_PARAMETER,
                    metadata={"parameter": "code_verifier"},
                )

            result = await context.token_manager.exchange_authorization_code(
                code, verifier, context.config
            )

        try:
            await context.pkce_manager.clear_pkce_data()
        except ValidationError as exc:
            logger.warning("Failed to clean up PKCE data: %s", exc)
        return result
