"""OAuthCore: the composition root.

Wires the state validator, PKCE manager, token manager, refresh scheduler
and flow registry around one set of adapters, runs the authorization-URL,
callback, refresh and logout pipelines, and reports progress through an
injected EventEmitter and an AuthStatus state machine.

Operations are not serialized against each other. Running a callback and a
logout concurrently on one instance can interleave their storage writes.
"""

# pylint: disable=logging-too-many-args,too-many-public-methods

from __future__ import annotations

import contextlib
import logging
import time

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any
from urllib.parse import urlencode

from .. import log
from ..config import FlowConfiguration, get_settings
from ..events import (
    AuthErrorData,
    AuthSuccessData,
    ConfigValidationData,
    EventEmitter,
    LogoutData,
    OAuthEvent,
    TokenExpirationData,
)
from ..exceptions import (
    ConfigError,
    ConfigErrorCode,
    FlowError,
    FlowErrorCode,
    OAuthError,
    TokenError,
    ValidationError,
    ValidationErrorCode,
)
from ..flows.authorization_code import AuthorizationCodeFlowHandler
from ..flows.base import FlowContext
from ..flows.helpers import check_for_oauth_error
from ..flows.magic_link import MagicLinkFlowHandler
from ..params import parse_params, sanitize_for_logging
from ..scheduler import TokenScheduler
from ..state import AuthStatusManager, LoadingManager
from ..types import (
    AuthorizationRequest,
    AuthStatus,
    FlowDetectionResult,
    OAuthOperation,
    OAuthTokens,
    now_ms,
)
from ..validation import ConfigValidator
from .flow_registry import FlowRegistry, confidence_for_priority
from .pkce_manager import PKCEManager
from .state_validator import StateValidator
from .token_manager import TokenManager


if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Mapping

    from ..adapters.base import OAuthAdapters
    from ..config import OAuthConfig, OAuthCoreSettings
    from ..events import Listener, LogoutReason
    from ..flows.base import FlowHandler
    from ..params import CallbackParams
    from ..types import OAuthResult, PKCEChallenge
    from ..validation import ConfigValidationResult


logger = logging.getLogger("oauthcore.core")

# Query parameters callers cannot override through extra_params
_PROTECTED_AUTH_PARAMS = frozenset(
    {
        "client_id",
        "redirect_uri",
        "response_type",
        "state",
        "code_challenge",
        "code_challenge_method",
    }
)


class OAuthCore:
    """Client-side OAuth orchestration.

    Parameters
    ----------
    config : OAuthConfig
        Client configuration. Validated once here; problems are logged and
        emitted as ``CONFIG_VALIDATION`` but never raised.
    adapters : OAuthAdapters
        Storage, HTTP and PKCE capabilities.
    emitter : EventEmitter, optional
        Event sink shared with every component. A private one is created
        when omitted.
    settings : OAuthCoreSettings, optional
        Runtime tuning. Defaults to ``get_settings()``.

    Raises
    ------
    ConfigError
        If the flow configuration leaves no handler registered.
    """

    def __init__(
        self,
        config: OAuthConfig,
        adapters: OAuthAdapters,
        emitter: EventEmitter | None = None,
        settings: OAuthCoreSettings | None = None,
    ) -> None:
        self.config = config
        self.adapters = adapters
        self.settings = settings or get_settings()
        self.emitter = emitter if emitter is not None else EventEmitter()

        self.state_validator = StateValidator(adapters.storage, ttl_ms=self.settings.state.ttl_ms)
        self.pkce_manager = PKCEManager(adapters.pkce, adapters.storage)
        self.token_manager = TokenManager(adapters.storage, adapters.http, self.emitter)
        self.scheduler = TokenScheduler(
            self.emitter,
            min_refresh_delay_ms=self.settings.token.min_refresh_delay_ms,
            max_refresh_delay_ms=self.settings.token.max_refresh_delay_ms,
        )
        self.flow_registry = FlowRegistry()
        self._status = AuthStatusManager(self.emitter)
        self._loading = LoadingManager(self.emitter, self.settings.loading)
        self._context = FlowContext(
            config=config,
            adapters=adapters,
            token_manager=self.token_manager,
            pkce_manager=self.pkce_manager,
            state_validator=self.state_validator,
        )

        self.validation_result = self._validate_config()
        self._register_configured_flows()

    # ── Setup ───────────────────────────────────────────────────────

    def _validate_config(self) -> ConfigValidationResult:
        result = ConfigValidator.validate(self.config)
        for issue in (*result.errors, *result.warnings):
            log.warn(f"OAuth configuration {issue.severity} [{issue.code}] {issue}")
        self.emit(
            OAuthEvent.CONFIG_VALIDATION,
            ConfigValidationData(
                valid=result.valid,
                errors=[str(issue) for issue in result.errors],
                warnings=[str(issue) for issue in result.warnings],
            ),
        )
        return result

    @property
    def _flow_config(self) -> FlowConfiguration:
        return self.config.flows or FlowConfiguration()

    def _register_configured_flows(self) -> None:
        flows = self._flow_config
        handlers: dict[str, FlowHandler] = {}
        for handler in (AuthorizationCodeFlowHandler(), MagicLinkFlowHandler(), *flows.custom_flows):
            if handler.name not in flows.disabled_flows:
                handlers[handler.name] = handler

        if flows.enabled_flows is not None:
            handlers = {name: h for name, h in handlers.items() if name in flows.enabled_flows}

        if not handlers:
            raise ConfigError(
                "Flow configuration leaves no flow handler enabled",
                ConfigErrorCode.NO_FLOWS_ENABLED,
            )
        self.flow_registry.register_multiple(handlers.values())
        logger.debug("Registered flows: %s", ", ".join(self.flow_registry.get_handler_names()))

    # ── Events ──────────────────────────────────────────────────────

    def on(self, event: OAuthEvent | str, listener: Listener) -> Callable[[], None]:
        return self.emitter.on(event, listener)

    def once(self, event: OAuthEvent | str, listener: Listener) -> Callable[[], None]:
        return self.emitter.once(event, listener)

    def off(self, event: OAuthEvent | str, listener: Listener | None = None) -> None:
        self.emitter.off(event, listener)

    def emit(self, event: OAuthEvent | str, *args: Any) -> bool:
        return self.emitter.emit(event, *args)

    def remove_all_listeners(self, event: OAuthEvent | str | None = None) -> None:
        self.emitter.remove_all_listeners(event)

    def listener_count(self, event: OAuthEvent | str) -> int:
        return self.emitter.listener_count(event)

    def has_listeners(self, event: OAuthEvent | str) -> bool:
        return self.emitter.has_listeners(event)

    @contextlib.contextmanager
    def _operation(self, operation: OAuthOperation, **metadata: Any) -> Iterator[None]:
        context = self._loading.start_operation(operation.value, metadata)
        success = False
        try:
            yield
            success = True
        finally:
            self._loading.end_operation(context, success)

    def _report_error(self, error: OAuthError, operation: OAuthOperation) -> None:
        logger.error("%s failed: %s [%s]", operation.value, error, error.code)
        self.emit(
            OAuthEvent.AUTH_ERROR,
            AuthErrorData(
                error=error,
                operation=operation.value,
                recoverable=error.retryable,
                retry_count=error.retry_count,
            ),
        )

    # ── Status ──────────────────────────────────────────────────────

    @property
    def authentication_status(self) -> AuthStatus:
        return self._status.status

    @property
    def is_authenticated(self) -> bool:
        return self._status.is_authenticated

    @property
    def is_loading(self) -> bool:
        return self._loading.is_loading

    @property
    def active_operations(self) -> list[str]:
        return self._loading.active_operations

    @property
    def status_manager(self) -> AuthStatusManager:
        return self._status

    @property
    def loading_manager(self) -> LoadingManager:
        return self._loading

    # ── Authorization URL ───────────────────────────────────────────

    async def generate_pkce_challenge(self) -> PKCEChallenge:
        challenge = await self.pkce_manager.generate_challenge()
        self.emit(
            OAuthEvent.PKCE_GENERATED,
            {
                "code_challenge": challenge.code_challenge,
                "code_challenge_method": challenge.code_challenge_method,
            },
        )
        return challenge

    async def generate_state(self) -> str:
        """Generate a state and register it with the CSRF validator."""
        state = await self.pkce_manager.generate_state()
        await self.state_validator.store_state(state)
        self.emit(OAuthEvent.STATE_GENERATED, state)
        return state

    async def generate_authorization_url(
        self, extra_params: Mapping[str, str] | None = None
    ) -> AuthorizationRequest:
        """Create PKCE material and state, then build the authorization URL.

        Parameters
        ----------
        extra_params : Mapping[str, str], optional
            Additional query parameters (``prompt``, ``login_hint``, ...).
            They cannot replace the client, redirect, response type, state
            or PKCE parameters.

        Returns
        -------
        AuthorizationRequest
            The URL to open and the state it carries.
        """
        operation = OAuthOperation.GENERATE_AUTH_URL
        with self._operation(operation):
            try:
                challenge = await self.generate_pkce_challenge()
                state = await self.generate_state()

                query = {
                    "client_id": self.config.client_id,
                    "redirect_uri": self.config.redirect_uri,
                    "response_type": "code",
                    "scope": self.config.scope_string,
                    "state": state,
                    "code_challenge": challenge.code_challenge,
                    "code_challenge_method": challenge.code_challenge_method,
                }
                for key, value in (extra_params or {}).items():
                    if key in _PROTECTED_AUTH_PARAMS:
                        logger.warning("Ignoring extra authorization parameter '%s'", key)
                        continue
                    query[key] = value

                endpoint = self.config.endpoints.authorization
                separator = "&" if "?" in endpoint else "?"
                url = f"{endpoint}{separator}{urlencode(query)}"
            except Exception as exc:
                error = (
                    exc
                    if isinstance(exc, OAuthError)
                    else ValidationError(
                        f"Failed to generate authorization URL: {exc}",
                        ValidationErrorCode.PKCE_FAILURE,
                        metadata={"original_error": exc},
                    )
                )
                self._report_error(error, operation)
                if error is exc:
                    raise
                raise error from exc

        self.emit(OAuthEvent.AUTH_URL_GENERATED, url, state)
        logger.debug("Generated authorization URL with PKCE parameters")
        return AuthorizationRequest(url=url, state=state)

    # ── Callback ────────────────────────────────────────────────────

    def detect_flow(self, raw_params: str | Mapping[str, Any]) -> FlowDetectionResult | None:
        return self.flow_registry.detect_flow_with_confidence(parse_params(raw_params), self.config)

    def _resolve_handler(self, params: CallbackParams, explicit_flow: str | None) -> FlowHandler:
        flows = self._flow_config
        if explicit_flow is None and flows.detection_strategy == "explicit":
            explicit_flow = flows.default_flow
            if explicit_flow is None:
                raise FlowError.detection_failed(
                    "explicit detection strategy requires a flow name or default_flow"
                )

        if explicit_flow is not None:
            handler = self.flow_registry.get_handler(explicit_flow)
            if handler is None:
                raise FlowError.unknown_flow(explicit_flow)
            detection = FlowDetectionResult(handler, 100, f"Flow '{explicit_flow}' requested explicitly")
        else:
            detection = self.flow_registry.detect_flow_with_confidence(params, self.config)
            if detection is None and flows.default_flow:
                fallback = self.flow_registry.get_handler(flows.default_flow)
                if fallback is not None:
                    detection = FlowDetectionResult(
                        fallback,
                        confidence_for_priority(fallback.priority),
                        f"No handler matched; using default flow '{fallback.name}'",
                    )
            if detection is None:
                raise FlowError.no_handler_found(sorted(params))

        self.emit(
            OAuthEvent.FLOW_DETECTED,
            detection.handler.name,
            detection.confidence,
            detection.reason,
        )
        logger.debug("Using flow handler '%s': %s", detection.handler.name, detection.reason)
        return detection.handler

    async def handle_callback(
        self,
        raw_params: str | Mapping[str, Any],
        explicit_flow: str | None = None,
    ) -> OAuthResult:
        """Complete an authentication round trip.

        Parameters
        ----------
        raw_params : str or Mapping
            The redirect URL, its query string, or parsed parameters.
        explicit_flow : str, optional
            Name of the handler to use instead of auto-detection.

        Returns
        -------
        OAuthResult
            The successful result. Failures raise instead.

        Raises
        ------
        FlowError
            If the callback carries an OAuth error, no handler applies,
            validation fails, or the handler raises an untyped exception.
        OAuthError
            Any typed error raised by the handler's exchange.
        """
        operation = OAuthOperation.HANDLE_CALLBACK
        started = time.monotonic()
        params = parse_params(raw_params)
        logger.debug("Handling callback: %s", sanitize_for_logging(params))
        self.emit(OAuthEvent.CALLBACK_START, sanitize_for_logging(params), explicit_flow)
        self._status.start_authenticating()

        handler: FlowHandler | None = None
        with self._operation(operation, flow=explicit_flow):
            try:
                check_for_oauth_error(params)
                handler = self._resolve_handler(params, explicit_flow)
                if not await handler.validate(params, self.config):
                    raise FlowError.validation_failed(handler.name)
                result = await handler.handle(params, self._context)
                if not result.success:
                    raise FlowError(
                        result.error or f"Flow '{handler.name}' reported failure",
                        result.error_code or FlowErrorCode.EXECUTION_FAILED,
                        flow_name=handler.name,
                    )
                tokens = result.to_tokens(issued_at=result.metadata.get("issued_at") or now_ms())
                if tokens is None:
                    raise FlowError(
                        f"Flow '{handler.name}' returned no access token",
                        FlowErrorCode.EXECUTION_FAILED,
                        flow_name=handler.name,
                    )
                # Built-in handlers already stored these through the token manager;
                # custom handlers may not have, so the write is repeated for all.
                await self.token_manager.store_tokens(tokens)
            except Exception as exc:
                if isinstance(exc, OAuthError):
                    error = exc
                else:
                    error = FlowError.execution_failed(handler.name if handler else "unknown", exc)
                self._status.set_error()
                self._report_error(error, operation)
                if error is exc:
                    raise
                raise error from exc

        duration_ms = int((time.monotonic() - started) * 1000)
        self.emit(OAuthEvent.TOKENS_STORED, tokens)
        await self._maybe_schedule_refresh(tokens)
        self._status.set_authenticated()
        self.emit(
            OAuthEvent.AUTH_SUCCESS,
            AuthSuccessData(
                access_token=result.access_token,
                refresh_token=result.refresh_token,
                expires_in=result.expires_in,
                flow_name=handler.name,
                duration_ms=duration_ms,
            ),
        )
        self.emit(OAuthEvent.CALLBACK_COMPLETE, result, handler.name, duration_ms)
        logger.info("Flow '%s' completed in %dms", handler.name, duration_ms)
        return result

    # ── Tokens ──────────────────────────────────────────────────────

    async def get_access_token(self) -> str | None:
        return await self.token_manager.get_access_token()

    async def get_refresh_token(self) -> str | None:
        return await self.token_manager.get_refresh_token()

    async def is_token_expired(self) -> bool:
        return await self.token_manager.is_token_expired()

    async def get_token_expiration_time(self) -> int | None:
        """Stored absolute expiry in epoch ms, or None."""
        return await self.token_manager.get_token_expiry()

    async def get_time_until_token_expiration(self) -> int | None:
        return await self.token_manager.get_time_until_expiration()

    async def check_token_expiration(self) -> bool:
        """Return whether the stored token has expired.

        When it has, the status moves to ``expired`` and ``TOKEN_EXPIRED``
        is emitted.
        """
        expiry = await self.token_manager.get_token_expiry()
        if expiry is None or now_ms() < expiry:
            return False
        access_token = await self.token_manager.get_access_token()
        if access_token is None:
            return False

        self._status.set_expired()
        self.emit(
            OAuthEvent.TOKEN_EXPIRED,
            TokenExpirationData(
                tokens=OAuthTokens(access_token=access_token),
                expired_at=datetime.fromtimestamp(expiry / 1000, tz=timezone.utc),
                time_until_expiration=expiry - now_ms(),
            ),
        )
        return True

    async def _maybe_schedule_refresh(self, tokens: OAuthTokens) -> None:
        if not self.settings.token.auto_refresh or tokens.expires_in is None:
            return
        if not tokens.refresh_token and not await self.token_manager.get_refresh_token():
            return
        self.schedule_token_refresh(tokens)

    def schedule_token_refresh(self, tokens: OAuthTokens, buffer_ms: int | None = None) -> bool:
        """Arm an automatic ``refresh_access_token`` ahead of expiry.

        Returns
        -------
        bool
            True if a refresh was armed.
        """
        buffer = self.settings.token.refresh_buffer_ms if buffer_ms is None else buffer_ms
        return self.scheduler.schedule_refresh(tokens, buffer, self.refresh_access_token)

    def is_token_refresh_scheduled(self) -> bool:
        return self.scheduler.is_refresh_scheduled()

    async def refresh_access_token(self) -> OAuthResult:
        """Exchange the stored refresh token for new tokens.

        Raises
        ------
        TokenError
            If no refresh token is stored or the server rejects it. A
            non-retryable token error moves the status to ``expired``.
        NetworkError
            If the token endpoint could not be reached or failed.
        """
        operation = OAuthOperation.REFRESH_TOKEN
        self._status.start_refreshing()
        with self._operation(operation):
            try:
                refresh_token = await self.token_manager.get_refresh_token()
                if not refresh_token:
                    raise TokenError.refresh_token_missing()
                result = await self.token_manager.refresh_token(refresh_token, self.config)
            except Exception as exc:
                error = exc if isinstance(exc, OAuthError) else TokenError.refresh_failed(exc)
                if isinstance(error, TokenError) and not error.retryable:
                    self._status.set_expired()
                else:
                    self._status.set_error()
                self._report_error(error, operation)
                if error is exc:
                    raise
                raise error from exc

        tokens = result.to_tokens(issued_at=result.metadata.get("issued_at") or now_ms())
        self.emit(OAuthEvent.TOKEN_REFRESH, tokens)
        self._status.set_authenticated()
        if tokens is not None:
            await self._maybe_schedule_refresh(tokens)
        return result

    # ── Logout ──────────────────────────────────────────────────────

    async def logout(self, reason: LogoutReason = "user") -> None:
        """Revoke (best effort) and clear tokens, PKCE material and state."""
        operation = OAuthOperation.LOGOUT
        self.scheduler.cancel_scheduled_refresh()
        with self._operation(operation, reason=reason):
            try:
                await self.token_manager.revoke_tokens(self.config)
                await self.pkce_manager.clear_pkce_data()
                await self.state_validator.clear_state()
            except OAuthError as exc:
                self._report_error(exc, operation)
                raise

        self.emit(OAuthEvent.TOKENS_CLEARED, reason)
        self._status.set_unauthenticated()
        self.emit(OAuthEvent.LOGOUT, LogoutData(reason=reason))
        logger.info("Logged out (%s)", reason)

    # ── Flows ───────────────────────────────────────────────────────

    def register_flow(self, handler: FlowHandler) -> None:
        self.flow_registry.register(handler)

    def unregister_flow(self, name: str) -> bool:
        return self.flow_registry.unregister(name)

    def get_registered_flows(self) -> list[str]:
        return self.flow_registry.get_handler_names()

    def get_compatible_handlers(self, raw_params: str | Mapping[str, Any]) -> list[FlowHandler]:
        return self.flow_registry.get_compatible_handlers(parse_params(raw_params), self.config)

    # ── Teardown ────────────────────────────────────────────────────

    def destroy(self) -> None:
        """Cancel the refresh timer, end tracked operations and drop listeners."""
        self.scheduler.destroy()
        self._loading.cancel_all_operations()
        self.emitter.remove_all_listeners()
