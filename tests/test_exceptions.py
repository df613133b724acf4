"""Tests for oauthcore.exceptions.

These exercise the error taxonomy directly: codes, retryability,
retry delays, serialization and the factory constructors. No mocks needed.
"""

from __future__ import annotations

import time

import pytest

from oauthcore.exceptions import (
    LEGACY_ERROR_CODES,
    ConfigError,
    ConfigErrorCode,
    ErrorType,
    FlowError,
    FlowErrorCode,
    NetworkError,
    NetworkErrorCode,
    OAuthError,
    TokenError,
    TokenErrorCode,
    ValidationError,
    ValidationErrorCode,
    error_type_for_code,
    normalize_error_code,
)


# ── Base error ──────────────────────────────────────────────────────


class TestOAuthError:
    """Test base exception behavior."""

    def test_message_only(self) -> None:
        """Error with just a message has the unknown code and auth type."""
        exc = OAuthError("Something went wrong")
        assert exc.message == "Something went wrong"
        assert exc.code == "UNKNOWN_ERROR"
        assert exc.error_type is ErrorType.AUTH
        assert not exc.retryable
        assert str(exc) == "Something went wrong"

    def test_with_context(self) -> None:
        """Keyword context appears in the string representation."""
        exc = OAuthError("Failed", "FLOW_ERROR", flow="login", attempt=2)
        assert exc.context == {"flow": "login", "attempt": 2}
        assert "flow='login'" in str(exc)
        assert "attempt=2" in str(exc)

    def test_type_derived_from_code_prefix(self) -> None:
        """A bare OAuthError infers its branch from the code."""
        assert OAuthError("x", "NETWORK_TIMEOUT").error_type is ErrorType.NETWORK
        assert OAuthError("x", "REFRESH_TOKEN_MISSING").error_type is ErrorType.TOKEN
        assert OAuthError("x", "FLOW_UNKNOWN").error_type is ErrorType.FLOW

    def test_timestamp_recorded(self) -> None:
        """Every error carries a creation timestamp in metadata."""
        exc = OAuthError("x")
        assert exc.timestamp is exc.metadata["timestamp"]

    def test_is_standard_exception(self) -> None:
        """OAuthError can be raised and caught as Exception."""
        with pytest.raises(Exception, match="boom"):
            raise OAuthError("boom")

    def test_subclasses_share_base(self) -> None:
        """Every branch is catchable as OAuthError."""
        for exc in (
            NetworkError("n"),
            TokenError("t"),
            ConfigError("c"),
            ValidationError("v"),
            FlowError("f"),
        ):
            assert isinstance(exc, OAuthError)

    def test_retry_delay_exponential_and_capped(self) -> None:
        """Retryable errors back off 1s, 2s, 4s... up to 30s."""
        exc = OAuthError("x", retryable=True)
        assert exc.get_retry_delay() == 1000
        assert exc.with_retry(2).get_retry_delay() == 4000
        assert exc.with_retry(10).get_retry_delay() == 30_000

    def test_retry_delay_zero_when_not_retryable(self) -> None:
        """Non-retryable errors report no delay."""
        assert OAuthError("x").get_retry_delay() == 0
        assert not OAuthError("x").can_retry()

    def test_with_retry_returns_copy(self) -> None:
        """with_retry leaves the original untouched."""
        exc = OAuthError("x", retryable=True)
        retried = exc.with_retry(3)
        assert retried.retry_count == 3
        assert exc.retry_count == 0
        assert retried is not exc

    def test_with_context_merges(self) -> None:
        """with_context accumulates metadata context."""
        exc = OAuthError("x").with_context(a=1).with_context(b=2)
        assert exc.metadata["context"] == {"a": 1, "b": 2}

    def test_to_dict(self) -> None:
        """to_dict is JSON-friendly and hides the original exception object."""
        cause = RuntimeError("disk")
        exc = OAuthError("x", "TOKEN_ERROR", metadata={"original_error": cause})
        data = exc.to_dict()
        assert data["name"] == "OAuthError"
        assert data["code"] == "TOKEN_ERROR"
        assert data["type"] == "token"
        assert isinstance(data["metadata"]["timestamp"], str)
        assert data["metadata"]["original_error"] == repr(cause)

    def test_from_error_wraps_plain_exception(self) -> None:
        """from_error keeps OAuthErrors and wraps anything else."""
        original = OAuthError("keep")
        assert OAuthError.from_error(original) is original
        wrapped = OAuthError.from_error(ValueError("bad"), "VALIDATION_ERROR")
        assert wrapped.message == "bad"
        assert wrapped.error_type is ErrorType.VALIDATION

    def test_is_type_and_has_code(self) -> None:
        """Predicates accept enum members and strings."""
        exc = TokenError("x", TokenErrorCode.INVALID_GRANT)
        assert exc.is_type(ErrorType.TOKEN)
        assert exc.is_type("token")
        assert exc.has_code(TokenErrorCode.INVALID_GRANT)
        assert exc.has_code("invalid_grant")


# ── Legacy codes ────────────────────────────────────────────────────


class TestLegacyCodes:
    """Deprecated snake_case codes normalize on construction."""

    @pytest.mark.parametrize(("legacy", "current"), sorted(LEGACY_ERROR_CODES.items()))
    def test_normalized(self, legacy: str, current: str) -> None:
        """Each legacy code maps to its current value."""
        assert normalize_error_code(legacy) == current
        assert OAuthError("x", legacy).code == current

    def test_unknown_code_passes_through(self) -> None:
        """Codes outside the table are left alone."""
        assert normalize_error_code("CUSTOM") == "CUSTOM"
        assert error_type_for_code("CUSTOM") is ErrorType.AUTH


# ── NetworkError ────────────────────────────────────────────────────


class TestNetworkError:
    """Test status-derived codes and retry policy."""

    @pytest.mark.parametrize(
        ("status", "code", "retryable"),
        [
            (None, NetworkErrorCode.CONNECTION_ERROR, True),
            (500, NetworkErrorCode.SERVER_ERROR, True),
            (503, NetworkErrorCode.SERVER_ERROR, True),
            (429, NetworkErrorCode.RATE_LIMITED, True),
            (408, NetworkErrorCode.TIMEOUT, True),
            (504, NetworkErrorCode.SERVER_ERROR, True),
            (400, NetworkErrorCode.CLIENT_ERROR, False),
            (404, NetworkErrorCode.CLIENT_ERROR, False),
        ],
    )
    def test_status_mapping(self, status: int | None, code: NetworkErrorCode, retryable: bool) -> None:
        """Status determines the code and retryability."""
        exc = NetworkError("x", status)
        assert exc.code == code.value
        assert exc.retryable is retryable
        assert exc.error_type is ErrorType.NETWORK

    def test_predicates(self) -> None:
        """Classification helpers agree with the status."""
        assert NetworkError("x", 504).is_timeout()
        assert NetworkError("x", 429).is_rate_limited()
        assert NetworkError("x", 502).is_server_error()
        assert NetworkError("x").is_connection_error()
        assert not NetworkError("x", 400).is_server_error()

    def test_rate_limit_backoff(self) -> None:
        """A 429 without reset info backs off from 5s, capped at 60s."""
        exc = NetworkError("x", 429)
        assert exc.get_retry_delay() == 5000
        assert exc.with_retry(1).get_retry_delay() == 10_000
        assert exc.with_retry(10).get_retry_delay() == 60_000

    def test_rate_limit_reset_header(self) -> None:
        """x-ratelimit-reset drives the delay when present."""
        reset = int(time.time()) + 20
        exc = NetworkError.from_http_response(
            429, {"error": "slow_down"}, headers={"X-RateLimit-Reset": str(reset), "X-RateLimit-Remaining": "0"}
        )
        assert exc.metadata["rate_limit_remaining"] == 0
        assert 15_000 <= exc.get_retry_delay() <= 20_000

    def test_from_http_response_message(self) -> None:
        """The OAuth error description is surfaced in the message."""
        exc = NetworkError.from_http_response(
            500, {"error": "server_error", "error_description": "db down"}, url="https://x/token", method="POST"
        )
        assert exc.message == "HTTP 500: db down"
        assert exc.metadata["url"] == "https://x/token"
        assert exc.status_code == 500

    def test_from_connection_error(self) -> None:
        """Connection failures are retryable and keep the cause."""
        cause = ConnectionRefusedError("refused")
        exc = NetworkError.from_connection_error(cause, "https://x/token", "POST")
        assert exc.retryable
        assert exc.is_connection_error()
        assert exc.metadata["original_error"] is cause

    def test_from_timeout(self) -> None:
        """Timeouts carry status 408."""
        exc = NetworkError.from_timeout(5000)
        assert exc.status_code == 408
        assert exc.is_timeout()

    def test_user_message(self) -> None:
        """User messages depend on the failure kind."""
        assert "Too many requests" in NetworkError("x", 429).user_message
        assert "Server error" in NetworkError("x", 500).user_message


# ── TokenError ──────────────────────────────────────────────────────


class TestTokenError:
    """Test token error factories."""

    def test_access_token_problems_retryable(self) -> None:
        """Access-token problems can be fixed by refreshing."""
        assert TokenError.access_token_expired().retryable
        assert TokenError.access_token_invalid("abcdefghij").retryable
        assert TokenError.access_token_missing().retryable

    def test_refresh_token_problems_not_retryable(self) -> None:
        """Refresh-token problems require a new login."""
        for exc in (
            TokenError.refresh_token_expired(),
            TokenError.refresh_token_invalid(),
            TokenError.refresh_token_missing(),
        ):
            assert not exc.retryable
            assert exc.requires_reauth()

    def test_refresh_failed_retryable(self) -> None:
        """A generic refresh failure is retryable and records its cause."""
        cause = RuntimeError("x")
        exc = TokenError.refresh_failed(cause, retry_count=2)
        assert exc.retryable
        assert exc.retry_count == 2
        assert exc.metadata["original_error"] is cause

    def test_token_hint(self) -> None:
        """Token hints expose only the last four characters."""
        assert TokenError.create_token_hint("abcdefghijkl") == "...ijkl"
        assert TokenError.create_token_hint("short") == "****"
        assert TokenError.create_token_hint(None) == "****"

    def test_from_token_response_known(self) -> None:
        """Known OAuth error strings map onto dedicated codes."""
        exc = TokenError.from_token_response("invalid_grant", "code reused", status_code=400)
        assert exc.code == TokenErrorCode.INVALID_GRANT.value
        assert exc.message == "code reused"
        assert exc.status_code == 400
        assert exc.metadata["context"]["oauth_error"] == "invalid_grant"

    def test_from_token_response_unknown(self) -> None:
        """Unknown OAuth errors get a derived TOKEN_ code."""
        exc = TokenError.from_token_response("unauthorized_client")
        assert exc.code == "TOKEN_UNAUTHORIZED_CLIENT"
        assert exc.error_type is ErrorType.TOKEN

    def test_is_expired(self) -> None:
        """is_expired covers every expiry code."""
        assert TokenError.access_token_expired().is_expired()
        assert not TokenError.access_token_missing().is_expired()

    def test_insufficient_scopes(self) -> None:
        """Scope errors list what was required."""
        exc = TokenError.insufficient_scopes(["admin"], ["read"])
        assert exc.metadata["required_scopes"] == ["admin"]
        assert "permission" in exc.user_message


# ── ConfigError / ValidationError ───────────────────────────────────


class TestConfigAndValidationErrors:
    """Config and validation errors are never retryable."""

    def test_config_factories(self) -> None:
        """Factories set their codes and field metadata."""
        assert ConfigError.missing_required_field("client_id").metadata["field"] == "client_id"
        assert ConfigError.invalid_url("endpoints.token", "nope").code == ConfigErrorCode.INVALID_URL.value
        assert ConfigError.empty_scopes().code == ConfigErrorCode.EMPTY_SCOPES.value
        exc = ConfigError.validation_failed(["a", "b"])
        assert exc.metadata["errors"] == ["a", "b"]
        assert not exc.retryable

    def test_config_retryable_ignored(self) -> None:
        """ConfigError has no way to become retryable."""
        assert not ConfigError("x").can_retry()

    def test_validation_state_errors(self) -> None:
        """State errors are flagged as such."""
        assert ValidationError.invalid_state().is_state_error()
        assert ValidationError.state_mismatch().is_state_error()
        assert not ValidationError.missing_required_parameter("code").is_state_error()

    def test_invalid_parameter_value(self) -> None:
        """Allowed values are listed in the message."""
        exc = ValidationError.invalid_parameter_value("flow", "x", ["login", "verify"])
        assert "login, verify" in exc.message
        assert exc.code == ValidationErrorCode.INVALID_VALUE.value


# ── FlowError ───────────────────────────────────────────────────────


class TestFlowError:
    """Flow error retry policy and metadata."""

    def test_execution_timeout_interrupt_retryable(self) -> None:
        """Execution, timeout and interruption failures are retryable."""
        assert FlowError.execution_failed("x", RuntimeError("boom")).retryable
        assert FlowError.timeout("x", 1000).retryable
        assert FlowError.interrupted("x").retryable

    def test_detection_and_validation_not_retryable(self) -> None:
        """Detection, validation, unknown and disabled flows are not retryable."""
        for exc in (
            FlowError.no_handler_found(["a"]),
            FlowError.validation_failed("x"),
            FlowError.unknown_flow("x"),
            FlowError.flow_disabled("x"),
            FlowError.detection_failed("why"),
        ):
            assert not exc.retryable

    def test_flow_name_recorded(self) -> None:
        """The flow name is available as attribute and metadata."""
        exc = FlowError.unknown_flow("magic_link_login")
        assert exc.flow_name == "magic_link_login"
        assert exc.metadata["flow_name"] == "magic_link_login"
        assert exc.code == FlowErrorCode.UNKNOWN.value

    def test_provider_error(self) -> None:
        """Provider errors prefer the description in their message."""
        exc = FlowError.provider_error("access_denied", "User cancelled")
        assert exc.message == "OAuth error: User cancelled"
        assert exc.metadata["oauth_error"] == "access_denied"
        assert FlowError.provider_error("access_denied").message == "OAuth error: access_denied"

    def test_missing_parameters(self) -> None:
        """Missing parameters are listed."""
        exc = FlowError.missing_parameters("x", ["code", "state"])
        assert exc.metadata["missing_parameters"] == ["code", "state"]
        assert "code, state" in exc.message
