"""oauthcore exception hierarchy.

All oauthcore errors inherit from OAuthError and carry a machine-readable
``code``, an ``error_type`` branch, a ``retryable`` flag, an optional HTTP
``status_code`` and a ``metadata`` dict. Each branch owns one code enum.

Deprecated snake-case codes emitted by older releases are translated through
``LEGACY_ERROR_CODES`` when an error is constructed, so nothing past this
module ever compares against a legacy string.
"""

from __future__ import annotations

import copy
import time

from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ErrorType(str, Enum):
    """Taxonomy branch of an OAuthError."""

    NETWORK = "network"
    AUTH = "auth"
    TOKEN = "token"
    CONFIG = "config"
    VALIDATION = "validation"
    FLOW = "flow"


class NetworkErrorCode(str, Enum):
    """Codes raised by NetworkError."""

    ERROR = "NETWORK_ERROR"
    CONNECTION_ERROR = "NETWORK_CONNECTION_ERROR"
    SERVER_ERROR = "NETWORK_SERVER_ERROR"
    RATE_LIMITED = "NETWORK_RATE_LIMITED"
    TIMEOUT = "NETWORK_TIMEOUT"
    CLIENT_ERROR = "NETWORK_CLIENT_ERROR"


class TokenErrorCode(str, Enum):
    """Codes raised by TokenError."""

    ERROR = "TOKEN_ERROR"
    EXPIRED = "TOKEN_EXPIRED"
    INVALID = "TOKEN_INVALID"
    ACCESS_TOKEN_EXPIRED = "ACCESS_TOKEN_EXPIRED"
    ACCESS_TOKEN_INVALID = "ACCESS_TOKEN_INVALID"
    ACCESS_TOKEN_MISSING = "ACCESS_TOKEN_MISSING"
    REFRESH_TOKEN_EXPIRED = "REFRESH_TOKEN_EXPIRED"
    REFRESH_TOKEN_INVALID = "REFRESH_TOKEN_INVALID"
    REFRESH_TOKEN_MISSING = "REFRESH_TOKEN_MISSING"
    REFRESH_FAILED = "TOKEN_REFRESH_FAILED"
    VALIDATION_FAILED = "TOKEN_VALIDATION_FAILED"
    INSUFFICIENT_SCOPE = "TOKEN_INSUFFICIENT_SCOPE"
    INVALID_SCOPE = "TOKEN_INVALID_SCOPE"
    INVALID_GRANT = "TOKEN_INVALID_GRANT"
    INVALID_RESPONSE = "TOKEN_INVALID_RESPONSE"
    STORAGE_FAILED = "TOKEN_STORAGE_FAILED"


class ConfigErrorCode(str, Enum):
    """Codes raised by ConfigError."""

    ERROR = "CONFIG_ERROR"
    REQUIRED_FIELD_MISSING = "CONFIG_REQUIRED_FIELD_MISSING"
    INVALID_VALUE = "CONFIG_INVALID_VALUE"
    INVALID_URL = "CONFIG_INVALID_URL"
    EMPTY_SCOPES = "CONFIG_EMPTY_SCOPES"
    VALIDATION_FAILED = "CONFIG_VALIDATION_FAILED"
    NO_FLOWS_ENABLED = "CONFIG_NO_FLOWS_ENABLED"
    PKCE_GENERATION_FAILED = "CONFIG_PKCE_GENERATION_FAILED"


class ValidationErrorCode(str, Enum):
    """Codes raised by ValidationError."""

    ERROR = "VALIDATION_ERROR"
    MISSING_PARAMETER = "VALIDATION_MISSING_PARAMETER"
    REQUIRED_PARAMETER_MISSING = "VALIDATION_REQUIRED_PARAMETER_MISSING"
    INVALID_VALUE = "VALIDATION_INVALID_VALUE"
    INVALID_STATE = "VALIDATION_INVALID_STATE"
    STATE_MISMATCH = "VALIDATION_STATE_MISMATCH"
    STATE_STORAGE_FAILED = "VALIDATION_STATE_STORAGE_FAILED"
    PKCE_FAILURE = "VALIDATION_PKCE_FAILURE"


class FlowErrorCode(str, Enum):
    """Codes raised by FlowError."""

    ERROR = "FLOW_ERROR"
    NO_HANDLER_FOUND = "FLOW_NO_HANDLER_FOUND"
    HANDLERS_MISSING = "FLOW_HANDLERS_MISSING"
    UNKNOWN = "FLOW_UNKNOWN"
    DETECTION_FAILED = "FLOW_DETECTION_FAILED"
    VALIDATION_FAILED = "FLOW_VALIDATION_FAILED"
    MISSING_PARAMETERS = "FLOW_MISSING_PARAMETERS"
    EXECUTION_FAILED = "FLOW_EXECUTION_FAILED"
    TIMEOUT = "FLOW_TIMEOUT"
    INTERRUPTED = "FLOW_INTERRUPTED"
    DISABLED = "FLOW_DISABLED"
    PROVIDER_ERROR = "FLOW_PROVIDER_ERROR"


# Deprecated codes still accepted on input.
LEGACY_ERROR_CODES: dict[str, str] = {
    "invalid_state": ValidationErrorCode.INVALID_STATE.value,
    "token_exchange_failed": TokenErrorCode.ERROR.value,
    "missing_pkce_parameters": ValidationErrorCode.MISSING_PARAMETER.value,
    "invalid_grant": TokenErrorCode.INVALID_GRANT.value,
    "unsupported_grant_type": TokenErrorCode.INVALID_GRANT.value,
    "unknown_flow": FlowErrorCode.UNKNOWN.value,
    "no_flow_handler": FlowErrorCode.NO_HANDLER_FOUND.value,
    "missing_required_parameter": ValidationErrorCode.REQUIRED_PARAMETER_MISSING.value,
    "invalid_configuration": ConfigErrorCode.ERROR.value,
    "network_error": NetworkErrorCode.CONNECTION_ERROR.value,
    "flow_validation_failed": FlowErrorCode.VALIDATION_FAILED.value,
}

_CODE_PREFIXES: tuple[tuple[str, ErrorType], ...] = (
    ("NETWORK_", ErrorType.NETWORK),
    ("TOKEN_", ErrorType.TOKEN),
    ("ACCESS_TOKEN_", ErrorType.TOKEN),
    ("REFRESH_TOKEN_", ErrorType.TOKEN),
    ("CONFIG_", ErrorType.CONFIG),
    ("VALIDATION_", ErrorType.VALIDATION),
    ("FLOW_", ErrorType.FLOW),
)

_USER_MESSAGES: dict[ErrorType, str] = {
    ErrorType.NETWORK: (
        "Network connection error. Please check your internet connection and try again."
    ),
    ErrorType.AUTH: "Authentication failed. Please try logging in again.",
    ErrorType.TOKEN: "Token error. Please refresh your session.",
    ErrorType.CONFIG: "Configuration error. Please contact support.",
    ErrorType.VALIDATION: "Invalid request. Please check your input and try again.",
    ErrorType.FLOW: "Authentication flow error. Please try again.",
}

UNKNOWN_ERROR_CODE = "UNKNOWN_ERROR"


def normalize_error_code(code: str | Enum) -> str:
    """Translate a code (enum member, current or legacy string) to its current value."""
    value = code.value if isinstance(code, Enum) else str(code)
    return LEGACY_ERROR_CODES.get(value, value)


def error_type_for_code(code: str | Enum) -> ErrorType:
    """Derive the taxonomy branch from a code's prefix.

    Codes with no recognised prefix belong to the ``auth`` branch.
    """
    value = normalize_error_code(code)
    for prefix, error_type in _CODE_PREFIXES:
        if value.startswith(prefix):
            return error_type
    return ErrorType.AUTH


class OAuthError(Exception):
    """Base exception for all oauthcore errors."""

    error_type: ErrorType = ErrorType.AUTH

    def __init__(
        self,
        message: str,
        code: str | Enum = UNKNOWN_ERROR_CODE,
        error_type: ErrorType | None = None,
        *,
        retryable: bool = False,
        status_code: int | None = None,
        metadata: dict[str, Any] | None = None,
        **context: Any,
    ) -> None:
        """Initialize an oauthcore error.

        Parameters
        ----------
        message : str
            Human-readable error message.
        code : str or Enum
            Machine-readable error code. Legacy aliases are normalized.
        error_type : ErrorType, optional
            Taxonomy branch. Derived from the code when omitted.
        retryable : bool
            Whether retrying the failed operation may succeed.
        status_code : int, optional
            HTTP status associated with the failure.
        metadata : dict, optional
            Structured diagnostic data. ``timestamp`` is filled in when absent.
        **context : Any
            Additional context rendered in ``str()``.
        """
        super().__init__(message)
        self.message = message
        self.code = normalize_error_code(code)
        if error_type is not None:
            self.error_type = error_type
        elif type(self) is OAuthError:
            self.error_type = error_type_for_code(self.code)
        self.retryable = retryable
        self.status_code = status_code
        self.metadata: dict[str, Any] = dict(metadata or {})
        self.metadata.setdefault("timestamp", datetime.now(timezone.utc))
        self.context = context

    def __str__(self) -> str:
        """Format exception with context."""
        if self.context:
            ctx = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx})"
        return self.message

    @property
    def timestamp(self) -> datetime:
        """When the error was created."""
        return self.metadata["timestamp"]

    @property
    def retry_count(self) -> int:
        """Number of retries already attempted."""
        return int(self.metadata.get("retry_count", 0))

    @property
    def user_message(self) -> str:
        """A message suitable for showing to end users."""
        return _USER_MESSAGES.get(self.error_type, "An error occurred. Please try again.")

    def can_retry(self) -> bool:
        """Return whether the failed operation may be retried."""
        return self.retryable

    def get_retry_delay(self) -> int:
        """Return the backoff delay in milliseconds before the next retry.

        Exponential: 1s, 2s, 4s, ... capped at 30s. Zero when not retryable.
        """
        if not self.retryable:
            return 0
        return min(1000 * 2**self.retry_count, 30_000)

    def with_retry(self, retry_count: int) -> OAuthError:
        """Return a copy of this error recording ``retry_count``."""
        clone = copy.copy(self)
        clone.metadata = {**self.metadata, "retry_count": retry_count}
        return clone

    def with_context(self, **context: Any) -> OAuthError:
        """Return a copy of this error with extra metadata context merged in."""
        clone = copy.copy(self)
        merged = {**self.metadata.get("context", {}), **context}
        clone.metadata = {**self.metadata, "context": merged}
        return clone

    def is_type(self, error_type: ErrorType | str) -> bool:
        """Return whether this error belongs to ``error_type``."""
        return self.error_type == ErrorType(error_type)

    def has_code(self, code: str | Enum) -> bool:
        """Return whether this error carries ``code`` (legacy aliases accepted)."""
        return self.code == normalize_error_code(code)

    def to_dict(self) -> dict[str, Any]:
        """Serialize the error for logging or transport."""
        metadata = {
            key: (value.isoformat() if isinstance(value, datetime) else value)
            for key, value in self.metadata.items()
            if key != "original_error"
        }
        if "original_error" in self.metadata:
            metadata["original_error"] = repr(self.metadata["original_error"])
        return {
            "name": type(self).__name__,
            "message": self.message,
            "code": self.code,
            "type": self.error_type.value,
            "retryable": self.retryable,
            "status_code": self.status_code,
            "metadata": metadata,
        }

    @classmethod
    def from_error(
        cls,
        exc: BaseException,
        code: str | Enum = UNKNOWN_ERROR_CODE,
        error_type: ErrorType | None = None,
        retryable: bool = False,
    ) -> OAuthError:
        """Wrap an arbitrary exception, returning OAuthErrors unchanged."""
        if isinstance(exc, OAuthError):
            return exc
        return OAuthError(
            str(exc) or type(exc).__name__,
            code,
            error_type,
            retryable=retryable,
            metadata={"original_error": exc},
        )


class NetworkError(OAuthError):
    """HTTP or connection failure.

    The code and retryability are derived from the HTTP status: connection
    errors, 5xx, 429, 408 and 504 are retryable; other 4xx are not.
    """

    error_type = ErrorType.NETWORK

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        *,
        metadata: dict[str, Any] | None = None,
        **context: Any,
    ) -> None:
        super().__init__(
            message,
            self._code_for_status(status_code),
            retryable=self._is_retryable_status(status_code),
            status_code=status_code,
            metadata=metadata,
            **context,
        )

    @staticmethod
    def _code_for_status(status_code: int | None) -> NetworkErrorCode:
        if not status_code:
            return NetworkErrorCode.CONNECTION_ERROR
        if status_code >= 500:
            return NetworkErrorCode.SERVER_ERROR
        if status_code == 429:
            return NetworkErrorCode.RATE_LIMITED
        if status_code in (408, 504):
            return NetworkErrorCode.TIMEOUT
        if status_code >= 400:
            return NetworkErrorCode.CLIENT_ERROR
        return NetworkErrorCode.ERROR

    @staticmethod
    def _is_retryable_status(status_code: int | None) -> bool:
        if not status_code:
            return True
        return status_code >= 500 or status_code in (408, 429)

    def get_retry_delay(self) -> int:
        """Return the retry delay in milliseconds.

        A known rate-limit reset wins (capped at five minutes). A 429 without
        one backs off 5s, 10s, 20s, ... capped at 60s. Anything else uses the
        base exponential backoff.
        """
        reset = self.metadata.get("rate_limit_reset")
        if reset is not None:
            delay_ms = max(0, int((reset - time.time()) * 1000))
            return min(delay_ms, 5 * 60 * 1000)
        if self.status_code == 429:
            return min(5000 * 2**self.retry_count, 60_000)
        return super().get_retry_delay()

    def is_timeout(self) -> bool:
        """Return whether the request timed out."""
        return self.status_code in (408, 504) or self.code == NetworkErrorCode.TIMEOUT.value

    def is_rate_limited(self) -> bool:
        """Return whether the server rate-limited the request."""
        return self.status_code == 429

    def is_server_error(self) -> bool:
        """Return whether the server failed with a 5xx status."""
        return bool(self.status_code and self.status_code >= 500)

    def is_connection_error(self) -> bool:
        """Return whether the request never received a response."""
        return not self.status_code or bool(self.metadata.get("connection_error"))

    @property
    def user_message(self) -> str:
        if self.is_rate_limited():
            return "Too many requests. Please wait a moment and try again."
        if self.is_timeout():
            return "Request timed out. Please check your connection and try again."
        if self.is_server_error():
            return "Server error. Please try again in a few moments."
        if self.is_connection_error():
            return "Unable to connect. Please check your internet connection."
        return super().user_message

    @classmethod
    def from_http_response(
        cls,
        status_code: int,
        body: Any = None,
        url: str | None = None,
        method: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> NetworkError:
        """Build an error from a failed HTTP response."""
        message = f"HTTP {status_code}"
        if isinstance(body, dict):
            detail = body.get("error_description") or body.get("error") or body.get("message")
            if detail:
                message = f"{message}: {detail}"

        metadata: dict[str, Any] = {
            "url": url,
            "method": method,
            "response_body": body,
            "response_headers": headers,
        }
        lowered = {k.lower(): v for k, v in (headers or {}).items()}
        if lowered.get("x-ratelimit-remaining", "").isdigit():
            metadata["rate_limit_remaining"] = int(lowered["x-ratelimit-remaining"])
        if lowered.get("x-ratelimit-reset", "").isdigit():
            metadata["rate_limit_reset"] = int(lowered["x-ratelimit-reset"])
        return cls(message, status_code, metadata=metadata)

    @classmethod
    def from_connection_error(
        cls, exc: BaseException, url: str | None = None, method: str | None = None
    ) -> NetworkError:
        """Build an error for a request that never got a response."""
        return cls(
            f"Connection failed: {exc}",
            metadata={
                "url": url,
                "method": method,
                "connection_error": True,
                "original_error": exc,
            },
        )

    @classmethod
    def from_timeout(
        cls, timeout_ms: int, url: str | None = None, method: str | None = None
    ) -> NetworkError:
        """Build an error for a request that exceeded ``timeout_ms``."""
        return cls(
            f"Request timed out after {timeout_ms}ms",
            408,
            metadata={"url": url, "method": method, "timeout": timeout_ms},
        )


class TokenError(OAuthError):
    """Token expiration, invalidity, absence or refresh failure.

    Access-token problems are retryable via refresh. Refresh-token problems
    are not and require re-authentication.
    """

    error_type = ErrorType.TOKEN

    def __init__(
        self,
        message: str,
        code: str | Enum = TokenErrorCode.ERROR,
        *,
        retryable: bool = False,
        status_code: int | None = None,
        metadata: dict[str, Any] | None = None,
        **context: Any,
    ) -> None:
        super().__init__(
            message,
            code,
            retryable=retryable,
            status_code=status_code,
            metadata=metadata,
            **context,
        )

    def is_expired(self) -> bool:
        """Return whether the error reports an expired token."""
        return self.code in {
            TokenErrorCode.EXPIRED.value,
            TokenErrorCode.ACCESS_TOKEN_EXPIRED.value,
            TokenErrorCode.REFRESH_TOKEN_EXPIRED.value,
        }

    def requires_reauth(self) -> bool:
        """Return whether only a fresh login can recover from this error."""
        return self.code in {
            TokenErrorCode.REFRESH_TOKEN_EXPIRED.value,
            TokenErrorCode.REFRESH_TOKEN_INVALID.value,
            TokenErrorCode.REFRESH_TOKEN_MISSING.value,
            TokenErrorCode.INVALID_GRANT.value,
        }

    @property
    def user_message(self) -> str:
        if self.requires_reauth():
            return "Your session has expired. Please log in again."
        if self.is_expired():
            return "Your session has expired. Refreshing..."
        if self.code == TokenErrorCode.INSUFFICIENT_SCOPE.value:
            return "You do not have permission to perform this action."
        return super().user_message

    @staticmethod
    def create_token_hint(token: str | None) -> str:
        """Return a log-safe hint for ``token`` (its last four characters)."""
        if not token or len(token) < 8:
            return "****"
        return f"...{token[-4:]}"

    @classmethod
    def access_token_expired(cls, expires_at: datetime | None = None) -> TokenError:
        return cls(
            "Access token has expired",
            TokenErrorCode.ACCESS_TOKEN_EXPIRED,
            retryable=True,
            metadata={"expires_at": expires_at},
        )

    @classmethod
    def access_token_invalid(cls, token: str | None = None) -> TokenError:
        return cls(
            "Access token is invalid",
            TokenErrorCode.ACCESS_TOKEN_INVALID,
            retryable=True,
            metadata={"token_hint": cls.create_token_hint(token)},
        )

    @classmethod
    def access_token_missing(cls) -> TokenError:
        return cls(
            "Access token is missing", TokenErrorCode.ACCESS_TOKEN_MISSING, retryable=True
        )

    @classmethod
    def refresh_token_expired(cls) -> TokenError:
        return cls("Refresh token has expired", TokenErrorCode.REFRESH_TOKEN_EXPIRED)

    @classmethod
    def refresh_token_invalid(cls, token: str | None = None) -> TokenError:
        return cls(
            "Refresh token is invalid",
            TokenErrorCode.REFRESH_TOKEN_INVALID,
            metadata={"token_hint": cls.create_token_hint(token)},
        )

    @classmethod
    def refresh_token_missing(cls) -> TokenError:
        return cls("No refresh token available", TokenErrorCode.REFRESH_TOKEN_MISSING)

    @classmethod
    def refresh_failed(
        cls, original_error: BaseException | None = None, retry_count: int = 0
    ) -> TokenError:
        metadata: dict[str, Any] = {"retry_count": retry_count}
        if original_error is not None:
            metadata["original_error"] = original_error
        return cls(
            "Token refresh failed",
            TokenErrorCode.REFRESH_FAILED,
            retryable=True,
            metadata=metadata,
        )

    @classmethod
    def validation_failed(cls, reason: str) -> TokenError:
        return cls(f"Token validation failed: {reason}", TokenErrorCode.VALIDATION_FAILED)

    @classmethod
    def insufficient_scopes(
        cls, required: list[str], available: list[str] | None = None
    ) -> TokenError:
        return cls(
            f"Insufficient scopes. Required: {', '.join(required)}",
            TokenErrorCode.INSUFFICIENT_SCOPE,
            metadata={"required_scopes": required, "available_scopes": available},
        )

    @classmethod
    def invalid_response(cls, reason: str, status_code: int | None = None) -> TokenError:
        return cls(
            f"Malformed token response: {reason}",
            TokenErrorCode.INVALID_RESPONSE,
            status_code=status_code,
        )

    @classmethod
    def storage_failed(cls, original_error: BaseException) -> TokenError:
        return cls(
            "Failed to store tokens",
            TokenErrorCode.STORAGE_FAILED,
            metadata={"original_error": original_error},
        )

    @classmethod
    def from_token_response(
        cls,
        error: str,
        error_description: str | None = None,
        error_uri: str | None = None,
        status_code: int | None = None,
    ) -> TokenError:
        """Map an OAuth error response body onto a TokenError."""
        mapping = {
            "invalid_grant": (TokenErrorCode.INVALID_GRANT, False),
            "invalid_token": (TokenErrorCode.INVALID, False),
            "expired_token": (TokenErrorCode.EXPIRED, True),
            "insufficient_scope": (TokenErrorCode.INSUFFICIENT_SCOPE, False),
            "invalid_scope": (TokenErrorCode.INVALID_SCOPE, False),
        }
        code, retryable = mapping.get(error, (f"TOKEN_{error.upper()}", False))
        return cls(
            error_description or error or "Token error",
            code,
            retryable=retryable,
            status_code=status_code,
            metadata={
                "context": {
                    "oauth_error": error,
                    "error_description": error_description,
                    "error_uri": error_uri,
                }
            },
        )


class ConfigError(OAuthError):
    """Invalid or incomplete configuration. Never retryable."""

    error_type = ErrorType.CONFIG

    def __init__(
        self,
        message: str,
        code: str | Enum = ConfigErrorCode.ERROR,
        *,
        metadata: dict[str, Any] | None = None,
        **context: Any,
    ) -> None:
        super().__init__(message, code, retryable=False, metadata=metadata, **context)

    @classmethod
    def missing_required_field(cls, field: str) -> ConfigError:
        return cls(
            f"Required configuration field '{field}' is missing",
            ConfigErrorCode.REQUIRED_FIELD_MISSING,
            metadata={"field": field},
        )

    @classmethod
    def invalid_field_value(cls, field: str, value: Any, reason: str = "") -> ConfigError:
        suffix = f": {reason}" if reason else ""
        return cls(
            f"Invalid value for configuration field '{field}'{suffix}",
            ConfigErrorCode.INVALID_VALUE,
            metadata={"field": field, "value": value},
        )

    @classmethod
    def invalid_url(cls, field: str, url: str) -> ConfigError:
        return cls(
            f"Invalid URL for '{field}': {url}",
            ConfigErrorCode.INVALID_URL,
            metadata={"field": field, "value": url},
        )

    @classmethod
    def empty_scopes(cls) -> ConfigError:
        return cls("At least one scope must be configured", ConfigErrorCode.EMPTY_SCOPES)

    @classmethod
    def validation_failed(cls, errors: list[str]) -> ConfigError:
        return cls(
            f"Configuration validation failed: {'; '.join(errors)}",
            ConfigErrorCode.VALIDATION_FAILED,
            metadata={"errors": errors},
        )


class ValidationError(OAuthError):
    """Invalid request parameters or CSRF state. Not retryable."""

    error_type = ErrorType.VALIDATION

    def __init__(
        self,
        message: str,
        code: str | Enum = ValidationErrorCode.ERROR,
        *,
        metadata: dict[str, Any] | None = None,
        **context: Any,
    ) -> None:
        super().__init__(message, code, retryable=False, metadata=metadata, **context)

    def is_state_error(self) -> bool:
        """Return whether the error reports a CSRF state problem."""
        return self.code in {
            ValidationErrorCode.INVALID_STATE.value,
            ValidationErrorCode.STATE_MISMATCH.value,
        }

    @classmethod
    def missing_required_parameter(cls, name: str) -> ValidationError:
        return cls(
            f"Required parameter '{name}' is missing",
            ValidationErrorCode.REQUIRED_PARAMETER_MISSING,
            metadata={"parameter": name},
        )

    @classmethod
    def invalid_parameter_value(
        cls, name: str, value: Any, allowed: list[str] | None = None
    ) -> ValidationError:
        allowed_text = f" Allowed values: {', '.join(allowed)}" if allowed else ""
        return cls(
            f"Invalid value for parameter '{name}'.{allowed_text}",
            ValidationErrorCode.INVALID_VALUE,
            metadata={"parameter": name, "value": value},
        )

    @classmethod
    def invalid_state(cls, reason: str = "State is missing, expired or does not match") -> ValidationError:
        return cls(
            f"Invalid OAuth state (possible CSRF attack): {reason}",
            ValidationErrorCode.INVALID_STATE,
        )

    @classmethod
    def state_mismatch(cls) -> ValidationError:
        return cls(
            "OAuth state does not match the stored value",
            ValidationErrorCode.STATE_MISMATCH,
        )

    @classmethod
    def pkce_failure(cls, message: str, original_error: BaseException) -> ValidationError:
        return cls(
            message,
            ValidationErrorCode.PKCE_FAILURE,
            metadata={"original_error": original_error},
        )


class FlowError(OAuthError):
    """Flow detection, validation or execution failure.

    Execution failures, timeouts and interruptions are retryable. Detection,
    validation, unknown and disabled flows are not.
    """

    error_type = ErrorType.FLOW

    def __init__(
        self,
        message: str,
        code: str | Enum = FlowErrorCode.ERROR,
        *,
        retryable: bool = False,
        flow_name: str | None = None,
        metadata: dict[str, Any] | None = None,
        **context: Any,
    ) -> None:
        metadata = dict(metadata or {})
        if flow_name is not None:
            metadata.setdefault("flow_name", flow_name)
        super().__init__(message, code, retryable=retryable, metadata=metadata, **context)
        self.flow_name = flow_name

    @classmethod
    def no_handler_found(cls, param_keys: list[str] | None = None) -> FlowError:
        return cls(
            "No flow handler found for the callback parameters",
            FlowErrorCode.NO_HANDLER_FOUND,
            metadata={"param_keys": param_keys or []},
        )

    @classmethod
    def handlers_missing(cls, names: list[str]) -> FlowError:
        return cls(
            f"Required flow handlers not registered: {', '.join(names)}",
            FlowErrorCode.HANDLERS_MISSING,
            metadata={"missing_handlers": names},
        )

    @classmethod
    def unknown_flow(cls, flow_name: str) -> FlowError:
        return cls(f"Unknown flow: {flow_name}", FlowErrorCode.UNKNOWN, flow_name=flow_name)

    @classmethod
    def validation_failed(cls, flow_name: str, reason: str = "") -> FlowError:
        suffix = f": {reason}" if reason else ""
        return cls(
            f"Flow validation failed for '{flow_name}'{suffix}",
            FlowErrorCode.VALIDATION_FAILED,
            flow_name=flow_name,
        )

    @classmethod
    def missing_parameters(cls, flow_name: str, names: list[str]) -> FlowError:
        return cls(
            f"Flow '{flow_name}' is missing required parameters: {', '.join(names)}",
            FlowErrorCode.MISSING_PARAMETERS,
            flow_name=flow_name,
            metadata={"missing_parameters": names},
        )

    @classmethod
    def execution_failed(
        cls, flow_name: str, original_error: BaseException | None = None
    ) -> FlowError:
        detail = f": {original_error}" if original_error is not None else ""
        metadata = {"original_error": original_error} if original_error is not None else None
        return cls(
            f"Flow '{flow_name}' failed{detail}",
            FlowErrorCode.EXECUTION_FAILED,
            retryable=True,
            flow_name=flow_name,
            metadata=metadata,
        )

    @classmethod
    def timeout(cls, flow_name: str, timeout_ms: int) -> FlowError:
        return cls(
            f"Flow '{flow_name}' timed out after {timeout_ms}ms",
            FlowErrorCode.TIMEOUT,
            retryable=True,
            flow_name=flow_name,
            metadata={"timeout": timeout_ms},
        )

    @classmethod
    def interrupted(cls, flow_name: str, reason: str = "") -> FlowError:
        suffix = f": {reason}" if reason else ""
        return cls(
            f"Flow '{flow_name}' was interrupted{suffix}",
            FlowErrorCode.INTERRUPTED,
            retryable=True,
            flow_name=flow_name,
        )

    @classmethod
    def flow_disabled(cls, flow_name: str) -> FlowError:
        return cls(f"Flow '{flow_name}' is disabled", FlowErrorCode.DISABLED, flow_name=flow_name)

    @classmethod
    def provider_error(cls, error: str, description: str | None = None) -> FlowError:
        """The authorization server redirected back with an OAuth error."""
        return cls(
            f"OAuth error: {description or error}",
            FlowErrorCode.PROVIDER_ERROR,
            metadata={"oauth_error": error, "error_description": description},
        )

    @classmethod
    def detection_failed(cls, reason: str) -> FlowError:
        return cls(f"Flow detection failed: {reason}", FlowErrorCode.DETECTION_FAILED)
