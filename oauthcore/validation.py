"""Semantic validation of OAuthConfig.

``OAuthConfig`` accepts any strings; this module decides whether they make
sense. Results are returned, not raised, so that a coordinator can report
problems without refusing to start. ``raise_for_result`` is there for
callers that want strictness.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal
from urllib.parse import urlsplit

from .exceptions import ConfigError


if TYPE_CHECKING:
    from collections.abc import Sequence

    from .config import OAuthConfig, OAuthEndpoints


_LOCAL_PREFIXES = ("http://localhost", "http://127.0.0.1", "http://0.0.0.0")


@dataclass(frozen=True)
class ConfigIssue:
    """One validation finding."""

    field: str
    message: str
    code: str
    severity: Literal["error", "warning"] = "error"

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


@dataclass
class ConfigValidationResult:
    errors: list[ConfigIssue] = field(default_factory=list)
    warnings: list[ConfigIssue] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors


def _error(field_name: str, message: str, code: str) -> ConfigIssue:
    return ConfigIssue(field_name, message, code, "error")


def _warning(field_name: str, message: str, code: str) -> ConfigIssue:
    return ConfigIssue(field_name, message, code, "warning")


class ConfigValidator:
    """Checks client id, endpoints, redirect URI and scopes."""

    @classmethod
    def validate(cls, config: OAuthConfig) -> ConfigValidationResult:
        result = ConfigValidationResult()
        result.errors.extend(cls.validate_client_id(config.client_id))
        endpoint_errors, endpoint_warnings = cls.validate_endpoints(config.endpoints)
        result.errors.extend(endpoint_errors)
        result.warnings.extend(endpoint_warnings)
        result.errors.extend(cls.validate_redirect_uri(config.redirect_uri))
        scope_errors, scope_warnings = cls.validate_scopes(config.scopes)
        result.errors.extend(scope_errors)
        result.warnings.extend(scope_warnings)
        return result

    @staticmethod
    def validate_client_id(client_id: str) -> list[ConfigIssue]:
        if not client_id or not client_id.strip():
            return [_error("client_id", "Client ID is required and must be non-empty", "MISSING_CLIENT_ID")]
        if " " in client_id:
            return [_error("client_id", "Client ID should not contain spaces", "CLIENT_ID_HAS_SPACES")]
        return []

    @classmethod
    def validate_endpoints(cls, endpoints: OAuthEndpoints) -> tuple[list[ConfigIssue], list[ConfigIssue]]:
        errors: list[ConfigIssue] = []
        warnings: list[ConfigIssue] = []

        for name in ("authorization", "token"):
            value = getattr(endpoints, name)
            field_name = f"endpoints.{name}"
            if not value:
                errors.append(
                    _error(field_name, f"{name} endpoint is required", f"MISSING_{name.upper()}_ENDPOINT")
                )
                continue
            errors.extend(cls._validate_url(value, field_name))
            if not value.startswith("https://") and not value.startswith(_LOCAL_PREFIXES):
                warnings.append(
                    _warning(
                        field_name,
                        f"{name} endpoint should use HTTPS for security",
                        f"{name.upper()}_NOT_HTTPS",
                    )
                )

        if endpoints.revocation:
            errors.extend(cls._validate_url(endpoints.revocation, "endpoints.revocation"))
        return errors, warnings

    @staticmethod
    def validate_redirect_uri(redirect_uri: str) -> list[ConfigIssue]:
        if not redirect_uri or not redirect_uri.strip():
            return [_error("redirect_uri", "Redirect URI is required", "MISSING_REDIRECT_URI")]

        errors = []
        if "#" in redirect_uri:
            errors.append(
                _error(
                    "redirect_uri",
                    "Redirect URI must not contain a fragment (#); it is lost during redirect",
                    "REDIRECT_URI_HAS_FRAGMENT",
                )
            )
        if not redirect_uri.startswith("https://") and not redirect_uri.startswith(_LOCAL_PREFIXES):
            errors.append(
                _error(
                    "redirect_uri",
                    "Redirect URI should use HTTPS (except for localhost development)",
                    "REDIRECT_URI_NOT_HTTPS",
                )
            )
        return errors

    @staticmethod
    def validate_scopes(scopes: Sequence[str]) -> tuple[list[ConfigIssue], list[ConfigIssue]]:
        if not scopes:
            return [_error("scopes", "At least one scope must be configured", "EMPTY_SCOPES")], []

        warnings = []
        with_whitespace = [scope for scope in scopes if not scope or any(ch.isspace() for ch in scope)]
        if with_whitespace:
            warnings.append(
                _warning(
                    "scopes",
                    f"Scopes should be non-empty and contain no whitespace: {with_whitespace!r}",
                    "SCOPES_WITH_WHITESPACE",
                )
            )
        if len(set(scopes)) != len(scopes):
            warnings.append(_warning("scopes", "Duplicate scopes found", "DUPLICATE_SCOPES"))
        return [], warnings

    @staticmethod
    def _validate_url(url: str, field_name: str) -> list[ConfigIssue]:
        try:
            parts = urlsplit(url)
        except ValueError as exc:
            return [_error(field_name, f"Invalid URL format: {exc}", "MALFORMED_URL")]
        if parts.scheme not in ("http", "https"):
            return [
                _error(
                    field_name,
                    f"URL must use HTTP or HTTPS, got {parts.scheme or 'no scheme'}",
                    "INVALID_URL_PROTOCOL",
                )
            ]
        if not parts.hostname:
            return [_error(field_name, "URL must have a valid hostname", "INVALID_URL_HOSTNAME")]
        return []

    @staticmethod
    def raise_for_result(result: ConfigValidationResult) -> None:
        """Raise ConfigError if ``result`` holds any error."""
        if not result.valid:
            raise ConfigError.validation_failed([str(issue) for issue in result.errors])
