"""Configuration for oauthcore.

Two layers live here:

``OAuthConfig``
    The per-client OAuth configuration (client id, endpoints, redirect URI,
    scopes, flow selection). Frozen pydantic models: type-checked and
    immutable, but semantic checks belong to ``ConfigValidator``.

``OAuthCoreSettings``
    Runtime tuning loaded with pydantic-settings from layered sources:

    1. Built-in defaults (lowest priority)
    2. pyproject.toml [tool.oauthcore] section
    3. ./oauthcore.toml
    4. ~/.config/oauthcore/config.toml
    5. File named by OAUTHCORE_CONFIG_FILE
    6. Environment variables (highest priority)

Environment variables use the OAUTHCORE_ prefix with nested delimiter __.
Example: OAUTHCORE_TOKEN__REFRESH_BUFFER_MS, OAUTHCORE_LOG__LEVEL
"""

from __future__ import annotations

import logging
import os
import sys

from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

logger = logging.getLogger("oauthcore.config")


def _find_config_files() -> list[Path]:
    """Find all configuration files in order of precedence (lowest first)."""
    files = []

    pyproject = Path("pyproject.toml")
    if pyproject.exists():
        files.append(pyproject)

    project_toml = Path("oauthcore.toml")
    if project_toml.exists():
        files.append(project_toml)

    if sys.platform == "win32":
        user_config = Path(os.environ.get("APPDATA", "~")) / "oauthcore" / "config.toml"
    else:
        user_config = Path("~/.config/oauthcore/config.toml")
    user_config = user_config.expanduser()
    if user_config.exists():
        files.append(user_config)

    env_config = os.environ.get("OAUTHCORE_CONFIG_FILE")
    if env_config:
        env_path = Path(env_config)
        if env_path.exists():
            files.append(env_path)

    return files


def _load_toml_config() -> dict[str, Any]:
    """Load and merge all TOML configuration files."""
    merged: dict[str, Any] = {}

    for config_file in _find_config_files():
        try:
            data = tomllib.loads(config_file.read_text(encoding="utf-8"))
        except (OSError, tomllib.TOMLDecodeError) as exc:
            logger.warning("Ignoring unreadable config file %s: %s", config_file, exc)
            continue

        if config_file.name == "pyproject.toml":
            data = data.get("tool", {}).get("oauthcore", {})

        merged = _deep_merge(merged, data)

    return merged


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


# ── OAuth client configuration ──────────────────────────────────────


class OAuthEndpoints(BaseModel):
    """Authorization server endpoints."""

    model_config = ConfigDict(frozen=True)

    authorization: str
    token: str
    revocation: str = ""


DetectionStrategy = Literal["auto", "priority", "explicit"]


class FlowConfiguration(BaseModel):
    """Which flow handlers a coordinator registers and how it picks one.

    Attributes
    ----------
    enabled_flows : tuple[str, ...], optional
        When set, only these flows stay registered.
    disabled_flows : tuple[str, ...]
        Flows never registered (built-in or custom).
    custom_flows : tuple[FlowHandler, ...]
        Extra handlers registered after the built-ins.
    default_flow : str, optional
        Flow used when detection finds nothing, and the target of the
        ``explicit`` strategy when no flow name is passed.
    detection_strategy : {"auto", "priority", "explicit"}
        ``auto`` and ``priority`` resolve the best compatible handler;
        ``explicit`` never auto-detects.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    enabled_flows: tuple[str, ...] | None = None
    disabled_flows: tuple[str, ...] = ()
    custom_flows: tuple[Any, ...] = ()
    default_flow: str | None = None
    detection_strategy: DetectionStrategy = "auto"


class OAuthConfig(BaseModel):
    """OAuth client configuration.

    Immutable after construction. Empty values are accepted here and
    reported by ``ConfigValidator`` rather than rejected outright.
    """

    model_config = ConfigDict(frozen=True)

    client_id: str
    endpoints: OAuthEndpoints
    redirect_uri: str
    scopes: tuple[str, ...] = ()
    flows: FlowConfiguration | None = None

    @field_validator("scopes", mode="before")
    @classmethod
    def _parse_scopes(cls, v: Any) -> Any:
        """Accept a space-separated string as well as a sequence."""
        if isinstance(v, str):
            return tuple(v.split())
        return v

    @property
    def scope_string(self) -> str:
        """Scopes joined with spaces, as sent on the wire."""
        return " ".join(self.scopes)


# ── Runtime settings ────────────────────────────────────────────────


class TokenSettings(BaseSettings):
    """Token refresh settings.

    Environment prefix: OAUTHCORE_TOKEN__
    Example: OAUTHCORE_TOKEN__REFRESH_BUFFER_MS=60000
    """

    model_config = SettingsConfigDict(
        env_prefix="OAUTHCORE_TOKEN__",
        extra="ignore",
    )

    auto_refresh: bool = Field(default=True, description="Arm a refresh after each exchange")
    refresh_buffer_ms: int = Field(default=300_000, ge=0)
    min_refresh_delay_ms: int = Field(default=1_000, ge=0)
    max_refresh_delay_ms: int = Field(default=86_400_000, ge=0)


class StateSettings(BaseSettings):
    """CSRF state settings.

    Environment prefix: OAUTHCORE_STATE__
    """

    model_config = SettingsConfigDict(
        env_prefix="OAUTHCORE_STATE__",
        extra="ignore",
    )

    ttl_ms: int = Field(default=600_000, gt=0, description="State lifetime in milliseconds")


class HttpSettings(BaseSettings):
    """Reference HTTP adapter settings.

    Environment prefix: OAUTHCORE_HTTP__
    """

    model_config = SettingsConfigDict(
        env_prefix="OAUTHCORE_HTTP__",
        extra="ignore",
    )

    timeout: float = Field(default=30.0, gt=0, description="Request timeout in seconds")


class LoadingSettings(BaseSettings):
    """Loading tracker settings.

    Environment prefix: OAUTHCORE_LOADING__
    """

    model_config = SettingsConfigDict(
        env_prefix="OAUTHCORE_LOADING__",
        extra="ignore",
    )

    long_operation_threshold_ms: int = Field(default=30_000, ge=0)
    completed_retention_ms: int = Field(default=300_000, ge=0)
    max_tracked_operations: int = Field(default=50, ge=1)


class LogSettings(BaseSettings):
    """Logging settings.

    Environment prefix: OAUTHCORE_LOG__
    Example: OAUTHCORE_LOG__LEVEL=DEBUG
    """

    model_config = SettingsConfigDict(
        env_prefix="OAUTHCORE_LOG__",
        extra="ignore",
    )

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "WARNING"
    format: str = "%(name)s - %(levelname)s - %(message)s"


class OAuthCoreSettings(BaseSettings):
    """Main settings aggregating all configuration sections.

    Environment prefix: OAUTHCORE__
    """

    model_config = SettingsConfigDict(
        env_prefix="OAUTHCORE__",
        env_nested_delimiter="__",
        extra="ignore",
    )

    token: TokenSettings = Field(default_factory=TokenSettings)
    state: StateSettings = Field(default_factory=StateSettings)
    http: HttpSettings = Field(default_factory=HttpSettings)
    loading: LoadingSettings = Field(default_factory=LoadingSettings)
    log: LogSettings = Field(default_factory=LogSettings)

    def __init__(self, **data: Any) -> None:
        # TOML < environment < explicit keyword data
        merged = _deep_merge(_load_toml_config(), _section_env_overrides())
        super().__init__(**_deep_merge(merged, data))


def _section_env_overrides() -> dict[str, dict[str, Any]]:
    """Collect the section values that came from environment variables.

    A section loaded from TOML is validated from a plain dict, which skips
    its own environment lookup, so env-supplied fields are gathered here
    and layered over the TOML values.
    """
    overrides: dict[str, dict[str, Any]] = {}
    for name, field_info in OAuthCoreSettings.model_fields.items():
        section_cls = field_info.annotation
        if not (isinstance(section_cls, type) and issubclass(section_cls, BaseSettings)):
            continue
        section = section_cls()
        if section.model_fields_set:
            overrides[name] = section.model_dump(include=section.model_fields_set)
    return overrides


@lru_cache(maxsize=1)
def get_settings() -> OAuthCoreSettings:
    """Get the global settings instance (cached).

    Call clear_settings() to reload configuration.
    """
    return OAuthCoreSettings()


def clear_settings() -> None:
    """Clear the cached settings to force reload."""
    get_settings.cache_clear()


def reload_settings() -> OAuthCoreSettings:
    """Reload settings from all sources."""
    clear_settings()
    return get_settings()
