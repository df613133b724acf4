"""Reusable building blocks for flow handlers."""

from __future__ import annotations

import contextlib
import logging
import time

from typing import TYPE_CHECKING

from ..exceptions import FlowError, ValidationError
from ..params import extract_oauth_error, get_first_param


if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from ..config import OAuthConfig
    from ..params import CallbackParams


logger = logging.getLogger("oauthcore.flows")

MAGIC_LINK_TOKEN_KEYS = ("token", "magic_link_token")

# Callback parameters forwarded to the token endpoint in a magic-link exchange
_MAGIC_LINK_FORWARDED = ("code_challenge", "code_challenge_method", "code_verifier", "state")


def check_for_oauth_error(params: CallbackParams) -> None:
    """Raise FlowError if the callback carries an OAuth ``error`` parameter."""
    error, description = extract_oauth_error(params)
    if error is not None:
        raise FlowError.provider_error(error, description)


def require_param(params: CallbackParams, name: str) -> str:
    """Return a non-empty parameter or raise ValidationError."""
    value = params.get(name)
    if not value:
        raise ValidationError.missing_required_parameter(name)
    return value


def validate_required_params(params: CallbackParams, names: Iterable[str], flow_name: str) -> None:
    """Raise FlowError listing every missing parameter."""
    missing = [name for name in names if not params.get(name)]
    if missing:
        raise FlowError.missing_parameters(flow_name, missing)


def has_magic_link_token(params: CallbackParams) -> bool:
    return any(key in params for key in MAGIC_LINK_TOKEN_KEYS)


def extract_magic_link_token(params: CallbackParams) -> str:
    token = get_first_param(params, MAGIC_LINK_TOKEN_KEYS)
    if not token:
        raise ValidationError.missing_required_parameter("token or magic_link_token")
    return token


def is_flow_disabled(name: str, config: OAuthConfig) -> bool:
    return config.flows is not None and name in config.flows.disabled_flows


def build_magic_link_params(params: CallbackParams) -> dict[str, str]:
    """Select the callback fields a magic-link exchange forwards."""
    extra = {key: params[key] for key in _MAGIC_LINK_FORWARDED if params.get(key)}
    if params.get("flow"):
        extra["flow"] = params["flow"]
    return extra


@contextlib.contextmanager
def measure_execution_time(flow_name: str, operation: str) -> Iterator[None]:
    """Log how long the wrapped block took, whether or not it raised."""
    started = time.monotonic()
    try:
        yield
    finally:
        elapsed_ms = (time.monotonic() - started) * 1000
        logger.debug("[%s] %s took %.1fms", flow_name, operation, elapsed_ms)
