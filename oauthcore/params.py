"""Callback parameter parsing.

Callbacks arrive as a full redirect URL, a bare query string (with or
without the leading ``?``) or an already-parsed mapping. Everything is
normalised to a plain ``dict[str, str]``; for repeated keys the first
occurrence wins.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any
from urllib.parse import parse_qsl, urlsplit

from .log import REDACTED


CallbackParams = dict[str, str]

_LOG_REDACTED_KEYS = frozenset(
    {"code", "token", "magic_link_token", "access_token", "refresh_token", "code_verifier"}
)


def parse_params(raw: str | Mapping[str, Any]) -> CallbackParams:
    """Normalise raw callback input into a parameter dict.

    Parameters
    ----------
    raw : str or Mapping
        A URL, a query string, or a mapping whose values may be lists
        (only the first element is kept) or scalars.

    Returns
    -------
    dict[str, str]
        The parsed parameters.
    """
    if isinstance(raw, Mapping):
        params: CallbackParams = {}
        for key, value in raw.items():
            if isinstance(value, (list, tuple)):
                if not value:
                    continue
                value = value[0]
            if value is None:
                continue
            params[str(key)] = str(value)
        return params

    text = raw.strip()
    if "://" in text:
        parts = urlsplit(text)
        text = parts.query or parts.fragment
    elif text.startswith("?"):
        text = text[1:]

    params = {}
    for key, value in parse_qsl(text, keep_blank_values=True):
        params.setdefault(key, value)
    return params


def get_first_param(params: Mapping[str, str], keys: Iterable[str]) -> str | None:
    """Return the first non-empty value among ``keys``."""
    for key in keys:
        value = params.get(key)
        if value:
            return value
    return None


def has_required_params(params: Mapping[str, str], keys: Iterable[str]) -> bool:
    return all(key in params for key in keys)


def has_any_params(params: Mapping[str, str], keys: Iterable[str]) -> bool:
    return any(key in params for key in keys)


def has_oauth_error(params: Mapping[str, str]) -> bool:
    """Return whether the authorization server redirected back with an error."""
    return "error" in params


def extract_oauth_error(params: Mapping[str, str]) -> tuple[str | None, str | None]:
    """Return the ``(error, error_description)`` pair from callback params."""
    return params.get("error"), params.get("error_description")


def sanitize_for_logging(params: Mapping[str, str]) -> dict[str, str]:
    """Copy ``params`` with codes and tokens replaced by ``[REDACTED]``."""
    return {
        key: (REDACTED if key in _LOG_REDACTED_KEYS else value) for key, value in params.items()
    }
