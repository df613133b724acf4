"""Expiration arithmetic over OAuthTokens.

When a token set carries ``issued_at`` the expiry is exact. Without it the
lifetime is counted from the moment of the call, which overstates the
remaining lifetime of a token that was issued earlier.
"""

from __future__ import annotations

import sys

from typing import TYPE_CHECKING

from .types import now_ms


if TYPE_CHECKING:
    from .types import OAuthTokens


# Returned when a token never expires
NO_EXPIRATION = sys.maxsize


def get_expiration_time(tokens: OAuthTokens, now: int | None = None) -> int | None:
    """Absolute expiry in epoch ms, or None when the lifetime is unknown."""
    if tokens.expires_in is None:
        return None
    issued_at = tokens.issued_at
    if issued_at is None:
        issued_at = now_ms() if now is None else now
    return issued_at + tokens.expires_in * 1000


def is_token_expired(tokens: OAuthTokens, now: int | None = None) -> bool:
    """Return whether ``tokens`` are expired at ``now``.

    Unknown lifetimes are never expired. A lifetime of zero always is.
    """
    now = now_ms() if now is None else now
    expiration = get_expiration_time(tokens, now)
    if expiration is None:
        return False
    if tokens.expires_in == 0:
        return True
    return now >= expiration


def get_time_until_expiration(tokens: OAuthTokens, now: int | None = None) -> int:
    """Milliseconds until expiry.

    Returns ``NO_EXPIRATION`` for unknown lifetimes and -1 for a zero lifetime.
    The value is negative once the token has expired.
    """
    now = now_ms() if now is None else now
    expiration = get_expiration_time(tokens, now)
    if expiration is None:
        return NO_EXPIRATION
    if tokens.expires_in == 0:
        return -1
    return expiration - now


def should_refresh_token(tokens: OAuthTokens, buffer_ms: int = 300_000, now: int | None = None) -> bool:
    """Return whether ``tokens`` are expired or within ``buffer_ms`` of expiring."""
    remaining = get_time_until_expiration(tokens, now)
    if remaining == NO_EXPIRATION:
        return False
    return remaining <= buffer_ms
