"""Type definitions shared across oauthcore components.

All timestamps are Unix epoch milliseconds, matching the values persisted
through the storage adapter.
"""

from __future__ import annotations

import time

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any


if TYPE_CHECKING:
    from .flows.base import FlowHandler


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


class StorageKey(str, Enum):
    """Flat storage namespace used by the core components."""

    CODE_VERIFIER = "pkce_code_verifier"
    CODE_CHALLENGE = "pkce_code_challenge"
    CODE_CHALLENGE_METHOD = "pkce_code_challenge_method"
    STATE = "oauth_state"
    STATE_EXPIRY = "oauth_state_expiry"
    ACCESS_TOKEN = "access_token"  # noqa: S105
    REFRESH_TOKEN = "refresh_token"  # noqa: S105
    TOKEN_TYPE = "token_type"  # noqa: S105
    TOKEN_EXPIRY = "token_expiry"  # noqa: S105


PKCE_KEYS: tuple[str, ...] = (
    StorageKey.CODE_VERIFIER.value,
    StorageKey.CODE_CHALLENGE.value,
    StorageKey.CODE_CHALLENGE_METHOD.value,
)

TOKEN_KEYS: tuple[str, ...] = (
    StorageKey.ACCESS_TOKEN.value,
    StorageKey.REFRESH_TOKEN.value,
    StorageKey.TOKEN_TYPE.value,
    StorageKey.TOKEN_EXPIRY.value,
)


class AuthStatus(str, Enum):
    """Authentication status of a coordinator."""

    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    REFRESHING = "refreshing"
    EXPIRED = "expired"
    ERROR = "error"


class OAuthOperation(str, Enum):
    """Named operations tracked by the loading manager."""

    GENERATE_AUTH_URL = "generate_authorization_url"
    HANDLE_CALLBACK = "handle_callback"
    REFRESH_TOKEN = "refresh_token"  # noqa: S105
    REVOKE_TOKEN = "revoke_token"  # noqa: S105
    EXCHANGE_CODE = "exchange_code"
    EXCHANGE_MAGIC_LINK = "exchange_magic_link"
    VALIDATE_STATE = "validate_state"
    GENERATE_PKCE = "generate_pkce"
    STORE_TOKENS = "store_tokens"
    CLEAR_TOKENS = "clear_tokens"
    LOGOUT = "logout"


@dataclass(frozen=True)
class PKCEChallenge:
    """A PKCE verifier/challenge pair.

    The verifier is secret: it is persisted locally and only ever sent
    to the token endpoint.
    """

    code_challenge: str
    code_challenge_method: str
    code_verifier: str


@dataclass(frozen=True)
class HttpResponse:
    """Response returned by an HttpAdapter.

    ``data`` is the decoded JSON body when the server returned JSON,
    otherwise the raw text (or None for an empty body).
    """

    status: int
    data: Any = None
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 400


@dataclass
class OAuthTokens:
    """Tokens issued by the token endpoint.

    Attributes
    ----------
    access_token : str
        The access token.
    refresh_token : str or None
        Optional refresh token.
    expires_in : int or None
        Lifetime in seconds from issuance.
    token_type : str or None
        Token type, typically "Bearer".
    scope : str or None
        Space-separated granted scopes.
    issued_at : int or None
        Issuance time (epoch ms) when known. When absent, expiry is
        derived from the time it is read.
    """

    access_token: str
    refresh_token: str | None = None
    expires_in: int | None = None
    token_type: str | None = None
    scope: str | None = None
    issued_at: int | None = None

    @classmethod
    def from_response(cls, data: dict[str, Any], issued_at: int | None = None) -> OAuthTokens:
        """Build tokens from a token endpoint JSON body."""
        expires_in = data.get("expires_in")
        return cls(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            expires_in=int(expires_in) if expires_in is not None else None,
            token_type=data.get("token_type"),
            scope=data.get("scope"),
            issued_at=issued_at,
        )


@dataclass
class OAuthResult:
    """Outcome of a token exchange or flow execution."""

    success: bool
    access_token: str | None = None
    refresh_token: str | None = None
    expires_in: int | None = None
    token_type: str | None = None
    scope: str | None = None
    error: str | None = None
    error_code: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_tokens(cls, tokens: OAuthTokens, **metadata: Any) -> OAuthResult:
        return cls(
            success=True,
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            expires_in=tokens.expires_in,
            token_type=tokens.token_type,
            scope=tokens.scope,
            metadata=metadata,
        )

    @classmethod
    def failure(cls, error: str, error_code: str) -> OAuthResult:
        return cls(success=False, error=error, error_code=error_code)

    def to_tokens(self, issued_at: int | None = None) -> OAuthTokens | None:
        """Return the tokens carried by a successful result."""
        if not self.success or not self.access_token:
            return None
        return OAuthTokens(
            access_token=self.access_token,
            refresh_token=self.refresh_token,
            expires_in=self.expires_in,
            token_type=self.token_type,
            scope=self.scope,
            issued_at=issued_at,
        )


@dataclass(frozen=True)
class FlowDetectionResult:
    """The handler chosen for a callback and why."""

    handler: FlowHandler
    confidence: int
    reason: str


@dataclass(frozen=True)
class AuthorizationRequest:
    """An authorization URL and the state value embedded in it."""

    url: str
    state: str
