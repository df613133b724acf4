"""Token exchange, persistence and revocation."""

# pylint: disable=logging-too-many-args

from __future__ import annotations

import logging
import time

from typing import TYPE_CHECKING, Any

from ..events import OAuthEvent
from ..exceptions import NetworkError, OAuthError, TokenError
from ..log import redact_sensitive_data
from ..types import TOKEN_KEYS, OAuthResult, OAuthTokens, StorageKey, now_ms


if TYPE_CHECKING:
    from collections.abc import Mapping

    from ..adapters.base import HttpAdapter, StorageAdapter
    from ..config import OAuthConfig
    from ..events import EventEmitter
    from ..types import HttpResponse


logger = logging.getLogger("oauthcore.core")

_TOKEN_REQUEST_HEADERS = {
    "Content-Type": "application/x-www-form-urlencoded",
    "Accept": "application/json",
}


class TokenManager:
    """Exchanges grants for tokens and keeps them in storage.

    Tokens are stored as four discrete keys (access token, refresh token,
    token type, absolute expiry in epoch ms) so any of them can be read on
    its own.

    Write paths wrap failures in typed errors. The plain getters let storage
    exceptions propagate as-is.

    Parameters
    ----------
    storage : StorageAdapter
        Where tokens are persisted.
    http : HttpAdapter
        Transport for the token and revocation endpoints.
    emitter : EventEmitter, optional
        Receives ``NETWORK_REQUEST_*`` events.
    """

    def __init__(
        self,
        storage: StorageAdapter,
        http: HttpAdapter,
        emitter: EventEmitter | None = None,
    ) -> None:
        self._storage = storage
        self._http = http
        self._emitter = emitter

    def _emit(self, event: OAuthEvent, *args: Any) -> None:
        if self._emitter is not None:
            self._emitter.emit(event, *args)

    # ── Grants ──────────────────────────────────────────────────────

    async def exchange_authorization_code(
        self, code: str, code_verifier: str, config: OAuthConfig
    ) -> OAuthResult:
        """Redeem an authorization code with its PKCE verifier."""
        body = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": config.redirect_uri,
            "code_verifier": code_verifier,
            "client_id": config.client_id,
        }
        return await self._request_tokens(body, config)

    async def exchange_magic_link_token(
        self,
        token: str,
        config: OAuthConfig,
        extra_params: Mapping[str, str] | None = None,
    ) -> OAuthResult:
        """Redeem a magic-link token.

        ``extra_params`` (flow, state, PKCE fields) are forwarded in the
        request body. They never override the grant fields.
        """
        body = {key: value for key, value in (extra_params or {}).items() if value}
        body.update(
            {
                "grant_type": "magic_link",
                "token": token,
                "redirect_uri": config.redirect_uri,
                "client_id": config.client_id,
            }
        )
        return await self._request_tokens(body, config)

    async def refresh_token(self, refresh_token: str, config: OAuthConfig) -> OAuthResult:
        """Obtain a new access token with ``refresh_token``."""
        body = {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
            "client_id": config.client_id,
        }
        return await self._request_tokens(body, config)

    async def _request_tokens(self, body: dict[str, str], config: OAuthConfig) -> OAuthResult:
        url = config.endpoints.token
        response = await self._post(url, body)

        if response.status >= 400:
            logger.debug(
                "Token endpoint returned HTTP %s: %s", response.status, redact_sensitive_data(response.data)
            )
            raise self._error_for_response(response, url)

        data = response.data
        if not isinstance(data, dict):
            raise TokenError.invalid_response("expected a JSON object", response.status)
        access_token = data.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            raise TokenError.invalid_response("missing access_token", response.status)

        try:
            tokens = OAuthTokens.from_response(data, issued_at=now_ms())
        except (TypeError, ValueError) as exc:
            raise TokenError.invalid_response(str(exc), response.status) from exc

        await self.store_tokens(tokens, keep_refresh_token=body["grant_type"] == "refresh_token")
        logger.debug("Token request '%s' succeeded", body["grant_type"])
        return OAuthResult.from_tokens(tokens, issued_at=tokens.issued_at)

    async def _post(self, url: str, body: dict[str, str]) -> HttpResponse:
        self._emit(OAuthEvent.NETWORK_REQUEST_START, url, "POST")
        started = time.monotonic()
        try:
            response = await self._http.post(url, body, dict(_TOKEN_REQUEST_HEADERS))
        except OAuthError as exc:
            self._emit(OAuthEvent.NETWORK_REQUEST_ERROR, url, "POST", exc)
            raise
        except Exception as exc:
            self._emit(OAuthEvent.NETWORK_REQUEST_ERROR, url, "POST", exc)
            raise NetworkError.from_connection_error(exc, url, "POST") from exc
        duration_ms = int((time.monotonic() - started) * 1000)
        self._emit(OAuthEvent.NETWORK_REQUEST_COMPLETE, url, "POST", response.status, duration_ms)
        return response

    @staticmethod
    def _error_for_response(response: HttpResponse, url: str) -> OAuthError:
        data = response.data
        oauth_error = data.get("error") if isinstance(data, dict) else None
        if response.status < 500 and response.status != 429 and isinstance(oauth_error, str):
            return TokenError.from_token_response(
                oauth_error,
                data.get("error_description"),
                data.get("error_uri"),
                status_code=response.status,
            )
        return NetworkError.from_http_response(
            response.status, data, url=url, method="POST", headers=response.headers
        )

    # ── Storage ─────────────────────────────────────────────────────

    async def store_tokens(self, tokens: OAuthTokens, keep_refresh_token: bool = False) -> None:
        """Persist ``tokens``.

        When ``tokens`` carries no refresh token the stored one is removed,
        unless ``keep_refresh_token`` is set. Refresh grants set it, since
        servers may omit the refresh token when they do not rotate it.
        """
        issued_at = tokens.issued_at if tokens.issued_at is not None else now_ms()
        try:
            await self._storage.set_item(StorageKey.ACCESS_TOKEN.value, tokens.access_token)
            if tokens.refresh_token:
                await self._storage.set_item(StorageKey.REFRESH_TOKEN.value, tokens.refresh_token)
            elif not keep_refresh_token:
                await self._storage.remove_item(StorageKey.REFRESH_TOKEN.value)
            await self._storage.set_item(StorageKey.TOKEN_TYPE.value, tokens.token_type or "Bearer")
            if tokens.expires_in is not None:
                expiry = issued_at + tokens.expires_in * 1000
                await self._storage.set_item(StorageKey.TOKEN_EXPIRY.value, str(expiry))
            else:
                await self._storage.remove_item(StorageKey.TOKEN_EXPIRY.value)
        except Exception as exc:
            raise TokenError.storage_failed(exc) from exc

    async def get_access_token(self) -> str | None:
        return await self._storage.get_item(StorageKey.ACCESS_TOKEN.value)

    async def get_refresh_token(self) -> str | None:
        return await self._storage.get_item(StorageKey.REFRESH_TOKEN.value)

    async def get_token_type(self) -> str | None:
        return await self._storage.get_item(StorageKey.TOKEN_TYPE.value)

    async def get_token_expiry(self) -> int | None:
        """Stored absolute expiry in epoch ms, or None."""
        raw = await self._storage.get_item(StorageKey.TOKEN_EXPIRY.value)
        return int(raw) if raw else None

    async def is_token_expired(self) -> bool:
        """Compare the stored expiry with now. No stored expiry means not expired."""
        expiry = await self.get_token_expiry()
        if expiry is None:
            return False
        return now_ms() >= expiry

    async def get_time_until_expiration(self) -> int | None:
        """Milliseconds until the stored expiry (negative once passed), or None."""
        expiry = await self.get_token_expiry()
        if expiry is None:
            return None
        return expiry - now_ms()

    async def clear_tokens(self) -> None:
        try:
            await self._storage.remove_items(TOKEN_KEYS)
        except Exception as exc:
            raise TokenError.storage_failed(exc) from exc

    async def revoke_tokens(self, config: OAuthConfig) -> bool:
        """Ask the server to revoke the access token, then clear local tokens.

        The remote call is best effort: its failure is logged and local
        tokens are cleared regardless.

        Returns
        -------
        bool
            True if the server acknowledged the revocation.
        """
        revoked = False
        try:
            access_token = await self.get_access_token()
            url = config.endpoints.revocation
            if access_token and url:
                response = await self._post(
                    url,
                    {
                        "token": access_token,
                        "token_type_hint": "access_token",
                        "client_id": config.client_id,
                    },
                )
                revoked = response.ok
                if not revoked:
                    logger.warning("Token revocation returned HTTP %s", response.status)
        except Exception as exc:
            logger.warning("Token revocation failed: %s", exc)

        await self.clear_tokens()
        return revoked
