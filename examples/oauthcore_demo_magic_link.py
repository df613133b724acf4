"""Demo: authorization-code and magic-link sign-in with oauthcore.

Demonstrates the documented coordinator patterns:

- ``OAuthCore(config, adapters)`` as the composition root
- ``generate_authorization_url()`` for the PKCE redirect
- ``handle_callback(url)`` for whatever comes back (code or magic link)
- ``on(OAuthEvent..., listener)`` for progress reporting
- ``logout()`` for teardown

The authorization server is simulated with ``httpx.MockTransport`` so the
demo runs offline. Point ``OAuthEndpoints`` at a real server and drop the
``client=`` argument of ``HttpxAdapter`` to talk to one.

Run::

    OAUTHCORE_LOG__LEVEL=DEBUG python examples/oauthcore_demo_magic_link.py
"""

from __future__ import annotations

import asyncio
import secrets

from urllib.parse import parse_qs

import httpx

from oauthcore import (
    FlowConfiguration,
    HttpxAdapter,
    MagicLinkLoginFlowHandler,
    MemoryStorageAdapter,
    OAuthAdapters,
    OAuthConfig,
    OAuthCore,
    OAuthEndpoints,
    OAuthError,
    OAuthEvent,
    SecretsPKCEAdapter,
)


# ───────────────────────────────────────────────────────────
# Simulated authorization server
# ───────────────────────────────────────────────────────────


def fake_server(request: httpx.Request) -> httpx.Response:
    """Issue tokens for any grant and acknowledge revocations."""
    if request.url.path == "/revoke":
        return httpx.Response(200)

    form = {key: values[0] for key, values in parse_qs(request.content.decode()).items()}
    if form.get("grant_type") == "magic_link" and form.get("token") == "expired":
        return httpx.Response(
            400, json={"error": "invalid_grant", "error_description": "Magic link has expired"}
        )
    return httpx.Response(
        200,
        json={
            "access_token": f"at-{secrets.token_hex(4)}",
            "refresh_token": f"rt-{secrets.token_hex(4)}",
            "expires_in": 3600,
            "token_type": "Bearer",
        },
    )


# ───────────────────────────────────────────────────────────
# Coordinator setup
# ───────────────────────────────────────────────────────────


def build_core(client: httpx.AsyncClient) -> OAuthCore:
    http = HttpxAdapter(client=client)
    adapters = OAuthAdapters(storage=MemoryStorageAdapter(), http=http, pkce=SecretsPKCEAdapter())
    config = OAuthConfig(
        client_id="demo-client",
        endpoints=OAuthEndpoints(
            authorization="https://auth.example.com/authorize",
            token="https://auth.example.com/token",
            revocation="https://auth.example.com/revoke",
        ),
        redirect_uri="https://app.example.com/callback",
        scopes="openid profile",
        flows=FlowConfiguration(custom_flows=(MagicLinkLoginFlowHandler(),)),
    )
    core = OAuthCore(config, adapters)

    core.on(OAuthEvent.AUTH_STATUS_CHANGE, lambda new, old: print(f"  status: {old.value} -> {new.value}"))
    core.on(OAuthEvent.FLOW_DETECTED, lambda name, confidence, _: print(f"  flow: {name} ({confidence}%)"))
    core.on(OAuthEvent.AUTH_ERROR, lambda data: print(f"  error: {data.error.user_message}"))
    return core


async def main() -> None:
    client = httpx.AsyncClient(transport=httpx.MockTransport(fake_server))
    core = build_core(client)
    try:
        print("1. Authorization code with PKCE")
        request = await core.generate_authorization_url({"prompt": "login"})
        print(f"  open: {request.url[:80]}...")
        # The browser would redirect back here after the user signs in
        await core.handle_callback(f"https://app.example.com/callback?code=demo&state={request.state}")
        print(f"  access token: {await core.get_access_token()}")
        print(f"  refresh armed: {core.is_token_refresh_scheduled()}")

        print("2. Refresh")
        result = await core.refresh_access_token()
        print(f"  new access token: {result.access_token}")

        print("3. Logout")
        await core.logout()
        print(f"  access token after logout: {await core.get_access_token()}")

        print("4. Magic link login")
        await core.handle_callback("https://app.example.com/callback?token=ml-123&flow=login")
        print(f"  authenticated: {core.is_authenticated}")

        print("5. Expired magic link")
        try:
            await core.handle_callback({"token": "expired"})
        except OAuthError as exc:
            print(f"  rejected: {exc}")
    finally:
        core.destroy()
        await client.aclose()


if __name__ == "__main__":
    asyncio.run(main())
