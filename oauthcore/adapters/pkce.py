"""PKCE adapter using the ``secrets`` CSPRNG.

RFC 7636 - Proof Key for Code Exchange for OAuth 2.0 public clients.
Uses S256 challenge method (SHA-256 hash of the code verifier).
"""

from __future__ import annotations

import hashlib
import secrets

from base64 import urlsafe_b64encode

from ..types import PKCEChallenge
from .base import PKCEAdapter


class SecretsPKCEAdapter(PKCEAdapter):
    """Generate S256 PKCE pairs and state values.

    Parameters
    ----------
    verifier_length : int
        Number of random bytes behind the verifier. RFC 7636 requires the
        encoded verifier to be 43-128 characters, so 32-96 bytes.
    state_length : int
        Number of random bytes behind the state value.
    """

    def __init__(self, verifier_length: int = 64, state_length: int = 32) -> None:
        if not 32 <= verifier_length <= 96:
            msg = f"verifier_length must be between 32 and 96, got {verifier_length}"
            raise ValueError(msg)
        self.verifier_length = verifier_length
        self.state_length = state_length

    async def generate_code_challenge(self) -> PKCEChallenge:
        verifier = secrets.token_urlsafe(self.verifier_length)
        digest = hashlib.sha256(verifier.encode("ascii")).digest()
        challenge = urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")
        return PKCEChallenge(
            code_challenge=challenge,
            code_challenge_method="S256",
            code_verifier=verifier,
        )

    async def generate_state(self) -> str:
        return secrets.token_urlsafe(self.state_length)
