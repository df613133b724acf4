"""PKCE material lifecycle: generate, persist, read back, clear."""

from __future__ import annotations

import logging

from typing import TYPE_CHECKING

from ..exceptions import ConfigError, ConfigErrorCode, ValidationError
from ..types import PKCE_KEYS, PKCEChallenge, StorageKey


if TYPE_CHECKING:
    from ..adapters.base import PKCEAdapter, StorageAdapter


logger = logging.getLogger("oauthcore.core")


class PKCEManager:
    """Generates PKCE pairs through the PKCE adapter and keeps them in storage.

    ``validate_state`` here is a plain equality check against the stored
    state with no TTL. Callers needing expiry and single-use semantics go
    through ``StateValidator``.
    """

    def __init__(self, pkce: PKCEAdapter, storage: StorageAdapter) -> None:
        self._pkce = pkce
        self._storage = storage

    async def generate_challenge(self) -> PKCEChallenge:
        """Create a verifier/challenge pair and persist all three fields."""
        try:
            challenge = await self._pkce.generate_code_challenge()
        except Exception as exc:
            raise ConfigError(
                "Failed to generate PKCE challenge",
                ConfigErrorCode.PKCE_GENERATION_FAILED,
                metadata={"original_error": exc},
            ) from exc

        try:
            await self._storage.set_item(StorageKey.CODE_VERIFIER.value, challenge.code_verifier)
            await self._storage.set_item(StorageKey.CODE_CHALLENGE.value, challenge.code_challenge)
            await self._storage.set_item(
                StorageKey.CODE_CHALLENGE_METHOD.value, challenge.code_challenge_method
            )
        except Exception as exc:
            raise ValidationError.pkce_failure("Failed to store PKCE challenge", exc) from exc
        return challenge

    async def generate_state(self) -> str:
        """Create a random state and persist it."""
        try:
            state = await self._pkce.generate_state()
        except Exception as exc:
            raise ConfigError(
                "Failed to generate OAuth state",
                ConfigErrorCode.PKCE_GENERATION_FAILED,
                metadata={"original_error": exc},
            ) from exc
        await self._set(StorageKey.STATE, state, "Failed to store OAuth state")
        return state

    async def _set(self, key: StorageKey, value: str, message: str) -> None:
        try:
            await self._storage.set_item(key.value, value)
        except Exception as exc:
            raise ValidationError.pkce_failure(message, exc) from exc

    async def _get(self, key: StorageKey) -> str | None:
        try:
            return await self._storage.get_item(key.value)
        except Exception as exc:
            raise ValidationError.pkce_failure(f"Failed to retrieve {key.value}", exc) from exc

    async def get_code_verifier(self) -> str | None:
        return await self._get(StorageKey.CODE_VERIFIER)

    async def get_code_challenge(self) -> str | None:
        return await self._get(StorageKey.CODE_CHALLENGE)

    async def get_stored_state(self) -> str | None:
        return await self._get(StorageKey.STATE)

    async def get_all_pkce_data(self) -> dict[str, str | None]:
        """Return verifier, challenge, method and state in one call."""
        return {
            "code_verifier": await self._get(StorageKey.CODE_VERIFIER),
            "code_challenge": await self._get(StorageKey.CODE_CHALLENGE),
            "code_challenge_method": await self._get(StorageKey.CODE_CHALLENGE_METHOD),
            "state": await self._get(StorageKey.STATE),
        }

    async def clear_pkce_data(self) -> None:
        """Remove verifier, challenge and method. The state is left alone."""
        try:
            await self._storage.remove_items(PKCE_KEYS)
        except Exception as exc:
            raise ValidationError.pkce_failure("Failed to clear PKCE data", exc) from exc

    async def has_pkce_data(self) -> bool:
        """Return True if a verifier is stored. Read failures count as absent."""
        try:
            return await self._storage.get_item(StorageKey.CODE_VERIFIER.value) is not None
        except Exception:
            logger.warning("Could not read PKCE verifier", exc_info=True)
            return False

    async def validate_state(self, candidate: str) -> bool:
        return await self.get_stored_state() == candidate
