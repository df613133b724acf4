"""CSRF state issuing and single-use validation."""

from __future__ import annotations

import hmac
import logging

from typing import TYPE_CHECKING

from ..exceptions import ValidationError, ValidationErrorCode
from ..types import StorageKey, now_ms


if TYPE_CHECKING:
    from ..adapters.base import StorageAdapter


logger = logging.getLogger("oauthcore.core")

DEFAULT_STATE_TTL_MS = 10 * 60 * 1000

_STATE_KEYS = (StorageKey.STATE.value, StorageKey.STATE_EXPIRY.value)


def _storage_error(message: str, exc: Exception) -> ValidationError:
    return ValidationError(
        message,
        ValidationErrorCode.STATE_STORAGE_FAILED,
        metadata={"original_error": exc},
    )


class StateValidator:
    """Persists a CSRF state value with an absolute expiry and checks it.

    A successful ``validate_state`` deletes the stored state, so each issued
    value can be consumed at most once. A mismatch leaves storage untouched
    so the legitimate callback can still complete.

    Storage failures are wrapped in ``ValidationError``, except in
    ``is_state_expired``, ``has_stored_state`` and ``get_state_remaining_ttl``,
    which degrade to the safe answer (expired, absent, zero).

    Parameters
    ----------
    storage : StorageAdapter
        Where the state and its expiry live.
    ttl_ms : int
        Default lifetime of a stored state (ten minutes).
    """

    def __init__(self, storage: StorageAdapter, ttl_ms: int = DEFAULT_STATE_TTL_MS) -> None:
        self._storage = storage
        self.ttl_ms = ttl_ms

    async def store_state(self, state: str, ttl_ms: int | None = None) -> None:
        """Persist ``state`` with expiry ``now + ttl_ms``."""
        expiry = now_ms() + (self.ttl_ms if ttl_ms is None else ttl_ms)
        try:
            await self._storage.set_item(StorageKey.STATE.value, state)
            await self._storage.set_item(StorageKey.STATE_EXPIRY.value, str(expiry))
        except Exception as exc:
            raise _storage_error("Failed to store OAuth state", exc) from exc

    async def get_stored_state(self) -> str | None:
        try:
            return await self._storage.get_item(StorageKey.STATE.value)
        except Exception as exc:
            raise _storage_error("Failed to retrieve stored state", exc) from exc

    async def _read_expiry(self) -> int | None:
        raw = await self._storage.get_item(StorageKey.STATE_EXPIRY.value)
        if not raw:
            return None
        return int(raw)

    async def is_state_expired(self) -> bool:
        """Return True if no expiry is stored or ``now >= expiry``.

        Any storage or parse failure counts as expired.
        """
        try:
            expiry = await self._read_expiry()
        except Exception:
            logger.warning("Could not read state expiry; treating state as expired", exc_info=True)
            return True
        return expiry is None or now_ms() >= expiry

    async def has_stored_state(self) -> bool:
        """Return True only if a state is stored and still unexpired."""
        try:
            state = await self._storage.get_item(StorageKey.STATE.value)
        except Exception:
            logger.warning("Could not read stored state", exc_info=True)
            return False
        return state is not None and not await self.is_state_expired()

    async def get_state_remaining_ttl(self) -> int:
        """Milliseconds until the stored state expires (0 when expired or unknown)."""
        try:
            expiry = await self._read_expiry()
        except Exception:
            logger.warning("Could not read state expiry", exc_info=True)
            return 0
        if expiry is None:
            return 0
        return max(0, expiry - now_ms())

    async def validate_state(self, candidate: str) -> bool:
        """Check ``candidate`` against the stored, unexpired state.

        On success the state is consumed. An expired state is cleaned up and
        rejected.
        """
        if await self.is_state_expired():
            await self.clear_state()
            return False

        stored = await self.get_stored_state()
        if not stored or not candidate:
            return False

        if not hmac.compare_digest(stored.encode(), candidate.encode()):
            logger.warning("OAuth state mismatch")
            return False

        await self.clear_state()
        return True

    async def validate_state_or_raise(self, candidate: str) -> None:
        """Like ``validate_state`` but raise ``ValidationError`` on failure."""
        if not await self.validate_state(candidate):
            raise ValidationError.invalid_state()

    async def clear_state(self) -> None:
        try:
            await self._storage.remove_items(_STATE_KEYS)
        except Exception as exc:
            raise _storage_error("Failed to clear OAuth state", exc) from exc

    async def extend_state_expiry(self, extra_ms: int | None = None) -> None:
        """Reset the expiry to ``now + extra_ms`` (the default TTL when omitted)."""
        expiry = now_ms() + (self.ttl_ms if extra_ms is None else extra_ms)
        try:
            await self._storage.set_item(StorageKey.STATE_EXPIRY.value, str(expiry))
        except Exception as exc:
            raise _storage_error("Failed to extend state expiry", exc) from exc

    async def cleanup_expired_state(self) -> bool:
        """Remove the stored state if it has expired. Returns whether it did."""
        if await self.is_state_expired():
            await self.clear_state()
            return True
        return False
