"""Tests for StateValidator (CSRF state)."""

# pylint: disable=redefined-outer-name

from __future__ import annotations

import pytest

from fakes import FailingStorageAdapter

from oauthcore.adapters import MemoryStorageAdapter
from oauthcore.core import state_validator as state_module
from oauthcore.core.state_validator import StateValidator
from oauthcore.exceptions import ValidationError, ValidationErrorCode


class FakeClock:
    """Controllable replacement for ``now_ms``."""

    def __init__(self, start: int = 1_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now


@pytest.fixture()
def clock(monkeypatch: pytest.MonkeyPatch) -> FakeClock:
    """Freeze the validator's clock."""
    fake = FakeClock()
    monkeypatch.setattr(state_module, "now_ms", fake)
    return fake


@pytest.fixture()
def validator(storage: MemoryStorageAdapter) -> StateValidator:
    """Create a validator over in-memory storage."""
    return StateValidator(storage)


# ── Storing ─────────────────────────────────────────────────────────


class TestStoreState:
    """store_state persists the value and an absolute expiry."""

    @pytest.mark.asyncio
    async def test_default_ttl(
        self, validator: StateValidator, storage: MemoryStorageAdapter, clock: FakeClock
    ) -> None:
        """The default lifetime is ten minutes."""
        await validator.store_state("s1")
        assert storage.snapshot() == {
            "oauth_state": "s1",
            "oauth_state_expiry": str(clock.now + 600_000),
        }

    @pytest.mark.asyncio
    async def test_custom_ttl(
        self, validator: StateValidator, storage: MemoryStorageAdapter, clock: FakeClock
    ) -> None:
        """An explicit ttl overrides the default."""
        await validator.store_state("s1", ttl_ms=5000)
        assert storage.snapshot()["oauth_state_expiry"] == str(clock.now + 5000)

    @pytest.mark.asyncio
    async def test_storage_failure_wrapped(self) -> None:
        """Write failures surface as ValidationError."""
        validator = StateValidator(FailingStorageAdapter())
        with pytest.raises(ValidationError) as exc_info:
            await validator.store_state("s1")
        assert exc_info.value.code == ValidationErrorCode.STATE_STORAGE_FAILED.value
        assert isinstance(exc_info.value.metadata["original_error"], OSError)


# ── Expiry ──────────────────────────────────────────────────────────


class TestExpiry:
    """Expiry checks use an inclusive boundary."""

    @pytest.mark.asyncio
    async def test_missing_expiry_is_expired(self, validator: StateValidator) -> None:
        """No stored expiry counts as expired."""
        assert await validator.is_state_expired()
        assert not await validator.has_stored_state()

    @pytest.mark.asyncio
    async def test_boundary_inclusive(self, validator: StateValidator, clock: FakeClock) -> None:
        """At exactly the expiry instant the state is expired."""
        await validator.store_state("s1", ttl_ms=1000)
        clock.now += 999
        assert not await validator.is_state_expired()
        assert await validator.has_stored_state()
        clock.now += 1
        assert await validator.is_state_expired()
        assert not await validator.has_stored_state()

    @pytest.mark.asyncio
    async def test_remaining_ttl(self, validator: StateValidator, clock: FakeClock) -> None:
        """Remaining lifetime counts down to zero."""
        await validator.store_state("s1", ttl_ms=1000)
        clock.now += 400
        assert await validator.get_state_remaining_ttl() == 600
        clock.now += 5000
        assert await validator.get_state_remaining_ttl() == 0

    @pytest.mark.asyncio
    async def test_read_failures_degrade(self) -> None:
        """Read failures on the query paths give the safe answer."""
        validator = StateValidator(FailingStorageAdapter())
        assert await validator.is_state_expired()
        assert not await validator.has_stored_state()
        assert await validator.get_state_remaining_ttl() == 0

    @pytest.mark.asyncio
    async def test_corrupt_expiry_treated_as_expired(self, clock: FakeClock) -> None:
        """An unparsable expiry counts as expired."""
        storage = MemoryStorageAdapter({"oauth_state": "s1", "oauth_state_expiry": "soon"})
        assert await StateValidator(storage).is_state_expired()

    @pytest.mark.asyncio
    async def test_extend_expiry(self, validator: StateValidator, clock: FakeClock) -> None:
        """extend_state_expiry resets the expiry relative to now."""
        await validator.store_state("s1", ttl_ms=1000)
        clock.now += 900
        await validator.extend_state_expiry(5000)
        assert await validator.get_state_remaining_ttl() == 5000

    @pytest.mark.asyncio
    async def test_cleanup_expired(
        self, validator: StateValidator, storage: MemoryStorageAdapter, clock: FakeClock
    ) -> None:
        """Expired state is removed by cleanup, fresh state is kept."""
        await validator.store_state("s1", ttl_ms=1000)
        assert not await validator.cleanup_expired_state()
        assert storage.snapshot()
        clock.now += 1000
        assert await validator.cleanup_expired_state()
        assert storage.snapshot() == {}


# ── Validation ──────────────────────────────────────────────────────


class TestValidateState:
    """validate_state is single-use and tolerant of mismatches."""

    @pytest.mark.asyncio
    async def test_single_use(self, validator: StateValidator, clock: FakeClock) -> None:
        """A state validates once; the second attempt fails."""
        await validator.store_state("s1")
        assert await validator.validate_state("s1")
        assert not await validator.validate_state("s1")

    @pytest.mark.asyncio
    async def test_success_clears_storage(
        self, validator: StateValidator, storage: MemoryStorageAdapter, clock: FakeClock
    ) -> None:
        """Both the state and its expiry are removed on success."""
        await validator.store_state("s1")
        await validator.validate_state("s1")
        assert storage.snapshot() == {}

    @pytest.mark.asyncio
    async def test_mismatch_leaves_storage(
        self, validator: StateValidator, storage: MemoryStorageAdapter, clock: FakeClock
    ) -> None:
        """A wrong candidate does not consume the legitimate state."""
        await validator.store_state("s1")
        assert not await validator.validate_state("forged")
        assert storage.snapshot()["oauth_state"] == "s1"
        assert await validator.validate_state("s1")

    @pytest.mark.asyncio
    async def test_expired_rejected_and_cleared(
        self, validator: StateValidator, storage: MemoryStorageAdapter, clock: FakeClock
    ) -> None:
        """An expired state fails even with the right value, and is cleaned up."""
        await validator.store_state("s1", ttl_ms=1000)
        clock.now += 1000
        assert not await validator.validate_state("s1")
        assert storage.snapshot() == {}

    @pytest.mark.asyncio
    async def test_empty_candidate(self, validator: StateValidator, clock: FakeClock) -> None:
        """An empty candidate never matches."""
        await validator.store_state("s1")
        assert not await validator.validate_state("")

    @pytest.mark.asyncio
    async def test_or_throw(self, validator: StateValidator, clock: FakeClock) -> None:
        """validate_state_or_raise raises a CSRF validation error."""
        await validator.store_state("s1")
        with pytest.raises(ValidationError) as exc_info:
            await validator.validate_state_or_raise("forged")
        assert exc_info.value.code == ValidationErrorCode.INVALID_STATE.value
        await validator.validate_state_or_raise("s1")

    @pytest.mark.asyncio
    async def test_clear_failure_wrapped(self) -> None:
        """Failures while clearing are wrapped."""
        validator = StateValidator(FailingStorageAdapter(working=("get", "set")))
        with pytest.raises(ValidationError) as exc_info:
            await validator.clear_state()
        assert exc_info.value.code == ValidationErrorCode.STATE_STORAGE_FAILED.value
