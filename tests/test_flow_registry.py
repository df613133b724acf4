"""Tests for FlowRegistry ordering and detection."""

# pylint: disable=redefined-outer-name

from __future__ import annotations

import pytest

from oauthcore.config import OAuthConfig
from oauthcore.core.flow_registry import FlowRegistry, confidence_for_priority
from oauthcore.exceptions import ConfigError, FlowError, FlowErrorCode
from oauthcore.flows import (
    AuthorizationCodeFlowHandler,
    MagicLinkFlowHandler,
    MagicLinkLoginFlowHandler,
    create_flow_handler,
)
from oauthcore.types import OAuthResult


async def _never(params, context):  # pragma: no cover - never executed
    return OAuthResult.failure("unused", "FLOW_ERROR")


def _handler(name: str, priority: int, applies: bool = True):
    return create_flow_handler(name, lambda params, config: applies, _never, priority=priority)


@pytest.fixture()
def registry() -> FlowRegistry:
    """Registry holding the built-in handlers plus the login variant."""
    reg = FlowRegistry()
    reg.register_multiple(
        [AuthorizationCodeFlowHandler(), MagicLinkFlowHandler(), MagicLinkLoginFlowHandler()]
    )
    return reg


class TestConfidence:
    """Priority to confidence mapping."""

    @pytest.mark.parametrize(("priority", "confidence"), [(5, 95), (50, 50), (100, 0), (150, 0)])
    def test_mapping(self, priority: int, confidence: int) -> None:
        """Confidence is 100 minus priority, floored at zero."""
        assert confidence_for_priority(priority) == confidence


# ── Registration ────────────────────────────────────────────────────


class TestRegistration:
    """Adding and removing handlers."""

    def test_duplicate_rejected(self, registry: FlowRegistry) -> None:
        """Registering a taken name raises ConfigError."""
        with pytest.raises(ConfigError, match="already registered"):
            registry.register(AuthorizationCodeFlowHandler())

    def test_duplicate_allowed(self) -> None:
        """allow_duplicates replaces the existing handler."""
        registry = FlowRegistry(allow_duplicates=True)
        first = _handler("custom", 10)
        second = _handler("custom", 20)
        registry.register(first)
        registry.register(second)
        assert len(registry) == 1
        assert registry.get_handler("custom") is second

    def test_unregister(self, registry: FlowRegistry) -> None:
        """unregister reports whether something was removed."""
        assert registry.unregister("magic_link")
        assert not registry.unregister("magic_link")
        assert "magic_link" not in registry
        assert not registry.has_handler("magic_link")

    def test_priority_order(self, registry: FlowRegistry) -> None:
        """Handlers are listed lowest priority number first."""
        assert registry.get_handler_names() == ["magic_link_login", "magic_link", "authorization_code"]

    def test_ties_keep_registration_order(self) -> None:
        """Equal priorities keep insertion order."""
        registry = FlowRegistry()
        registry.register_multiple([_handler("b", 10), _handler("a", 10), _handler("c", 5)])
        assert registry.get_handler_names() == ["c", "b", "a"]

    def test_validate_required_handlers(self, registry: FlowRegistry) -> None:
        """Missing names are all reported at once."""
        registry.validate_required_handlers(["magic_link"])
        with pytest.raises(FlowError) as exc_info:
            registry.validate_required_handlers(["magic_link", "device", "saml"])
        assert exc_info.value.code == FlowErrorCode.HANDLERS_MISSING.value
        assert exc_info.value.metadata["missing_handlers"] == ["device", "saml"]

    def test_clone_is_independent(self, registry: FlowRegistry) -> None:
        """Changes to a clone do not affect the original."""
        other = registry.clone()
        other.unregister("magic_link")
        other.clear()
        assert len(other) == 0
        assert len(registry) == 3
        assert registry.get_handler("magic_link") is not None


# ── Detection ───────────────────────────────────────────────────────


class TestDetection:
    """Picking a handler for callback parameters."""

    def test_authorization_code(self, registry: FlowRegistry, config: OAuthConfig) -> None:
        """A bare code goes to the authorization code handler."""
        result = registry.detect_flow_with_confidence({"code": "x", "state": "s"}, config)
        assert result is not None
        assert result.handler.name == "authorization_code"
        assert result.confidence == 50

    def test_specific_magic_link_wins(self, registry: FlowRegistry, config: OAuthConfig) -> None:
        """flow=login reaches the dedicated handler ahead of the generic one."""
        params = {"token": "t1", "flow": "login"}
        result = registry.detect_flow_with_confidence(params, config)
        assert result is not None
        assert result.handler.name == "magic_link_login"
        assert result.confidence == 75
        assert "among 2 candidates" in result.reason
        names = [h.name for h in registry.get_compatible_handlers(params, config)]
        assert names == ["magic_link_login", "magic_link"]

    def test_token_beats_code(self, registry: FlowRegistry, config: OAuthConfig) -> None:
        """A magic-link token excludes the authorization code handler."""
        handler = registry.detect_flow({"token": "t1", "code": "c"}, config)
        assert handler is not None
        assert handler.name == "magic_link"

    def test_no_match(self, registry: FlowRegistry, config: OAuthConfig) -> None:
        """Unrecognised parameters match nothing."""
        assert registry.detect_flow({"foo": "bar"}, config) is None
        assert registry.detect_flow_with_confidence({}, config) is None

    def test_raising_handler_skipped(self, config: OAuthConfig, caplog: pytest.LogCaptureFixture) -> None:
        """A handler whose can_handle raises is treated as not applicable."""

        def boom(params, config):
            raise RuntimeError("broken detector")

        registry = FlowRegistry()
        registry.register(create_flow_handler("broken", boom, _never, priority=1))
        registry.register(_handler("fallback", 90))
        handler = registry.detect_flow({"x": "1"}, config)
        assert handler is not None
        assert handler.name == "fallback"
        assert "raised in can_handle" in caplog.text

    def test_high_priority_number_zero_confidence(self, config: OAuthConfig) -> None:
        """Very low-ranked handlers still match, with zero confidence."""
        registry = FlowRegistry()
        registry.register(_handler("last", 120))
        result = registry.detect_flow_with_confidence({}, config)
        assert result is not None
        assert result.confidence == 0
