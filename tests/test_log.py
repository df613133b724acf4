"""Tests for the logging helpers and secret redaction."""

from __future__ import annotations

import logging

import pytest

from oauthcore import log


@pytest.fixture(autouse=True)
def reset_logger():
    """Rebuild the package logger for each test."""
    log._LoggerHolder.instance = None
    yield
    log._LoggerHolder.instance = None


class TestGetLogger:
    """Tests for the package logger."""

    def test_named_oauthcore(self) -> None:
        """The package logger is the parent of every component logger."""
        assert log.get_logger().name == "oauthcore"

    def test_cached(self) -> None:
        """The same logger is returned on every call."""
        assert log.get_logger() is log.get_logger()

    def test_level_from_settings(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """OAUTHCORE_LOG__LEVEL controls the initial level."""
        monkeypatch.setenv("OAUTHCORE_LOG__LEVEL", "ERROR")
        assert log.get_logger().level == logging.ERROR

    def test_set_level_by_name(self) -> None:
        """set_level accepts level names."""
        log.set_level("info")
        assert log.get_logger().level == logging.INFO

    def test_enable_debug(self) -> None:
        """enable_debug lowers the level to DEBUG."""
        log.enable_debug()
        assert log.get_logger().level == logging.DEBUG

    def test_warn_reaches_handlers(self, caplog: pytest.LogCaptureFixture) -> None:
        """Helper functions log through the package logger."""
        with caplog.at_level(logging.WARNING, logger="oauthcore"):
            log.warn("state expired")
            log.error("exchange failed")
        assert "state expired" in caplog.text
        assert "exchange failed" in caplog.text


class TestRedaction:
    """Tests for redact_sensitive_data."""

    @pytest.mark.parametrize(
        "key",
        ["code", "access_token", "refresh_token", "code_verifier", "client_secret", "Password"],
    )
    def test_sensitive_keys(self, key: str) -> None:
        """Keys containing a sensitive fragment are flagged."""
        assert log.is_sensitive_key(key)

    @pytest.mark.parametrize("key", ["state", "flow", "error", "expires_in", "scope"])
    def test_plain_keys(self, key: str) -> None:
        """Ordinary keys pass through."""
        assert not log.is_sensitive_key(key)

    def test_nested(self) -> None:
        """Dicts inside lists and dicts are redacted recursively."""
        data = {
            "error": "invalid_grant",
            "details": [{"refresh_token": "rt", "hint": "x"}],
        }
        assert log.redact_sensitive_data(data) == {
            "error": "invalid_grant",
            "details": [{"refresh_token": "[REDACTED]", "hint": "x"}],
        }

    def test_scalars_unchanged(self) -> None:
        """Non-container values come back as-is."""
        assert log.redact_sensitive_data("plain text") == "plain text"
        assert log.redact_sensitive_data(None) is None

    def test_max_depth(self) -> None:
        """Deeply nested data is cut off."""
        assert log.redact_sensitive_data({"a": {"b": 1}}, max_depth=1) == {"a": "[MAX_DEPTH]"}
