"""Tests for application settings."""

import pytest

from src.config.settings import Settings


def test_session_idle_default() -> None:
    """Sessions are evicted after thirty idle minutes by default."""
    assert Settings().progression_session_idle_seconds == 1800


def test_session_idle_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PROGRESSION_SESSION_IDLE_SECONDS", "60")

    assert Settings().progression_session_idle_seconds == 60


def test_server_options_are_not_settings() -> None:
    """Host, port and workers are given to the ASGI server, not read by the app."""
    for name in ("api_host", "api_port", "api_workers", "api_reload"):
        assert name not in Settings.model_fields
