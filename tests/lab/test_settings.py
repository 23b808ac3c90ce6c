"""Unit tests for WarRoomSettings."""

from __future__ import annotations

from warroom.lab.execution.streaming import StreamConfig
from warroom.lab.settings import WarRoomSettings, _get_settings_cached, get_settings


def test_env_prefix(monkeypatch) -> None:
    monkeypatch.setenv("WARROOM_MAX_ITERATIONS", "4")
    monkeypatch.setenv("WARROOM_SILENCE_TIMEOUT", "30")
    settings = WarRoomSettings()

    assert settings.max_iterations == 4
    assert settings.silence_timeout == 30.0


def test_get_settings_is_cached() -> None:
    _get_settings_cached.cache_clear()
    try:
        assert get_settings() is get_settings()
    finally:
        _get_settings_cached.cache_clear()


def test_stream_config_from_settings() -> None:
    settings = WarRoomSettings(progress_throttle_ms=500, max_log_length=100, command_preview_chars=40)
    config = StreamConfig.from_settings(settings)

    assert config.throttle == 0.5
    assert config.max_log_length == 100
    assert config.command_budget == 40
