"""Tests for environment-driven settings."""

import logging

import pytest
from pydantic import ValidationError

from snake_escape.config import Settings, configure_logging, get_settings


class TestSettings:
    def test_defaults(self):
        settings = Settings(_env_file=None)
        assert settings.BOARD_ROWS == 36
        assert settings.BOARD_COLS == 18
        assert settings.TARGET_COVERAGE == 0.8
        assert settings.snake_length_range == (3, 50)
        assert settings.tick_interval_seconds == 0.05

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("BOARD_ROWS", "12")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        settings = Settings(_env_file=None)
        assert settings.BOARD_ROWS == 12
        assert settings.LOG_LEVEL == "DEBUG"

    def test_bad_coverage(self, monkeypatch):
        monkeypatch.setenv("TARGET_COVERAGE", "1.5")
        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    def test_bad_log_level(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, LOG_LEVEL="chatty")

    def test_non_positive_board(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, BOARD_COLS=0)

    def test_max_length_never_below_min(self):
        settings = Settings(_env_file=None, SNAKE_MIN_LENGTH=5, SNAKE_MAX_LENGTH=4)
        assert settings.snake_length_range == (5, 5)

    def test_configure_logging_uses_level(self, monkeypatch):
        calls = []
        monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.append(kwargs))

        configure_logging("WARNING")
        configure_logging()

        assert calls[0]["level"] == "WARNING"
        assert calls[1]["level"] == get_settings().LOG_LEVEL
        assert "%(name)s" in calls[0]["format"]

    def test_get_settings_cached(self, monkeypatch):
        get_settings.cache_clear()
        try:
            monkeypatch.setenv("BOARD_COLS", "9")
            assert get_settings().BOARD_COLS == 9
            assert get_settings() is get_settings()
        finally:
            get_settings.cache_clear()
