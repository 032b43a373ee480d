"""
Snake Escape - Engine Configuration

Настройки движка через environment variables.
"""

import logging
from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Настройки движка."""

    # Logging
    LOG_LEVEL: str = "INFO"

    # Board
    BOARD_ROWS: int = 36
    BOARD_COLS: int = 18

    # Generation
    SNAKE_MIN_LENGTH: int = 3
    SNAKE_MAX_LENGTH: int = 50
    TARGET_COVERAGE: float = 0.8
    SNAKE_ATTEMPTS: int = 500
    PLACEMENT_FAILURE_LIMIT: int = 100
    PUZZLE_ATTEMPTS: int = 10
    DEADLOCK_LOOKAHEAD: int = 5
    VERIFY_GENERATED: bool = True

    # Verifier (BFS bounds)
    VERIFY_MAX_DEPTH: int = 100
    VERIFY_MAX_STATES: int = 10000

    # Play
    TICK_INTERVAL_MS: int = 50
    BLOCKED_PATIENCE: int = 3

    @field_validator("TARGET_COVERAGE")
    @classmethod
    def validate_target_coverage(cls, value: float) -> float:
        if not 0 < value <= 1:
            raise ValueError(f"TARGET_COVERAGE must be in (0, 1], got: {value}")
        return value

    @field_validator("BOARD_ROWS", "BOARD_COLS", "SNAKE_MIN_LENGTH", "SNAKE_MAX_LENGTH")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError(f"must be positive, got: {value}")
        return value

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"LOG_LEVEL is not a logging level: {value}")
        return level

    @property
    def tick_interval_seconds(self) -> float:
        return self.TICK_INTERVAL_MS / 1000

    @property
    def snake_length_range(self) -> tuple[int, int]:
        """(min, max) длина змейки; max не меньше min."""
        return self.SNAKE_MIN_LENGTH, max(self.SNAKE_MIN_LENGTH, self.SNAKE_MAX_LENGTH)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"
    )


@lru_cache()
def get_settings() -> Settings:
    """Получить настройки (кэшируется)."""
    return Settings()


def configure_logging(level: str | None = None) -> None:
    """Базовая настройка логов для встраивающего приложения."""
    logging.basicConfig(
        level=level or get_settings().LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


settings = get_settings()
