"""Unified configuration for the voicekit engine and its HTTP surface."""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Global parameters of the engine."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="allow",
    )

    # HTTP server
    host: str = "127.0.0.1"
    port: int = 8000
    cors_origins: list[str] = ["*"]

    # Storage
    db_path: str = "voicekit/data/history.db"
    preferences_path: str = "voicekit/data/theme_preferences.json"

    # Logs
    log_dir: str = "voicekit/logs"
    log_rotate_mb: int = 5
    log_retention_days: int = 7
    log_level: str = "INFO"

    # Visibility
    default_interface_mode: str = "project"

    # History
    history_max_items: int = 100
    history_top_commands: int = 10
    history_persist: bool = True
    export_json_indent: int = 2

    # Theme
    theme_persist: bool = True

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            cls.json_config_settings_source,
            file_secret_settings,
        )

    @staticmethod
    def json_config_settings_source() -> dict[str, object]:
        """Load config.json from the project root when present."""
        config_path = Path(__file__).resolve().parents[2] / "config.json"
        if config_path.is_file():
            try:
                return json.loads(config_path.read_text())
            except ValueError:
                return {}
        return {}


@lru_cache()
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()
