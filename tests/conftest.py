import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from voicekit.core.config import get_settings  # noqa: E402
from voicekit.core.history import HistoryEntry  # noqa: E402
from voicekit.core.history_log import get_history_log  # noqa: E402


@pytest.fixture(autouse=True)
def isolated_storage(tmp_path, monkeypatch):
    """Point every persisted file at tmp_path and start from an empty log."""
    monkeypatch.setenv("DB_PATH", str(tmp_path / "history.db"))
    monkeypatch.setenv("PREFERENCES_PATH", str(tmp_path / "theme_preferences.json"))
    get_settings.cache_clear()
    get_history_log.cache_clear()
    yield tmp_path
    get_settings.cache_clear()
    get_history_log.cache_clear()


BASE_TIME = datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc)


def make_entry(
    id: str,
    intent: str = "lights_on",
    raw_text: str = "turn on the lights",
    confidence: float = 0.9,
    success: bool = True,
    provider: str | None = "openai",
    duration: float | None = 120.0,
    minutes_ago: int = 0,
    timestamp: datetime | None = None,
) -> HistoryEntry:
    return HistoryEntry(
        id=id,
        intent=intent,
        raw_text=raw_text,
        confidence=confidence,
        success=success,
        provider=provider,
        duration=duration,
        timestamp=timestamp or BASE_TIME - timedelta(minutes=minutes_ago),
    )


@pytest.fixture
def entry_factory():
    return make_entry
