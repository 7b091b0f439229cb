"""Persistence helpers for the user's theme preferences."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from .config import Settings
from .logger import PROJECT_ROOT, get_logger

logger = get_logger("persistence")


@dataclass
class ThemePreferences:
    """Saved theme override (partial token tree) and dark mode choice."""

    override: dict[str, Any] = field(default_factory=dict)
    dark_mode: bool | None = None


def _preferences_path(path: str | Path | None = None) -> Path:
    target = Path(path) if path is not None else Path(Settings().preferences_path)
    return target if target.is_absolute() else PROJECT_ROOT / target


def _from_payload(data: Any) -> ThemePreferences:
    if not isinstance(data, dict):
        return ThemePreferences()
    override = data.get("override")
    dark_mode = data.get("dark_mode", data.get("darkMode"))
    return ThemePreferences(
        override=override if isinstance(override, dict) else {},
        dark_mode=dark_mode if isinstance(dark_mode, bool) else None,
    )


def load_preferences(path: str | Path | None = None) -> ThemePreferences:
    """Load preferences from disk (defaults when missing or unreadable)."""
    target = _preferences_path(path)
    if not target.exists():
        return ThemePreferences()
    try:
        raw_text = target.read_text(encoding="utf-8").lstrip("\ufeff")
        return _from_payload(json.loads(raw_text))
    except (OSError, ValueError) as exc:
        logger.warning("Could not read theme preferences from %s: %s", target, exc)
        return ThemePreferences()


def save_preferences(prefs: ThemePreferences, path: str | Path | None = None) -> bool:
    """Persist preferences; returns False when the file could not be written."""
    target = _preferences_path(path)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(json.dumps(asdict(prefs), indent=2, ensure_ascii=False), encoding="utf-8")
        return True
    except (OSError, TypeError, ValueError) as exc:
        logger.warning("Could not save theme preferences to %s: %s", target, exc)
        return False


def reset_preferences(path: str | Path | None = None) -> ThemePreferences:
    """Forget saved preferences and return the defaults."""
    target = _preferences_path(path)
    try:
        target.unlink(missing_ok=True)
    except OSError as exc:
        logger.warning("Could not remove theme preferences %s: %s", target, exc)
    return ThemePreferences()
