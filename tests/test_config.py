from __future__ import annotations

import json

from voicekit.core import config as config_module
from voicekit.core.config import get_settings
from voicekit.core.visibility import resolve_visibility


def test_settings_defaults():
    s = get_settings()
    assert s.default_interface_mode == "project"
    assert s.history_max_items == 100
    assert s.history_top_commands == 10
    assert s.export_json_indent == 2


def test_env_overrides_json_config(tmp_path, monkeypatch):
    cfg = tmp_path / "config.json"
    cfg.write_text(json.dumps({"history_max_items": 5, "port": 9001}), encoding="utf-8")

    def _custom_source() -> dict[str, object]:
        return json.loads(cfg.read_text())

    monkeypatch.setattr(config_module.Settings, "json_config_settings_source", staticmethod(_custom_source))
    monkeypatch.setenv("PORT", "9100")
    get_settings.cache_clear()
    s = get_settings()
    assert s.history_max_items == 5
    assert s.port == 9100


def test_invalid_default_mode_is_not_fatal(monkeypatch):
    monkeypatch.setenv("DEFAULT_INTERFACE_MODE", "wizard")
    get_settings.cache_clear()
    s = get_settings()
    assert resolve_visibility(default_mode=s.default_interface_mode).mode == "project"
