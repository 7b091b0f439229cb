from __future__ import annotations

import csv
import io
import json
from pathlib import Path

from typer.testing import CliRunner

from conftest import make_entry
from voicekit import cli as cli_module
from voicekit.core.history import export_history


runner = CliRunner()


def _history_file(tmp_path: Path) -> Path:
    entries = [
        make_entry("1", intent="lights_on", raw_text="turn on the lights", provider="openai"),
        make_entry("2", intent="lights_on", raw_text="lights on again", provider="openai", success=False),
        make_entry("3", intent="weather", raw_text="weather today", provider="keywords"),
    ]
    path = tmp_path / "history.json"
    path.write_text(export_history(entries, "json").unwrap(), encoding="utf-8")
    return path


def test_cli_help():
    result = runner.invoke(cli_module.cli, ["--help"])
    assert result.exit_code == 0
    for name in ("serve", "config", "visibility", "theme", "history"):
        assert name in result.output


def test_config_print(monkeypatch):
    monkeypatch.setenv("HISTORY_MAX_ITEMS", "42")
    result = runner.invoke(cli_module.cli, ["config", "print"])
    assert result.exit_code == 0
    assert json.loads(result.output)["history_max_items"] == 42


def test_visibility_resolve_command():
    result = runner.invoke(
        cli_module.cli,
        ["visibility", "resolve", "--mode", "end-user", "--override", '{"showStats": true}'],
    )
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data["mode"] == "end-user"
    assert data["showStats"] is True
    assert data["showProviders"] is False


def test_visibility_resolve_rejects_bad_json():
    result = runner.invoke(cli_module.cli, ["visibility", "resolve", "--override", "{oops"])
    assert result.exit_code == 2


def test_theme_show_dark_brand():
    result = runner.invoke(cli_module.cli, ["theme", "show", "--dark", "--brand", "healthcare"])
    assert result.exit_code == 0
    colors = json.loads(result.output)["colors"]
    assert colors["primary"] == "#0EA5E9"
    assert colors["border"] == "#4B5563"

    unknown = runner.invoke(cli_module.cli, ["theme", "show", "--brand", "acme"])
    assert unknown.exit_code == 1


def test_history_stats_command(tmp_path: Path):
    result = runner.invoke(cli_module.cli, ["history", "stats", str(_history_file(tmp_path))])
    assert result.exit_code == 0
    stats = json.loads(result.output)
    assert stats["totalCommands"] == 3
    assert stats["mostUsedCommands"][0] == {"intent": "lights_on", "count": 2}
    assert stats["successRatePercent"] == 67


def test_history_export_command(tmp_path: Path):
    path = _history_file(tmp_path)
    result = runner.invoke(cli_module.cli, ["history", "export", str(path), "--format", "csv", "--q", "lights"])
    assert result.exit_code == 0
    rows = list(csv.reader(io.StringIO(result.output.strip())))
    assert [row[0] for row in rows[1:]] == ["1", "2"]

    bad = runner.invoke(cli_module.cli, ["history", "export", str(path), "--format", "xml"])
    assert bad.exit_code == 1


def test_history_command_with_missing_file(tmp_path: Path):
    result = runner.invoke(cli_module.cli, ["history", "stats", str(tmp_path / "nope.json")])
    assert result.exit_code == 1
