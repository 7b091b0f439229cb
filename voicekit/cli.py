from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer
import uvicorn
from pydantic import TypeAdapter, ValidationError

from voicekit.core.config import Settings, get_settings
from voicekit.core.history import (
    HistoryEntry,
    compute_stats,
    export_history,
    filter_history,
    provider_share_percent,
    success_rate_percent,
)
from voicekit.core.theme import BRAND_THEMES, compose_theme
from voicekit.core.visibility import resolve_visibility

cli = typer.Typer(name="voicekit", help="Voice assistant UI engine")
config_cli = typer.Typer(help="Configuration")
visibility_cli = typer.Typer(help="Feature visibility")
theme_cli = typer.Typer(help="Themes")
history_cli = typer.Typer(help="Command history files")

cli.add_typer(config_cli, name="config")
cli.add_typer(visibility_cli, name="visibility")
cli.add_typer(theme_cli, name="theme")
cli.add_typer(history_cli, name="history")

_ENTRIES = TypeAdapter(list[HistoryEntry])


@cli.command()
def serve() -> None:
    """Start the FastAPI server."""
    settings = get_settings()
    uvicorn.run("voicekit.main:app", host=settings.host, port=settings.port)


@config_cli.command("print")
def config_print():
    s = Settings()
    typer.echo(json.dumps(s.model_dump(), ensure_ascii=False, default=str))


def _json_option(raw: Optional[str], name: str) -> Optional[dict]:
    if raw is None:
        return None
    try:
        value = json.loads(raw)
    except ValueError as exc:
        typer.echo(f"{name}: invalid JSON ({exc})", err=True)
        raise typer.Exit(code=2) from exc
    if not isinstance(value, dict):
        typer.echo(f"{name}: expected a JSON object", err=True)
        raise typer.Exit(code=2)
    return value


@visibility_cli.command("resolve")
def visibility_resolve(
    mode: Optional[str] = typer.Option(None, "--mode", help="Global interface mode"),
    component_mode: Optional[str] = typer.Option(None, "--component-mode", help="Component interface mode"),
    override: Optional[str] = typer.Option(None, "--override", help="JSON component visibility override"),
):
    resolved = resolve_visibility(
        mode,
        None,
        component_mode,
        _json_option(override, "--override"),
        default_mode=get_settings().default_interface_mode,
    )
    typer.echo(json.dumps(resolved.model_dump(by_alias=True), ensure_ascii=False, indent=2))


@theme_cli.command("show")
def theme_show(
    dark: bool = typer.Option(False, "--dark", help="Dark variant"),
    brand: Optional[str] = typer.Option(None, "--brand", help="Brand preset"),
):
    context = None
    if brand is not None:
        if brand not in BRAND_THEMES:
            typer.echo(f"Unknown brand: {brand} (available: {', '.join(BRAND_THEMES)})", err=True)
            raise typer.Exit(code=1)
        context = BRAND_THEMES[brand]
    theme = compose_theme(context, dark=dark)
    typer.echo(json.dumps(theme.tokens(), ensure_ascii=False, indent=2))


def _load_history(path: Path) -> list[HistoryEntry]:
    try:
        return _ENTRIES.validate_json(path.read_bytes())
    except OSError as exc:
        typer.echo(f"Cannot read {path}: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    except ValidationError as exc:
        typer.echo(f"Invalid history file {path}: {exc.error_count()} error(s)", err=True)
        raise typer.Exit(code=1) from exc


@history_cli.command("stats")
def history_stats(path: Path = typer.Argument(..., help="JSON history export")):
    stats = compute_stats(_load_history(path), top_n=get_settings().history_top_commands)
    payload = stats.model_dump(by_alias=True)
    payload["successRatePercent"] = success_rate_percent(stats)
    payload["providerSharePercent"] = provider_share_percent(stats)
    typer.echo(json.dumps(payload, ensure_ascii=False, indent=2))


@history_cli.command("export")
def history_export(
    path: Path = typer.Argument(..., help="JSON history export"),
    format: str = typer.Option("json", "--format", help="json|csv"),
    q: Optional[str] = typer.Option(None, "--q", help="Search text"),
):
    entries = filter_history(_load_history(path), None, q)
    result = export_history(entries, format, indent=get_settings().export_json_indent)
    if not result.ok:
        typer.echo(f"Export failed: {result.error}", err=True)
        raise typer.Exit(code=1)
    typer.echo(result.content)


if __name__ == "__main__":
    cli()
