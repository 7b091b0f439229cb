from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import Response
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from voicekit.core.config import get_settings
from voicekit.core.errors import error_response
from voicekit.core.history import (
    HistoryEntry,
    HistoryFilters,
    compute_stats,
    export_history,
    filter_history,
    group_by_day,
    new_entry,
    provider_share_percent,
    success_rate_percent,
    today_key,
)
from voicekit.core.history_db import persist_clear, persist_entry, persist_removal
from voicekit.core.history_log import get_history_log
from voicekit.core.logger import get_logger

router = APIRouter(prefix="/history", tags=["history"])
logger = get_logger("history")

_MEDIA_TYPES = {"json": "application/json", "csv": "text/csv"}


class NewCommand(BaseModel):
    """Body of ``POST /history``."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    intent: str
    raw_text: str
    confidence: float = Field(ge=0.0, le=1.0)
    success: bool = True
    provider: Optional[str] = None
    duration: Optional[float] = Field(default=None, ge=0.0)
    entities: Optional[dict[str, Any]] = None
    timestamp: Optional[datetime] = None


def _dump(entries: list[HistoryEntry]) -> list[dict[str, Any]]:
    return [entry.model_dump(mode="json", by_alias=True, exclude_none=True) for entry in entries]


def _filtered(
    date_from: str | None,
    date_to: str | None,
    success: bool | None,
    provider: str | None,
    command_type: str | None,
    q: str | None,
) -> list[HistoryEntry]:
    try:
        filters = HistoryFilters(
            date_from=date_from,
            date_to=date_to,
            success=success,
            provider=provider,
            command_type=command_type,
        )
    except ValidationError as exc:
        details = exc.errors(include_url=False, include_context=False, include_input=False)
        raise HTTPException(
            status_code=400,
            detail=error_response("VK_4001", "invalid history filters", details=details),
        ) from exc
    return filter_history(get_history_log().snapshot(), filters, q)


@router.get("")
async def list_history(
    date_from: str | None = Query(default=None),
    date_to: str | None = Query(default=None),
    success: bool | None = Query(default=None),
    provider: str | None = Query(default=None),
    command_type: str | None = Query(default=None),
    q: str | None = Query(default=None),
) -> dict[str, Any]:
    items = _filtered(date_from, date_to, success, provider, command_type, q)
    return {"items": _dump(items), "total": len(items)}


@router.get("/grouped")
async def grouped_history(
    date_from: str | None = Query(default=None),
    date_to: str | None = Query(default=None),
    success: bool | None = Query(default=None),
    provider: str | None = Query(default=None),
    command_type: str | None = Query(default=None),
    q: str | None = Query(default=None),
) -> dict[str, Any]:
    items = _filtered(date_from, date_to, success, provider, command_type, q)
    groups = group_by_day(items)
    return {"today": today_key(), "groups": {day: _dump(entries) for day, entries in groups.items()}}


@router.get("/stats")
async def history_stats() -> dict[str, Any]:
    """Statistics over the whole log; filters do not apply."""
    stats = compute_stats(get_history_log().snapshot(), top_n=get_settings().history_top_commands)
    payload = stats.model_dump(by_alias=True)
    payload["successRatePercent"] = success_rate_percent(stats)
    payload["providerSharePercent"] = provider_share_percent(stats)
    return payload


@router.get("/export")
async def export(
    format: str = Query(default="json"),
    date_from: str | None = Query(default=None),
    date_to: str | None = Query(default=None),
    success: bool | None = Query(default=None),
    provider: str | None = Query(default=None),
    command_type: str | None = Query(default=None),
    q: str | None = Query(default=None),
) -> Response:
    items = _filtered(date_from, date_to, success, provider, command_type, q)
    result = export_history(items, format, indent=get_settings().export_json_indent)
    if not result.ok:
        raise HTTPException(status_code=400, detail=error_response("VK_4002", "export failed", details=result.error))
    stamp = datetime.now().strftime("%Y-%m-%d")
    return Response(
        content=result.content,
        media_type=_MEDIA_TYPES[result.format],
        headers={"Content-Disposition": f'attachment; filename="voice-history-{stamp}.{result.format}"'},
    )


@router.post("", status_code=201)
async def add_command(payload: NewCommand) -> dict[str, Any]:
    entry = new_entry(
        payload.intent,
        payload.raw_text,
        payload.confidence,
        success=payload.success,
        provider=payload.provider,
        duration=payload.duration,
        entities=payload.entities,
        timestamp=payload.timestamp,
    )
    history = get_history_log()
    history.append(entry)
    settings = get_settings()
    if settings.history_persist:
        await persist_entry(entry, history.max_items)
    return entry.model_dump(mode="json", by_alias=True, exclude_none=True)


@router.delete("/{entry_id}")
async def delete_command(entry_id: str) -> dict[str, Any]:
    removed = get_history_log().remove(entry_id)
    if removed and get_settings().history_persist:
        await persist_removal(entry_id)
    return {"status": "removed" if removed else "not_found", "id": entry_id}


@router.delete("")
async def clear() -> dict[str, str]:
    get_history_log().clear()
    if get_settings().history_persist:
        await persist_clear()
    return {"status": "cleared"}


@router.post("/{entry_id}/replay")
async def replay(entry_id: str) -> dict[str, str]:
    entry = get_history_log().get(entry_id)
    if entry is None:
        raise HTTPException(status_code=404, detail=error_response("VK_4041", "command not found"))
    logger.info("Replaying command %s", entry_id)
    return {"rawText": entry.raw_text}
