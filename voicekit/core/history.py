"""Command history analytics.

All functions here are pure: they take a sequence of :class:`HistoryEntry`
(newest first, the order used by :func:`append_entry`) and return new values
without touching their input. The mutable log itself lives in
:mod:`voicekit.core.history_log`.
"""

from __future__ import annotations

import csv
import io
import json
import math
import secrets
import string
import time
from collections import Counter
from datetime import date, datetime, time as dt_time
from typing import Any, Iterable, Mapping, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel, to_snake

from .errors import ExportResult
from .logger import get_logger

__all__ = [
    "HistoryEntry",
    "HistoryFilters",
    "HistoryStats",
    "CommandCount",
    "CSV_COLUMNS",
    "new_entry",
    "append_entry",
    "filter_history",
    "group_by_day",
    "day_key",
    "today_key",
    "compute_stats",
    "remove_entry",
    "clear_history",
    "export_history",
    "replay_command",
    "recent_commands",
    "favorite_commands",
    "success_rate_percent",
    "provider_share_percent",
    "confidence_percent",
]

logger = get_logger("history")

CSV_COLUMNS: tuple[str, ...] = ("id", "intent", "rawText", "confidence", "success", "timestamp", "provider", "duration")
_ID_ALPHABET = string.digits + string.ascii_lowercase
_ANY_PROVIDER = frozenset({"any", "all"})


class _Model(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class HistoryEntry(_Model):
    """One executed voice command. Never modified after creation."""

    id: str
    intent: str
    raw_text: str
    confidence: float = Field(ge=0.0, le=1.0)
    success: bool
    timestamp: datetime
    provider: Optional[str] = None
    duration: Optional[float] = Field(default=None, ge=0.0)
    entities: Optional[dict[str, Any]] = None


class HistoryFilters(_Model):
    """Optional predicates, combined with AND. Unset fields do not filter."""

    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    success: Optional[bool] = None
    provider: Optional[str] = None
    command_type: Optional[str] = None

    @field_validator("date_from", "date_to", mode="before")
    @classmethod
    def _expand_dates(cls, value: Any, info: ValidationInfo) -> Any:
        # A bare day means the whole day on either bound.
        if isinstance(value, str) and len(value) == 10:
            try:
                value = date.fromisoformat(value)
            except ValueError:
                return value
        if isinstance(value, date) and not isinstance(value, datetime):
            bound = dt_time.min if info.field_name == "date_from" else dt_time.max
            return datetime.combine(value, bound)
        return value


class CommandCount(_Model):
    intent: str
    count: int


class HistoryStats(_Model):
    total_commands: int = 0
    successful_commands: int = 0
    failed_commands: int = 0
    average_confidence: float = 0.0
    average_response_time: float = 0.0
    most_used_commands: list[CommandCount] = Field(default_factory=list)
    commands_by_provider: dict[str, int] = Field(default_factory=dict)
    commands_by_intent: dict[str, int] = Field(default_factory=dict)


def _new_id() -> str:
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"{int(time.time() * 1000)}-{suffix}"


def new_entry(
    intent: str,
    raw_text: str,
    confidence: float,
    *,
    success: bool = True,
    provider: str | None = None,
    duration: float | None = None,
    entities: Mapping[str, Any] | None = None,
    timestamp: datetime | None = None,
) -> HistoryEntry:
    """Build an entry with a fresh unique id, stamped now unless ``timestamp`` is given."""
    return HistoryEntry(
        id=_new_id(),
        intent=intent,
        raw_text=raw_text,
        confidence=confidence,
        success=success,
        timestamp=timestamp or datetime.now().astimezone(),
        provider=provider,
        duration=duration,
        entities=dict(entities) if entities is not None else None,
    )


def append_entry(
    history: Sequence[HistoryEntry], entry: HistoryEntry, max_items: int | None = None
) -> list[HistoryEntry]:
    """Return a new log with ``entry`` first, trimmed to ``max_items``."""
    updated = [entry, *history]
    if max_items is not None and max_items > 0:
        return updated[:max_items]
    return updated


def _local(moment: datetime) -> datetime:
    # Naive timestamps are taken as local time.
    return moment.astimezone()


def _as_filters(filters: HistoryFilters | Mapping[str, Any] | None) -> HistoryFilters:
    if filters is None:
        return HistoryFilters()
    if isinstance(filters, HistoryFilters):
        return filters
    if not isinstance(filters, Mapping):
        logger.warning("Ignoring history filters of type %s", type(filters).__name__)
        return HistoryFilters()
    try:
        return HistoryFilters.model_validate(filters)
    except ValidationError as exc:
        bad = {to_snake(str(error["loc"][0])) for error in exc.errors() if error["loc"]}
    # Drop only the offending fields; the remaining predicates still apply.
    kept: dict[str, Any] = {}
    for key, value in filters.items():
        if to_snake(str(key)) in bad:
            logger.warning("Ignoring history filter %s: invalid value %r", key, value)
            continue
        kept[key] = value
    try:
        return HistoryFilters.model_validate(kept)
    except ValidationError as exc:
        logger.warning("Ignoring invalid history filters: %s", exc)
        return HistoryFilters()


def _contains(entry: HistoryEntry, needle: str) -> bool:
    return needle in entry.intent.lower() or needle in entry.raw_text.lower()


def _matches(entry: HistoryEntry, filters: HistoryFilters) -> bool:
    if filters.date_from is not None and _local(entry.timestamp) < _local(filters.date_from):
        return False
    if filters.date_to is not None and _local(entry.timestamp) > _local(filters.date_to):
        return False
    if filters.success is not None and entry.success is not filters.success:
        return False
    if filters.provider and filters.provider not in _ANY_PROVIDER and entry.provider != filters.provider:
        return False
    command_type = (filters.command_type or "").strip().lower()
    if command_type and not _contains(entry, command_type):
        return False
    return True


def filter_history(
    history: Iterable[HistoryEntry],
    filters: HistoryFilters | Mapping[str, Any] | None = None,
    search_query: str | None = None,
) -> list[HistoryEntry]:
    """Keep the entries matching every set filter and the search text, in input order."""
    criteria = _as_filters(filters)
    query = (search_query or "").strip().lower()
    return [
        entry
        for entry in history
        if _matches(entry, criteria) and (not query or _contains(entry, query))
    ]


def day_key(moment: datetime) -> str:
    return _local(moment).date().isoformat()


def today_key(now: datetime | None = None) -> str:
    """Group key of the current local day, for the "Today" heading."""
    return day_key(now or datetime.now().astimezone())


def group_by_day(history: Iterable[HistoryEntry]) -> dict[str, list[HistoryEntry]]:
    """Group entries by local calendar day (``YYYY-MM-DD``), keeping their order."""
    groups: dict[str, list[HistoryEntry]] = {}
    for entry in history:
        groups.setdefault(day_key(entry.timestamp), []).append(entry)
    return groups


def compute_stats(history: Sequence[HistoryEntry], top_n: int | None = 10) -> HistoryStats:
    """Aggregate statistics over the whole log (filters and search do not apply)."""
    total = len(history)
    if total == 0:
        return HistoryStats()

    successful = sum(1 for entry in history if entry.success)
    durations = [entry.duration for entry in history if entry.duration is not None]
    by_intent = Counter(entry.intent for entry in history)
    # sorted() is stable: equal counts keep first-seen order.
    ranked = sorted(by_intent.items(), key=lambda item: -item[1])
    if top_n is not None:
        ranked = ranked[:top_n]
    by_provider = Counter(entry.provider for entry in history if entry.provider)

    return HistoryStats(
        total_commands=total,
        successful_commands=successful,
        failed_commands=total - successful,
        average_confidence=sum(entry.confidence for entry in history) / total,
        average_response_time=sum(durations) / len(durations) if durations else 0.0,
        most_used_commands=[CommandCount(intent=intent, count=count) for intent, count in ranked],
        commands_by_provider=dict(by_provider),
        commands_by_intent=dict(by_intent),
    )


def remove_entry(history: Sequence[HistoryEntry], entry_id: str) -> list[HistoryEntry]:
    """Drop the entry with ``entry_id``; an unknown id returns an equal copy."""
    remaining = list(history)
    for index, entry in enumerate(remaining):
        if entry.id == entry_id:
            del remaining[index]
            break
    return remaining


def clear_history(history: Sequence[HistoryEntry] | None = None) -> list[HistoryEntry]:
    return []


def replay_command(history: Iterable[HistoryEntry], entry_id: str) -> HistoryEntry | None:
    """Look up an entry to re-submit its ``raw_text``. The log is left untouched."""
    for entry in history:
        if entry.id == entry_id:
            return entry
    return None


def recent_commands(history: Sequence[HistoryEntry], count: int = 5) -> list[HistoryEntry]:
    return list(history[:count])


def favorite_commands(history: Sequence[HistoryEntry], count: int = 5) -> list[HistoryEntry]:
    """Most recent entry of each of the ``count`` most used intents."""
    ranked = compute_stats(history, top_n=count).most_used_commands
    favorites: list[HistoryEntry] = []
    for item in ranked:
        entry = next((e for e in history if e.intent == item.intent), None)
        if entry is not None:
            favorites.append(entry)
    return favorites


def _format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else repr(float(value))


def _csv_row(entry: HistoryEntry) -> list[str]:
    return [
        entry.id,
        entry.intent,
        entry.raw_text,
        _format_number(entry.confidence),
        "true" if entry.success else "false",
        entry.timestamp.isoformat(),
        entry.provider or "",
        _format_number(entry.duration) if entry.duration is not None else "",
    ]


def _to_csv(entries: Sequence[HistoryEntry]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for entry in entries:
        writer.writerow(_csv_row(entry))
    text = buffer.getvalue()
    return text[:-1] if text.endswith("\n") else text


def _to_json(entries: Sequence[HistoryEntry], indent: int | None) -> str:
    payload = [entry.model_dump(mode="json", by_alias=True, exclude_none=True) for entry in entries]
    return json.dumps(payload, indent=indent, ensure_ascii=False)


def export_history(
    entries: Sequence[HistoryEntry], format: str = "json", *, indent: int | None = 2
) -> ExportResult:
    """Serialize ``entries`` (usually the filtered view) as JSON or CSV.

    Failures are returned as ``ExportResult.failure`` so the caller can report
    them; nothing is raised.
    """
    try:
        if format == "json":
            content = _to_json(entries, indent)
        elif format == "csv":
            content = _to_csv(entries)
        else:
            return ExportResult.failure(format, f"unsupported format: {format}")
    except (TypeError, ValueError) as exc:
        logger.warning("History export to %s failed: %s", format, exc)
        return ExportResult.failure(format, str(exc))
    return ExportResult.success(format, content)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def confidence_percent(value: float) -> int:
    return _round_half_up(value * 100)


def success_rate_percent(stats: HistoryStats) -> int:
    if not stats.total_commands:
        return 0
    return _round_half_up(stats.successful_commands / stats.total_commands * 100)


def provider_share_percent(stats: HistoryStats) -> dict[str, int]:
    """Share of each provider among all commands, as rounded whole percents."""
    if not stats.total_commands:
        return {provider: 0 for provider in stats.commands_by_provider}
    return {
        provider: _round_half_up(count / stats.total_commands * 100)
        for provider, count in stats.commands_by_provider.items()
    }
