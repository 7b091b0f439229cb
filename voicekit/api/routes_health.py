from __future__ import annotations

from datetime import datetime, timezone
from importlib.metadata import PackageNotFoundError, version

from fastapi import APIRouter

from voicekit.core.history_db import ping_db
from voicekit.core.history_log import get_history_log

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def get_health() -> dict[str, object]:
    """Return the application health."""
    try:
        pkg_version = version("voicekit")
    except PackageNotFoundError:  # pragma: no cover - depends on installation
        pkg_version = "unknown"

    db_ok = await ping_db()
    return {
        "status": "ok" if db_ok else "degraded",
        "version": pkg_version,
        "time": datetime.now(timezone.utc).isoformat(),
        "db_ok": db_ok,
        "history_items": len(get_history_log()),
    }
