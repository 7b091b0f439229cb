from __future__ import annotations

from .routes_health import router as health_router
from .routes_history import router as history_router
from .routes_theme import router as theme_router
from .routes_visibility import router as visibility_router

__all__ = [
    "health_router",
    "history_router",
    "theme_router",
    "visibility_router",
]
