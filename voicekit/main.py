from __future__ import annotations

import sqlite3
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from voicekit.api import health_router, history_router, theme_router, visibility_router
from voicekit.core.config import Settings
from voicekit.core.history_db import init_db, load_entries_safe
from voicekit.core.history_log import get_history_log
from voicekit.core.logger import get_logger

config = Settings()
logger = get_logger("server")


@asynccontextmanager
async def _lifespan(app: FastAPI):
    if config.history_persist:
        try:
            await init_db()
        except (OSError, sqlite3.Error) as exc:
            logger.warning("History database unavailable: %s", exc)
        history = get_history_log()
        history.replace_all(await load_entries_safe(history.max_items))
        logger.info("Loaded %d history entries", len(history))
    yield


app = FastAPI(title="voicekit", lifespan=_lifespan)


@app.middleware("http")
async def _request_log_middleware(request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000
    logger.debug("%s %s -> %s (%.1f ms)", request.method, request.url.path, response.status_code, elapsed_ms)
    return response


_allow_credentials = config.cors_origins != ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins,
    allow_credentials=_allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router)
app.include_router(history_router)
app.include_router(visibility_router)
app.include_router(theme_router)
