import json
import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Final

from voicekit.core.config import get_settings

PROJECT_ROOT: Final[Path] = Path(__file__).resolve().parents[2]

settings = get_settings()
LOG_DIR: Final[Path] = (
    Path(settings.log_dir) if Path(settings.log_dir).is_absolute() else PROJECT_ROOT / settings.log_dir
)
LOG_ROTATE_MB: Final[int] = settings.log_rotate_mb
LOG_RETENTION_DAYS: Final[int] = settings.log_retention_days


class JsonFormatter(logging.Formatter):
    """Serialize each record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        log_record = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "category": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_record, ensure_ascii=False)


class SizeAndTimeRotatingFileHandler(TimedRotatingFileHandler):
    """Roll over at midnight or once the file grows past ``max_bytes``."""

    def __init__(
        self,
        filename: str | Path,
        max_bytes: int = 0,
        backup_count: int = 0,
    ) -> None:
        self.maxBytes = max_bytes
        super().__init__(str(filename), when="midnight", backupCount=backup_count, encoding="utf-8", delay=True)

    def shouldRollover(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        if self.maxBytes > 0:
            if self.stream is None:  # pragma: no cover - delayed open
                self.stream = self._open()
            size = len(f"{self.format(record)}\n".encode(self.encoding or "utf-8"))
            if self.stream.tell() + size >= self.maxBytes:
                return True
        return super().shouldRollover(record)


def _build_logger(name: str, file_path: Path | None = None) -> logging.Logger:
    logger = logging.getLogger(f"voicekit.{name}")
    if logger.handlers:
        return logger

    if file_path is None:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        file_path = LOG_DIR / f"{name}.jsonl"
    handler = SizeAndTimeRotatingFileHandler(
        file_path,
        max_bytes=LOG_ROTATE_MB * 1024 * 1024,
        backup_count=LOG_RETENTION_DAYS,
    )
    handler.setFormatter(JsonFormatter())
    logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
    logger.addHandler(handler)
    return logger


_LOGGERS: dict[str, logging.Logger] = {}


def get_logger(name: str) -> logging.Logger:
    """Return the named logger, creating it on first use."""
    if name not in _LOGGERS:
        _LOGGERS[name] = _build_logger(name)
    return _LOGGERS[name]
