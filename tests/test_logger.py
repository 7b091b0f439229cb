import json
import logging
import sys

from voicekit.core.logger import JsonFormatter, SizeAndTimeRotatingFileHandler, _build_logger, get_logger


def test_get_logger_is_cached():
    assert get_logger("engine") is get_logger("engine")
    assert get_logger("engine").name == "voicekit.engine"


def test_json_lines_are_written(tmp_path):
    path = tmp_path / "probe.jsonl"
    logger = _build_logger("probe-json", path)
    logger.warning("Ignoring theme token %s", "colors.primary")
    for handler in logger.handlers:
        handler.flush()

    record = json.loads(path.read_text(encoding="utf-8").splitlines()[-1])
    assert record["level"] == "WARNING"
    assert record["category"] == "voicekit.probe-json"
    assert record["message"] == "Ignoring theme token colors.primary"


def test_formatter_includes_exception():
    try:
        raise ValueError("bad export")
    except ValueError:
        record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", None, sys.exc_info())
    payload = json.loads(JsonFormatter().format(record))
    assert "ValueError: bad export" in payload["exception"]


def test_handler_rolls_over_on_size(tmp_path):
    handler = SizeAndTimeRotatingFileHandler(tmp_path / "small.jsonl", max_bytes=200, backup_count=2)
    handler.setFormatter(JsonFormatter())
    logger = logging.getLogger("voicekit.test-rotation")
    logger.propagate = False
    logger.addHandler(handler)
    try:
        for i in range(20):
            logger.warning("message number %d with some padding", i)
    finally:
        logger.removeHandler(handler)
        handler.close()
    assert len(list(tmp_path.glob("small.jsonl*"))) > 1


def test_handler_rotates_daily_and_opens_lazily(tmp_path):
    handler = SizeAndTimeRotatingFileHandler(tmp_path / "daily.jsonl", max_bytes=1024, backup_count=3)
    try:
        assert handler.when == "MIDNIGHT"
        assert handler.backupCount == 3
        assert handler.encoding == "utf-8"
        assert not (tmp_path / "daily.jsonl").exists()
    finally:
        handler.close()
