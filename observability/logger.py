"""Event logging for the knowledge interview workflow.

``log_event`` writes each event twice: a one-line human summary (console and
``*-human.log``) and the full JSON payload (``LOG_FILE`` only). Files rotate by
size; set ``ENABLE_FILE_LOGS=0`` to keep everything on stdout.
"""
from __future__ import annotations

import json
import logging
import logging.handlers
import os
import sys
import threading
import time
import uuid
from typing import Any, Callable

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
ENABLE_FILE_LOGS = os.getenv("ENABLE_FILE_LOGS", "1") in ("1", "true", "True")
LOG_FILE = os.getenv("LOG_FILE", "logs/knowledge-interview.jsonl")
LOG_MAX_BYTES = int(os.getenv("LOG_MAX_BYTES", "5242880"))
LOG_BACKUP_COUNT = int(os.getenv("LOG_BACKUP_COUNT", "5"))

HUMAN_FORMAT = "[%(asctime)s] %(levelname)s %(name)s :: %(message)s"
HUMAN_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Fields promoted into the human line, in this order.
SUMMARY_KEYS = (
    "user_id",
    "tab_id",
    "node",
    "next_node",
    "outcome",
    "decision",
    "overall_score",
    "exchanges",
    "kept",
    "error_kind",
    "error",
    "ms",
)

_logger = logging.getLogger("knowledge_interview")
_logger.setLevel(LOG_LEVEL)
_logger.propagate = False
_setup_lock = threading.Lock()


def _is_json(record: logging.LogRecord) -> bool:
    return getattr(record, "is_json", False) is True


def _is_human(record: logging.LogRecord) -> bool:
    return not _is_json(record)


def _human_path(path: str) -> str:
    root, _ = os.path.splitext(path)
    return f"{root}-human.log"


def _handler(handler: logging.Handler, formatter: logging.Formatter, accept: Callable[[logging.LogRecord], bool]) -> logging.Handler:
    handler.setLevel(LOG_LEVEL)
    handler.setFormatter(formatter)
    handler.addFilter(accept)
    return handler


def _rotating(path: str) -> logging.handlers.RotatingFileHandler:
    return logging.handlers.RotatingFileHandler(path, maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUP_COUNT)


def _ensure_handlers() -> None:
    with _setup_lock:
        if _logger.handlers:
            return
        human = logging.Formatter(HUMAN_FORMAT, datefmt=HUMAN_DATEFMT)
        _logger.addHandler(_handler(logging.StreamHandler(stream=sys.stdout), human, _is_human))
        if not ENABLE_FILE_LOGS:
            return
        log_dir = os.path.dirname(LOG_FILE)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        _logger.addHandler(_handler(_rotating(LOG_FILE), logging.Formatter("%(message)s"), _is_json))
        _logger.addHandler(_handler(_rotating(_human_path(LOG_FILE)), human, _is_human))


def summarize(evt: dict[str, Any]) -> str:
    """Render the human line: session and kind first, then any summary fields present."""

    parts = [f"session={evt.get('session_id')}", f"kind={evt.get('kind')}"]
    parts.extend(f"{key}={evt[key]}" for key in SUMMARY_KEYS if evt.get(key) is not None)
    return " ".join(parts)


def _emit(level: int, message: str, *, is_json: bool) -> None:
    record = _logger.makeRecord(_logger.name, level, fn="", lno=0, msg=message, args=(), exc_info=None)
    record.is_json = is_json  # type: ignore[attr-defined]
    _logger.handle(record)


def log_event(kind: str, session_id: str, *, level: int = logging.INFO, **fields: Any) -> None:
    """Record one workflow event.

    ``fields`` should be JSON friendly; anything else is rendered with ``str``.
    """

    _ensure_handlers()
    payload: dict[str, Any] = {
        "ts": time.time(),
        "trace": str(uuid.uuid4()),
        "kind": kind,
        "session_id": session_id,
        "level": logging.getLevelName(level),
    }
    payload.update(fields)
    _emit(level, summarize(payload), is_json=False)
    if ENABLE_FILE_LOGS:
        _emit(level, json.dumps(payload, ensure_ascii=False, default=str), is_json=True)


__all__ = ["log_event", "summarize"]
