"""
utils/loggers.py

Logging helpers.

Public API
----------
- get_logger(name) -> logging.Logger               plain console logger
- get_audit_logger(log_dir=None) -> logging.Logger JSON-lines audit logger
- log_event(logger, op, phase, message, extra)    one structured audit line
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional

from ..config import LOG_DIR, LOG_LEVEL

__all__ = ["get_logger", "get_audit_logger", "log_event"]

_AUDIT_LOGGER_NAME = "medishop.audit"
_AUDIT_FILE_NAME = "audit.log"


def get_logger(name="medishop"):
    logger = logging.getLogger(name)
    if not logger.handlers:
        logger.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))
        ch = logging.StreamHandler()
        ch.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
        logger.addHandler(ch)
    return logger


class _JsonLineFormatter(logging.Formatter):
    """
    Minimal JSON-lines formatter:
      {"ts":"2025-09-16T12:00:01.123Z","level":"INFO","name":"medishop.audit","msg":"...","extra":{...}}
    """
    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload = {
            "ts": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z",
            "level": record.levelname,
            "name": record.name,
            "msg": record.getMessage(),
        }
        if hasattr(record, "extra_payload") and isinstance(record.extra_payload, dict):
            payload["extra"] = record.extra_payload
        return json.dumps(payload, ensure_ascii=False, default=str)


def get_audit_logger(log_dir: Optional[str] = None, level: int = logging.INFO) -> logging.Logger:
    """
    Return the audit logger. Writes JSON lines to <log_dir>/audit.log when a
    directory is configured (argument or MEDISHOP_LOG_DIR), stderr otherwise.
    Reuses the same logger (no duplicate handlers) across calls.
    """
    logger = logging.getLogger(_AUDIT_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    if logger.handlers:
        return logger

    target_dir = log_dir or LOG_DIR
    if target_dir:
        path = Path(target_dir)
        path.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(
            str(path / _AUDIT_FILE_NAME), mode="a", encoding="utf-8", delay=True
        )
    else:
        handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(_JsonLineFormatter())
    logger.addHandler(handler)
    return logger


def log_event(
    logger: logging.Logger,
    op: str,
    phase: str,
    message: str,
    extra: Dict[str, object] | None = None,
    level: int = logging.INFO,
) -> None:
    """
    Log a structured audit event.

    Args:
        logger: Obtained from get_audit_logger().
        op: Operation name, e.g. "bill", "purchase", "supplier_return".
        phase: Phase within the operation, e.g. "commit", "return".
        message: Human-readable short message.
        extra: Optional additional key/values (ids, numbers, amounts).
        level: Logging level (default INFO).
    """
    extra_payload = {"op": op, "phase": phase}
    if extra:
        # required keys win
        for k, v in extra.items():
            if k not in extra_payload:
                extra_payload[k] = v
    logger.log(level, message, extra={"extra_payload": extra_payload})
