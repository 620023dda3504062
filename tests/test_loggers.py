# tests/test_loggers.py
import io
import json
import logging

from medishop.utils.loggers import _JsonLineFormatter, get_audit_logger, log_event


def _capture(name):
    logger = logging.getLogger(name)
    logger.setLevel(logging.INFO)
    logger.propagate = False
    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(_JsonLineFormatter())
    logger.addHandler(handler)
    return logger, stream, handler


def test_log_event_writes_one_json_line():
    logger, stream, handler = _capture("medishop.audit.test")
    try:
        log_event(logger, "bill", "commit", "Bill MS2501150001 committed", {"total": 1062.0, "op": "ignored"})
    finally:
        logger.removeHandler(handler)

    (line,) = stream.getvalue().splitlines()
    payload = json.loads(line)
    assert payload["level"] == "INFO"
    assert payload["name"] == "medishop.audit.test"
    assert payload["msg"] == "Bill MS2501150001 committed"
    assert payload["extra"] == {"op": "bill", "phase": "commit", "total": 1062.0}
    assert payload["ts"].endswith("Z")


def test_audit_logger_writes_to_directory(tmp_path):
    logger = logging.getLogger("medishop.audit")
    saved = logger.handlers[:]
    for h in saved:
        logger.removeHandler(h)
    try:
        audit = get_audit_logger(str(tmp_path))
        assert get_audit_logger(str(tmp_path)) is audit
        assert len(audit.handlers) == 1
        log_event(audit, "snapshot", "export", "Exported")
        audit.handlers[0].flush()
        line = (tmp_path / "audit.log").read_text(encoding="utf-8").strip()
        assert json.loads(line)["extra"]["op"] == "snapshot"
    finally:
        for h in logger.handlers[:]:
            logger.removeHandler(h)
            h.close()
        for h in saved:
            logger.addHandler(h)
