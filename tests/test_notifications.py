# tests/test_notifications.py
import logging

import pytest

from medishop.utils.notifications import (
    LogNotifier,
    QtNotifier,
    show_error,
    show_info,
    show_success,
    show_warning,
)


def test_qt_notifier_emits_signal(qtbot):
    sink = QtNotifier()
    with qtbot.waitSignal(sink.notified, timeout=1000) as blocker:
        show_success(sink, "Bill MS2501150001 generated.")
    assert blocker.args == ["success", "Success", "Bill MS2501150001 generated."]


def test_qt_notifier_history_is_bounded(qapp):
    sink = QtNotifier(history_limit=3)
    for n in range(5):
        show_info(sink, f"message {n}")
    assert [m for _, _, m in sink.history] == ["message 2", "message 3", "message 4"]
    sink.clear_history()
    assert sink.history == []


def test_unknown_kind_rejected(qapp):
    with pytest.raises(ValueError):
        QtNotifier().notify("fatal", "Oops", "bad kind")


def test_log_notifier_maps_kinds_to_levels(caplog):
    sink = LogNotifier(logging.getLogger("medishop.notifications.test"))
    with caplog.at_level(logging.INFO, logger="medishop.notifications.test"):
        show_warning(sink, "Rice 5kg is running low!", "Low Stock Alert")
        show_error(sink, "Cart is empty.", "Validation Error")
    levels = [r.levelno for r in caplog.records]
    assert levels == [logging.WARNING, logging.ERROR]
    assert "Low Stock Alert" in caplog.records[0].getMessage()
