# tests/helpers.py
"""Shared test helpers (imported by the test modules and conftest)."""
from __future__ import annotations

import sqlite3


class RecordingNotifier:
    """Notification sink that just remembers what it was told."""

    def __init__(self):
        self.calls: list[tuple[str, str, str]] = []

    def notify(self, kind: str, title: str, message: str) -> None:
        self.calls.append((kind, title, message))

    def kinds(self) -> list[str]:
        return [c[0] for c in self.calls]

    def titles(self) -> list[str]:
        return [c[1] for c in self.calls]


def stock_of(conn: sqlite3.Connection, product_id: int) -> int:
    return int(conn.execute(
        "SELECT stock_quantity FROM products WHERE product_id=?", (product_id,)
    ).fetchone()[0])


def ledger_count(conn: sqlite3.Connection) -> int:
    return int(conn.execute("SELECT COUNT(*) FROM stock_transactions").fetchone()[0])
