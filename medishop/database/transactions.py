"""
Unit of work for multi-table writes.

Services wrap each business operation in ``immediate_tx(conn)``; repository
writes called inside it join the same transaction, so one failure rolls back
every table touched by the operation.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager


@contextmanager
def immediate_tx(conn: sqlite3.Connection):
    """
    Start an IMMEDIATE transaction (write lock taken up front), commit on
    success, rollback on error. Nested use joins the outer transaction.
    """
    if conn.in_transaction:
        yield conn
        return
    cur = conn.cursor()
    try:
        cur.execute("BEGIN IMMEDIATE")
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        cur.close()
