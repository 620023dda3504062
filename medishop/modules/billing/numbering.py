"""
Document numbers for bills.

Format: <prefix><yymmdd><NNNN>, e.g. MS2510190001. NNNN is a 1-based,
zero-padded daily sequence computed as MAX + 1 over the same day's numbers,
so it must be called inside the committing transaction.
"""
from __future__ import annotations

from datetime import date
import sqlite3

from ...constants import BILL_PREFIX, CUSTOMER_RETURN_PREFIX, SUPPLIER_RETURN_PREFIX
from ...utils.helpers import parse_iso_date


def _day_part(date_str: str | date) -> str:
    d = date_str if isinstance(date_str, date) else parse_iso_date(date_str)
    return d.strftime("%y%m%d")


def new_document_number(conn: sqlite3.Connection, prefix: str, date_str: str | date) -> str:
    stem = f"{prefix}{_day_part(date_str)}"
    row = conn.execute(
        "SELECT MAX(CAST(SUBSTR(bill_number, ?) AS INTEGER)) AS m "
        "FROM bills WHERE SUBSTR(bill_number, 1, ?) = ?",
        (len(stem) + 1, len(stem), stem),
    ).fetchone()
    last = int(row["m"]) if row and row["m"] is not None else 0
    return f"{stem}{last + 1:04d}"


def new_bill_number(conn: sqlite3.Connection, date_str: str | date) -> str:
    return new_document_number(conn, BILL_PREFIX, date_str)


def new_supplier_return_number(conn: sqlite3.Connection, date_str: str | date) -> str:
    return new_document_number(conn, SUPPLIER_RETURN_PREFIX, date_str)


def new_customer_return_number(conn: sqlite3.Connection, date_str: str | date) -> str:
    return new_document_number(conn, CUSTOMER_RETURN_PREFIX, date_str)
