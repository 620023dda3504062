"""
database/snapshots.py

Persistence adapter: whole-collection snapshots of each store.

- load_collection(key)        -> list[dict]   ([] when empty)
- save_collection(key, items) -> None         replaces the collection atomically
- export_all(path) / import_all(path)         JSON backup / restore of every collection

Rows are plain dicts with the table's column names. Bills and purchases
carry their line rows under "items" (bill lines keep their line_kind).
Collections are ordered by primary key so save -> load round-trips exactly.
"""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path
import sqlite3
from typing import Dict, List

from ..constants import SCHEMA_VERSION
from ..errors import ValidationError
from ..utils.helpers import now_iso
from ..utils.loggers import get_audit_logger, log_event
from .transactions import immediate_tx
from .versioning import is_compatible

_log = logging.getLogger(__name__)

# key -> (table, primary key, child table or None)
COLLECTIONS: Dict[str, tuple] = {
    "products": ("products", "product_id", None),
    "customers": ("customers", "customer_id", None),
    "suppliers": ("suppliers", "supplier_id", None),
    "purchases": ("purchases", "purchase_id", "purchase_items"),
    "bills": ("bills", "bill_id", "bill_items"),
    "stock_transactions": ("stock_transactions", "transaction_id", None),
}

# parents before children on restore
_RESTORE_ORDER = ("products", "customers", "suppliers", "purchases", "bills", "stock_transactions")


class SnapshotAdapter:
    def __init__(self, conn: sqlite3.Connection, audit_logger: logging.Logger | None = None):
        self.conn = conn
        self.conn.row_factory = sqlite3.Row
        self.audit = audit_logger or get_audit_logger()

    # ---------- helpers ----------
    @staticmethod
    def _collection(key: str) -> tuple:
        try:
            return COLLECTIONS[key]
        except KeyError:
            raise ValidationError(
                f"Unknown collection {key!r}. Known: {', '.join(COLLECTIONS)}",
                {"key": key},
            ) from None

    def _columns(self, table: str) -> List[str]:
        return [r[1] for r in self.conn.execute(f"PRAGMA table_info({table})").fetchall()]

    def _insert_rows(self, table: str, rows: List[dict]) -> None:
        cols = self._columns(table)
        for row in rows:
            unknown = set(row) - set(cols)
            if unknown:
                raise ValidationError(
                    f"Unknown column(s) for {table}: {', '.join(sorted(unknown))}",
                    {"table": table, "columns": sorted(unknown)},
                )
            keys = [c for c in cols if c in row]
            self.conn.execute(
                f"INSERT INTO {table}({', '.join(keys)}) VALUES ({', '.join('?' for _ in keys)})",
                tuple(row[k] for k in keys),
            )

    # ---------- public API ----------
    def load_collection(self, key: str) -> List[dict]:
        table, pk, child = self._collection(key)
        rows = [dict(r) for r in self.conn.execute(f"SELECT * FROM {table} ORDER BY {pk}").fetchall()]
        if child:
            for row in rows:
                items = self.conn.execute(
                    f"SELECT * FROM {child} WHERE {pk}=? ORDER BY item_id", (row[pk],)
                ).fetchall()
                row["items"] = [{k: v for k, v in dict(it).items() if k != pk} for it in items]
        return rows

    def _replace(self, key: str, items: List[dict]) -> None:
        table, pk, child = self._collection(key)
        if child:
            self.conn.execute(f"DELETE FROM {child}")
        self.conn.execute(f"DELETE FROM {table}")
        headers = []
        for it in items:
            h = dict(it)
            h.pop("items", None)
            headers.append(h)
        self._insert_rows(table, headers)
        if child:
            for it in items:
                lines = [dict(line, **{pk: it[pk]}) for line in it.get("items", [])]
                self._insert_rows(child, lines)

    def _restore(self, collections: Dict[str, List[dict]]) -> None:
        try:
            with immediate_tx(self.conn):
                # rows reference each other across collections; check FKs at commit
                self.conn.execute("PRAGMA defer_foreign_keys = ON")
                for key in _RESTORE_ORDER:
                    if key in collections:
                        self._replace(key, list(collections[key]))
        except sqlite3.IntegrityError as e:
            raise ValidationError(f"Snapshot rejected: {e}") from e

    def save_collection(self, key: str, items: List[dict]) -> None:
        self._collection(key)
        self._restore({key: items})
        _log.debug("Saved %d row(s) to %s", len(items), key)

    def export_all(self, path: str | Path) -> Path:
        """Write every collection to a JSON file (temp file + os.replace)."""
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        doc = {
            "schema_version": SCHEMA_VERSION,
            "exported_at": now_iso(),
            "collections": {key: self.load_collection(key) for key in COLLECTIONS},
        }
        tmp = target.with_suffix(target.suffix + ".tmp")
        with open(tmp, "w", encoding="utf-8") as fh:
            json.dump(doc, fh, ensure_ascii=False, indent=2)
        os.replace(tmp, target)
        log_event(
            self.audit, "snapshot", "export", f"Exported data to {target}",
            {k: len(v) for k, v in doc["collections"].items()},
        )
        return target

    def import_all(self, path: str | Path) -> Dict[str, int]:
        """Replace every collection present in the file, all in one transaction."""
        try:
            with open(path, "r", encoding="utf-8") as fh:
                doc = json.load(fh)
        except (OSError, json.JSONDecodeError) as e:
            raise ValidationError(f"Could not read backup {path}: {e}") from e

        collections = doc.get("collections") if isinstance(doc, dict) else None
        if not isinstance(collections, dict):
            raise ValidationError("Backup file has no 'collections' section.")
        version = doc.get("schema_version")
        if version is not None and not is_compatible(version):
            raise ValidationError(
                f"Backup was written by schema {version}; this build reads {SCHEMA_VERSION}.",
                {"schema_version": version},
            )
        for key in collections:
            self._collection(key)
        self._restore(collections)

        counts = {k: len(v) for k, v in collections.items()}
        log_event(self.audit, "snapshot", "import", f"Imported data from {path}", counts)
        return counts
