"""
Repository for the stock ledger (stock_transactions).

The ledger is append-only: `append` is the single write path and assigns
identity, nothing else. Consistency with the catalog is a read-side check
(`reconcile`), never enforced at write time.

Conventions:
- Quantities are signed deltas in units (sale < 0, purchase/return > 0,
  supplier return < 0, adjustment either way).
- Date strings are ISO 'YYYY-MM-DD'.
- List methods return newest first.
"""

from __future__ import annotations

from dataclasses import dataclass
import sqlite3
from typing import Dict, List, Optional

from ..transactions import immediate_tx


@dataclass
class StockTransaction:
    transaction_id: int | None
    txn_type: str
    product_id: int
    product_name: str
    quantity: int
    date: str
    reference: str = ""
    notes: str | None = None
    # line that caused the movement: ('purchase_items' | 'bill_items', item_id)
    ref_table: str | None = None
    ref_item_id: int | None = None


_COLUMNS = (
    "transaction_id, txn_type, product_id, product_name, quantity, date, "
    "reference, notes, ref_table, ref_item_id"
)


class StockLedgerRepo:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.conn.row_factory = sqlite3.Row

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------
    def append(self, txn: StockTransaction) -> int:
        with immediate_tx(self.conn):
            cur = self.conn.execute(
                """
                INSERT INTO stock_transactions(
                    txn_type, product_id, product_name, quantity, date,
                    reference, notes, ref_table, ref_item_id
                ) VALUES (?,?,?,?,?,?,?,?,?)
                """,
                (
                    txn.txn_type,
                    int(txn.product_id),
                    txn.product_name,
                    int(txn.quantity),
                    txn.date,
                    txn.reference or "",
                    txn.notes,
                    txn.ref_table,
                    txn.ref_item_id,
                ),
            )
            txn.transaction_id = int(cur.lastrowid)
            return txn.transaction_id

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------
    def get(self, transaction_id: int) -> StockTransaction | None:
        r = self.conn.execute(
            f"SELECT {_COLUMNS} FROM stock_transactions WHERE transaction_id=?",
            (int(transaction_id),),
        ).fetchone()
        return StockTransaction(**dict(r)) if r else None

    def list_transactions(
        self,
        *,
        date_from: Optional[str] = None,   # inclusive 'YYYY-MM-DD'
        date_to: Optional[str] = None,     # inclusive 'YYYY-MM-DD'
        product_id: Optional[int] = None,
        txn_type: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[StockTransaction]:
        """
        Find transactions by optional date range, product and type.
        Only applies WHERE fragments when the corresponding filter is given.
        Ordering: DATE(date) DESC, transaction_id DESC.
        """
        where: List[str] = []
        params: List = []

        if date_from:
            where.append("DATE(date) >= DATE(?)")
            params.append(date_from)
        if date_to:
            where.append("DATE(date) <= DATE(?)")
            params.append(date_to)
        if product_id is not None:
            where.append("product_id = ?")
            params.append(int(product_id))
        if txn_type:
            where.append("txn_type = ?")
            params.append(txn_type)

        sql = f"SELECT {_COLUMNS} FROM stock_transactions"
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY DATE(date) DESC, transaction_id DESC"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(int(limit))

        rows = self.conn.execute(sql, tuple(params)).fetchall()
        return [StockTransaction(**dict(r)) for r in rows]

    def for_reference(self, reference: str) -> List[StockTransaction]:
        rows = self.conn.execute(
            f"SELECT {_COLUMNS} FROM stock_transactions WHERE reference=? ORDER BY transaction_id",
            (reference,),
        ).fetchall()
        return [StockTransaction(**dict(r)) for r in rows]

    def net_delta(self, product_id: int) -> int:
        row = self.conn.execute(
            "SELECT COALESCE(SUM(quantity), 0) FROM stock_transactions WHERE product_id=?",
            (int(product_id),),
        ).fetchone()
        return int(row[0])

    def returned_against_item(self, ref_table: str, item_id: int) -> int:
        """Units already returned against a purchase/bill line (positive number)."""
        row = self.conn.execute(
            """
            SELECT COALESCE(SUM(ABS(quantity)), 0)
            FROM stock_transactions
            WHERE txn_type='return' AND ref_table=? AND ref_item_id=?
            """,
            (ref_table, int(item_id)),
        ).fetchone()
        return int(row[0])

    def reconcile(self) -> List[Dict]:
        """
        Read-side consistency check: every product must satisfy
            stock_quantity == opening_stock + SUM(ledger deltas).
        Returns one dict per offending product (empty list when consistent).
        """
        rows = self.conn.execute(
            """
            SELECT p.product_id,
                   p.name                                AS product_name,
                   p.opening_stock                       AS opening_stock,
                   COALESCE(SUM(t.quantity), 0)          AS ledger_delta,
                   p.stock_quantity                      AS stock_quantity
            FROM products p
            LEFT JOIN stock_transactions t ON t.product_id = p.product_id
            GROUP BY p.product_id
            HAVING p.opening_stock + COALESCE(SUM(t.quantity), 0) <> p.stock_quantity
            ORDER BY p.product_id
            """
        ).fetchall()
        out = []
        for r in rows:
            d = dict(r)
            d["expected_stock"] = int(d["opening_stock"]) + int(d["ledger_delta"])
            out.append(d)
        return out
