from __future__ import annotations
from dataclasses import dataclass, field
import sqlite3
from typing import Iterable, Optional

from ...errors import ValidationError
from ..transactions import immediate_tx


@dataclass
class PurchaseLine:
    product_id: int
    quantity: int
    purchase_price: float
    product_name: str = ""
    batch_no: str = ""
    expiry_date: str | None = None
    item_id: int | None = None

    @property
    def line_total(self) -> float:
        return float(self.quantity) * float(self.purchase_price)


@dataclass
class PurchaseEntry:
    purchase_id: int | None
    supplier_id: int
    supplier_name: str
    invoice_no: str
    date: str
    items: list[PurchaseLine] = field(default_factory=list)
    total_amount: float = 0.0


_LINE_COLUMNS = "item_id, product_id, product_name, quantity, purchase_price, batch_no, expiry_date"


class PurchasesRepo:
    """Storage for supplier invoices. Stock and ledger effects live in the purchase register."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.conn.row_factory = sqlite3.Row

    # ---------- Query ----------
    def _items(self, purchase_id: int) -> list[PurchaseLine]:
        rows = self.conn.execute(
            f"SELECT {_LINE_COLUMNS} FROM purchase_items WHERE purchase_id=? ORDER BY line_no, item_id",
            (purchase_id,),
        ).fetchall()
        return [PurchaseLine(**dict(r)) for r in rows]

    def _from_row(self, r: sqlite3.Row) -> PurchaseEntry:
        return PurchaseEntry(
            purchase_id=int(r["purchase_id"]),
            supplier_id=r["supplier_id"],
            supplier_name=r["supplier_name"],
            invoice_no=r["invoice_no"],
            date=r["date"],
            items=self._items(int(r["purchase_id"])),
            total_amount=float(r["total_amount"]),
        )

    def get(self, purchase_id: int) -> PurchaseEntry | None:
        r = self.conn.execute(
            "SELECT purchase_id, supplier_id, supplier_name, invoice_no, date, total_amount "
            "FROM purchases WHERE purchase_id=?",
            (purchase_id,),
        ).fetchone()
        return self._from_row(r) if r else None

    def list_purchases(
        self,
        *,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        supplier_id: Optional[int] = None,
    ) -> list[PurchaseEntry]:
        """Newest first."""
        where: list[str] = []
        params: list = []
        if date_from:
            where.append("DATE(date) >= DATE(?)")
            params.append(date_from)
        if date_to:
            where.append("DATE(date) <= DATE(?)")
            params.append(date_to)
        if supplier_id is not None:
            where.append("supplier_id = ?")
            params.append(supplier_id)
        sql = (
            "SELECT purchase_id, supplier_id, supplier_name, invoice_no, date, total_amount "
            "FROM purchases"
        )
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY DATE(date) DESC, purchase_id DESC"
        return [self._from_row(r) for r in self.conn.execute(sql, tuple(params)).fetchall()]

    def get_returnable_for_items(self, purchase_id: int) -> list[dict]:
        """
        For each purchase_items row in a purchase, return:
          purchased_qty, returned_qty, remaining_returnable
        Returned units are read from the ledger rows tagged with the line's item_id.
        """
        rows = self.conn.execute(
            """
            SELECT
              pi.item_id,
              pi.product_id,
              pi.product_name,
              pi.quantity AS purchased_qty,
              COALESCE((
                SELECT SUM(ABS(t.quantity))
                FROM stock_transactions t
                WHERE t.txn_type = 'return'
                  AND t.ref_table = 'purchase_items'
                  AND t.ref_item_id = pi.item_id
              ), 0) AS returned_qty
            FROM purchase_items pi
            WHERE pi.purchase_id = ?
            ORDER BY pi.line_no, pi.item_id
            """,
            (purchase_id,),
        ).fetchall()
        out: list[dict] = []
        for r in rows:
            purchased = int(r["purchased_qty"])
            returned = int(r["returned_qty"])
            out.append({
                "item_id": int(r["item_id"]),
                "product_id": int(r["product_id"]),
                "product_name": r["product_name"],
                "purchased_qty": purchased,
                "returned_qty": returned,
                "remaining_returnable": max(0, purchased - returned),
            })
        return out

    # ---------- Low-level inserts ----------
    def _insert_header(self, e: PurchaseEntry) -> int:
        cur = self.conn.execute(
            """
            INSERT INTO purchases(supplier_id, supplier_name, invoice_no, date, total_amount)
            VALUES (?,?,?,?,?)
            """,
            (e.supplier_id, e.supplier_name, e.invoice_no, e.date, e.total_amount),
        )
        return int(cur.lastrowid)

    def _insert_item(self, purchase_id: int, line_no: int, it: PurchaseLine) -> int:
        cur = self.conn.execute(
            """
            INSERT INTO purchase_items(
                purchase_id, line_no, product_id, product_name, quantity,
                purchase_price, batch_no, expiry_date
            ) VALUES (?,?,?,?,?,?,?,?)
            """,
            (
                purchase_id, line_no, it.product_id, it.product_name, int(it.quantity),
                float(it.purchase_price), it.batch_no or "", it.expiry_date,
            ),
        )
        return int(cur.lastrowid)

    def insert(self, entry: PurchaseEntry, items: Iterable[PurchaseLine] | None = None) -> int:
        """
        Persist header + lines, filling in the generated ids on the passed objects.
        Joins the caller's transaction.
        """
        lines = list(items if items is not None else entry.items)
        try:
            with immediate_tx(self.conn):
                entry.purchase_id = self._insert_header(entry)
                for n, it in enumerate(lines, start=1):
                    it.item_id = self._insert_item(entry.purchase_id, n, it)
        except sqlite3.IntegrityError as e:
            if "UNIQUE" in str(e):
                raise ValidationError(
                    f"Invoice {entry.invoice_no} is already recorded for this supplier.",
                    {"invoice_no": entry.invoice_no, "supplier_id": entry.supplier_id},
                ) from e
            raise ValidationError(f"Invalid purchase: {e}") from e
        entry.items = lines
        return entry.purchase_id
