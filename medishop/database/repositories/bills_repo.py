from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
import sqlite3
from typing import ClassVar, Dict, Iterable, List, Optional

from ...constants import (
    BILL_KIND_SALE,
    BILL_STATUS_COMMITTED,
    SYNTHETIC_BILL_PREFIXES,
)
from ...errors import ValidationError
from ...modules.billing.calculations import line_total
from ..transactions import immediate_tx


@dataclass
class BillLine(ABC):
    """
    One bill line. Quantities and prices are non-negative magnitudes;
    the subclass decides which way stock moves.
    """
    product_id: int
    quantity: int
    selling_price: float | None = None
    product_name: str = ""
    batch_no: str = ""
    mrp: float = 0.0
    discount_pct: float = 0.0
    gst_rate: float | None = None
    item_id: int | None = None

    kind: ClassVar[str] = ""

    @property
    def line_total(self) -> float:
        return line_total(self)

    @property
    @abstractmethod
    def stock_delta(self) -> int:
        ...


@dataclass
class SaleLine(BillLine):
    kind: ClassVar[str] = "sale"

    @property
    def stock_delta(self) -> int:
        return -int(self.quantity)


@dataclass
class ReturnLine(BillLine):
    kind: ClassVar[str] = "return"

    @property
    def stock_delta(self) -> int:
        return int(self.quantity)


_LINE_TYPES = {SaleLine.kind: SaleLine, ReturnLine.kind: ReturnLine}


@dataclass
class Bill:
    bill_id: int | None
    bill_number: str
    date: str
    time: str
    customer_id: int | None
    customer_name: str | None
    items: list[SaleLine] = field(default_factory=list)
    return_items: list[ReturnLine] = field(default_factory=list)
    subtotal: float = 0.0
    bill_discount_pct: float = 0.0
    total_discount: float = 0.0
    gst_pct: float = 0.0
    gst_amount: float = 0.0
    return_amount: float = 0.0
    total_amount: float = 0.0
    payment_mode: str = "cash"
    paid_amount: float = 0.0
    change_amount: float = 0.0
    staff_id: str | None = None
    staff_name: str | None = None
    bill_kind: str = BILL_KIND_SALE
    status: str = BILL_STATUS_COMMITTED

    @property
    def is_synthetic(self) -> bool:
        return self.bill_number.startswith(SYNTHETIC_BILL_PREFIXES)

    @property
    def after_discount(self) -> float:
        return self.subtotal - self.total_discount


_HEADER_COLUMNS = (
    "bill_id, bill_number, date, time, customer_id, customer_name, subtotal, "
    "bill_discount_pct, total_discount, gst_pct, gst_amount, return_amount, total_amount, "
    "payment_mode, paid_amount, change_amount, staff_id, staff_name, bill_kind, status"
)
_ITEM_COLUMNS = (
    "item_id, line_kind, product_id, product_name, batch_no, quantity, "
    "selling_price, mrp, discount_pct, gst_rate"
)


class BillsRepo:
    """Bill headers and lines. Stock, ledger and customer effects live in the billing engine."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.conn.row_factory = sqlite3.Row

    # ---------- Query ----------
    def _lines(self, bill_id: int) -> tuple[list[SaleLine], list[ReturnLine]]:
        rows = self.conn.execute(
            f"SELECT {_ITEM_COLUMNS} FROM bill_items WHERE bill_id=? ORDER BY line_kind DESC, line_no, item_id",
            (bill_id,),
        ).fetchall()
        sold: list[SaleLine] = []
        returned: list[ReturnLine] = []
        for r in rows:
            d = dict(r)
            cls = _LINE_TYPES[d.pop("line_kind")]
            (sold if cls is SaleLine else returned).append(cls(**d))
        return sold, returned

    def _from_row(self, r: sqlite3.Row) -> Bill:
        d = dict(r)
        d["items"], d["return_items"] = self._lines(int(d["bill_id"]))
        return Bill(**d)

    def get(self, bill_id: int) -> Bill | None:
        r = self.conn.execute(
            f"SELECT {_HEADER_COLUMNS} FROM bills WHERE bill_id=?", (bill_id,)
        ).fetchone()
        return self._from_row(r) if r else None

    def get_by_number(self, bill_number: str) -> Bill | None:
        r = self.conn.execute(
            f"SELECT {_HEADER_COLUMNS} FROM bills WHERE bill_number=?", (bill_number,)
        ).fetchone()
        return self._from_row(r) if r else None

    def list_bills(
        self,
        *,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        kinds: Optional[Iterable[str]] = None,
        customer_id: Optional[int] = None,
    ) -> List[Bill]:
        """
        Bills filtered by inclusive date range / bill kind / customer.
        Newest first: DATE(date) DESC, bill_id DESC.
        """
        where: List[str] = []
        params: List = []
        if date_from:
            where.append("DATE(date) >= DATE(?)")
            params.append(date_from)
        if date_to:
            where.append("DATE(date) <= DATE(?)")
            params.append(date_to)
        if kinds is not None:
            kinds = list(kinds)
            where.append(f"bill_kind IN ({', '.join('?' for _ in kinds)})")
            params.extend(kinds)
        if customer_id is not None:
            where.append("customer_id = ?")
            params.append(customer_id)

        sql = f"SELECT {_HEADER_COLUMNS} FROM bills"
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY DATE(date) DESC, bill_id DESC"
        return [self._from_row(r) for r in self.conn.execute(sql, tuple(params)).fetchall()]

    def line_quantities(self, bill_id: int, line_kind: str) -> Dict[int, int]:
        """{product_id: total quantity} for the sold or returned lines of one bill."""
        rows = self.conn.execute(
            "SELECT product_id, SUM(quantity) AS qty FROM bill_items "
            "WHERE bill_id=? AND line_kind=? GROUP BY product_id",
            (bill_id, line_kind),
        ).fetchall()
        return {int(r["product_id"]): int(r["qty"]) for r in rows}

    # ---------- Low-level inserts ----------
    def _insert_line(self, bill_id: int, line_no: int, line: BillLine) -> int:
        cur = self.conn.execute(
            """
            INSERT INTO bill_items(
                bill_id, line_kind, line_no, product_id, product_name, batch_no, quantity,
                selling_price, mrp, discount_pct, gst_rate, line_total
            ) VALUES (?,?,?,?,?,?,?,?,?,?,?,?)
            """,
            (
                bill_id, line.kind, line_no, line.product_id, line.product_name,
                line.batch_no or "", int(line.quantity), float(line.selling_price),
                float(line.mrp or 0), float(line.discount_pct or 0), float(line.gst_rate or 0),
                line.line_total,
            ),
        )
        line.item_id = int(cur.lastrowid)
        return line.item_id

    def _next_line_no(self, bill_id: int, line_kind: str) -> int:
        row = self.conn.execute(
            "SELECT COALESCE(MAX(line_no), 0) FROM bill_items WHERE bill_id=? AND line_kind=?",
            (bill_id, line_kind),
        ).fetchone()
        return int(row[0]) + 1

    def insert(self, bill: Bill) -> int:
        """Persist header + sold/returned lines. Joins the caller's transaction."""
        try:
            with immediate_tx(self.conn):
                cur = self.conn.execute(
                    """
                    INSERT INTO bills(
                        bill_number, bill_kind, status, date, time, customer_id, customer_name,
                        subtotal, bill_discount_pct, total_discount, gst_pct, gst_amount,
                        return_amount, total_amount, payment_mode, paid_amount, change_amount,
                        staff_id, staff_name
                    ) VALUES (?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?)
                    """,
                    (
                        bill.bill_number, bill.bill_kind, bill.status, bill.date, bill.time,
                        bill.customer_id, bill.customer_name, bill.subtotal,
                        bill.bill_discount_pct, bill.total_discount, bill.gst_pct,
                        bill.gst_amount, bill.return_amount, bill.total_amount,
                        bill.payment_mode, bill.paid_amount, bill.change_amount,
                        bill.staff_id, bill.staff_name,
                    ),
                )
                bill.bill_id = int(cur.lastrowid)
                for n, line in enumerate(bill.items, start=1):
                    self._insert_line(bill.bill_id, n, line)
                for n, line in enumerate(bill.return_items, start=1):
                    self._insert_line(bill.bill_id, n, line)
        except sqlite3.IntegrityError as e:
            raise ValidationError(f"Invalid bill: {e}") from e
        return bill.bill_id

    def add_return_lines(self, bill_id: int, lines: Iterable[ReturnLine]) -> None:
        """Append returned lines after any already on the bill."""
        with immediate_tx(self.conn):
            n = self._next_line_no(bill_id, ReturnLine.kind)
            for line in lines:
                self._insert_line(bill_id, n, line)
                n += 1

    def update_totals(
        self,
        bill_id: int,
        *,
        return_amount: float,
        total_amount: float,
        status: str,
    ) -> None:
        with immediate_tx(self.conn):
            self.conn.execute(
                "UPDATE bills SET return_amount=?, total_amount=?, status=? WHERE bill_id=?",
                (return_amount, total_amount, status, bill_id),
            )
