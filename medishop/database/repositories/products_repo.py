# medishop/database/repositories/products_repo.py
from __future__ import annotations

from dataclasses import dataclass, asdict, fields
import sqlite3
from typing import Dict, List

from ...constants import EDIT_REF_PREFIX, TXN_ADJUSTMENT
from ...errors import NotFoundError, StockIntegrityError, ValidationError
from ...utils.helpers import add_days, parse_iso_date, today_str
from ...utils.validators import is_whole_number
from ..transactions import immediate_tx
from .stock_ledger_repo import StockLedgerRepo, StockTransaction


@dataclass
class Product:
    product_id: int | None
    name: str
    batch_no: str = ""
    expiry_date: str | None = None
    purchase_price: float = 0.0
    selling_price: float = 0.0
    mrp: float = 0.0
    stock_quantity: int = 0
    min_stock_level: int = 0
    category: str | None = None
    manufacturer: str | None = None
    hsn_code: str | None = None
    barcode: str | None = None
    added_date: str | None = None
    opening_stock: int = 0

    @property
    def is_low_stock(self) -> bool:
        return self.stock_quantity <= self.min_stock_level


_COLUMNS = (
    "product_id, name, batch_no, expiry_date, purchase_price, selling_price, mrp, "
    "stock_quantity, min_stock_level, category, manufacturer, hsn_code, barcode, "
    "added_date, opening_stock"
)

# fields a caller may change through update(); identity and history stay put
_UPDATABLE = {
    f.name for f in fields(Product)
} - {"product_id", "added_date", "opening_stock"}


class ProductsRepo:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.conn.row_factory = sqlite3.Row
        self.ledger = StockLedgerRepo(conn)

    # ---------------------------- Queries ----------------------------

    def list_products(self) -> list[Product]:
        rows = self.conn.execute(
            f"SELECT {_COLUMNS} FROM products ORDER BY product_id"
        ).fetchall()
        return [Product(**dict(r)) for r in rows]

    def get(self, product_id: int) -> Product | None:
        r = self.conn.execute(
            f"SELECT {_COLUMNS} FROM products WHERE product_id=?",
            (product_id,),
        ).fetchone()
        return Product(**dict(r)) if r else None

    def require(self, product_id: int) -> Product:
        p = self.get(product_id)
        if p is None:
            raise NotFoundError(f"Product {product_id} not found.", {"product_id": product_id})
        return p

    def search(self, term: str) -> list[Product]:
        """
        Case-insensitive match on name, manufacturer and batch number
        (what the cart search box types into).
        """
        pattern = f"%{(term or '').strip().lower()}%"
        rows = self.conn.execute(
            f"""
            SELECT {_COLUMNS} FROM products
            WHERE LOWER(name) LIKE ?
               OR LOWER(COALESCE(manufacturer, '')) LIKE ?
               OR LOWER(batch_no) LIKE ?
            ORDER BY name, product_id
            """,
            (pattern, pattern, pattern),
        ).fetchall()
        return [Product(**dict(r)) for r in rows]

    def list_low_stock(self) -> list[Product]:
        rows = self.conn.execute(
            f"SELECT {_COLUMNS} FROM products "
            "WHERE stock_quantity <= min_stock_level "
            "ORDER BY product_id"
        ).fetchall()
        return [Product(**dict(r)) for r in rows]

    def list_expiring(self, within_days: int, today: str | None = None) -> list[Product]:
        """Products with an expiry date in [today, today + within_days]."""
        start = parse_iso_date(today) if today else parse_iso_date(today_str())
        end = add_days(start, int(within_days))
        rows = self.conn.execute(
            f"SELECT {_COLUMNS} FROM products "
            "WHERE expiry_date IS NOT NULL AND expiry_date <> '' "
            "  AND DATE(expiry_date) BETWEEN DATE(?) AND DATE(?) "
            "ORDER BY DATE(expiry_date), product_id",
            (start.isoformat(), end.isoformat()),
        ).fetchall()
        return [Product(**dict(r)) for r in rows]

    # ---------------------------- Mutations ----------------------------

    def create(self, product: Product) -> int:
        """
        Insert a catalog item. The starting stock is remembered as
        opening_stock so stock == opening_stock + SUM(ledger) holds.
        """
        if not (product.name or "").strip():
            raise ValidationError("Product name cannot be empty.")
        added = product.added_date or today_str()
        try:
            with immediate_tx(self.conn):
                cur = self.conn.execute(
                    """
                    INSERT INTO products(
                        name, batch_no, expiry_date, purchase_price, selling_price, mrp,
                        stock_quantity, opening_stock, min_stock_level, category,
                        manufacturer, hsn_code, barcode, added_date
                    ) VALUES (?,?,?,?,?,?,?,?,?,?,?,?,?,?)
                    """,
                    (
                        product.name.strip(),
                        product.batch_no or "",
                        product.expiry_date or None,
                        float(product.purchase_price),
                        float(product.selling_price),
                        float(product.mrp),
                        int(product.stock_quantity),
                        int(product.stock_quantity),
                        int(product.min_stock_level),
                        product.category,
                        product.manufacturer,
                        product.hsn_code,
                        product.barcode,
                        added,
                    ),
                )
        except sqlite3.IntegrityError as e:
            raise ValidationError(f"Invalid product: {e}") from e
        product.product_id = int(cur.lastrowid)
        product.opening_stock = int(product.stock_quantity)
        product.added_date = added
        return product.product_id

    def update(self, product_id: int, partial: Dict) -> Product:
        """
        Shallow merge of `partial` into the stored row. A change of
        stock_quantity is posted to the ledger as an adjustment.
        """
        unknown = set(partial) - _UPDATABLE
        if unknown:
            raise ValidationError(
                f"Unknown product field(s): {', '.join(sorted(unknown))}",
                {"fields": sorted(unknown)},
            )
        if "stock_quantity" in partial:
            qty = partial["stock_quantity"]
            if not is_whole_number(qty):
                raise ValidationError(
                    "Stock quantity must be a whole number of units.",
                    {"product_id": product_id, "stock_quantity": qty},
                )
            if qty < 0:
                raise StockIntegrityError(
                    f"Stock cannot be set below zero (got {int(qty)}).",
                    {"product_id": product_id, "stock_quantity": int(qty)},
                )
            partial = {**partial, "stock_quantity": int(qty)}
        try:
            with immediate_tx(self.conn):
                current = self.require(product_id)
                merged = asdict(current)
                merged.update(partial)
                delta = int(merged["stock_quantity"]) - int(current.stock_quantity)

                sets = ", ".join(f"{k}=?" for k in sorted(partial))
                if sets:
                    self.conn.execute(
                        f"UPDATE products SET {sets} WHERE product_id=?",
                        tuple(merged[k] for k in sorted(partial)) + (product_id,),
                    )
                if delta:
                    self.ledger.append(
                        StockTransaction(
                            transaction_id=None,
                            txn_type=TXN_ADJUSTMENT,
                            product_id=product_id,
                            product_name=merged["name"],
                            quantity=delta,
                            date=today_str(),
                            reference=f"{EDIT_REF_PREFIX}{product_id}",
                            notes="Stock edited on product record",
                        )
                    )
        except sqlite3.IntegrityError as e:
            raise ValidationError(f"Invalid product update: {e}") from e
        return self.require(product_id)

    def _product_is_referenced(self, product_id: int) -> bool:
        checks = (
            "SELECT 1 FROM bill_items         WHERE product_id=? LIMIT 1",
            "SELECT 1 FROM purchase_items     WHERE product_id=? LIMIT 1",
            "SELECT 1 FROM stock_transactions WHERE product_id=? LIMIT 1",
        )
        return any(self.conn.execute(sql, (product_id,)).fetchone() for sql in checks)

    def delete(self, product_id: int) -> None:
        """Hard delete, refused while bills, purchases or the ledger point at the item."""
        self.require(product_id)
        if self._product_is_referenced(product_id):
            raise ValidationError(
                "Cannot delete product: it is referenced by bills, purchases or stock history.",
                {"product_id": product_id},
            )
        with immediate_tx(self.conn):
            self.conn.execute("DELETE FROM products WHERE product_id=?", (product_id,))

    def apply_stock_delta(self, product_id: int, delta: int) -> int:
        """
        Shift stock by a signed delta and return the new quantity.
        Joins the caller's transaction; never lets stock go negative.
        """
        with immediate_tx(self.conn):
            p = self.require(product_id)
            new_qty = int(p.stock_quantity) + int(delta)
            if new_qty < 0:
                raise StockIntegrityError(
                    f"Insufficient stock for {p.name}: have {p.stock_quantity}, need {-int(delta)}.",
                    {"product_id": product_id, "available": p.stock_quantity, "delta": int(delta)},
                )
            self.conn.execute(
                "UPDATE products SET stock_quantity=? WHERE product_id=?",
                (new_qty, product_id),
            )
            return new_qty
