from __future__ import annotations

import logging
import sqlite3

from ...constants import ADJUSTMENT_REF_PREFIX, TXN_ADJUSTMENT
from ...database.repositories.products_repo import ProductsRepo
from ...database.repositories.stock_ledger_repo import StockLedgerRepo, StockTransaction
from ...database.transactions import immediate_tx
from ...errors import StockIntegrityError, ValidationError
from ...utils.helpers import compact_stamp, today_str
from ...utils.loggers import get_audit_logger, log_event

_log = logging.getLogger(__name__)


class InventoryService:
    """Manual stock corrections (damage, counting differences, opening balances)."""

    def __init__(self, conn: sqlite3.Connection, audit_logger: logging.Logger | None = None):
        self.conn = conn
        self.products = ProductsRepo(conn)
        self.ledger = StockLedgerRepo(conn)
        self.audit = audit_logger or get_audit_logger()

    def adjust_stock(
        self,
        product_id: int,
        delta: int,
        notes: str | None = None,
        date: str | None = None,
    ) -> int:
        """Apply a signed correction and return the new stock quantity."""
        if isinstance(delta, bool) or not isinstance(delta, int) or delta == 0:
            raise ValidationError(
                "Adjustment must be a non-zero whole number of units.", {"delta": delta}
            )
        product = self.products.require(product_id)
        if product.stock_quantity + delta < 0:
            raise StockIntegrityError(
                "Cannot reduce stock below zero.",
                {"product_id": product_id, "available": product.stock_quantity, "delta": delta},
            )

        reference = f"{ADJUSTMENT_REF_PREFIX}{compact_stamp()}"
        with immediate_tx(self.conn):
            new_qty = self.products.apply_stock_delta(product_id, delta)
            self.ledger.append(
                StockTransaction(
                    transaction_id=None,
                    txn_type=TXN_ADJUSTMENT,
                    product_id=product_id,
                    product_name=product.name,
                    quantity=delta,
                    date=date or today_str(),
                    reference=reference,
                    notes=notes or "Manual stock adjustment",
                )
            )

        log_event(
            self.audit, "adjustment", "commit",
            f"Stock of {product.name} adjusted by {delta:+d}",
            {"product_id": product_id, "delta": delta, "stock": new_qty, "reference": reference},
        )
        return new_qty
