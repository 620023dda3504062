"""
modules/purchase/register.py

Purchase register: records a supplier invoice and brings the goods into stock.

record_purchase() validates the whole request first and reports every
problem at once (no partial apply), then writes header, lines, stock and
ledger entries in one transaction.
"""
from __future__ import annotations

import logging
import sqlite3
from typing import Iterable, List, Optional

from ...constants import TXN_PURCHASE
from ...database.repositories.products_repo import ProductsRepo
from ...database.repositories.purchases_repo import PurchaseEntry, PurchaseLine, PurchasesRepo
from ...database.repositories.stock_ledger_repo import StockLedgerRepo, StockTransaction
from ...database.repositories.suppliers_repo import SuppliersRepo
from ...database.transactions import immediate_tx
from ...errors import ValidationError
from ...utils.helpers import parse_iso_date
from ...utils.loggers import get_audit_logger, log_event
from ...utils.validators import is_positive_int, is_strictly_positive_number, non_empty

_log = logging.getLogger(__name__)


class PurchaseRegister:
    def __init__(self, conn: sqlite3.Connection, audit_logger: logging.Logger | None = None):
        self.conn = conn
        self.products = ProductsRepo(conn)
        self.suppliers = SuppliersRepo(conn)
        self.purchases = PurchasesRepo(conn)
        self.ledger = StockLedgerRepo(conn)
        self.audit = audit_logger or get_audit_logger()

    def _validate(self, supplier_id, invoice_no, date, lines: List[PurchaseLine]):
        errors: List[str] = []
        supplier = self.suppliers.get_supplier(supplier_id) if supplier_id is not None else None
        if supplier is None:
            errors.append("Please select a valid supplier.")
        if not non_empty(invoice_no):
            errors.append("Invoice number is required.")
        try:
            parse_iso_date(date)
        except ValueError as e:
            errors.append(str(e))
        if not lines:
            errors.append("Add at least one item to the purchase.")

        for n, line in enumerate(lines, start=1):
            product = self.products.get(line.product_id)
            if product is None:
                errors.append(f"Line {n}: product {line.product_id} does not exist.")
            else:
                line.product_name = line.product_name or product.name
                line.batch_no = line.batch_no or product.batch_no
                line.expiry_date = line.expiry_date or product.expiry_date
            if not is_positive_int(line.quantity):
                errors.append(f"Line {n}: quantity must be a whole number greater than zero.")
            if not is_strictly_positive_number(line.purchase_price):
                errors.append(f"Line {n}: purchase price must be greater than zero.")

        if errors:
            raise ValidationError(" ".join(errors), {"errors": errors})
        return supplier

    def record_purchase(
        self,
        supplier_id: int,
        invoice_no: str,
        date: str,
        line_items: Iterable[PurchaseLine],
    ) -> PurchaseEntry:
        lines = list(line_items)
        supplier = self._validate(supplier_id, invoice_no, date, lines)
        for line in lines:
            line.quantity = int(line.quantity)
            line.purchase_price = float(line.purchase_price)

        entry = PurchaseEntry(
            purchase_id=None,
            supplier_id=supplier.supplier_id,
            supplier_name=supplier.name,
            invoice_no=invoice_no.strip(),
            date=parse_iso_date(date).isoformat(),
            items=lines,
            total_amount=sum(line.line_total for line in lines),
        )
        with immediate_tx(self.conn):
            self.purchases.insert(entry)
            for line in entry.items:
                self.products.apply_stock_delta(line.product_id, line.quantity)
                self.ledger.append(
                    StockTransaction(
                        transaction_id=None,
                        txn_type=TXN_PURCHASE,
                        product_id=line.product_id,
                        product_name=line.product_name,
                        quantity=line.quantity,
                        date=entry.date,
                        reference=entry.invoice_no,
                        notes=f"Purchase from {supplier.name}",
                        ref_table="purchase_items",
                        ref_item_id=line.item_id,
                    )
                )

        log_event(
            self.audit, "purchase", "commit",
            f"Purchase {entry.invoice_no} recorded",
            {
                "purchase_id": entry.purchase_id,
                "supplier_id": entry.supplier_id,
                "lines": len(entry.items),
                "total": entry.total_amount,
            },
        )
        _log.info("Purchase %s recorded: total=%.2f", entry.invoice_no, entry.total_amount)
        return entry

    def get_purchase(self, purchase_id: int) -> PurchaseEntry | None:
        return self.purchases.get(purchase_id)

    def list_purchases(
        self,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        supplier_id: Optional[int] = None,
    ) -> List[PurchaseEntry]:
        return self.purchases.list_purchases(
            date_from=date_from, date_to=date_to, supplier_id=supplier_id
        )
