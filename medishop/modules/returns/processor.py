"""
modules/returns/processor.py

Stock going back out to a supplier, or coming back in from a customer,
outside of a specific bill. Each flow moves stock, writes ledger entries and
leaves an audit-trail bill (PURCHASE-... / CUSTOMER-...) in one transaction.
These bills carry no payment and are hidden from the ordinary bills list.
"""
from __future__ import annotations

import logging
import sqlite3
from typing import Dict, List, Mapping, Optional

from ...constants import (
    BILL_KIND_CUSTOMER_RETURN,
    BILL_KIND_SUPPLIER_RETURN,
    BILL_STATUS_COMMITTED,
    CUSTOMER_RETURN_REF,
    SUPPLIER_RETURN_REF_PREFIX,
    TXN_RETURN,
    WALK_IN_CUSTOMER_ID,
)
from ...database.repositories.bills_repo import Bill, BillsRepo, ReturnLine, SaleLine
from ...database.repositories.customers_repo import CustomersRepo
from ...database.repositories.products_repo import ProductsRepo
from ...database.repositories.purchases_repo import PurchaseEntry, PurchasesRepo
from ...database.repositories.stock_ledger_repo import StockLedgerRepo, StockTransaction
from ...database.transactions import immediate_tx
from ...errors import NotFoundError, StockIntegrityError, ValidationError
from ...utils.helpers import now_time_str, today_str
from ...utils.loggers import get_audit_logger, log_event
from ...utils.validators import is_positive_int
from ..billing.numbering import new_customer_return_number, new_supplier_return_number

_log = logging.getLogger(__name__)


class ReturnProcessor:
    def __init__(self, conn: sqlite3.Connection, audit_logger: logging.Logger | None = None):
        self.conn = conn
        self.products = ProductsRepo(conn)
        self.customers = CustomersRepo(conn)
        self.purchases = PurchasesRepo(conn)
        self.bills = BillsRepo(conn)
        self.ledger = StockLedgerRepo(conn)
        self.audit = audit_logger or get_audit_logger()

    # ------------------------------------------------------------------
    # Supplier side
    # ------------------------------------------------------------------
    def _requested_quantities(
        self,
        purchase: PurchaseEntry,
        quantities: Optional[Mapping[int, int]],
        quantity: Optional[int],
    ) -> Dict[int, int]:
        if (quantities is None) == (quantity is None):
            raise ValidationError("Give either per-line quantities or a single quantity, not both.")
        if quantity is not None:
            _log.warning(
                "Uniform supplier return: %s unit(s) taken off every line of invoice %s",
                quantity, purchase.invoice_no,
            )
            return {line.item_id: quantity for line in purchase.items}

        requested = {int(k): v for k, v in dict(quantities).items()}
        if not requested:
            raise ValidationError("Select at least one item to return.")
        known = {line.item_id for line in purchase.items}
        stray = sorted(set(requested) - known)
        if stray:
            raise ValidationError(
                f"Line(s) {', '.join(map(str, stray))} are not on invoice {purchase.invoice_no}.",
                {"item_ids": stray},
            )
        return requested

    def return_to_supplier(
        self,
        purchase_id: int,
        quantities: Optional[Mapping[int, int]] = None,
        *,
        quantity: Optional[int] = None,
        reason: str = "",
        date: str | None = None,
    ) -> Bill:
        """
        Send goods from a purchase back to its supplier.

        quantities maps purchase line item_id -> units to return. The legacy
        quantity= keyword returns the same number of units from every line.
        """
        purchase = self.purchases.get(purchase_id) if purchase_id is not None else None
        if purchase is None:
            raise NotFoundError(f"Purchase {purchase_id} not found.", {"purchase_id": purchase_id})

        requested = self._requested_quantities(purchase, quantities, quantity)
        returnable = {r["item_id"]: r for r in self.purchases.get_returnable_for_items(purchase_id)}
        by_item = {line.item_id: line for line in purchase.items}

        net: Dict[int, int] = {}
        for item_id, qty in requested.items():
            if not is_positive_int(qty):
                raise ValidationError(
                    "Return quantity must be a whole number greater than zero.",
                    {"item_id": item_id, "quantity": qty},
                )
            remaining = returnable[item_id]["remaining_returnable"]
            if int(qty) > remaining:
                raise ValidationError(
                    f"Cannot return {int(qty)} of {by_item[item_id].product_name}: "
                    f"only {remaining} left from this invoice.",
                    {"item_id": item_id, "remaining_returnable": remaining},
                )
            pid = by_item[item_id].product_id
            net[pid] = net.get(pid, 0) + int(qty)

        for pid, qty in net.items():
            p = self.products.require(pid)
            if p.stock_quantity < qty:
                raise StockIntegrityError(
                    f"Insufficient stock for {p.name}: available {p.stock_quantity}, returning {qty}.",
                    {"product_id": pid, "available": p.stock_quantity, "requested": qty},
                )

        day = date or today_str()
        notes = f"Return to supplier: {purchase.supplier_name} - {reason}"
        with immediate_tx(self.conn):
            lines: List[SaleLine] = []
            for item_id, qty in requested.items():
                src = by_item[item_id]
                qty = int(qty)
                self.products.apply_stock_delta(src.product_id, -qty)
                self.ledger.append(
                    StockTransaction(
                        transaction_id=None,
                        txn_type=TXN_RETURN,
                        product_id=src.product_id,
                        product_name=src.product_name,
                        quantity=-qty,
                        date=day,
                        reference=f"{SUPPLIER_RETURN_REF_PREFIX}{purchase.invoice_no}",
                        notes=notes,
                        ref_table="purchase_items",
                        ref_item_id=item_id,
                    )
                )
                lines.append(
                    SaleLine(
                        product_id=src.product_id,
                        quantity=qty,
                        selling_price=src.purchase_price,
                        product_name=src.product_name,
                        batch_no=src.batch_no,
                        gst_rate=0.0,
                    )
                )
            value = sum(line.line_total for line in lines)
            bill = Bill(
                bill_id=None,
                bill_number=new_supplier_return_number(self.conn, day),
                date=day,
                time=now_time_str(),
                customer_id=None,
                customer_name=purchase.supplier_name,
                items=lines,
                subtotal=value,
                total_amount=value,
                payment_mode="cash",
                paid_amount=0.0,
                change_amount=0.0,
                bill_kind=BILL_KIND_SUPPLIER_RETURN,
                status=BILL_STATUS_COMMITTED,
            )
            self.bills.insert(bill)

        log_event(
            self.audit, "supplier_return", "commit",
            f"Return to supplier {purchase.supplier_name} for invoice {purchase.invoice_no}",
            {
                "purchase_id": purchase_id,
                "bill_number": bill.bill_number,
                "units": sum(net.values()),
                "value": value,
                "uniform": quantity is not None,
            },
        )
        return bill

    # ------------------------------------------------------------------
    # Customer side
    # ------------------------------------------------------------------
    def return_from_customer(
        self,
        product_id: int,
        quantity: int,
        *,
        customer_id: int | None = None,
        reason: str = "",
        date: str | None = None,
    ) -> Bill:
        """Take goods back from a customer (no bill needed) and put them back on the shelf."""
        if product_id is None:
            raise ValidationError("Please select a product.")
        if not is_positive_int(quantity):
            raise ValidationError(
                "Return quantity must be a whole number greater than zero.",
                {"quantity": quantity},
            )
        product = self.products.get(product_id)
        if product is None:
            raise ValidationError(f"Product {product_id} does not exist.", {"product_id": product_id})
        customer = self.customers.resolve_customer(
            WALK_IN_CUSTOMER_ID if customer_id is None else customer_id
        )
        qty = int(quantity)

        day = date or today_str()
        with immediate_tx(self.conn):
            self.products.apply_stock_delta(product_id, qty)
            self.ledger.append(
                StockTransaction(
                    transaction_id=None,
                    txn_type=TXN_RETURN,
                    product_id=product_id,
                    product_name=product.name,
                    quantity=qty,
                    date=day,
                    reference=CUSTOMER_RETURN_REF,
                    notes=f"Customer return - {reason}",
                )
            )
            line = ReturnLine(
                product_id=product_id,
                quantity=qty,
                selling_price=product.selling_price,
                product_name=product.name,
                batch_no=product.batch_no,
                mrp=product.mrp,
                gst_rate=0.0,
            )
            value = line.line_total
            bill = Bill(
                bill_id=None,
                bill_number=new_customer_return_number(self.conn, day),
                date=day,
                time=now_time_str(),
                customer_id=None if customer.is_walk_in else customer.customer_id,
                customer_name=customer.name,
                return_items=[line],
                return_amount=value,
                total_amount=value,
                payment_mode="cash",
                paid_amount=0.0,
                change_amount=0.0,
                bill_kind=BILL_KIND_CUSTOMER_RETURN,
                status=BILL_STATUS_COMMITTED,
            )
            self.bills.insert(bill)

        log_event(
            self.audit, "customer_return", "commit",
            f"Customer return of {qty} x {product.name}",
            {"product_id": product_id, "bill_number": bill.bill_number, "units": qty, "value": value},
        )
        return bill
