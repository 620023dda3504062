"""
modules/billing/engine.py

Billing engine: turns a Cart into a committed Bill and applies returns to
committed bills.

State machine:
    Draft (Cart, in memory) --create_bill--> committed --add_return_to_bill--> returned

Every commit runs inside one IMMEDIATE transaction covering the bill rows,
catalog stock, ledger entries and the customer's running total. Validation
happens before the first write; anything raised after that rolls back.
"""
from __future__ import annotations

from collections import defaultdict
import logging
import sqlite3
from typing import Dict, Iterable, List, Optional

from ...config import BillingPolicy, RETURN_TOTAL_NET
from ...constants import (
    BILL_KIND_CUSTOMER_RETURN,
    BILL_KIND_SALE,
    BILL_KIND_SUPPLIER_RETURN,
    BILL_RETURN_REF_PREFIX,
    BILL_STATUS_COMMITTED,
    BILL_STATUS_RETURNED,
    PAYMENT_MODES,
    TXN_RETURN,
    TXN_SALE,
)
from ...database.repositories.bills_repo import Bill, BillLine, BillsRepo, ReturnLine, SaleLine
from ...database.repositories.customers_repo import CustomersRepo
from ...database.repositories.products_repo import Product, ProductsRepo
from ...database.repositories.stock_ledger_repo import StockLedgerRepo, StockTransaction
from ...database.transactions import immediate_tx
from ...errors import NotFoundError, StockIntegrityError, ValidationError
from ...utils.helpers import now_time_str, today_str
from ...utils.loggers import get_audit_logger, log_event
from ...utils.validators import is_non_negative_number, is_percentage, is_positive_int
from .calculations import BillTotals, change_due, compute_totals
from .cart import Cart
from .numbering import new_bill_number

_log = logging.getLogger(__name__)

# float noise allowance when comparing money
_EPS = 1e-9


class BillingEngine:
    def __init__(
        self,
        conn: sqlite3.Connection,
        policy: BillingPolicy | None = None,
        audit_logger: logging.Logger | None = None,
    ):
        self.conn = conn
        self.policy = policy or BillingPolicy()
        self.products = ProductsRepo(conn)
        self.customers = CustomersRepo(conn)
        self.ledger = StockLedgerRepo(conn)
        self.bills = BillsRepo(conn)
        self.audit = audit_logger or get_audit_logger()

    # ------------------------------------------------------------------
    # Validation helpers (no writes)
    # ------------------------------------------------------------------
    def _prepare_line(self, line: BillLine, gst_pct: float, label: str) -> Product:
        """Check one cart line and fill the catalog-derived fields it left blank."""
        if not is_positive_int(line.quantity):
            raise ValidationError(
                f"{label}: quantity must be a whole number greater than zero.",
                {"product_id": line.product_id, "quantity": line.quantity},
            )
        product = self.products.get(line.product_id)
        if product is None:
            raise ValidationError(
                f"{label}: product {line.product_id} does not exist.",
                {"product_id": line.product_id},
            )
        if line.selling_price is None:
            line.selling_price = product.selling_price
        if not is_non_negative_number(line.selling_price):
            raise ValidationError(
                f"{label}: price cannot be negative.",
                {"product_id": line.product_id, "selling_price": line.selling_price},
            )
        if not is_percentage(line.discount_pct):
            raise ValidationError(
                f"{label}: discount must be between 0 and 100%.",
                {"product_id": line.product_id, "discount_pct": line.discount_pct},
            )
        line.quantity = int(line.quantity)
        line.product_name = line.product_name or product.name
        line.batch_no = line.batch_no or product.batch_no
        line.mrp = line.mrp or product.mrp
        if line.gst_rate is None:
            line.gst_rate = gst_pct
        return product

    def _validate_cart(self, cart: Cart, gst_pct: float):
        if cart.is_empty:
            raise ValidationError("Cart is empty. Please add items before generating the bill.")
        customer = self.customers.resolve_customer(cart.customer_id)

        if not is_percentage(cart.bill_discount_pct):
            raise ValidationError("Bill discount must be between 0 and 100%.")
        if not is_non_negative_number(gst_pct):
            raise ValidationError("GST rate cannot be negative.")
        if cart.payment_mode not in PAYMENT_MODES:
            raise ValidationError(
                f"Payment mode must be one of: {', '.join(PAYMENT_MODES)}",
                {"payment_mode": cart.payment_mode},
            )
        catalog: Dict[int, Product] = {}
        for line in cart.items:
            catalog[line.product_id] = self._prepare_line(line, gst_pct, "Item")
        for line in cart.return_items:
            catalog[line.product_id] = self._prepare_line(line, gst_pct, "Return item")
        return customer, catalog

    @staticmethod
    def _check_stock(cart: Cart, catalog: Dict[int, Product]) -> None:
        """Aggregate per product: stock + returned - sold must stay >= 0."""
        net: Dict[int, int] = defaultdict(int)
        for line in cart.return_items:
            net[line.product_id] += line.stock_delta
        for line in cart.items:
            net[line.product_id] += line.stock_delta
        for pid, delta in net.items():
            p = catalog[pid]
            if p.stock_quantity + delta < 0:
                raise StockIntegrityError(
                    f"Insufficient stock for {p.name}: available {p.stock_quantity}, "
                    f"requested {-delta}.",
                    {"product_id": pid, "available": p.stock_quantity, "requested": -delta},
                )

    # ------------------------------------------------------------------
    # Shared write helper
    # ------------------------------------------------------------------
    def _post_line(self, line: BillLine, txn_type: str, date: str, reference: str, notes: str) -> None:
        """Move catalog stock for one line and record the movement. Joins the caller's tx."""
        self.products.apply_stock_delta(line.product_id, line.stock_delta)
        self.ledger.append(
            StockTransaction(
                transaction_id=None,
                txn_type=txn_type,
                product_id=line.product_id,
                product_name=line.product_name,
                quantity=line.stock_delta,
                date=date,
                reference=reference,
                notes=notes,
                ref_table="bill_items",
                ref_item_id=line.item_id,
            )
        )

    # ------------------------------------------------------------------
    # Commit
    # ------------------------------------------------------------------
    def preview(self, cart: Cart) -> BillTotals:
        """Totals for a cart without validating or writing anything."""
        gst = self.policy.default_gst_pct if cart.gst_pct is None else cart.gst_pct
        return compute_totals(cart.items, cart.return_items, cart.bill_discount_pct, gst)

    def create_bill(self, cart: Cart, *, date: str | None = None, time: str | None = None) -> Bill:
        gst_pct = float(self.policy.default_gst_pct if cart.gst_pct is None else cart.gst_pct)
        customer, catalog = self._validate_cart(cart, gst_pct)

        totals = compute_totals(cart.items, cart.return_items, cart.bill_discount_pct, gst_pct)
        paid = totals.total if cart.paid_amount is None else float(cart.paid_amount)
        if paid + _EPS < totals.total:
            raise ValidationError(
                "Paid amount is less than the bill total.",
                {"paid_amount": paid, "total": totals.total},
            )
        self._check_stock(cart, catalog)

        day = date or today_str()
        with immediate_tx(self.conn):
            bill = Bill(
                bill_id=None,
                bill_number=new_bill_number(self.conn, day),
                date=day,
                time=time or now_time_str(),
                customer_id=None if customer.is_walk_in else customer.customer_id,
                customer_name=customer.name,
                items=list(cart.items),
                return_items=list(cart.return_items),
                subtotal=totals.subtotal,
                bill_discount_pct=float(cart.bill_discount_pct or 0.0),
                total_discount=totals.bill_discount,
                gst_pct=gst_pct,
                gst_amount=totals.gst_amount,
                return_amount=totals.return_amount,
                total_amount=totals.total,
                payment_mode=cart.payment_mode,
                paid_amount=paid,
                change_amount=change_due(totals.total, paid),
                staff_id=cart.staff_id,
                staff_name=cart.staff_name,
                bill_kind=BILL_KIND_SALE,
                status=BILL_STATUS_COMMITTED,
            )
            self.bills.insert(bill)

            # credit returns first so an exchange never dips below zero midway
            for line in bill.return_items:
                self._post_line(
                    line, TXN_RETURN, day,
                    f"{BILL_RETURN_REF_PREFIX}{bill.bill_number}",
                    f"Return from bill {bill.bill_number}",
                )
            for line in bill.items:
                self._post_line(
                    line, TXN_SALE, day, bill.bill_number,
                    f"Sale - Bill {bill.bill_number}",
                )
            if not customer.is_walk_in:
                self.customers.add_to_total_purchases(customer.customer_id, bill.total_amount)

        log_event(
            self.audit, "bill", "commit",
            f"Bill {bill.bill_number} committed",
            {
                "bill_id": bill.bill_id,
                "bill_number": bill.bill_number,
                "customer_id": bill.customer_id,
                "lines": len(bill.items),
                "return_lines": len(bill.return_items),
                "total": bill.total_amount,
            },
        )
        _log.info("Bill %s committed: total=%.2f", bill.bill_number, bill.total_amount)
        return bill

    # ------------------------------------------------------------------
    # Retroactive return
    # ------------------------------------------------------------------
    def _returned_total(self, bill: Bill, return_amount: float) -> float:
        if self.policy.return_total_mode == RETURN_TOTAL_NET:
            return bill.after_discount + bill.gst_amount - return_amount
        return bill.subtotal - return_amount

    def add_return_to_bill(self, bill_id: int, return_lines: Iterable[ReturnLine]) -> Bill:
        """
        Apply a customer return to a committed sale bill.

        Each product must have been sold on the bill, and no more units than
        were sold can come back. A line without a price is refunded at the
        price (and discount) of the sold line. The bill total is recomputed
        per BillingPolicy.return_total_mode and the bill becomes 'returned'.
        """
        bill = self.bills.get(bill_id)
        if bill is None:
            raise NotFoundError(f"Bill {bill_id} not found.", {"bill_id": bill_id})
        if bill.bill_kind != BILL_KIND_SALE or bill.is_synthetic:
            raise ValidationError(
                f"{bill.bill_number} is a return record and cannot take returns.",
                {"bill_id": bill_id},
            )
        if bill.status == BILL_STATUS_RETURNED:
            raise ValidationError(
                f"A return has already been applied to bill {bill.bill_number}.",
                {"bill_id": bill_id},
            )
        lines: List[ReturnLine] = list(return_lines)
        if not lines:
            raise ValidationError("Select at least one item to return.")

        sold_lines = {it.product_id: it for it in bill.items}
        sold_qty = self.bills.line_quantities(bill_id, SaleLine.kind)
        requested: Dict[int, int] = defaultdict(int)
        for line in lines:
            if not is_positive_int(line.quantity):
                raise ValidationError(
                    "Return quantity must be a whole number greater than zero.",
                    {"product_id": line.product_id, "quantity": line.quantity},
                )
            sold = sold_lines.get(line.product_id)
            if sold is None:
                raise ValidationError(
                    f"Product {line.product_id} was not sold on bill {bill.bill_number}.",
                    {"bill_id": bill_id, "product_id": line.product_id},
                )
            line.quantity = int(line.quantity)
            requested[line.product_id] += line.quantity
            if requested[line.product_id] > sold_qty.get(line.product_id, 0):
                raise ValidationError(
                    f"Cannot return more {sold.product_name} than was sold "
                    f"({sold_qty.get(line.product_id, 0)}).",
                    {"product_id": line.product_id, "sold": sold_qty.get(line.product_id, 0)},
                )
            if line.selling_price is None:
                line.selling_price = sold.selling_price
                line.discount_pct = sold.discount_pct
            if not is_non_negative_number(line.selling_price):
                raise ValidationError("Return price cannot be negative.", {"product_id": line.product_id})
            if not is_percentage(line.discount_pct):
                raise ValidationError(
                    "Return discount must be between 0 and 100%.", {"product_id": line.product_id}
                )
            line.product_name = line.product_name or sold.product_name
            line.batch_no = line.batch_no or sold.batch_no
            line.mrp = line.mrp or sold.mrp
            if line.gst_rate is None:
                line.gst_rate = sold.gst_rate

        return_amount = bill.return_amount + sum(line.line_total for line in lines)
        new_total = self._returned_total(bill, return_amount)
        old_total = bill.total_amount

        with immediate_tx(self.conn):
            self.bills.add_return_lines(bill_id, lines)
            for line in lines:
                self._post_line(
                    line, TXN_RETURN, today_str(),
                    f"{BILL_RETURN_REF_PREFIX}{bill.bill_number}",
                    f"Return from bill {bill.bill_number}",
                )
            self.bills.update_totals(
                bill_id,
                return_amount=return_amount,
                total_amount=new_total,
                status=BILL_STATUS_RETURNED,
            )
            if self.policy.reverse_customer_total_on_return and bill.customer_id is not None:
                self.customers.add_to_total_purchases(bill.customer_id, new_total - old_total)

        log_event(
            self.audit, "bill", "return",
            f"Return applied to bill {bill.bill_number}",
            {
                "bill_id": bill_id,
                "bill_number": bill.bill_number,
                "return_amount": return_amount,
                "total_before": old_total,
                "total_after": new_total,
                "mode": self.policy.return_total_mode,
            },
        )
        return self.bills.get(bill_id)

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------
    def get_bill(self, bill_id: int) -> Bill | None:
        return self.bills.get(bill_id)

    def get_bill_by_number(self, bill_number: str) -> Bill | None:
        return self.bills.get_by_number(bill_number)

    def list_bills(
        self,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        include_synthetic: bool = False,
    ) -> List[Bill]:
        """The recent-bills view: ordinary sales only unless include_synthetic."""
        bills = self.bills.list_bills(
            date_from=date_from,
            date_to=date_to,
            kinds=None if include_synthetic else (BILL_KIND_SALE,),
        )
        if include_synthetic:
            return bills
        return [b for b in bills if not b.is_synthetic]

    def list_return_bills(self, date_from: Optional[str] = None, date_to: Optional[str] = None) -> List[Bill]:
        return self.bills.list_bills(
            date_from=date_from,
            date_to=date_to,
            kinds=(BILL_KIND_SUPPLIER_RETURN, BILL_KIND_CUSTOMER_RETURN),
        )
