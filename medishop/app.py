"""
medishop/app.py

PosApp: the composition root a front-end (Qt window, CLI, tests) talks to.

One connection, one instance of each store and service, one notification
sink. Every mutating call goes through `_run`, which is the single
error-reporting contract:

  * success           -> "success" notification, result returned
  * DomainError       -> "error" notification titled after the error class, re-raised
  * anything else     -> logged with traceback, "Unexpected Error" notification, re-raised
"""
from __future__ import annotations

import logging
from pathlib import Path
import sqlite3
from typing import Callable, Dict, Iterable, List, Mapping, Optional, TypeVar

from .config import BillingPolicy
from .database import get_connection
from .database.repositories import (
    Bill,
    Customer,
    CustomersRepo,
    Product,
    ProductsRepo,
    PurchaseEntry,
    PurchaseLine,
    ReturnLine,
    StockLedgerRepo,
    Supplier,
    SuppliersRepo,
)
from .database.snapshots import SnapshotAdapter
from .errors import DomainError
from .modules.alerts import AlertMonitor
from .modules.billing.cart import Cart
from .modules.billing.engine import BillingEngine
from .modules.inventory import InventoryService
from .modules.purchase import PurchaseRegister
from .modules.reporting import ReportingService
from .modules.returns import ReturnProcessor
from .utils.helpers import fmt_money
from .utils.loggers import get_audit_logger
from .utils.notifications import LogNotifier, show_error, show_success

_log = logging.getLogger(__name__)

T = TypeVar("T")


class PosApp:
    def __init__(
        self,
        conn: sqlite3.Connection | None = None,
        *,
        db_path: Path | str | None = None,
        notifier=None,
        policy: BillingPolicy | None = None,
        audit_logger: logging.Logger | None = None,
    ):
        self.conn = conn if conn is not None else get_connection(db_path)
        self.notifier = notifier or LogNotifier()
        self.policy = policy or BillingPolicy.from_env()
        audit = audit_logger or get_audit_logger()

        self.products = ProductsRepo(self.conn)
        self.customers = CustomersRepo(self.conn)
        self.suppliers = SuppliersRepo(self.conn)
        self.ledger = StockLedgerRepo(self.conn)

        self.billing = BillingEngine(self.conn, self.policy, audit)
        self.purchases = PurchaseRegister(self.conn, audit)
        self.returns = ReturnProcessor(self.conn, audit)
        self.inventory = InventoryService(self.conn, audit)
        self.reports = ReportingService(self.conn)
        self.snapshots = SnapshotAdapter(self.conn, audit)
        self.alerts = AlertMonitor(self.products, self.notifier)

    # ------------------------------------------------------------------
    # error-reporting contract
    # ------------------------------------------------------------------
    def _run(self, fn: Callable[[], T], success: Callable[[T], str] | str) -> T:
        try:
            result = fn()
        except DomainError as e:
            show_error(self.notifier, e.message, e.title)
            raise
        except Exception as e:
            _log.exception("Unexpected error")
            show_error(self.notifier, str(e) or e.__class__.__name__, "Unexpected Error")
            raise
        show_success(self.notifier, success(result) if callable(success) else success)
        return result

    # ------------------------------------------------------------------
    # catalog
    # ------------------------------------------------------------------
    def add_product(self, product: Product) -> int:
        return self._run(lambda: self.products.create(product), f"{product.name} added to catalog.")

    def update_product(self, product_id: int, partial: Dict) -> Product:
        return self._run(
            lambda: self.products.update(product_id, partial),
            lambda p: f"{p.name} updated.",
        )

    def delete_product(self, product_id: int) -> None:
        return self._run(lambda: self.products.delete(product_id), "Product deleted.")

    def adjust_stock(self, product_id: int, delta: int, notes: str | None = None) -> int:
        return self._run(
            lambda: self.inventory.adjust_stock(product_id, delta, notes),
            lambda qty: f"Stock updated. New quantity: {qty}",
        )

    def low_stock(self) -> List[Product]:
        return self.products.list_low_stock()

    def expiring(self, within_days: int, today: str | None = None) -> List[Product]:
        return self.products.list_expiring(within_days, today=today)

    # ------------------------------------------------------------------
    # parties
    # ------------------------------------------------------------------
    def add_customer(self, name: str, phone: str, email: str | None = None, address: str | None = None) -> Customer:
        return self._run(
            lambda: self.customers.create_customer(name, phone, email, address),
            lambda c: f"Customer {c.name} added.",
        )

    def update_customer(self, customer_id: int, partial: Dict) -> Customer:
        return self._run(
            lambda: self.customers.update_customer(customer_id, partial),
            lambda c: f"Customer {c.name} updated.",
        )

    def add_supplier(self, name: str, phone: str = "", email: str | None = None, address: str | None = None) -> Supplier:
        return self._run(
            lambda: self.suppliers.create_supplier(name, phone, email, address),
            lambda s: f"Supplier {s.name} added.",
        )

    def update_supplier(self, supplier_id: int, partial: Dict) -> Supplier:
        return self._run(
            lambda: self.suppliers.update_supplier(supplier_id, partial),
            lambda s: f"Supplier {s.name} updated.",
        )

    # ------------------------------------------------------------------
    # billing / purchases / returns
    # ------------------------------------------------------------------
    def create_bill(self, cart: Cart) -> Bill:
        return self._run(
            lambda: self.billing.create_bill(cart),
            lambda b: f"Bill {b.bill_number} generated. Total: {fmt_money(b.total_amount)}",
        )

    def add_return_to_bill(self, bill_id: int, return_lines: Iterable[ReturnLine]) -> Bill:
        return self._run(
            lambda: self.billing.add_return_to_bill(bill_id, return_lines),
            lambda b: f"Return processed for bill {b.bill_number}. Refund: {fmt_money(b.return_amount)}",
        )

    def record_purchase(
        self, supplier_id: int, invoice_no: str, date: str, line_items: Iterable[PurchaseLine]
    ) -> PurchaseEntry:
        return self._run(
            lambda: self.purchases.record_purchase(supplier_id, invoice_no, date, line_items),
            lambda e: f"Purchase {e.invoice_no} recorded. Total: {fmt_money(e.total_amount)}",
        )

    def return_to_supplier(
        self,
        purchase_id: int,
        quantities: Optional[Mapping[int, int]] = None,
        *,
        quantity: Optional[int] = None,
        reason: str = "",
    ) -> Bill:
        return self._run(
            lambda: self.returns.return_to_supplier(
                purchase_id, quantities, quantity=quantity, reason=reason
            ),
            "Return to supplier processed successfully!",
        )

    def return_from_customer(
        self, product_id: int, quantity: int, *, customer_id: int | None = None, reason: str = ""
    ) -> Bill:
        return self._run(
            lambda: self.returns.return_from_customer(
                product_id, quantity, customer_id=customer_id, reason=reason
            ),
            "Customer return processed successfully!",
        )

    # ------------------------------------------------------------------
    # housekeeping
    # ------------------------------------------------------------------
    def check_alerts(self, today: str | None = None) -> Dict[str, List[int]]:
        return self.alerts.check(today)

    def reconcile(self) -> List[Dict]:
        return self.ledger.reconcile()

    def export_data(self, path: Path | str) -> Path:
        return self._run(lambda: self.snapshots.export_all(path), lambda p: f"Data exported to {p}")

    def import_data(self, path: Path | str) -> Dict[str, int]:
        return self._run(lambda: self.snapshots.import_all(path), "Data imported successfully.")

    def close(self) -> None:
        self.conn.close()
