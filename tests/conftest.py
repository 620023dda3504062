# medishop/tests/conftest.py
# ---------------------------------------------------------------------
# Ground rules:
# - pytest-qt owns QApplication (use qapp/qtbot fixtures), offscreen
# - Every test gets its own SQLite file under tmp_path (no shared DB)
# - conn.row_factory = sqlite3.Row, PRAGMA foreign_keys=ON (get_connection)
# - Provide handy ids for a small standard catalog + parties
# ---------------------------------------------------------------------

from __future__ import annotations

import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import sqlite3  # noqa: E402

import pytest  # noqa: E402

from medishop.config import BillingPolicy  # noqa: E402
from medishop.database import get_connection  # noqa: E402
from medishop.database.repositories import (  # noqa: E402
    CustomersRepo,
    Product,
    ProductsRepo,
    SuppliersRepo,
)
from medishop.modules.billing.engine import BillingEngine  # noqa: E402

from helpers import RecordingNotifier  # noqa: E402


# ---------- Per-test database ----------
@pytest.fixture()
def conn(tmp_path) -> sqlite3.Connection:
    con = get_connection(tmp_path / "medishop_test.db", seed=False)
    try:
        yield con
    finally:
        con.close()


# ---------- Standard catalog / parties ----------
@pytest.fixture()
def ids(conn: sqlite3.Connection) -> dict:
    products = ProductsRepo(conn)
    rice = products.create(Product(
        product_id=None, name="Rice 5kg", batch_no="RC001", expiry_date="2030-12-31",
        purchase_price=180.0, selling_price=220.0, mrp=230.0,
        stock_quantity=150, min_stock_level=50,
        category="Groceries", manufacturer="Premium Rice",
    ))
    oil = products.create(Product(
        product_id=None, name="Cooking Oil 1L", batch_no="OL002", expiry_date="2030-06-30",
        purchase_price=65.0, selling_price=78.0, mrp=80.0,
        stock_quantity=75, min_stock_level=30,
        category="Groceries", manufacturer="Pure Oil",
    ))
    para = products.create(Product(
        product_id=None, name="Paracetamol 500mg", batch_no="PC10", expiry_date="2030-03-01",
        purchase_price=1.5, selling_price=2.0, mrp=2.5,
        stock_quantity=500, min_stock_level=100,
        category="Medicines", manufacturer="Acme Pharma",
    ))
    customer = CustomersRepo(conn).create_customer("Asha Verma", "9876543210")
    supplier = SuppliersRepo(conn).create_supplier("Sunrise Distributors", "0221234567")
    return {
        "rice": rice,
        "oil": oil,
        "para": para,
        "customer": customer.customer_id,
        "supplier": supplier.supplier_id,
    }


@pytest.fixture()
def engine(conn) -> BillingEngine:
    return BillingEngine(conn, BillingPolicy())


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


