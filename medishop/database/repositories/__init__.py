# database/repositories/__init__.py
"""
Repository layer public API.

Usage:
    from medishop.database.repositories import (
        # Catalog
        ProductsRepo, Product,
        # Parties
        CustomersRepo, Customer, walk_in_customer, SuppliersRepo, Supplier,
        # Stock ledger
        StockLedgerRepo, StockTransaction,
        # Purchases
        PurchasesRepo, PurchaseEntry, PurchaseLine,
        # Bills
        BillsRepo, Bill, BillLine, SaleLine, ReturnLine,
    )
"""

# ----------------- Ledger ------------------
from .stock_ledger_repo import StockLedgerRepo, StockTransaction

# ---------------- Products -----------------
from .products_repo import ProductsRepo, Product

# ---------------- Parties ------------------
from .customers_repo import CustomersRepo, Customer, walk_in_customer
from .suppliers_repo import SuppliersRepo, Supplier

# ---------------- Purchases ----------------
from .purchases_repo import PurchasesRepo, PurchaseEntry, PurchaseLine

# ------------------ Bills ------------------
from .bills_repo import BillsRepo, Bill, BillLine, SaleLine, ReturnLine

__all__ = [
    # stock_ledger_repo
    "StockLedgerRepo",
    "StockTransaction",
    # products_repo
    "ProductsRepo",
    "Product",
    # customers_repo
    "CustomersRepo",
    "Customer",
    "walk_in_customer",
    # suppliers_repo
    "SuppliersRepo",
    "Supplier",
    # purchases_repo
    "PurchasesRepo",
    "PurchaseEntry",
    "PurchaseLine",
    # bills_repo
    "BillsRepo",
    "Bill",
    "BillLine",
    "SaleLine",
    "ReturnLine",
]
