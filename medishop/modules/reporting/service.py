"""
modules/reporting/service.py

Read-only summaries for the reports screen and the dashboard.

All sales figures use ordinary sale bills only (the PURCHASE-/CUSTOMER-
audit bills are left out). Date ranges are inclusive ISO 'YYYY-MM-DD';
either end may be omitted. Numbers are not rounded here.
"""
from __future__ import annotations

from collections import OrderedDict
import sqlite3
from typing import Dict, List, Optional

from ...constants import BILL_KIND_SALE, EXPIRY_REPORT_DAYS
from ...database.repositories.bills_repo import Bill, BillsRepo
from ...database.repositories.products_repo import ProductsRepo


def _rate_key(rate: float | None) -> str:
    r = float(rate or 0.0)
    return f"{int(r)}%" if r.is_integer() else f"{r:g}%"


class ReportingService:
    def __init__(self, conn: sqlite3.Connection, today: Optional[str] = None):
        self.conn = conn
        self.bills = BillsRepo(conn)
        self.products = ProductsRepo(conn)
        # fixed "today" for expiry counts (tests); None = real date
        self.today = today

    def _sale_bills(self, date_from: Optional[str], date_to: Optional[str]) -> List[Bill]:
        bills = self.bills.list_bills(date_from=date_from, date_to=date_to, kinds=(BILL_KIND_SALE,))
        # oldest first so daily series come out in calendar order
        return [b for b in reversed(bills) if not b.is_synthetic]

    # ------------------------------------------------------------------
    def sales_summary(self, date_from: Optional[str] = None, date_to: Optional[str] = None) -> Dict:
        bills = self._sale_bills(date_from, date_to)
        total_sales = sum(b.total_amount for b in bills)
        transactions = len(bills)

        daily: Dict[str, float] = OrderedDict()
        modes: Dict[str, int] = {}
        for b in bills:
            daily[b.date] = daily.get(b.date, 0.0) + b.total_amount
            modes[b.payment_mode] = modes.get(b.payment_mode, 0) + 1

        return {
            "total_sales": total_sales,
            "transactions": transactions,
            "items": sum(len(b.items) for b in bills),
            "average_transaction": total_sales / transactions if transactions else 0.0,
            "daily_sales": dict(daily),
            "payment_modes": modes,
        }

    def gst_report(self, date_from: Optional[str] = None, date_to: Optional[str] = None) -> Dict:
        """
        gst_collected / taxable_amount come from bill headers; by_rate is a
        per-line breakdown (line total x line GST rate).
        """
        bills = self._sale_bills(date_from, date_to)
        by_rate: Dict[str, Dict[str, float]] = {}
        for b in bills:
            for it in b.items:
                key = _rate_key(it.gst_rate)
                bucket = by_rate.setdefault(key, {"taxable": 0.0, "gst": 0.0})
                taxable = it.line_total
                bucket["taxable"] += taxable
                bucket["gst"] += taxable * float(it.gst_rate or 0.0) / 100.0

        gst_collected = sum(b.gst_amount for b in bills)
        return {
            "gst_collected": gst_collected,
            "taxable_amount": sum(b.total_amount - b.gst_amount for b in bills),
            "by_rate": by_rate,
        }

    def profit_report(self, date_from: Optional[str] = None, date_to: Optional[str] = None) -> Dict:
        """Cost uses each product's current purchase price."""
        bills = self._sale_bills(date_from, date_to)
        cost_price = {p.product_id: p.purchase_price for p in self.products.list_products()}

        revenue = 0.0
        cost = 0.0
        for b in bills:
            for it in b.items:
                revenue += it.line_total
                cost += cost_price.get(it.product_id, 0.0) * it.quantity
        gross = revenue - cost
        return {
            "revenue": revenue,
            "cost": cost,
            "gross_profit": gross,
            "margin_pct": (gross / revenue * 100.0) if revenue > 0 else 0.0,
        }

    def inventory_status(self, expiry_days: int = EXPIRY_REPORT_DAYS) -> Dict:
        products = self.products.list_products()
        by_category: Dict[str, int] = {}
        for p in products:
            cat = p.category or "Other"
            by_category[cat] = by_category.get(cat, 0) + int(p.stock_quantity)
        return {
            "product_count": len(products),
            "low_stock_count": len(self.products.list_low_stock()),
            "expiring_count": len(self.products.list_expiring(expiry_days, today=self.today)),
            "stock_value": sum(p.stock_quantity * p.selling_price for p in products),
            "category_stock": by_category,
        }
