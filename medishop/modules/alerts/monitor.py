from __future__ import annotations

from typing import Dict, List, Set

from ...constants import EXPIRY_ALERT_DAYS
from ...database.repositories.products_repo import ProductsRepo
from ...utils.helpers import parse_iso_date, today_str
from ...utils.notifications import show_error, show_warning


class AlertMonitor:
    """
    Watches the catalog for low stock and near expiry.

    Each product alerts once while it stays on a list; once it drops off
    (restocked, expired past the window, edited) it may alert again later.
    Call check() after every mutation or on a timer.
    """

    def __init__(self, products: ProductsRepo, notifier, expiry_days: int = EXPIRY_ALERT_DAYS):
        self.products = products
        self.notifier = notifier
        self.expiry_days = int(expiry_days)
        self._low_stock_seen: Set[int] = set()
        self._expiring_seen: Set[int] = set()

    def check(self, today: str | None = None) -> Dict[str, List[int]]:
        """Send any new alerts; returns the product ids alerted this round."""
        day = today or today_str()
        fired: Dict[str, List[int]] = {"low_stock": [], "expiring": []}

        low = self.products.list_low_stock()
        for p in low:
            if p.product_id in self._low_stock_seen:
                continue
            show_warning(
                self.notifier,
                f"{p.name} is running low! Current stock: {p.stock_quantity}, "
                f"Minimum: {p.min_stock_level}",
                "Low Stock Alert",
            )
            self._low_stock_seen.add(p.product_id)
            fired["low_stock"].append(p.product_id)

        expiring = self.products.list_expiring(self.expiry_days, today=day)
        for p in expiring:
            if p.product_id in self._expiring_seen:
                continue
            days_left = (parse_iso_date(p.expiry_date) - parse_iso_date(day)).days
            show_error(
                self.notifier,
                f"{p.name} expires in {days_left} day{'' if days_left == 1 else 's'}! "
                f"Expiry date: {p.expiry_date}",
                "Expiry Alert",
            )
            self._expiring_seen.add(p.product_id)
            fired["expiring"].append(p.product_id)

        self._low_stock_seen &= {p.product_id for p in low}
        self._expiring_seen &= {p.product_id for p in expiring}
        return fired
