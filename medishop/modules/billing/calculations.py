"""
modules/billing/calculations.py

Pure helpers for bill totals. Used by the billing engine at commit time and
by any UI that previews a cart.

Do not import repos or open DB connections here.
Only compute numbers; formatting belongs in the UI.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

__all__ = [
    "BillTotals",
    "line_amount",
    "line_total",
    "line_savings",
    "compute_totals",
    "change_due",
]


@dataclass(frozen=True)
class BillTotals:
    subtotal: float
    bill_discount: float
    after_discount: float
    gst_amount: float
    return_amount: float
    total: float
    savings: float  # display only, never stored


# -----------------------------
# Line helpers
# -----------------------------

def line_amount(selling_price: float, quantity: float, discount_pct: float = 0.0) -> float:
    """
    selling_price x quantity less the line discount.

    Written as gross - gross x pct/100 so a 0% line is exactly the gross.
    """
    gross = float(selling_price) * float(quantity)
    return gross - gross * float(discount_pct or 0.0) / 100.0


def line_total(line) -> float:
    """Total of a SaleLine/ReturnLine (always >= 0 for valid input)."""
    if line.selling_price is None:
        raise ValueError(f"line for product {line.product_id} has no price")
    return line_amount(line.selling_price, line.quantity, line.discount_pct)


def line_savings(line) -> float:
    gross = float(line.selling_price or 0.0) * float(line.quantity)
    return gross - line_total(line)


# -----------------------------
# Bill helpers
# -----------------------------

def compute_totals(
    items: Iterable,
    return_items: Iterable = (),
    bill_discount_pct: float = 0.0,
    gst_pct: float = 0.0,
) -> BillTotals:
    """
    subtotal       = sum of sold line totals
    bill_discount  = subtotal x bill_discount_pct / 100
    after_discount = subtotal - bill_discount
    gst_amount     = after_discount x gst_pct / 100
    return_amount  = sum of returned line totals
    total          = after_discount + gst_amount - return_amount

    No rounding inside; UIs may format for display.
    """
    items = list(items)
    subtotal = sum(line_total(it) for it in items)
    bill_discount = subtotal * float(bill_discount_pct or 0.0) / 100.0
    after_discount = subtotal - bill_discount
    gst_amount = after_discount * float(gst_pct or 0.0) / 100.0
    return_amount = sum(line_total(it) for it in return_items)
    total = after_discount + gst_amount - return_amount
    savings = sum(line_savings(it) for it in items) + bill_discount
    return BillTotals(
        subtotal=subtotal,
        bill_discount=bill_discount,
        after_discount=after_discount,
        gst_amount=gst_amount,
        return_amount=return_amount,
        total=total,
        savings=savings,
    )


def change_due(total: float, paid_amount: float) -> float:
    """paid - total; negative means the customer still owes money."""
    return float(paid_amount) - float(total)
