# tests/test_calculations.py
import pytest

from medishop.database.repositories import ReturnLine, SaleLine
from medishop.modules.billing.calculations import (
    change_due,
    compute_totals,
    line_amount,
    line_total,
)


def test_line_total_applies_line_discount():
    line = SaleLine(product_id=1, quantity=4, selling_price=50.0, discount_pct=10.0)
    assert line_total(line) == pytest.approx(180.0)
    assert line.line_total == pytest.approx(180.0)


def test_line_amount_without_discount_is_exact_gross():
    assert line_amount(19.99, 3) == 19.99 * 3


def test_line_total_requires_price():
    with pytest.raises(ValueError):
        line_total(ReturnLine(product_id=1, quantity=1))


def test_bill_discount_and_gst_example():
    # subtotal 1000, 10% bill discount, 18% GST
    items = [SaleLine(product_id=1, quantity=5, selling_price=200.0)]
    t = compute_totals(items, (), bill_discount_pct=10, gst_pct=18)
    assert t.subtotal == pytest.approx(1000.0)
    assert t.bill_discount == pytest.approx(100.0)
    assert t.after_discount == pytest.approx(900.0)
    assert t.gst_amount == pytest.approx(162.0)
    assert t.return_amount == 0
    assert t.total == pytest.approx(1062.0)


def test_bundled_returns_reduce_total_by_positive_magnitude():
    items = [SaleLine(product_id=1, quantity=2, selling_price=100.0)]
    returns = [ReturnLine(product_id=2, quantity=1, selling_price=30.0)]
    t = compute_totals(items, returns, bill_discount_pct=0, gst_pct=0)
    assert t.return_amount == pytest.approx(30.0)
    assert t.total == pytest.approx(170.0)


def test_savings_adds_line_discounts_and_bill_discount():
    items = [
        SaleLine(product_id=1, quantity=2, selling_price=100.0, discount_pct=10.0),  # saves 20
        SaleLine(product_id=2, quantity=1, selling_price=50.0),
    ]
    t = compute_totals(items, (), bill_discount_pct=10, gst_pct=0)
    # subtotal 230, bill discount 23
    assert t.savings == pytest.approx(43.0)


def test_line_kinds_move_stock_in_opposite_directions():
    assert SaleLine(product_id=1, quantity=3, selling_price=1.0).stock_delta == -3
    assert ReturnLine(product_id=1, quantity=3, selling_price=1.0).stock_delta == 3
    assert SaleLine.kind == "sale" and ReturnLine.kind == "return"


def test_change_due():
    assert change_due(1062.0, 1100.0) == pytest.approx(38.0)
