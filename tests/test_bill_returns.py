# tests/test_bill_returns.py
import pytest

from medishop.config import BillingPolicy
from medishop.constants import WALK_IN_CUSTOMER_ID
from medishop.database.repositories import CustomersRepo, ReturnLine, SaleLine, StockLedgerRepo
from medishop.errors import NotFoundError, ValidationError
from medishop.modules.billing.cart import Cart
from medishop.modules.billing.engine import BillingEngine
from medishop.modules.returns import ReturnProcessor

from helpers import ledger_count, stock_of


def _sell_oil(engine, oil_id, customer_id=WALK_IN_CUSTOMER_ID):
    """10 x oil @ 50 with 18% GST: subtotal 500, total 590."""
    cart = Cart(
        customer_id=customer_id,
        items=[SaleLine(product_id=oil_id, quantity=10, selling_price=50.0)],
        gst_pct=18,
    )
    return engine.create_bill(cart, date="2025-01-15")


def test_return_recomputes_total_from_subtotal(conn, ids, engine):
    bill = _sell_oil(engine, ids["oil"])
    assert bill.total_amount == pytest.approx(590.0)
    assert stock_of(conn, ids["oil"]) == 65

    updated = engine.add_return_to_bill(
        bill.bill_id, [ReturnLine(product_id=ids["oil"], quantity=2, selling_price=25.0)]
    )

    assert updated.return_amount == pytest.approx(50.0)
    assert updated.total_amount == pytest.approx(450.0)
    assert updated.status == "returned"
    assert [(r.product_id, r.quantity) for r in updated.return_items] == [(ids["oil"], 2)]
    assert stock_of(conn, ids["oil"]) == 67

    entries = StockLedgerRepo(conn).for_reference(f"RETURN-{bill.bill_number}")
    assert [(e.txn_type, e.quantity) for e in entries] == [("return", 2)]
    assert StockLedgerRepo(conn).reconcile() == []


def test_net_mode_keeps_discount_and_gst(conn, ids):
    engine = BillingEngine(conn, BillingPolicy(return_total_mode="net"))
    bill = _sell_oil(engine, ids["oil"])
    updated = engine.add_return_to_bill(
        bill.bill_id, [ReturnLine(product_id=ids["oil"], quantity=2, selling_price=25.0)]
    )
    assert updated.total_amount == pytest.approx(540.0)


@pytest.mark.parametrize("mode, expected_total", [("subtotal", 350.0), ("net", 440.0)])
def test_later_return_adds_to_checkout_returns(conn, ids, mode, expected_total):
    engine = BillingEngine(conn, BillingPolicy(return_total_mode=mode))
    cart = Cart(
        customer_id=WALK_IN_CUSTOMER_ID,
        items=[SaleLine(product_id=ids["oil"], quantity=10, selling_price=50.0)],
        gst_pct=18,
    )
    cart.add_return(ReturnLine(product_id=ids["rice"], quantity=1, selling_price=100.0))
    bill = engine.create_bill(cart, date="2025-01-15")
    assert bill.return_amount == pytest.approx(100.0)
    assert bill.total_amount == pytest.approx(490.0)

    updated = engine.add_return_to_bill(
        bill.bill_id, [ReturnLine(product_id=ids["oil"], quantity=2, selling_price=25.0)]
    )

    assert updated.return_amount == pytest.approx(150.0)
    assert updated.total_amount == pytest.approx(expected_total)
    assert [(r.product_id, r.quantity) for r in updated.return_items] == [
        (ids["rice"], 1),
        (ids["oil"], 2),
    ]
    assert stock_of(conn, ids["rice"]) == 151
    assert stock_of(conn, ids["oil"]) == 67
    assert StockLedgerRepo(conn).reconcile() == []


def test_customer_total_is_gross_by_default(conn, ids, engine):
    bill = _sell_oil(engine, ids["oil"], ids["customer"])
    engine.add_return_to_bill(bill.bill_id, [ReturnLine(product_id=ids["oil"], quantity=2, selling_price=25.0)])
    assert CustomersRepo(conn).get_customer(ids["customer"]).total_purchases == pytest.approx(590.0)


def test_customer_total_follows_bill_when_reversal_enabled(conn, ids):
    engine = BillingEngine(conn, BillingPolicy(reverse_customer_total_on_return=True))
    bill = _sell_oil(engine, ids["oil"], ids["customer"])
    engine.add_return_to_bill(bill.bill_id, [ReturnLine(product_id=ids["oil"], quantity=2, selling_price=25.0)])
    assert CustomersRepo(conn).get_customer(ids["customer"]).total_purchases == pytest.approx(450.0)


def test_missing_price_refunds_at_sold_price(conn, ids, engine):
    bill = _sell_oil(engine, ids["oil"])
    updated = engine.add_return_to_bill(bill.bill_id, [ReturnLine(product_id=ids["oil"], quantity=1)])
    assert updated.return_items[0].selling_price == 50.0
    assert updated.return_amount == pytest.approx(50.0)


def test_unknown_bill(conn, ids, engine):
    with pytest.raises(NotFoundError):
        engine.add_return_to_bill(4040, [ReturnLine(product_id=ids["oil"], quantity=1)])


def test_second_return_is_refused(conn, ids, engine):
    bill = _sell_oil(engine, ids["oil"])
    engine.add_return_to_bill(bill.bill_id, [ReturnLine(product_id=ids["oil"], quantity=1)])
    with pytest.raises(ValidationError):
        engine.add_return_to_bill(bill.bill_id, [ReturnLine(product_id=ids["oil"], quantity=1)])
    assert stock_of(conn, ids["oil"]) == 66


@pytest.mark.parametrize("qty", [0, -1, 11])
def test_bad_return_quantities_change_nothing(conn, ids, engine, qty):
    bill = _sell_oil(engine, ids["oil"])
    before = ledger_count(conn)
    with pytest.raises(ValidationError):
        engine.add_return_to_bill(bill.bill_id, [ReturnLine(product_id=ids["oil"], quantity=qty)])
    assert ledger_count(conn) == before
    assert stock_of(conn, ids["oil"]) == 65
    assert engine.get_bill(bill.bill_id).status == "committed"


def test_split_lines_cannot_exceed_sold_quantity(conn, ids, engine):
    bill = _sell_oil(engine, ids["oil"])
    with pytest.raises(ValidationError):
        engine.add_return_to_bill(bill.bill_id, [
            ReturnLine(product_id=ids["oil"], quantity=6),
            ReturnLine(product_id=ids["oil"], quantity=5),
        ])
    assert stock_of(conn, ids["oil"]) == 65


def test_product_not_on_bill(conn, ids, engine):
    bill = _sell_oil(engine, ids["oil"])
    with pytest.raises(ValidationError):
        engine.add_return_to_bill(bill.bill_id, [ReturnLine(product_id=ids["rice"], quantity=1)])


def test_empty_return(conn, ids, engine):
    bill = _sell_oil(engine, ids["oil"])
    with pytest.raises(ValidationError):
        engine.add_return_to_bill(bill.bill_id, [])


def test_synthetic_return_bill_cannot_take_returns(conn, ids, engine):
    synthetic = ReturnProcessor(conn).return_from_customer(ids["para"], 10, date="2025-01-15")
    with pytest.raises(ValidationError):
        engine.add_return_to_bill(synthetic.bill_id, [ReturnLine(product_id=ids["para"], quantity=1)])


def test_return_bills_are_hidden_from_recent_bills(conn, ids, engine):
    sale = _sell_oil(engine, ids["oil"])
    ReturnProcessor(conn).return_from_customer(ids["para"], 1, date="2025-01-15")
    assert [b.bill_id for b in engine.list_bills()] == [sale.bill_id]
    assert len(engine.list_bills(include_synthetic=True)) == 2
    assert [b.bill_kind for b in engine.list_return_bills()] == ["customer_return"]
