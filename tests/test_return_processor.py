# tests/test_return_processor.py
import logging

import pytest

from medishop.database.repositories import PurchaseLine, PurchasesRepo, StockLedgerRepo
from medishop.errors import NotFoundError, StockIntegrityError, ValidationError
from medishop.modules.inventory import InventoryService
from medishop.modules.purchase import PurchaseRegister
from medishop.modules.returns import ReturnProcessor

from helpers import ledger_count, stock_of


@pytest.fixture()
def purchase(conn, ids):
    """INV-7000: 20 x rice @ 180 and 10 x oil @ 65 (stock becomes 170 / 85)."""
    return PurchaseRegister(conn).record_purchase(
        ids["supplier"], "INV-7000", "2025-01-10",
        [
            PurchaseLine(product_id=ids["rice"], quantity=20, purchase_price=180.0),
            PurchaseLine(product_id=ids["oil"], quantity=10, purchase_price=65.0),
        ],
    )


def _item(purchase, product_id):
    return next(line.item_id for line in purchase.items if line.product_id == product_id)


def test_per_line_return_to_supplier(conn, ids, purchase):
    rice_item = _item(purchase, ids["rice"])
    bill = ReturnProcessor(conn).return_to_supplier(
        purchase.purchase_id, {rice_item: 5}, reason="damaged", date="2025-01-20"
    )

    assert stock_of(conn, ids["rice"]) == 165
    assert stock_of(conn, ids["oil"]) == 85
    assert bill.bill_number == "PURCHASE-2501200001"
    assert bill.bill_kind == "supplier_return"
    assert bill.customer_name == "Sunrise Distributors"
    assert bill.total_amount == pytest.approx(900.0)
    assert bill.is_synthetic

    entries = StockLedgerRepo(conn).for_reference("RET-INV-7000")
    assert [(e.txn_type, e.product_id, e.quantity) for e in entries] == [("return", ids["rice"], -5)]
    assert entries[0].notes == "Return to supplier: Sunrise Distributors - damaged"

    remaining = {r["item_id"]: r["remaining_returnable"]
                 for r in PurchasesRepo(conn).get_returnable_for_items(purchase.purchase_id)}
    assert remaining == {rice_item: 15, _item(purchase, ids["oil"]): 10}


def test_cannot_return_more_than_remaining(conn, ids, purchase):
    proc = ReturnProcessor(conn)
    rice_item = _item(purchase, ids["rice"])
    proc.return_to_supplier(purchase.purchase_id, {rice_item: 15})
    before = ledger_count(conn)
    with pytest.raises(ValidationError):
        proc.return_to_supplier(purchase.purchase_id, {rice_item: 6})
    assert ledger_count(conn) == before
    assert stock_of(conn, ids["rice"]) == 155


def test_uniform_quantity_hits_every_line_and_warns(conn, ids, purchase, caplog):
    with caplog.at_level(logging.WARNING, logger="medishop.modules.returns.processor"):
        ReturnProcessor(conn).return_to_supplier(purchase.purchase_id, quantity=3)
    assert stock_of(conn, ids["rice"]) == 167
    assert stock_of(conn, ids["oil"]) == 82
    assert any("Uniform supplier return" in r.getMessage() for r in caplog.records)


def test_uniform_quantity_larger_than_a_line_is_rejected(conn, ids, purchase):
    with pytest.raises(ValidationError):
        ReturnProcessor(conn).return_to_supplier(purchase.purchase_id, quantity=11)
    assert stock_of(conn, ids["rice"]) == 170


def test_exactly_one_quantity_form_required(conn, ids, purchase):
    proc = ReturnProcessor(conn)
    with pytest.raises(ValidationError):
        proc.return_to_supplier(purchase.purchase_id)
    with pytest.raises(ValidationError):
        proc.return_to_supplier(purchase.purchase_id, {_item(purchase, ids["rice"]): 1}, quantity=1)


def test_line_from_another_invoice_rejected(conn, ids, purchase):
    with pytest.raises(ValidationError):
        ReturnProcessor(conn).return_to_supplier(purchase.purchase_id, {9999: 1})


@pytest.mark.parametrize("qty", [0, -2, 1.5])
def test_bad_quantity_rejected(conn, ids, purchase, qty):
    with pytest.raises(ValidationError):
        ReturnProcessor(conn).return_to_supplier(purchase.purchase_id, {_item(purchase, ids["oil"]): qty})


def test_unknown_purchase(conn, ids):
    with pytest.raises(NotFoundError):
        ReturnProcessor(conn).return_to_supplier(404, quantity=1)


def test_return_needs_stock_on_hand(conn, ids, purchase):
    InventoryService(conn).adjust_stock(ids["oil"], -80, notes="count")
    with pytest.raises(StockIntegrityError):
        ReturnProcessor(conn).return_to_supplier(purchase.purchase_id, {_item(purchase, ids["oil"]): 10})
    assert stock_of(conn, ids["oil"]) == 5


def test_customer_return_puts_stock_back(conn, ids):
    bill = ReturnProcessor(conn).return_from_customer(
        ids["para"], 10, customer_id=ids["customer"], reason="wrong strength", date="2025-01-15"
    )
    assert stock_of(conn, ids["para"]) == 510
    assert bill.bill_number == "CUSTOMER-2501150001"
    assert bill.bill_kind == "customer_return"
    assert bill.customer_name == "Asha Verma"
    assert bill.return_amount == pytest.approx(20.0)
    assert bill.total_amount == pytest.approx(20.0)
    assert [(r.product_id, r.quantity) for r in bill.return_items] == [(ids["para"], 10)]

    entries = StockLedgerRepo(conn).for_reference("CUST-RET")
    assert [(e.quantity, e.notes) for e in entries] == [(10, "Customer return - wrong strength")]


def test_customer_return_defaults_to_walk_in(conn, ids):
    bill = ReturnProcessor(conn).return_from_customer(ids["para"], 1)
    assert bill.customer_id is None
    assert bill.customer_name == "Walk-in Customer"


@pytest.mark.parametrize("product_key,qty", [("para", 0), ("para", -1), (None, 1)])
def test_customer_return_validation(conn, ids, product_key, qty):
    pid = ids[product_key] if product_key else 31337
    with pytest.raises(ValidationError):
        ReturnProcessor(conn).return_from_customer(pid, qty)
    assert stock_of(conn, ids["para"]) == 500
