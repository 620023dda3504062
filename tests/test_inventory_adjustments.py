# tests/test_inventory_adjustments.py
import pytest

from medishop.database.repositories import StockLedgerRepo
from medishop.errors import NotFoundError, StockIntegrityError, ValidationError
from medishop.modules.inventory import InventoryService

from helpers import ledger_count, stock_of


def test_adjust_up_and_down(conn, ids):
    svc = InventoryService(conn)
    assert svc.adjust_stock(ids["oil"], 5, notes="found in back room") == 80
    assert svc.adjust_stock(ids["oil"], -10) == 70

    entries = StockLedgerRepo(conn).list_transactions(product_id=ids["oil"], txn_type="adjustment")
    assert sorted(e.quantity for e in entries) == [-10, 5]
    assert all(e.reference.startswith("ADJ-") for e in entries)
    assert {e.notes for e in entries} == {"found in back room", "Manual stock adjustment"}
    assert StockLedgerRepo(conn).reconcile() == []


def test_adjust_to_exactly_zero_is_allowed(conn, ids):
    assert InventoryService(conn).adjust_stock(ids["oil"], -75) == 0


def test_adjust_below_zero_rejected(conn, ids):
    before = ledger_count(conn)
    with pytest.raises(StockIntegrityError, match="below zero"):
        InventoryService(conn).adjust_stock(ids["oil"], -76)
    assert stock_of(conn, ids["oil"]) == 75
    assert ledger_count(conn) == before


@pytest.mark.parametrize("delta", [0, 1.5, "3", True])
def test_adjust_requires_nonzero_whole_units(conn, ids, delta):
    with pytest.raises(ValidationError):
        InventoryService(conn).adjust_stock(ids["oil"], delta)


def test_adjust_unknown_product(conn):
    with pytest.raises(NotFoundError):
        InventoryService(conn).adjust_stock(999, 1)


def test_adjustment_date_is_recorded(conn, ids):
    InventoryService(conn).adjust_stock(ids["para"], 3, date="2025-02-01")
    (entry,) = StockLedgerRepo(conn).list_transactions(product_id=ids["para"])
    assert entry.date == "2025-02-01"
