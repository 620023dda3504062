# tests/test_snapshots.py
import json

import pytest

from medishop.constants import WALK_IN_CUSTOMER_ID
from medishop.database import get_connection
from medishop.database.repositories import PurchaseLine, SaleLine, StockLedgerRepo, SuppliersRepo
from medishop.database.snapshots import COLLECTIONS, SnapshotAdapter
from medishop.errors import ValidationError
from medishop.modules.billing.cart import Cart
from medishop.modules.purchase import PurchaseRegister


@pytest.fixture()
def trading_day(conn, ids, engine):
    PurchaseRegister(conn).record_purchase(
        ids["supplier"], "INV-55", "2025-01-10",
        [PurchaseLine(product_id=ids["para"], quantity=100, purchase_price=1.5)],
    )
    engine.create_bill(
        Cart(customer_id=ids["customer"], items=[SaleLine(product_id=ids["rice"], quantity=2)]),
        date="2025-01-11",
    )
    return ids


def test_empty_store_loads_empty_lists(conn):
    adapter = SnapshotAdapter(conn)
    for key in COLLECTIONS:
        assert adapter.load_collection(key) == []


def test_save_then_load_round_trips(conn, trading_day):
    adapter = SnapshotAdapter(conn)
    for key in COLLECTIONS:
        before = adapter.load_collection(key)
        adapter.save_collection(key, before)
        assert adapter.load_collection(key) == before


def test_child_rows_nest_under_items(conn, trading_day):
    (bill,) = SnapshotAdapter(conn).load_collection("bills")
    assert [line["product_id"] for line in bill["items"]] == [trading_day["rice"]]
    assert "bill_id" not in bill["items"][0]
    assert bill["items"][0]["line_kind"] == "sale"


def test_save_collection_replaces_contents(conn, ids):
    adapter = SnapshotAdapter(conn)
    rows = adapter.load_collection("suppliers")
    rows[0]["name"] = "Sunrise Pharma Distributors"
    adapter.save_collection("suppliers", rows)
    assert SuppliersRepo(conn).get_supplier(ids["supplier"]).name == "Sunrise Pharma Distributors"


def test_save_empty_collection_clears_it(conn, ids):
    adapter = SnapshotAdapter(conn)
    adapter.save_collection("suppliers", [])
    assert adapter.load_collection("suppliers") == []


def test_unknown_key_rejected(conn):
    adapter = SnapshotAdapter(conn)
    with pytest.raises(ValidationError):
        adapter.load_collection("expenses")
    with pytest.raises(ValidationError):
        adapter.save_collection("expenses", [])


def test_bad_rows_leave_collection_untouched(conn, ids):
    adapter = SnapshotAdapter(conn)
    with pytest.raises(ValidationError):
        adapter.save_collection("suppliers", [{"supplier_id": 1, "name": "X", "rating": 5}])
    with pytest.raises(ValidationError):
        # product without a name violates NOT NULL
        adapter.save_collection("products", [{"product_id": 1}])
    assert [s["name"] for s in adapter.load_collection("suppliers")] == ["Sunrise Distributors"]
    assert len(adapter.load_collection("products")) == 3


def test_export_then_import_into_fresh_database(conn, trading_day, tmp_path):
    backup = SnapshotAdapter(conn).export_all(tmp_path / "backup" / "medishop.json")
    doc = json.loads(backup.read_text(encoding="utf-8"))
    assert set(doc["collections"]) == set(COLLECTIONS)
    assert not backup.with_suffix(".json.tmp").exists()

    other = get_connection(tmp_path / "restored.db", seed=False)
    try:
        counts = SnapshotAdapter(other).import_all(backup)
        assert counts["products"] == 3
        assert counts["bills"] == 1
        for key in COLLECTIONS:
            assert SnapshotAdapter(other).load_collection(key) == SnapshotAdapter(conn).load_collection(key)
        assert StockLedgerRepo(other).reconcile() == []
    finally:
        other.close()


def test_import_rejects_unreadable_file(conn, tmp_path):
    bad = tmp_path / "broken.json"
    bad.write_text("{not json", encoding="utf-8")
    with pytest.raises(ValidationError):
        SnapshotAdapter(conn).import_all(bad)
    with pytest.raises(ValidationError):
        SnapshotAdapter(conn).import_all(tmp_path / "missing.json")


def test_import_rejects_unknown_collection(conn, tmp_path):
    path = tmp_path / "odd.json"
    path.write_text(json.dumps({"collections": {"expenses": []}}), encoding="utf-8")
    with pytest.raises(ValidationError):
        SnapshotAdapter(conn).import_all(path)


def test_walk_in_bills_survive_restore(conn, ids, engine, tmp_path):
    engine.create_bill(
        Cart(customer_id=WALK_IN_CUSTOMER_ID, items=[SaleLine(product_id=ids["oil"], quantity=1)]),
        date="2025-01-11",
    )
    path = SnapshotAdapter(conn).export_all(tmp_path / "b.json")
    SnapshotAdapter(conn).import_all(path)
    (bill,) = SnapshotAdapter(conn).load_collection("bills")
    assert bill["customer_id"] is None


def test_import_rejects_backup_from_other_schema(conn, ids, tmp_path):
    path = SnapshotAdapter(conn).export_all(tmp_path / "b.json")
    doc = json.loads(path.read_text(encoding="utf-8"))
    doc["schema_version"] = "2.0.0"
    doc["collections"]["products"] = []
    path.write_text(json.dumps(doc), encoding="utf-8")

    with pytest.raises(ValidationError):
        SnapshotAdapter(conn).import_all(path)
    assert len(SnapshotAdapter(conn).load_collection("products")) == 3
