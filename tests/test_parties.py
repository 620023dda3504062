# tests/test_parties.py
import pytest

from medishop.constants import WALK_IN_CUSTOMER_ID, WALK_IN_CUSTOMER_NAME
from medishop.database.repositories import CustomersRepo, SuppliersRepo
from medishop.errors import NotFoundError, ValidationError


def test_create_customer_assigns_id_timestamp_and_zero_total(conn):
    c = CustomersRepo(conn).create_customer("  Ravi Kumar ", "9000000001", email="ravi@example.com")
    assert c.customer_id is not None
    assert c.name == "Ravi Kumar"
    assert c.registration_date
    assert c.total_purchases == 0.0
    assert CustomersRepo(conn).get_customer(c.customer_id) == c


@pytest.mark.parametrize("name,phone", [("", "9000000001"), ("Ravi", ""), (None, "1")])
def test_create_customer_requires_name_and_phone(conn, name, phone):
    with pytest.raises(ValidationError):
        CustomersRepo(conn).create_customer(name, phone)
    assert CustomersRepo(conn).list_customers() == []


def test_update_customer_merges_contact_fields(conn, ids):
    repo = CustomersRepo(conn)
    c = repo.update_customer(ids["customer"], {"address": "12 MG Road"})
    assert c.address == "12 MG Road"
    assert c.phone == "9876543210"


def test_update_customer_cannot_touch_total_purchases(conn, ids):
    with pytest.raises(ValidationError):
        CustomersRepo(conn).update_customer(ids["customer"], {"total_purchases": 1e6})


def test_update_unknown_customer(conn):
    with pytest.raises(NotFoundError):
        CustomersRepo(conn).update_customer(404, {"name": "Nobody"})


def test_search_customers_by_name_or_phone(conn, ids):
    repo = CustomersRepo(conn)
    repo.create_customer("Meena Shah", "9111111111")
    assert [c.name for c in repo.search_customers("asha")] == ["Asha Verma"]
    assert [c.name for c in repo.search_customers("91111")] == ["Meena Shah"]


def test_resolve_customer(conn, ids):
    repo = CustomersRepo(conn)
    walk_in = repo.resolve_customer(WALK_IN_CUSTOMER_ID)
    assert walk_in.is_walk_in
    assert walk_in.name == WALK_IN_CUSTOMER_NAME
    assert repo.resolve_customer(ids["customer"]).name == "Asha Verma"
    with pytest.raises(ValidationError):
        repo.resolve_customer(None)
    with pytest.raises(ValidationError):
        repo.resolve_customer(9999)


def test_walk_in_is_never_stored(conn, ids):
    repo = CustomersRepo(conn)
    repo.resolve_customer(WALK_IN_CUSTOMER_ID)
    assert [c.customer_id for c in repo.list_customers()] == [ids["customer"]]


def test_add_to_total_purchases_accumulates(conn, ids):
    repo = CustomersRepo(conn)
    assert repo.add_to_total_purchases(ids["customer"], 100.0) == 100.0
    assert repo.add_to_total_purchases(ids["customer"], 50.5) == 150.5
    with pytest.raises(NotFoundError):
        repo.add_to_total_purchases(999, 1.0)


def test_supplier_crud(conn):
    repo = SuppliersRepo(conn)
    s = repo.create_supplier("Metro Pharma", "0201112233", address="Depot 4")
    assert s.registration_date
    assert repo.get_supplier(s.supplier_id).name == "Metro Pharma"

    s2 = repo.update_supplier(s.supplier_id, {"phone": "0209999999"})
    assert s2.phone == "0209999999"
    assert [x.supplier_id for x in repo.list_suppliers()] == [s.supplier_id]

    with pytest.raises(ValidationError):
        repo.create_supplier("")
    with pytest.raises(ValidationError):
        repo.update_supplier(s.supplier_id, {"rating": 5})
    with pytest.raises(NotFoundError):
        repo.update_supplier(999, {"name": "X"})
