from __future__ import annotations
from dataclasses import dataclass
import sqlite3

from ...errors import NotFoundError, ValidationError
from ...utils.helpers import now_iso
from ..transactions import immediate_tx


@dataclass
class Supplier:
    supplier_id: int | None
    name: str
    phone: str = ""
    email: str | None = None
    address: str | None = None
    registration_date: str | None = None


_COLUMNS = "supplier_id, name, phone, email, address, registration_date"
_UPDATABLE = {"name", "phone", "email", "address"}


class SuppliersRepo:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.conn.row_factory = sqlite3.Row

    def list_suppliers(self) -> list[Supplier]:
        rows = self.conn.execute(
            f"SELECT {_COLUMNS} FROM suppliers ORDER BY supplier_id"
        ).fetchall()
        return [Supplier(**dict(r)) for r in rows]

    def get_supplier(self, supplier_id: int) -> Supplier | None:
        r = self.conn.execute(
            f"SELECT {_COLUMNS} FROM suppliers WHERE supplier_id=?",
            (supplier_id,),
        ).fetchone()
        return Supplier(**dict(r)) if r else None

    def create_supplier(
        self,
        name: str,
        phone: str = "",
        email: str | None = None,
        address: str | None = None,
    ) -> Supplier:
        if not (name or "").strip():
            raise ValidationError("Supplier name cannot be empty.")
        s = Supplier(
            supplier_id=None,
            name=name.strip(),
            phone=(phone or "").strip(),
            email=(email or "").strip() or None,
            address=(address or "").strip() or None,
            registration_date=now_iso(),
        )
        with immediate_tx(self.conn):
            cur = self.conn.execute(
                "INSERT INTO suppliers(name, phone, email, address, registration_date) "
                "VALUES (?,?,?,?,?)",
                (s.name, s.phone, s.email, s.address, s.registration_date),
            )
        s.supplier_id = int(cur.lastrowid)
        return s

    def update_supplier(self, supplier_id: int, partial: dict) -> Supplier:
        unknown = set(partial) - _UPDATABLE
        if unknown:
            raise ValidationError(
                f"Unknown supplier field(s): {', '.join(sorted(unknown))}"
            )
        if "name" in partial and not str(partial["name"] or "").strip():
            raise ValidationError("Supplier name cannot be empty.")
        if self.get_supplier(supplier_id) is None:
            raise NotFoundError(f"Supplier {supplier_id} not found.", {"supplier_id": supplier_id})
        if partial:
            keys = sorted(partial)
            with immediate_tx(self.conn):
                self.conn.execute(
                    f"UPDATE suppliers SET {', '.join(f'{k}=?' for k in keys)} WHERE supplier_id=?",
                    tuple(partial[k] for k in keys) + (supplier_id,),
                )
        return self.get_supplier(supplier_id)
