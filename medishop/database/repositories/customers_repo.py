from __future__ import annotations
from dataclasses import dataclass
import sqlite3

from ...constants import WALK_IN_CUSTOMER_ID, WALK_IN_CUSTOMER_NAME
from ...errors import NotFoundError, ValidationError
from ...utils.helpers import now_iso
from ..transactions import immediate_tx


@dataclass
class Customer:
    customer_id: int | None
    name: str
    phone: str
    email: str | None = None
    address: str | None = None
    registration_date: str | None = None
    total_purchases: float = 0.0

    @property
    def is_walk_in(self) -> bool:
        return self.customer_id == WALK_IN_CUSTOMER_ID


def walk_in_customer() -> Customer:
    """Anonymous buyer sentinel; never stored."""
    return Customer(
        customer_id=WALK_IN_CUSTOMER_ID,
        name=WALK_IN_CUSTOMER_NAME,
        phone="",
        total_purchases=0.0,
    )


_COLUMNS = "customer_id, name, phone, email, address, registration_date, total_purchases"
_UPDATABLE = {"name", "phone", "email", "address"}


class CustomersRepo:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.conn.row_factory = sqlite3.Row

    # ---- Internal helpers -------------------------------------------------

    @staticmethod
    def _normalize_text(s: str | None) -> str | None:
        if s is None:
            return None
        return s.strip()

    @staticmethod
    def _ensure_non_empty(value: str | None, field_label: str) -> None:
        if value is None or str(value).strip() == "":
            raise ValidationError(f"{field_label} cannot be empty.")

    # ---- Queries ----------------------------------------------------------

    def list_customers(self) -> list[Customer]:
        rows = self.conn.execute(
            f"SELECT {_COLUMNS} FROM customers ORDER BY customer_id"
        ).fetchall()
        return [Customer(**dict(r)) for r in rows]

    def search_customers(self, term: str) -> list[Customer]:
        """Case-insensitive match on name or phone."""
        pattern = f"%{(term or '').strip().lower()}%"
        rows = self.conn.execute(
            f"SELECT {_COLUMNS} FROM customers "
            "WHERE LOWER(name) LIKE ? OR phone LIKE ? "
            "ORDER BY customer_id",
            (pattern, pattern),
        ).fetchall()
        return [Customer(**dict(r)) for r in rows]

    def get_customer(self, customer_id: int) -> Customer | None:
        r = self.conn.execute(
            f"SELECT {_COLUMNS} FROM customers WHERE customer_id=?",
            (customer_id,),
        ).fetchone()
        return Customer(**dict(r)) if r else None

    def resolve_customer(self, customer_id: int | None) -> Customer:
        """
        Walk-in sentinel for WALK_IN_CUSTOMER_ID, the stored customer otherwise.
        None or an unknown id is a ValidationError (cart cannot be billed).
        """
        if customer_id is None:
            raise ValidationError("Please select a customer.")
        if customer_id == WALK_IN_CUSTOMER_ID:
            return walk_in_customer()
        c = self.get_customer(customer_id)
        if c is None:
            raise ValidationError(
                f"Customer {customer_id} does not exist.", {"customer_id": customer_id}
            )
        return c

    # ---- Mutations --------------------------------------------------------

    def create_customer(
        self,
        name: str,
        phone: str,
        email: str | None = None,
        address: str | None = None,
    ) -> Customer:
        self._ensure_non_empty(name, "Name")
        self._ensure_non_empty(phone, "Phone")

        c = Customer(
            customer_id=None,
            name=self._normalize_text(name),
            phone=self._normalize_text(phone),
            email=self._normalize_text(email) or None,
            address=self._normalize_text(address) or None,
            registration_date=now_iso(),
            total_purchases=0.0,
        )
        with immediate_tx(self.conn):
            cur = self.conn.execute(
                "INSERT INTO customers(name, phone, email, address, registration_date, total_purchases) "
                "VALUES (?,?,?,?,?,0)",
                (c.name, c.phone, c.email, c.address, c.registration_date),
            )
        c.customer_id = int(cur.lastrowid)
        return c

    def update_customer(self, customer_id: int, partial: dict) -> Customer:
        """
        Shallow merge of contact fields. total_purchases is not editable here;
        it only moves through add_to_total_purchases().
        """
        unknown = set(partial) - _UPDATABLE
        if unknown:
            raise ValidationError(
                f"Unknown or read-only customer field(s): {', '.join(sorted(unknown))}"
            )
        for key in ("name", "phone"):
            if key in partial:
                self._ensure_non_empty(partial[key], key.capitalize())
        if self.get_customer(customer_id) is None:
            raise NotFoundError(f"Customer {customer_id} not found.", {"customer_id": customer_id})

        if partial:
            keys = sorted(partial)
            with immediate_tx(self.conn):
                self.conn.execute(
                    f"UPDATE customers SET {', '.join(f'{k}=?' for k in keys)} WHERE customer_id=?",
                    tuple(self._normalize_text(partial[k]) for k in keys) + (customer_id,),
                )
        return self.get_customer(customer_id)

    def add_to_total_purchases(self, customer_id: int, amount: float) -> float:
        """
        Accumulate spend on a stored customer; returns the new running total.
        Billing calls this inside its own transaction.
        """
        with immediate_tx(self.conn):
            cur = self.conn.execute(
                "UPDATE customers SET total_purchases = total_purchases + ? WHERE customer_id=?",
                (float(amount), customer_id),
            )
            if cur.rowcount == 0:
                raise NotFoundError(f"Customer {customer_id} not found.", {"customer_id": customer_id})
            row = self.conn.execute(
                "SELECT total_purchases FROM customers WHERE customer_id=?", (customer_id,)
            ).fetchone()
            return float(row[0])
