from __future__ import annotations

from dataclasses import dataclass, field

from ...constants import DEFAULT_STAFF_NAME
from ...database.repositories.bills_repo import ReturnLine, SaleLine


@dataclass
class Cart:
    """
    A bill being assembled at the counter (Draft). Nothing here is persisted
    until BillingEngine.create_bill() commits it.

    gst_pct=None means "use the billing policy default".
    paid_amount=None means "paid exactly the total".
    """
    customer_id: int | None
    items: list[SaleLine] = field(default_factory=list)
    return_items: list[ReturnLine] = field(default_factory=list)
    bill_discount_pct: float = 0.0
    gst_pct: float | None = None
    payment_mode: str = "cash"
    paid_amount: float | None = None
    staff_id: str | None = None
    staff_name: str | None = DEFAULT_STAFF_NAME

    def add_item(self, line: SaleLine) -> None:
        """Add a sold line; the same product (and batch) again just bumps the quantity."""
        for existing in self.items:
            if existing.product_id == line.product_id and existing.batch_no == line.batch_no:
                existing.quantity = int(existing.quantity) + int(line.quantity)
                return
        self.items.append(line)

    def add_return(self, line: ReturnLine) -> None:
        self.return_items.append(line)

    def remove_item(self, product_id: int) -> None:
        self.items = [it for it in self.items if it.product_id != product_id]

    def clear(self) -> None:
        self.items.clear()
        self.return_items.clear()
        self.bill_discount_pct = 0.0
        self.paid_amount = None

    @property
    def is_empty(self) -> bool:
        return not self.items
