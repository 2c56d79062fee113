"""Order domain model — pure dataclasses, no SQLAlchemy dependency.

Orders are immutable: every status change produces a new instance through
``dataclasses.replace``, so snapshots handed to observers never move.
"""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import TypedDict

from src.qm_common.enums import OrderStatus
from src.qm_common.money import to_money, validate_price


@dataclass(frozen=True)
class LineItem:
    """Menu item snapshot embedded in an order at creation time."""

    id: str
    name: str
    price: Decimal
    quantity: int = 1

    def __post_init__(self) -> None:
        object.__setattr__(self, "price", to_money(self.price))
        validate_price(self.price)
        if self.quantity < 1:
            raise ValueError(f"Quantity must be a positive integer, got {self.quantity}")

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity


def order_total(items: tuple[LineItem, ...] | list[LineItem]) -> Decimal:
    """sum(price × quantity), computed once when the order is created."""
    return to_money(sum((item.line_total for item in items), Decimal("0")))


class StatusPatch(TypedDict, total=False):
    """Fields a status transition persists."""

    status: OrderStatus
    cancelled_at: datetime | None


@dataclass(frozen=True)
class Order:
    id: str
    display_order_id: str
    merchant_public_id: str
    customer_id: str
    items: tuple[LineItem, ...]
    total: Decimal
    status: OrderStatus = OrderStatus.PENDING
    created_at: datetime | None = None
    cancelled_at: datetime | None = None
    updated_at: datetime | None = None
    # Optional customer-provided extras
    customer_name: str | None = None
    notes: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "items", tuple(self.items))
        object.__setattr__(self, "status", OrderStatus(self.status))
        object.__setattr__(self, "total", to_money(self.total))
        if not self.items:
            raise ValueError(f"Order {self.id} has no items")
        if self.total < 0:
            raise ValueError(f"Order {self.id} has a negative total")
        if (self.status == OrderStatus.CANCELLED) != (self.cancelled_at is not None):
            raise ValueError(
                f"Order {self.id}: cancelled_at must be set exactly when status is cancelled"
            )

    @property
    def is_cancelled(self) -> bool:
        return self.status == OrderStatus.CANCELLED

    @property
    def short_code(self) -> str:
        """Display id, falling back to the first 8 chars of the internal id."""
        return self.display_order_id or self.id[:8]


@dataclass(frozen=True)
class OrderDraft:
    """Customer-side placement payload; id and timestamps come from the backend."""

    merchant_public_id: str
    customer_id: str
    display_order_id: str
    items: tuple[LineItem, ...]
    total: Decimal
    status: OrderStatus = OrderStatus.PENDING
    customer_name: str | None = None
    notes: str | None = None
