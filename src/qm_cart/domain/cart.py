"""Customer cart.

Holds MenuItem snapshots with quantities until checkout. Serialises to a
JSON list so a client can keep it between visits; unreadable stored data
yields an empty cart rather than an error.
"""

import json
import logging
from dataclasses import dataclass, replace
from decimal import Decimal

from src.qm_common.money import to_money
from src.qm_menu.domain.models import MenuItem
from src.qm_order.application.schemas import OrderItemRequest
from src.qm_order.domain.models import LineItem, order_total

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CartItem:
    item: MenuItem
    quantity: int


class Cart:
    def __init__(self, items: list[CartItem] | None = None) -> None:
        self._items: list[CartItem] = list(items or [])

    @property
    def items(self) -> tuple[CartItem, ...]:
        return tuple(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def _index(self, item_id: str) -> int:
        for i, entry in enumerate(self._items):
            if entry.item.id == item_id:
                return i
        return -1

    def add_item(self, item: MenuItem, quantity: int = 1) -> None:
        """Add ``quantity`` of ``item``; an existing line is incremented."""
        if quantity < 1:
            raise ValueError(f"Quantity must be positive, got {quantity}")
        idx = self._index(item.id)
        if idx > -1:
            current = self._items[idx]
            self._items[idx] = replace(current, quantity=current.quantity + quantity)
        else:
            self._items.append(CartItem(item=item, quantity=quantity))

    def remove_item(self, item_id: str) -> CartItem | None:
        idx = self._index(item_id)
        if idx == -1:
            return None
        return self._items.pop(idx)

    def update_quantity(self, item_id: str, quantity: int) -> None:
        """Set a line's quantity; zero or less removes the line."""
        if quantity <= 0:
            self.remove_item(item_id)
            return
        idx = self._index(item_id)
        if idx > -1:
            self._items[idx] = replace(self._items[idx], quantity=quantity)

    def clear(self) -> None:
        self._items.clear()

    def total_items(self) -> int:
        return sum(entry.quantity for entry in self._items)

    def total_price(self) -> Decimal:
        return order_total(self.to_line_items())

    def to_line_items(self) -> list[LineItem]:
        return [entry.item.snapshot(entry.quantity) for entry in self._items]

    def to_order_items(self) -> list[OrderItemRequest]:
        return [
            OrderItemRequest(menu_item_id=entry.item.id, quantity=entry.quantity)
            for entry in self._items
        ]

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def to_json(self) -> str:
        return json.dumps([
            {
                "id": e.item.id,
                "merchant_public_id": e.item.merchant_public_id,
                "name": e.item.name,
                "description": e.item.description,
                "price": str(e.item.price),
                "category": e.item.category,
                "image_url": e.item.image_url,
                "quantity": e.quantity,
            }
            for e in self._items
        ])

    @classmethod
    def from_json(cls, raw: str | None) -> "Cart":
        if not raw:
            return cls()
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Discarding unreadable stored cart")
            return cls()
        if not isinstance(data, list):
            logger.warning("Discarding stored cart: expected a list, got %s", type(data).__name__)
            return cls()
        try:
            items = [
                CartItem(
                    item=MenuItem(
                        id=str(d["id"]),
                        merchant_public_id=d.get("merchant_public_id", ""),
                        name=d["name"],
                        description=d.get("description", ""),
                        price=to_money(d["price"]),
                        category=d.get("category", ""),
                        image_url=d.get("image_url"),
                    ),
                    quantity=int(d.get("quantity", 1)),
                )
                for d in data
            ]
        except (KeyError, TypeError, ValueError, ArithmeticError):
            logger.warning("Discarding stored cart with malformed entries")
            return cls()
        return cls(items)
