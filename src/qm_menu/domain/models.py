"""Domain models for qm_menu — pure dataclasses."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from src.qm_common.money import to_money, validate_price
from src.qm_order.domain.models import LineItem


@dataclass(frozen=True)
class MerchantProfile:
    id: str
    public_merchant_id: str  # shareable id encoded in the menu URL / QR code
    restaurant_name: str
    restaurant_description: str | None = None
    currency: str = "USD"


@dataclass(frozen=True)
class MenuItem:
    id: str
    merchant_public_id: str
    name: str
    description: str
    price: Decimal
    category: str
    image_url: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "price", to_money(self.price))
        validate_price(self.price)

    def snapshot(self, quantity: int = 1) -> LineItem:
        """Copy the fields an order keeps; later menu edits don't reach it."""
        return LineItem(id=self.id, name=self.name, price=self.price, quantity=quantity)
