"""Pydantic schemas for qm_menu API requests and responses."""

from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from src.qm_common.money import money_to_display
from src.qm_menu.domain.models import MenuItem, MerchantProfile


class MenuItemOut(BaseModel):
    id: str
    name: str
    description: str
    price: str
    price_display: str
    category: str
    image_url: str | None = None

    @classmethod
    def from_domain(cls, item: MenuItem) -> "MenuItemOut":
        return cls(
            id=item.id,
            name=item.name,
            description=item.description,
            price=str(item.price),
            price_display=money_to_display(item.price),
            category=item.category,
            image_url=item.image_url,
        )


class MenuCategoryOut(BaseModel):
    name: str
    items: list[MenuItemOut]


class PublicMenuResponse(BaseModel):
    public_merchant_id: str
    restaurant_name: str
    restaurant_description: str | None
    currency: str
    categories: list[MenuCategoryOut]

    @classmethod
    def build(cls, merchant: MerchantProfile, items: list[MenuItem]) -> "PublicMenuResponse":
        # items arrive sorted by (category, name)
        categories: dict[str, list[MenuItemOut]] = {}
        for item in items:
            categories.setdefault(item.category, []).append(MenuItemOut.from_domain(item))
        return cls(
            public_merchant_id=merchant.public_merchant_id,
            restaurant_name=merchant.restaurant_name,
            restaurant_description=merchant.restaurant_description,
            currency=merchant.currency,
            categories=[MenuCategoryOut(name=k, items=v) for k, v in categories.items()],
        )


# ---------------------------------------------------------------------------
# Menu management (merchant side)
# ---------------------------------------------------------------------------


def _blank_to_none(v: str | None) -> str | None:
    if v is None or not v.strip():
        return None
    return v.strip()


class MenuItemCreateRequest(BaseModel):
    name: str = Field(min_length=2, max_length=200)
    description: str = Field(default="", max_length=1000)
    price: Decimal = Field(gt=0, max_digits=10, decimal_places=2)
    category: str = Field(min_length=1, max_length=100)
    image_url: str | None = Field(default=None, max_length=2048)

    @field_validator("name", "category")
    @classmethod
    def strip_required(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v.strip()

    @field_validator("image_url")
    @classmethod
    def blank_image_url(cls, v: str | None) -> str | None:
        return _blank_to_none(v)


class MenuItemUpdateRequest(BaseModel):
    """Partial update: omitted fields keep their value; "" clears image_url."""

    name: str | None = Field(default=None, min_length=2, max_length=200)
    description: str | None = Field(default=None, max_length=1000)
    price: Decimal | None = Field(default=None, gt=0, max_digits=10, decimal_places=2)
    category: str | None = Field(default=None, min_length=1, max_length=100)
    image_url: str | None = Field(default=None, max_length=2048)

    @field_validator("name", "category")
    @classmethod
    def strip_required(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            raise ValueError("must not be blank")
        return v.strip() if v is not None else None

    def changes(self) -> dict[str, object]:
        fields = self.model_dump(exclude_unset=True)
        if "image_url" in fields:
            fields["image_url"] = _blank_to_none(fields["image_url"])
        return {k: v for k, v in fields.items() if v is not None or k == "image_url"}


class MenuItemListResponse(BaseModel):
    items: list[MenuItemOut]
