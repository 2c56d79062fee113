# src/qm_order/application/service.py
"""OrderApplicationService — server side of the order lifecycle.

Placement snapshots menu items into line items and fixes the total; status
changes go through the same state machine the client-side controller uses,
scoped to the owning merchant. Every committed change is published to the
realtime feed.
"""
import logging
from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.qm_common.datetime_utils import Clock, milliseconds, utc_now
from src.qm_common.enums import ChangeEventType, OrderStatus
from src.qm_common.errors import (
    EmptyOrderError,
    MenuItemNotFoundError,
    MerchantNotFoundError,
    OrderNotFoundError,
    PaymentFailedError,
)
from src.qm_common.id_generator import generate_display_order_id
from src.qm_menu.domain.repository import MenuRepositoryProtocol
from src.qm_menu.infrastructure.persistence import MenuRepository
from src.qm_order.application.schemas import (
    CheckoutResponse,
    OrderListResponse,
    OrderResponse,
    PlaceOrderRequest,
)
from src.qm_order.domain.backend import ChangeFeedProtocol
from src.qm_order.domain.models import LineItem, Order, OrderDraft, order_total
from src.qm_order.domain.repository import OrderRepositoryProtocol
from src.qm_order.domain.state_machine import plan_transition
from src.qm_order.infrastructure.change_feed import publish_change
from src.qm_order.infrastructure.persistence import OrderRepository
from src.qm_payment.gateway import MockPaymentGateway

logger = logging.getLogger(__name__)


class OrderApplicationService:
    def __init__(
        self,
        repo: OrderRepositoryProtocol | None = None,
        menu_repo: MenuRepositoryProtocol | None = None,
        clock: Clock = utc_now,
        restore_window: timedelta | None = None,
    ) -> None:
        self._repo: OrderRepositoryProtocol = repo or OrderRepository()
        self._menu_repo: MenuRepositoryProtocol = menu_repo or MenuRepository()
        self._clock = clock
        self._restore_window = restore_window or milliseconds(settings.RESTORE_WINDOW_MS)

    def _to_response(self, order: Order) -> OrderResponse:
        return OrderResponse.from_domain(order, self._restore_window)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def list_merchant_orders(
        self, db: AsyncSession, merchant_public_id: str
    ) -> OrderListResponse:
        orders = await self._repo.list_by_merchant(merchant_public_id, db)
        return OrderListResponse(items=[self._to_response(o) for o in orders])

    async def list_customer_orders(
        self, db: AsyncSession, merchant_public_id: str, customer_id: str
    ) -> OrderListResponse:
        orders = await self._repo.list_by_customer(merchant_public_id, customer_id, db)
        return OrderListResponse(items=[self._to_response(o) for o in orders])

    # ------------------------------------------------------------------
    # Placement
    # ------------------------------------------------------------------

    async def _build_draft(
        self, db: AsyncSession, merchant_public_id: str, req: PlaceOrderRequest
    ) -> OrderDraft:
        if not req.items:
            raise EmptyOrderError()
        merchant = await self._menu_repo.get_merchant(db, merchant_public_id)
        if merchant is None:
            raise MerchantNotFoundError(merchant_public_id)

        # Same menu item listed twice collapses into one line.
        quantities: dict[str, int] = {}
        for entry in req.items:
            quantities[entry.menu_item_id] = quantities.get(entry.menu_item_id, 0) + entry.quantity

        menu_items = await self._menu_repo.get_menu_items(
            db, merchant_public_id, list(quantities)
        )
        by_id = {m.id: m for m in menu_items}
        lines: list[LineItem] = []
        for item_id, quantity in quantities.items():
            menu_item = by_id.get(item_id)
            if menu_item is None:
                raise MenuItemNotFoundError(item_id)
            lines.append(menu_item.snapshot(quantity))

        return OrderDraft(
            merchant_public_id=merchant_public_id,
            customer_id=req.customer_id,
            display_order_id=generate_display_order_id(settings.DISPLAY_ORDER_ID_PREFIX),
            items=tuple(lines),
            total=order_total(lines),
            status=OrderStatus.PENDING,
            customer_name=req.customer_name,
            notes=req.notes,
        )

    async def _insert(
        self, db: AsyncSession, feed: ChangeFeedProtocol | None, draft: OrderDraft
    ) -> Order:
        try:
            order = await self._repo.insert(draft, db)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info(
            "Order %s (%s) placed for merchant %s, total=%s",
            order.id, order.display_order_id, order.merchant_public_id, order.total,
        )
        await publish_change(feed, ChangeEventType.INSERT, order)
        return order

    async def place_order(
        self,
        db: AsyncSession,
        feed: ChangeFeedProtocol | None,
        merchant_public_id: str,
        req: PlaceOrderRequest,
    ) -> OrderResponse:
        draft = await self._build_draft(db, merchant_public_id, req)
        order = await self._insert(db, feed, draft)
        return self._to_response(order)

    async def checkout(
        self,
        db: AsyncSession,
        feed: ChangeFeedProtocol | None,
        gateway: MockPaymentGateway,
        merchant_public_id: str,
        req: PlaceOrderRequest,
        currency: str = "INR",
    ) -> CheckoutResponse:
        """Charge the cart total, then place the order. Nothing is stored if payment fails."""
        draft = await self._build_draft(db, merchant_public_id, req)
        intent = await gateway.create_payment_intent(draft.total, currency)
        result = await gateway.process_payment(intent.id)
        if not result.success:
            raise PaymentFailedError(result.error or "unknown error")
        order = await self._insert(db, feed, draft)
        return CheckoutResponse(
            order=self._to_response(order),
            payment_intent_id=intent.id,
            payment_status=intent.status.value,
        )

    # ------------------------------------------------------------------
    # Status changes
    # ------------------------------------------------------------------

    async def update_order_status(
        self,
        db: AsyncSession,
        feed: ChangeFeedProtocol | None,
        merchant_public_id: str,
        order_id: str,
        target: OrderStatus | str,
    ) -> OrderResponse:
        order = await self._repo.get_by_id(order_id, db)
        if order is None or order.merchant_public_id != merchant_public_id:
            raise OrderNotFoundError(order_id)

        patch = plan_transition(order, target, self._clock(), self._restore_window)
        try:
            updated = await self._repo.update_status(order_id, merchant_public_id, patch, db)
            if updated is None:
                raise OrderNotFoundError(order_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info(
            "Order %s: %s -> %s", order_id, order.status.value, updated.status.value
        )
        await publish_change(feed, ChangeEventType.UPDATE, updated)
        return self._to_response(updated)
