# src/qm_order/api/router.py
"""qm_order REST endpoints.

GET   /merchants/{mid}/orders                          — merchant dashboard
GET   /merchants/{mid}/customers/{customer_id}/orders  — customer order history
POST  /merchants/{mid}/orders                          — place order (pending)
POST  /merchants/{mid}/orders/checkout                 — pay, then place order
PATCH /merchants/{mid}/orders/{order_id}/status        — confirm / cancel / restore
"""
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.qm_common.database import get_db_session
from src.qm_common.response import ApiResponse, success_response
from src.qm_order.application.schemas import PlaceOrderRequest, UpdateStatusRequest
from src.qm_order.application.service import OrderApplicationService
from src.qm_order.infrastructure.change_feed import RedisChangeFeed, get_change_feed
from src.qm_payment.dependencies import get_payment_gateway
from src.qm_payment.gateway import MockPaymentGateway

router = APIRouter(prefix="/merchants", tags=["orders"])

_service = OrderApplicationService()


def _wrap(request: Request, data: object, message: str = "success") -> ApiResponse:
    resp = success_response(data, message)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/{merchant_public_id}/orders")
async def list_merchant_orders(
    merchant_public_id: str,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.list_merchant_orders(db, merchant_public_id)
    return _wrap(request, result.model_dump(mode="json"))


@router.get("/{merchant_public_id}/customers/{customer_id}/orders")
async def list_customer_orders(
    merchant_public_id: str,
    customer_id: str,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.list_customer_orders(db, merchant_public_id, customer_id)
    return _wrap(request, result.model_dump(mode="json"))


@router.post("/{merchant_public_id}/orders", status_code=201)
async def place_order(
    merchant_public_id: str,
    req: PlaceOrderRequest,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    feed: Annotated[RedisChangeFeed, Depends(get_change_feed)],
) -> ApiResponse:
    result = await _service.place_order(db, feed, merchant_public_id, req)
    return _wrap(request, result.model_dump(mode="json"), "Order Placed Successfully")


@router.post("/{merchant_public_id}/orders/checkout", status_code=201)
async def checkout(
    merchant_public_id: str,
    req: PlaceOrderRequest,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    feed: Annotated[RedisChangeFeed, Depends(get_change_feed)],
    gateway: Annotated[MockPaymentGateway, Depends(get_payment_gateway)],
) -> ApiResponse:
    result = await _service.checkout(db, feed, gateway, merchant_public_id, req)
    return _wrap(request, result.model_dump(mode="json"), "Order Placed Successfully")


@router.patch("/{merchant_public_id}/orders/{order_id}/status")
async def update_order_status(
    merchant_public_id: str,
    order_id: str,
    req: UpdateStatusRequest,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    feed: Annotated[RedisChangeFeed, Depends(get_change_feed)],
) -> ApiResponse:
    result = await _service.update_order_status(
        db, feed, merchant_public_id, order_id, req.status
    )
    return _wrap(request, result.model_dump(mode="json"), "Order Updated")
