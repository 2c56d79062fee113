# src/qm_order/domain/transformer.py
"""Conversions between Order objects and wire/DB records.

A *record* is the flat mapping used by the database rows, the REST API and
the realtime feed: snake_case keys, ISO-8601 timestamps, decimals as
strings and ``items`` as a list of dicts (or a JSON string straight from a
JSONB column).
"""
import json
from collections.abc import Mapping
from dataclasses import replace
from typing import Any

from src.qm_common.datetime_utils import parse_datetime
from src.qm_common.enums import OrderStatus
from src.qm_order.domain.models import LineItem, Order, StatusPatch

_DATETIME_FIELDS = ("created_at", "cancelled_at", "updated_at")
_MERGEABLE_FIELDS = (
    "items", "total", "status", "cancelled_at", "updated_at", "customer_name", "notes",
)


def record_to_line_item(record: Mapping[str, Any]) -> LineItem:
    return LineItem(
        id=str(record["id"]),
        name=record["name"],
        price=record["price"],
        quantity=int(record.get("quantity") or 1),
    )


def _parse_items(raw: Any) -> tuple[LineItem, ...]:
    if isinstance(raw, str):
        raw = json.loads(raw)
    return tuple(record_to_line_item(item) for item in raw)


def record_to_order(record: Mapping[str, Any]) -> Order:
    return Order(
        id=str(record["id"]),
        display_order_id=record.get("display_order_id") or "",
        merchant_public_id=record["merchant_public_id"],
        customer_id=record["customer_id"],
        items=_parse_items(record["items"]),
        total=record["total"],
        status=OrderStatus(record.get("status") or OrderStatus.PENDING),
        created_at=parse_datetime(record.get("created_at")),
        cancelled_at=parse_datetime(record.get("cancelled_at")),
        updated_at=parse_datetime(record.get("updated_at")),
        customer_name=record.get("customer_name"),
        notes=record.get("notes"),
    )


def line_item_to_record(item: LineItem) -> dict[str, Any]:
    return {"id": item.id, "name": item.name, "price": str(item.price), "quantity": item.quantity}


def order_to_record(order: Order) -> dict[str, Any]:
    return {
        "id": order.id,
        "display_order_id": order.display_order_id,
        "merchant_public_id": order.merchant_public_id,
        "customer_id": order.customer_id,
        "items": [line_item_to_record(i) for i in order.items],
        "total": str(order.total),
        "status": order.status.value,
        "created_at": order.created_at.isoformat() if order.created_at else None,
        "cancelled_at": order.cancelled_at.isoformat() if order.cancelled_at else None,
        "updated_at": order.updated_at.isoformat() if order.updated_at else None,
        "customer_name": order.customer_name,
        "notes": order.notes,
    }


def patch_to_record(patch: StatusPatch) -> dict[str, Any]:
    record: dict[str, Any] = {}
    if "status" in patch:
        record["status"] = OrderStatus(patch["status"]).value
    if "cancelled_at" in patch:
        cancelled_at = patch["cancelled_at"]
        record["cancelled_at"] = cancelled_at.isoformat() if cancelled_at else None
    return record


def merge_changes(order: Order, changes: Mapping[str, Any]) -> Order:
    """Return ``order`` with the mergeable fields of ``changes`` applied.

    Identity fields (id, display id, owner, customer, created_at) are never
    overwritten. A status other than cancelled clears ``cancelled_at`` so
    partial updates cannot break the cancelled/cancelled_at pairing.
    """
    updates: dict[str, Any] = {}
    for key in _MERGEABLE_FIELDS:
        if key not in changes:
            continue
        value = changes[key]
        if key == "items":
            value = _parse_items(value)
        elif key == "status":
            value = OrderStatus(value)
        elif key in _DATETIME_FIELDS:
            value = parse_datetime(value)
        updates[key] = value

    status = updates.get("status", order.status)
    if status != OrderStatus.CANCELLED:
        updates["cancelled_at"] = None
    if not updates:
        return order
    return replace(order, **updates)
