"""qm_menu REST endpoints.

GET    /merchants/{mid}/menu                   — public menu grouped by category
GET    /merchants/{mid}/menu/items             — flat item list for the menu builder
POST   /merchants/{mid}/menu/items             — add an item
PATCH  /merchants/{mid}/menu/items/{item_id}   — edit an item (partial)
DELETE /merchants/{mid}/menu/items/{item_id}   — remove an item
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.qm_common.database import get_db_session
from src.qm_common.response import ApiResponse, success_response
from src.qm_menu.application.schemas import MenuItemCreateRequest, MenuItemUpdateRequest
from src.qm_menu.application.service import MenuApplicationService

router = APIRouter(prefix="/merchants", tags=["menu"])

_service = MenuApplicationService()


def _wrap(request: Request, data: object, message: str = "success") -> ApiResponse:
    resp = success_response(data, message)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/{public_merchant_id}/menu")
async def get_public_menu(
    public_merchant_id: str,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.get_public_menu(db, public_merchant_id)
    return _wrap(request, result.model_dump(mode="json"))


@router.get("/{public_merchant_id}/menu/items")
async def list_menu_items(
    public_merchant_id: str,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.list_menu_items(db, public_merchant_id)
    return _wrap(request, result.model_dump(mode="json"))


@router.post("/{public_merchant_id}/menu/items", status_code=201)
async def create_menu_item(
    public_merchant_id: str,
    req: MenuItemCreateRequest,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.create_menu_item(db, public_merchant_id, req)
    return _wrap(request, result.model_dump(mode="json"), "Item Added")


@router.patch("/{public_merchant_id}/menu/items/{item_id}")
async def update_menu_item(
    public_merchant_id: str,
    item_id: str,
    req: MenuItemUpdateRequest,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.update_menu_item(db, public_merchant_id, item_id, req)
    return _wrap(request, result.model_dump(mode="json"), "Item Updated")


@router.delete("/{public_merchant_id}/menu/items/{item_id}")
async def delete_menu_item(
    public_merchant_id: str,
    item_id: str,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    await _service.delete_menu_item(db, public_merchant_id, item_id)
    return _wrap(request, {"id": item_id}, "Item Deleted")
