# opd_pharmacy/api/routes_pharmacy_inventory.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from opd_pharmacy.api.deps import RequestContext, get_context, get_db, page_params
from opd_pharmacy.api.response import ok
from opd_pharmacy.core.config import settings
from opd_pharmacy.schemas.common import PaginationOut
from opd_pharmacy.schemas.pharmacy_inventory import (
    InventoryItemCreate,
    InventoryItemOut,
    InventoryItemUpdate,
    InventoryPageOut,
    InventoryStatsOut,
    QuantityAdjustIn,
)
from opd_pharmacy.services import inventory as svc

router = APIRouter(prefix="/pharmacy/inventory", tags=["Pharmacy Inventory"])


def _page_out(rows, total: int, page: int, limit: int) -> InventoryPageOut:
    return InventoryPageOut(
        inventory=[InventoryItemOut.model_validate(r) for r in rows],
        pagination=PaginationOut.build(total, page, limit),
    )


@router.post("")
async def add_item(
    payload: InventoryItemCreate,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(get_context),
):
    item = await svc.add_inventory_item(
        db, hospital_id=ctx.hospital_id, user_id=ctx.user_id, payload=payload)
    return ok(InventoryItemOut.model_validate(item),
              message="Inventory item added successfully", status_code=201)


@router.get("")
async def list_items(
    category: Optional[str] = None,
    is_active: Optional[bool] = Query(None, alias="isActive"),
    low_stock: bool = Query(False, alias="lowStock"),
    expired: bool = False,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(get_context),
):
    page, limit = page_params(page, limit)
    rows, total = await svc.list_inventory(
        db,
        ctx.hospital_id,
        category=category,
        is_active=is_active,
        low_stock=low_stock,
        expired=expired,
        search=search,
        page=page,
        limit=limit,
    )
    return ok(_page_out(rows, total, page, limit))


@router.get("/low-stock")
async def low_stock_items(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(get_context),
):
    page, limit = page_params(page, limit)
    rows, total = await svc.list_low_stock(db, ctx.hospital_id, page=page, limit=limit)
    return ok(_page_out(rows, total, page, limit))


@router.get("/expiring")
async def expiring_items(
    days: Optional[int] = Query(None, ge=0, le=3650),
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(get_context),
):
    page, limit = page_params(page, limit)
    days = settings.EXPIRY_ALERT_DAYS if days is None else days
    rows, total = await svc.list_expiring(db, ctx.hospital_id, days=days, page=page, limit=limit)
    return ok(_page_out(rows, total, page, limit))


@router.get("/stats")
async def stats(
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(get_context),
):
    data = await svc.inventory_stats(db, ctx.hospital_id)
    return ok(InventoryStatsOut(**data))


@router.get("/{item_id}")
async def get_item(
    item_id: int,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(get_context),
):
    item = await svc.get_inventory_item(db, ctx.hospital_id, item_id)
    return ok(InventoryItemOut.model_validate(item))


@router.put("/{item_id}")
async def update_item(
    item_id: int,
    payload: InventoryItemUpdate,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(get_context),
):
    item = await svc.update_inventory_item(
        db, hospital_id=ctx.hospital_id, item_id=item_id, user_id=ctx.user_id, payload=payload)
    return ok(InventoryItemOut.model_validate(item), message="Inventory item updated successfully")


@router.delete("/{item_id}")
async def delete_item(
    item_id: int,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(get_context),
):
    """Soft delete: the row stays for sales history, it just stops being sold."""
    item = await svc.deactivate_inventory_item(
        db, hospital_id=ctx.hospital_id, item_id=item_id, user_id=ctx.user_id)
    return ok(InventoryItemOut.model_validate(item), message="Inventory item deactivated successfully")


@router.patch("/{item_id}/quantity")
async def adjust_quantity(
    item_id: int,
    payload: QuantityAdjustIn,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(get_context),
):
    item = await svc.update_item_quantity(
        db,
        hospital_id=ctx.hospital_id,
        item_id=item_id,
        quantity_change=payload.quantity_change,
        user_id=ctx.user_id,
    )
    return ok(InventoryItemOut.model_validate(item), message="Inventory quantity updated successfully")
