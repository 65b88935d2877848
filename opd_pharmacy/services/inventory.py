# FILE: opd_pharmacy/services/inventory.py
from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from sqlalchemy import and_, case, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from opd_pharmacy.models.pharmacy_inventory import InventoryItem
from opd_pharmacy.schemas.pharmacy_inventory import (
    InventoryItemCreate,
    InventoryItemUpdate,
)
from opd_pharmacy.services.billing_calc import ZERO, round_money
from opd_pharmacy.services.billing_errors import (
    DuplicateInventoryItem,
    InsufficientStock,
    InventoryItemNotFound,
)

logger = logging.getLogger(__name__)


# ✅ MySQL-safe NULLS LAST: CASE WHEN expiry_date IS NULL THEN 1 ELSE 0 END
def _expiry_nulls_last():
    return (
        case((InventoryItem.expiry_date.is_(None), 1), else_=0).asc(),
        InventoryItem.expiry_date.asc(),
        InventoryItem.id.asc(),
    )


def _low_stock_clause():
    return InventoryItem.quantity <= InventoryItem.min_stock_level


# -------------------------
# Lookup (billing)
# -------------------------

async def find_active_item(
    db: AsyncSession,
    hospital_id: int,
    medicine_name: str,
) -> Optional[InventoryItem]:
    """
    Active stock row for a prescribed medicine name in one hospital.

    Exact (case-sensitive) name wins; otherwise any case-insensitive exact
    match. Among several batches the earliest expiry is used.
    Returns None when nothing matches.
    """
    name = (medicine_name or "").strip()
    if not name:
        return None

    # one round-trip: fetch every case-insensitive match, then prefer exact case.
    # Plain equality on lower(), so %, _ and regex characters are literal.
    candidates = list((await db.execute(
        select(InventoryItem)
        .where(and_(
            InventoryItem.hospital_id == hospital_id,
            InventoryItem.is_active.is_(True),
            func.lower(InventoryItem.item_name) == name.lower(),
        ))
        .order_by(*_expiry_nulls_last())
    )).scalars().all())

    if not candidates:
        return None

    for item in candidates:
        if item.item_name == name:
            return item
    return candidates[0]


async def deduct_stock(db: AsyncSession, item: InventoryItem, qty: int) -> bool:
    """
    Compare-and-swap deduction. The row is only written if it still holds
    at least `qty`; False means someone else consumed the stock first.
    """
    res = await db.execute(
        update(InventoryItem)
        .where(and_(
            InventoryItem.id == item.id,
            InventoryItem.is_active.is_(True),
            InventoryItem.quantity >= qty,
        ))
        .values(
            quantity=InventoryItem.quantity - qty,
            updated_at=datetime.utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    if res.rowcount != 1:
        return False

    await db.refresh(item, attribute_names=["quantity", "updated_at"])
    return True


# -------------------------
# CRUD
# -------------------------

async def add_inventory_item(
    db: AsyncSession,
    *,
    hospital_id: int,
    user_id: Optional[int],
    payload: InventoryItemCreate,
) -> InventoryItem:
    if payload.batch_number:
        existing = (await db.execute(
            select(InventoryItem.id).where(and_(
                InventoryItem.hospital_id == hospital_id,
                InventoryItem.item_name == payload.item_name,
                InventoryItem.batch_number == payload.batch_number,
                InventoryItem.is_active.is_(True),
            )).limit(1)
        )).scalar_one_or_none()
        if existing:
            raise DuplicateInventoryItem()

    data = payload.model_dump()
    data["category"] = payload.category.value

    item = InventoryItem(
        **data,
        hospital_id=hospital_id,
        added_by=user_id,
        last_updated_by=user_id,
    )
    db.add(item)
    await db.commit()

    logger.info(f"Pharmacy inventory item added: {item.item_name} for hospital: {hospital_id}")
    return item


async def get_inventory_item(
    db: AsyncSession,
    hospital_id: int,
    item_id: int,
) -> InventoryItem:
    item = (await db.execute(
        select(InventoryItem).where(and_(
            InventoryItem.id == item_id,
            InventoryItem.hospital_id == hospital_id,
        ))
    )).scalar_one_or_none()
    if not item:
        raise InventoryItemNotFound()
    return item


async def update_inventory_item(
    db: AsyncSession,
    *,
    hospital_id: int,
    item_id: int,
    user_id: Optional[int],
    payload: InventoryItemUpdate,
) -> InventoryItem:
    item = await get_inventory_item(db, hospital_id, item_id)

    changes = payload.model_dump(exclude_unset=True)
    if "category" in changes:
        changes["category"] = payload.category.value

    for field, value in changes.items():
        setattr(item, field, value)
    item.last_updated_by = user_id

    await db.commit()
    logger.info(f"Pharmacy inventory item updated: {item_id}")
    return item


async def deactivate_inventory_item(
    db: AsyncSession,
    *,
    hospital_id: int,
    item_id: int,
    user_id: Optional[int],
) -> InventoryItem:
    item = await get_inventory_item(db, hospital_id, item_id)
    item.is_active = False
    item.last_updated_by = user_id
    await db.commit()

    logger.info(f"Pharmacy inventory item deactivated: {item_id}")
    return item


async def update_item_quantity(
    db: AsyncSession,
    *,
    hospital_id: int,
    item_id: int,
    quantity_change: int,
    user_id: Optional[int] = None,
) -> InventoryItem:
    """
    Manual stock adjustment (signed delta). Single guarded UPDATE, not part
    of any billing transaction.
    """
    item = await get_inventory_item(db, hospital_id, item_id)

    res = await db.execute(
        update(InventoryItem)
        .where(and_(
            InventoryItem.id == item_id,
            InventoryItem.hospital_id == hospital_id,
            InventoryItem.quantity + quantity_change >= 0,
        ))
        .values(
            quantity=InventoryItem.quantity + quantity_change,
            last_updated_by=user_id,
            updated_at=datetime.utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    if res.rowcount != 1:
        await db.rollback()
        raise InsufficientStock(message="Insufficient stock. Cannot reduce quantity below zero.")

    await db.commit()
    await db.refresh(item)

    logger.info(f"Inventory quantity updated for item {item_id}: {item.quantity} (change: {quantity_change})")
    return item


# -------------------------
# Queries
# -------------------------

async def _page(
    db: AsyncSession,
    conds: list,
    order_by: tuple,
    page: int,
    limit: int,
) -> Tuple[List[InventoryItem], int]:
    total = (await db.execute(
        select(func.count()).select_from(InventoryItem).where(and_(*conds))
    )).scalar_one()

    rows = (await db.execute(
        select(InventoryItem)
        .where(and_(*conds))
        .order_by(*order_by)
        .offset((page - 1) * limit)
        .limit(limit)
    )).scalars().all()
    return list(rows), int(total)


async def list_inventory(
    db: AsyncSession,
    hospital_id: int,
    *,
    category: Optional[str] = None,
    is_active: Optional[bool] = None,
    low_stock: bool = False,
    expired: bool = False,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
) -> Tuple[List[InventoryItem], int]:
    conds = [InventoryItem.hospital_id == hospital_id]

    if category:
        conds.append(InventoryItem.category == category)
    if is_active is not None:
        conds.append(InventoryItem.is_active.is_(is_active))
    if low_stock:
        conds.append(_low_stock_clause())
    if expired:
        conds.append(InventoryItem.expiry_date <= date.today())
    if search:
        like = f"%{search.strip()}%"
        conds.append(or_(
            InventoryItem.item_name.ilike(like),
            InventoryItem.generic_name.ilike(like),
            InventoryItem.manufacturer.ilike(like),
        ))

    return await _page(db, conds, (InventoryItem.item_name.asc(), InventoryItem.id.asc()),
                       page, limit)


async def list_low_stock(
    db: AsyncSession,
    hospital_id: int,
    *,
    page: int = 1,
    limit: int = 10,
) -> Tuple[List[InventoryItem], int]:
    conds = [
        InventoryItem.hospital_id == hospital_id,
        InventoryItem.is_active.is_(True),
        _low_stock_clause(),
    ]
    return await _page(db, conds, (InventoryItem.quantity.asc(), InventoryItem.id.asc()),
                       page, limit)


async def list_expiring(
    db: AsyncSession,
    hospital_id: int,
    *,
    days: int = 30,
    page: int = 1,
    limit: int = 10,
) -> Tuple[List[InventoryItem], int]:
    """Expired or expiring within `days` (items without expiry never show up)."""
    threshold = date.today() + timedelta(days=days)
    conds = [
        InventoryItem.hospital_id == hospital_id,
        InventoryItem.is_active.is_(True),
        InventoryItem.expiry_date.is_not(None),
        InventoryItem.expiry_date <= threshold,
    ]
    return await _page(db, conds, (InventoryItem.expiry_date.asc(), InventoryItem.id.asc()),
                       page, limit)


async def inventory_stats(db: AsyncSession, hospital_id: int) -> Dict[str, object]:
    scoped = InventoryItem.hospital_id == hospital_id
    active = and_(scoped, InventoryItem.is_active.is_(True))

    async def _count(*conds) -> int:
        return int((await db.execute(
            select(func.count()).select_from(InventoryItem).where(and_(*conds))
        )).scalar_one())

    total_items = await _count(scoped)
    active_items = await _count(active)
    low_stock_count = await _count(active, _low_stock_clause())
    expired_count = await _count(active, InventoryItem.expiry_date <= date.today())

    items = (await db.execute(select(InventoryItem).where(active))).scalars().all()

    total_value = ZERO
    category_counts: Dict[str, int] = {}
    for item in items:
        if item.selling_price:
            total_value += Decimal(str(item.selling_price)) * item.quantity
        category_counts[item.category] = category_counts.get(item.category, 0) + 1

    return {
        "total_items": total_items,
        "active_items": active_items,
        "low_stock_count": low_stock_count,
        "expired_count": expired_count,
        "total_value": round_money(total_value),
        "category_counts": category_counts,
    }
