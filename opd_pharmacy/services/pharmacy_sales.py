# FILE: opd_pharmacy/services/pharmacy_sales.py
from __future__ import annotations

import logging
from datetime import date, datetime, time
from typing import List, Optional, Tuple

from fastapi import HTTPException
from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from opd_pharmacy.models.pharmacy_inventory import InventoryItem
from opd_pharmacy.models.pharmacy_sales import PharmacySale, PharmacySaleItem
from opd_pharmacy.services.billing_calc import (
    ZERO,
    line_total,
    sale_total,
    unit_price_for,
)
from opd_pharmacy.services.billing_errors import InvalidTotalAmount

logger = logging.getLogger(__name__)


def build_sale_item(item: InventoryItem, qty: int, medicine_name: str) -> PharmacySaleItem:
    """Sale line with name / batch / price frozen at sale time."""
    unit_price = unit_price_for(item)
    return PharmacySaleItem(
        inventory_id=item.id,
        item_name=medicine_name,
        batch_number=item.batch_number,
        quantity=qty,
        unit_price=unit_price,
        total_price=line_total(unit_price, qty),
    )


def create_sales_record(
    db: AsyncSession,
    *,
    hospital_id: int,
    patient_id: int,
    visit_id: int,
    prescription_id: int,
    items: List[PharmacySaleItem],
    sold_by: Optional[int],
) -> PharmacySale:
    """
    Stage one immutable sale in the caller's transaction (no commit here;
    the billing orchestrator owns the transaction).
    """
    total = sale_total(x.total_price for x in items)
    if total < ZERO:
        raise InvalidTotalAmount()

    sale = PharmacySale(
        hospital_id=hospital_id,
        patient_id=patient_id,
        visit_id=visit_id,
        prescription_id=prescription_id,
        total_amount=total,
        sale_date=datetime.utcnow(),
        sold_by=sold_by,
        items=items,
    )
    db.add(sale)
    logger.info(
        f"Pharmacy sale staged for prescription {prescription_id}: "
        f"{len(items)} line(s), total {total}")
    return sale


async def get_sale(db: AsyncSession, hospital_id: int, sale_id: int) -> PharmacySale:
    sale = (await db.execute(
        select(PharmacySale).where(and_(
            PharmacySale.id == sale_id,
            PharmacySale.hospital_id == hospital_id,
        ))
    )).scalar_one_or_none()
    if not sale:
        raise HTTPException(status_code=404, detail="Sales record not found")
    return sale


async def get_sale_for_prescription(
    db: AsyncSession,
    hospital_id: int,
    prescription_id: int,
) -> Optional[PharmacySale]:
    return (await db.execute(
        select(PharmacySale).where(and_(
            PharmacySale.prescription_id == prescription_id,
            PharmacySale.hospital_id == hospital_id,
        ))
    )).scalar_one_or_none()


async def list_sales(
    db: AsyncSession,
    hospital_id: int,
    *,
    patient_id: Optional[int] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    page: int = 1,
    limit: int = 10,
) -> Tuple[List[PharmacySale], int]:
    conds = [PharmacySale.hospital_id == hospital_id]
    if patient_id:
        conds.append(PharmacySale.patient_id == patient_id)
    if date_from:
        conds.append(PharmacySale.sale_date >= datetime.combine(date_from, time.min))
    if date_to:
        conds.append(PharmacySale.sale_date <= datetime.combine(date_to, time.max))

    total = (await db.execute(
        select(func.count()).select_from(PharmacySale).where(and_(*conds))
    )).scalar_one()

    rows = (await db.execute(
        select(PharmacySale)
        .where(and_(*conds))
        .order_by(PharmacySale.sale_date.desc(), PharmacySale.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )).scalars().all()
    return list(rows), int(total)
