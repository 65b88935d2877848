# opd_pharmacy/api/routes_pharmacy_sales.py
from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from opd_pharmacy.api.deps import RequestContext, get_context, get_db, page_params
from opd_pharmacy.api.response import ok
from opd_pharmacy.schemas.common import PaginationOut
from opd_pharmacy.schemas.pharmacy_sales import SaleOut, SalesPageOut
from opd_pharmacy.services import pharmacy_sales as svc

router = APIRouter(prefix="/pharmacy/sales", tags=["Pharmacy Sales"])


@router.get("")
async def list_sales(
    patient_id: Optional[int] = Query(None, alias="patientId"),
    date_from: Optional[date] = Query(None, alias="dateFrom"),
    date_to: Optional[date] = Query(None, alias="dateTo"),
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(get_context),
):
    page, limit = page_params(page, limit)
    rows, total = await svc.list_sales(
        db,
        ctx.hospital_id,
        patient_id=patient_id,
        date_from=date_from,
        date_to=date_to,
        page=page,
        limit=limit,
    )
    return ok(SalesPageOut(
        sales=[SaleOut.model_validate(s) for s in rows],
        pagination=PaginationOut.build(total, page, limit),
    ))


@router.get("/prescription/{prescription_id}")
async def sale_for_prescription(
    prescription_id: int,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(get_context),
):
    sale = await svc.get_sale_for_prescription(db, ctx.hospital_id, prescription_id)
    if not sale:
        raise HTTPException(status_code=404, detail="No sales record for this prescription")
    return ok(SaleOut.model_validate(sale))


@router.get("/{sale_id}")
async def get_sale(
    sale_id: int,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(get_context),
):
    sale = await svc.get_sale(db, ctx.hospital_id, sale_id)
    return ok(SaleOut.model_validate(sale))
