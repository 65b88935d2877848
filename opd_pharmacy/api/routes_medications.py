# opd_pharmacy/api/routes_medications.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from opd_pharmacy.api.deps import RequestContext, get_context, get_db
from opd_pharmacy.api.response import ok
from opd_pharmacy.schemas.medication_history import (
    BillingResultOut,
    MedicationHistoryCreate,
    MedicationHistoryOut,
    MedicationHistoryUpdate,
)
from opd_pharmacy.schemas.pharmacy_sales import SaleOut
from opd_pharmacy.services import medication_billing, medication_history

router = APIRouter(prefix="/medications", tags=["Medications"])


def _history_out(h) -> MedicationHistoryOut:
    return MedicationHistoryOut.model_validate(h)


@router.post("/billing")
async def add_with_billing(
    payload: MedicationHistoryCreate,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(get_context),
):
    """Prescription + stock deduction + sale, all or nothing."""
    result = await medication_billing.add_medication_history_with_billing(
        db,
        hospital_id=ctx.hospital_id,
        user_id=ctx.user_id,
        payload=payload,
    )
    out = BillingResultOut(
        medication_history=_history_out(result.medication_history),
        sales_record=SaleOut.model_validate(result.sales_record),
        deducted_items=result.deducted_items,
        total_amount=result.total_amount,
    )
    return ok(out, message="Medication history added and inventory updated successfully",
              status_code=201)


@router.post("")
async def add_history(
    payload: MedicationHistoryCreate,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(get_context),
):
    history = await medication_history.add_medication_history(
        db, hospital_id=ctx.hospital_id, payload=payload)
    return ok(_history_out(history), message="Medication history added successfully",
              status_code=201)


@router.get("/patient/{patient_id}")
async def patient_history(
    patient_id: int,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(get_context),
):
    rows = await medication_history.list_patient_history(db, ctx.hospital_id, patient_id)
    return ok([_history_out(h) for h in rows])


@router.get("/patient/{patient_id}/recent")
async def patient_recent(
    patient_id: int,
    limit: int = Query(5, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(get_context),
):
    rows = await medication_history.recent_prescriptions(db, ctx.hospital_id, patient_id, limit)
    return ok([_history_out(h) for h in rows])


@router.get("/visit/{visit_id}")
async def visit_history(
    visit_id: int,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(get_context),
):
    history = await medication_history.get_visit_history(db, ctx.hospital_id, visit_id)
    return ok(_history_out(history))


@router.get("/{history_id}")
async def get_history(
    history_id: int,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(get_context),
):
    history = await medication_history.get_prescription(db, ctx.hospital_id, history_id)
    return ok(_history_out(history))


@router.put("/{history_id}")
async def update_history(
    history_id: int,
    payload: MedicationHistoryUpdate,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(get_context),
):
    history = await medication_history.update_medication_history(
        db, hospital_id=ctx.hospital_id, history_id=history_id, payload=payload)
    return ok(_history_out(history), message="Medication history updated successfully")
