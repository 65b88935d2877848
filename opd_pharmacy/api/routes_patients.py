# opd_pharmacy/api/routes_patients.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from opd_pharmacy.api.deps import RequestContext, get_context, get_db
from opd_pharmacy.api.response import ok
from opd_pharmacy.schemas.patient import PatientCreate, PatientOut, VisitCreate, VisitOut
from opd_pharmacy.services import patients as svc

router = APIRouter(tags=["Patients"])


@router.post("/patients")
async def register_patient(
    payload: PatientCreate,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(get_context),
):
    patient = await svc.register_patient(db, hospital_id=ctx.hospital_id, payload=payload)
    return ok(PatientOut.model_validate(patient), message="Patient registered successfully",
              status_code=201)


@router.get("/patients/{patient_id}")
async def get_patient(
    patient_id: int,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(get_context),
):
    patient = await svc.get_patient(db, ctx.hospital_id, patient_id)
    return ok(PatientOut.model_validate(patient))


@router.post("/visits")
async def create_visit(
    payload: VisitCreate,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(get_context),
):
    visit = await svc.create_visit(db, hospital_id=ctx.hospital_id, payload=payload)
    return ok(VisitOut.model_validate(visit), message="Visit created successfully", status_code=201)


@router.get("/visits/{visit_id}")
async def get_visit(
    visit_id: int,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(get_context),
):
    visit = await svc.get_visit(db, ctx.hospital_id, visit_id)
    return ok(VisitOut.model_validate(visit))
