# FILE: opd_pharmacy/services/patients.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from opd_pharmacy.models.patient import Patient
from opd_pharmacy.models.visit import Visit, VisitStatus
from opd_pharmacy.schemas.patient import PatientCreate, VisitCreate

logger = logging.getLogger(__name__)


async def find_patient(db: AsyncSession, hospital_id: int, patient_id: int) -> Optional[Patient]:
    return (await db.execute(
        select(Patient).where(and_(
            Patient.id == patient_id,
            Patient.hospital_id == hospital_id,
        ))
    )).scalar_one_or_none()


async def find_visit(db: AsyncSession, hospital_id: int, visit_id: int) -> Optional[Visit]:
    return (await db.execute(
        select(Visit).where(and_(
            Visit.id == visit_id,
            Visit.hospital_id == hospital_id,
        ))
    )).scalar_one_or_none()


async def register_patient(
    db: AsyncSession,
    *,
    hospital_id: int,
    payload: PatientCreate,
) -> Patient:
    dup = (await db.execute(
        select(Patient.id).where(and_(
            Patient.hospital_id == hospital_id,
            Patient.phone_number == payload.phone_number,
        )).limit(1)
    )).scalar_one_or_none()
    if dup:
        raise HTTPException(status_code=409,
                            detail="Patient with this phone number already exists")

    patient = Patient(**payload.model_dump(), hospital_id=hospital_id)
    db.add(patient)
    await db.commit()

    logger.info(f"Patient registered: {patient.id} for hospital: {hospital_id}")
    return patient


async def get_patient(db: AsyncSession, hospital_id: int, patient_id: int) -> Patient:
    patient = await find_patient(db, hospital_id, patient_id)
    if not patient:
        raise HTTPException(status_code=404, detail="Patient not found")
    return patient


async def create_visit(
    db: AsyncSession,
    *,
    hospital_id: int,
    payload: VisitCreate,
) -> Visit:
    await get_patient(db, hospital_id, payload.patient_id)

    visit = Visit(
        hospital_id=hospital_id,
        patient_id=payload.patient_id,
        visit_date=payload.visit_date or datetime.utcnow(),
        status=VisitStatus.PENDING.value,
        doctor_id=payload.doctor_id,
        diagnosis=payload.diagnosis,
    )
    db.add(visit)
    await db.commit()

    logger.info(f"Visit created: {visit.id} for patient: {payload.patient_id}")
    return visit


async def get_visit(db: AsyncSession, hospital_id: int, visit_id: int) -> Visit:
    visit = await find_visit(db, hospital_id, visit_id)
    if not visit:
        raise HTTPException(status_code=404, detail="Visit not found")
    return visit
