# FILE: opd_pharmacy/services/medication_history.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from fastapi import HTTPException
from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from opd_pharmacy.models.medication_history import MedicationHistory, MedicationLine
from opd_pharmacy.models.patient import Patient
from opd_pharmacy.models.visit import Visit
from opd_pharmacy.schemas.medication_history import (
    MedicationHistoryCreate,
    MedicationHistoryUpdate,
    MedicationLineIn,
)
from opd_pharmacy.services.billing_errors import (
    NoMedications,
    PatientNotFound,
    VisitNotFound,
)
from opd_pharmacy.services.patients import find_patient, find_visit

logger = logging.getLogger(__name__)


# ---------- builders ----------


def build_lines(medications: Iterable[MedicationLineIn]) -> List[MedicationLine]:
    return [
        MedicationLine(position=pos, **m.model_dump())
        for pos, m in enumerate(medications)
    ]


def build_history(hospital_id: int, payload: MedicationHistoryCreate) -> MedicationHistory:
    return MedicationHistory(
        hospital_id=hospital_id,
        patient_id=payload.patient_id,
        visit_id=payload.visit_id,
        doctor_id=payload.doctor_id,
        consulting_doctor=payload.consulting_doctor,
        diagnosis=payload.diagnosis,
        notes=payload.notes,
        prescribed_date=payload.prescribed_date or datetime.utcnow(),
        medications=build_lines(payload.medications),
    )


async def verify_patient_and_visit(
    db: AsyncSession,
    hospital_id: int,
    patient_id: int,
    visit_id: int,
) -> Tuple[Patient, Visit]:
    """
    Both rows must exist in this hospital and the visit must be the
    patient's. Runs on the caller's session so billing reads them inside
    its own transaction.
    """
    patient = await find_patient(db, hospital_id, patient_id)
    if not patient:
        raise PatientNotFound()

    visit = await find_visit(db, hospital_id, visit_id)
    if not visit or visit.patient_id != patient.id:
        raise VisitNotFound()

    return patient, visit


# ---------- commands ----------


async def add_medication_history(
    db: AsyncSession,
    *,
    hospital_id: int,
    payload: MedicationHistoryCreate,
) -> MedicationHistory:
    """Prescription without touching inventory."""
    await verify_patient_and_visit(db, hospital_id, payload.patient_id, payload.visit_id)
    if not payload.medications:
        raise NoMedications()

    history = build_history(hospital_id, payload)
    db.add(history)
    await db.commit()

    logger.info(
        f"Medication history added for patient: {payload.patient_id}, visit: {payload.visit_id}")
    return history


async def update_medication_history(
    db: AsyncSession,
    *,
    hospital_id: int,
    history_id: int,
    payload: MedicationHistoryUpdate,
) -> MedicationHistory:
    """
    Administrative correction. The linked sales record (if any) is an audit
    trail and is deliberately left as it was sold.
    """
    history = await get_prescription(db, hospital_id, history_id)

    changes = payload.model_dump(exclude_unset=True, exclude={"medications"})
    for field, value in changes.items():
        setattr(history, field, value)

    if payload.medications is not None:
        history.medications = build_lines(payload.medications)

    await db.commit()
    logger.info(f"Medication history updated: {history_id}")
    return history


# ---------- queries ----------


async def get_prescription(db: AsyncSession, hospital_id: int, history_id: int) -> MedicationHistory:
    history = (await db.execute(
        select(MedicationHistory).where(and_(
            MedicationHistory.id == history_id,
            MedicationHistory.hospital_id == hospital_id,
        ))
    )).scalar_one_or_none()
    if not history:
        raise HTTPException(status_code=404, detail="Medication history not found")
    return history


async def list_patient_history(
    db: AsyncSession,
    hospital_id: int,
    patient_id: int,
    *,
    limit: Optional[int] = None,
) -> List[MedicationHistory]:
    q = (
        select(MedicationHistory)
        .where(and_(
            MedicationHistory.hospital_id == hospital_id,
            MedicationHistory.patient_id == patient_id,
        ))
        .order_by(MedicationHistory.prescribed_date.desc(), MedicationHistory.id.desc())
    )
    if limit:
        q = q.limit(limit)
    return list((await db.execute(q)).scalars().all())


async def recent_prescriptions(
    db: AsyncSession,
    hospital_id: int,
    patient_id: int,
    limit: int = 5,
) -> List[MedicationHistory]:
    return await list_patient_history(db, hospital_id, patient_id, limit=limit)


async def get_visit_history(db: AsyncSession, hospital_id: int, visit_id: int) -> MedicationHistory:
    history = (await db.execute(
        select(MedicationHistory)
        .where(and_(
            MedicationHistory.hospital_id == hospital_id,
            MedicationHistory.visit_id == visit_id,
        ))
        .order_by(MedicationHistory.id.desc())
        .limit(1)
    )).scalar_one_or_none()
    if not history:
        raise HTTPException(status_code=404, detail="Medication history for this visit not found")
    return history
