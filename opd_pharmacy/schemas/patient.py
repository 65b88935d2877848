# FILE: opd_pharmacy/schemas/patient.py
from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import ConfigDict, Field

from opd_pharmacy.schemas.common import ApiModel


class PatientCreate(ApiModel):
    name: str = Field(..., min_length=1, max_length=120)
    phone_number: str = Field(..., min_length=5, max_length=20)
    age: Optional[int] = Field(None, ge=0, le=150)
    gender: Optional[Literal["Male", "Female", "Other"]] = None
    address: Optional[str] = None


class PatientOut(ApiModel):
    id: int
    hospital_id: int
    name: str
    phone_number: str
    age: Optional[int] = None
    gender: Optional[str] = None
    address: Optional[str] = None
    registration_date: datetime

    model_config = ConfigDict(from_attributes=True)


class VisitCreate(ApiModel):
    patient_id: int
    visit_date: Optional[datetime] = None
    doctor_id: Optional[int] = None
    diagnosis: Optional[str] = None


class VisitOut(ApiModel):
    id: int
    hospital_id: int
    patient_id: int
    visit_date: datetime
    status: str
    doctor_id: Optional[int] = None
    diagnosis: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)
