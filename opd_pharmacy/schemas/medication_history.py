# FILE: opd_pharmacy/schemas/medication_history.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import ConfigDict, Field, field_validator

from opd_pharmacy.schemas.common import ApiModel
from opd_pharmacy.schemas.pharmacy_sales import SaleOut

# ---------- Medication lines ----------


class MedicationLineIn(ApiModel):
    medicine_name: str
    dosage: str = Field(..., min_length=1)
    # days / name / timing are checked by the billing calculator so the
    # caller gets the per-medicine message, not a generic 422
    days: int

    morning: bool = False
    afternoon: bool = False
    evening: bool = False
    night: bool = False

    before_meal: bool = False
    after_meal: bool = False

    route: Optional[str] = None
    instructions: Optional[str] = None

    @field_validator("medicine_name", "dosage")
    @classmethod
    def _strip(cls, v: str) -> str:
        return (v or "").strip()


class MedicationLineOut(ApiModel):
    id: int
    position: int
    medicine_name: str
    dosage: str
    days: int

    morning: bool
    afternoon: bool
    evening: bool
    night: bool

    before_meal: bool
    after_meal: bool

    route: Optional[str] = None
    instructions: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


# ---------- Header ----------


class MedicationHistoryCreate(ApiModel):
    patient_id: int
    visit_id: int
    doctor_id: int
    consulting_doctor: Optional[str] = None
    diagnosis: Optional[str] = None
    prescribed_date: Optional[datetime] = None
    medications: List[MedicationLineIn] = []
    notes: Optional[str] = None

    # operator recording the sale (billing only); defaults to the caller
    sold_by: Optional[int] = None


class MedicationHistoryUpdate(ApiModel):
    consulting_doctor: Optional[str] = None
    diagnosis: Optional[str] = None
    medications: Optional[List[MedicationLineIn]] = None
    notes: Optional[str] = None

    @field_validator("medications")
    @classmethod
    def _non_empty(cls, v):
        if v is not None and len(v) == 0:
            raise ValueError("At least one medication is required if updating medications")
        return v


class MedicationHistoryOut(ApiModel):
    id: int
    hospital_id: int
    patient_id: int
    visit_id: int
    doctor_id: Optional[int] = None
    consulting_doctor: Optional[str] = None
    diagnosis: Optional[str] = None
    notes: Optional[str] = None
    prescribed_date: datetime
    medications: List[MedicationLineOut]

    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ---------- Billing ----------


class DeductedItemOut(ApiModel):
    medicine_name: str
    quantity_deducted: int


class BillingResultOut(ApiModel):
    medication_history: MedicationHistoryOut
    sales_record: SaleOut
    deducted_items: List[DeductedItemOut]
    total_amount: Decimal
