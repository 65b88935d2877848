# opd_pharmacy/models/visit.py
import enum
from datetime import datetime

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Index

from opd_pharmacy.db.base import Base


class VisitStatus(str, enum.Enum):
    PENDING = "pending"
    WITH_NURSE = "with-nurse"
    READY_FOR_DOCTOR = "ready-for-doctor"
    WITH_DOCTOR = "with-doctor"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Visit(Base):
    """
    OPD visit. Only the identifiers and the doctor-stage fields the
    pharmacy side reads are kept here; vitals / examination live with
    the nurse workflow.
    """
    __tablename__ = "opd_visits"
    __table_args__ = (
        Index("ix_opd_visits_patient_date", "patient_id", "visit_date"),
        Index("ix_opd_visits_hospital_status", "hospital_id", "status"),
    )

    id = Column(Integer, primary_key=True, index=True)
    hospital_id = Column(Integer,
                         ForeignKey("hospitals.id"),
                         nullable=False,
                         index=True)
    patient_id = Column(Integer,
                        ForeignKey("patients.id"),
                        nullable=False,
                        index=True)
    visit_date = Column(DateTime, default=datetime.utcnow, nullable=False)

    status = Column(String(32),
                    nullable=False,
                    default=VisitStatus.PENDING.value)
    doctor_id = Column(Integer, nullable=True, index=True)
    diagnosis = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime,
                        default=datetime.utcnow,
                        onupdate=datetime.utcnow,
                        nullable=False)
