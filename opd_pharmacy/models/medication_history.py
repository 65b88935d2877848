# FILE: opd_pharmacy/models/medication_history.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    DateTime,
    Boolean,
    ForeignKey,
    Index,
)
from sqlalchemy.orm import relationship

from opd_pharmacy.db.base import Base


class MedicationHistory(Base):
    """
    Prescription written at the doctor stage of one OPD visit.
    """

    __tablename__ = "medication_history"
    __table_args__ = (
        Index("ix_medication_history_patient_date", "patient_id", "prescribed_date"),
        {
            "mysql_engine": "InnoDB",
            "mysql_charset": "utf8mb4",
            "mysql_collate": "utf8mb4_unicode_ci",
        },
    )

    id = Column(Integer, primary_key=True, index=True)
    hospital_id = Column(Integer, ForeignKey("hospitals.id"), nullable=False, index=True)
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False, index=True)
    visit_id = Column(Integer, ForeignKey("opd_visits.id"), nullable=False, index=True)

    prescribed_date = Column(DateTime, default=datetime.utcnow, nullable=False)
    doctor_id = Column(Integer, nullable=True)
    consulting_doctor = Column(String(120), nullable=True)
    diagnosis = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # --- Relationships ---
    medications = relationship(
        "MedicationLine",
        back_populates="history",
        cascade="all, delete-orphan",
        order_by="MedicationLine.position",
        lazy="selectin",
    )


class MedicationLine(Base):
    """
    One prescribed drug with its dosing schedule.
    Doses per day = number of timing flags set.
    """

    __tablename__ = "medication_lines"
    __table_args__ = {
        "mysql_engine": "InnoDB",
        "mysql_charset": "utf8mb4",
        "mysql_collate": "utf8mb4_unicode_ci",
    }

    id = Column(Integer, primary_key=True, index=True)
    history_id = Column(
        Integer,
        ForeignKey("medication_history.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position = Column(Integer, nullable=False, default=0)

    medicine_name = Column(String(255), nullable=False)
    dosage = Column(String(64), nullable=False)  # "500mg", "10ml"
    days = Column(Integer, nullable=False)

    # timing
    morning = Column(Boolean, nullable=False, default=False)
    afternoon = Column(Boolean, nullable=False, default=False)
    evening = Column(Boolean, nullable=False, default=False)
    night = Column(Boolean, nullable=False, default=False)

    # meal relation
    before_meal = Column(Boolean, nullable=False, default=False)
    after_meal = Column(Boolean, nullable=False, default=False)

    route = Column(String(32), nullable=True)  # oral, IV, topical ...
    instructions = Column(Text, nullable=True)

    history = relationship("MedicationHistory", back_populates="medications")
