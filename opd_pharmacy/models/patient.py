# opd_pharmacy/models/patient.py
from datetime import datetime

from sqlalchemy import (
    Column,
    Integer,
    String,
    DateTime,
    ForeignKey,
    UniqueConstraint,
)

from opd_pharmacy.db.base import Base


class Patient(Base):
    __tablename__ = "patients"
    __table_args__ = (
        # phone number is unique within a hospital, not globally
        UniqueConstraint("hospital_id", "phone_number",
                         name="uq_patients_hospital_phone"),
        {
            "mysql_engine": "InnoDB",
            "mysql_charset": "utf8mb4",
            "mysql_collate": "utf8mb4_unicode_ci",
        },
    )

    id = Column(Integer, primary_key=True, index=True)
    hospital_id = Column(Integer,
                         ForeignKey("hospitals.id"),
                         nullable=False,
                         index=True)

    name = Column(String(120), nullable=False)
    phone_number = Column(String(20), nullable=False)
    age = Column(Integer, nullable=True)
    gender = Column(String(16), nullable=True)  # Male / Female / Other
    address = Column(String(255), nullable=True)

    registration_date = Column(DateTime, default=datetime.utcnow, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime,
                        default=datetime.utcnow,
                        onupdate=datetime.utcnow,
                        nullable=False)
