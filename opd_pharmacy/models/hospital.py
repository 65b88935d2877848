# opd_pharmacy/models/hospital.py
from datetime import datetime

from sqlalchemy import Column, Integer, String, Boolean, DateTime

from opd_pharmacy.db.base import Base


class Hospital(Base):
    """Tenant. Every other table is partitioned by hospital_id."""
    __tablename__ = "hospitals"
    __table_args__ = {
        "mysql_engine": "InnoDB",
        "mysql_charset": "utf8mb4",
        "mysql_collate": "utf8mb4_unicode_ci",
    }

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(191), nullable=False)
    code = Column(String(64), nullable=False, unique=True, index=True)
    contact_email = Column(String(191), nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<Hospital id={self.id} code={self.code} name={self.name}>"
