# FILE: opd_pharmacy/models/pharmacy_sales.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Column,
    Integer,
    String,
    DateTime,
    Numeric,
    ForeignKey,
    CheckConstraint,
    Index,
)
from sqlalchemy.orm import relationship

from opd_pharmacy.db.base import Base

Money = Numeric(14, 2)


class PharmacySale(Base):
    """
    Immutable record of what was sold against one prescription.
    Names / batches / prices are snapshots: later inventory edits do not
    rewrite history.
    """

    __tablename__ = "pharmacy_sales"
    __table_args__ = (
        CheckConstraint("total_amount >= 0", name="ck_pharmacy_sales_total_nonneg"),
        Index("ix_pharmacy_sales_hospital_date", "hospital_id", "sale_date"),
        Index("ix_pharmacy_sales_patient_date", "patient_id", "sale_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    hospital_id = Column(Integer, ForeignKey("hospitals.id"), nullable=False, index=True)
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False, index=True)
    visit_id = Column(Integer, ForeignKey("opd_visits.id"), nullable=False, index=True)
    prescription_id = Column(
        Integer,
        ForeignKey("medication_history.id"),
        nullable=False,
        unique=True,
        index=True,
    )

    total_amount = Column(Money, nullable=False, default=0)
    sale_date = Column(DateTime, default=datetime.utcnow, nullable=False)
    sold_by = Column(Integer, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    items = relationship(
        "PharmacySaleItem",
        back_populates="sale",
        cascade="all, delete-orphan",
        order_by="PharmacySaleItem.id",
        lazy="selectin",
    )


class PharmacySaleItem(Base):
    __tablename__ = "pharmacy_sale_items"
    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_pharmacy_sale_items_qty_pos"),
        CheckConstraint("unit_price >= 0", name="ck_pharmacy_sale_items_price_nonneg"),
    )

    id = Column(Integer, primary_key=True, index=True)
    sale_id = Column(
        Integer,
        ForeignKey("pharmacy_sales.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    inventory_id = Column(Integer, ForeignKey("pharmacy_inventory.id"), nullable=False)

    item_name = Column(String(255), nullable=False)
    batch_number = Column(String(100), nullable=True)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Money, nullable=False, default=0)
    total_price = Column(Money, nullable=False, default=0)

    sale = relationship("PharmacySale", back_populates="items")
