# FILE: opd_pharmacy/models/pharmacy_inventory.py
from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    Column, Integer, String, Boolean, Date, DateTime, Numeric,
    ForeignKey, Text, CheckConstraint, Index
)

from opd_pharmacy.db.base import Base

Money = Numeric(14, 2)


class ItemCategory(str, enum.Enum):
    TABLET = "tablet"
    CAPSULE = "capsule"
    SYRUP = "syrup"
    INJECTION = "injection"
    OINTMENT = "ointment"
    DROPS = "drops"
    INHALER = "inhaler"
    SUSPENSION = "suspension"
    POWDER = "powder"
    OTHER = "other"


class InventoryItem(Base):
    """
    One stock-keeping unit of a hospital pharmacy: (hospital, item name, batch).

    quantity is only changed by the billing deduction or a manual adjustment;
    both write it with a `quantity >= needed` guard, and the CHECK below is the
    last line if anything else tries.
    """
    __tablename__ = "pharmacy_inventory"
    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_pharmacy_inventory_qty_nonneg"),
        CheckConstraint("min_stock_level >= 0", name="ck_pharmacy_inventory_min_nonneg"),
        Index("ix_pharmacy_inventory_hospital_name", "hospital_id", "item_name"),
        Index("ix_pharmacy_inventory_hospital_category", "hospital_id", "category"),
        Index("ix_pharmacy_inventory_hospital_active", "hospital_id", "is_active"),
        Index("ix_pharmacy_inventory_hospital_expiry", "hospital_id", "expiry_date"),
        Index("ix_pharmacy_inventory_hospital_qty", "hospital_id", "quantity"),
    )

    id = Column(Integer, primary_key=True, index=True)
    hospital_id = Column(Integer, ForeignKey("hospitals.id"), nullable=False, index=True)

    item_name = Column(String(255), nullable=False)
    generic_name = Column(String(255), nullable=True)
    category = Column(String(32), nullable=False, default=ItemCategory.OTHER.value)
    manufacturer = Column(String(255), nullable=True)

    batch_number = Column(String(100), nullable=True)
    expiry_date = Column(Date, nullable=True)
    quantity = Column(Integer, nullable=False, default=0)
    min_stock_level = Column(Integer, nullable=False, default=10)
    unit = Column(String(50), nullable=False, default="pieces")

    purchase_price = Column(Money, nullable=True)
    selling_price = Column(Money, nullable=True)
    mrp = Column(Money, nullable=True)

    description = Column(Text, nullable=True)
    location = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)
    added_by = Column(Integer, nullable=True)
    last_updated_by = Column(Integer, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self) -> str:
        return (f"<InventoryItem id={self.id} hospital={self.hospital_id} "
                f"name={self.item_name!r} batch={self.batch_number!r} qty={self.quantity}>")
