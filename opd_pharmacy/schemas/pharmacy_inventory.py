# FILE: opd_pharmacy/schemas/pharmacy_inventory.py
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import ConfigDict, Field, field_validator

from opd_pharmacy.models.pharmacy_inventory import ItemCategory
from opd_pharmacy.schemas.common import ApiModel, PaginationOut


class InventoryItemBase(ApiModel):
    item_name: str = Field(..., min_length=1, max_length=255)
    generic_name: Optional[str] = None
    category: ItemCategory
    manufacturer: Optional[str] = None

    batch_number: Optional[str] = None
    expiry_date: Optional[date] = None
    quantity: int = Field(0, ge=0)
    min_stock_level: int = Field(10, ge=0)
    unit: str = "pieces"

    purchase_price: Optional[Decimal] = Field(None, ge=0)
    selling_price: Optional[Decimal] = Field(None, ge=0)
    mrp: Optional[Decimal] = Field(None, ge=0)

    description: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("item_name", "batch_number")
    @classmethod
    def _strip(cls, v):
        return v.strip() if isinstance(v, str) else v


class InventoryItemCreate(InventoryItemBase):
    pass


class InventoryItemUpdate(ApiModel):
    """
    Field edits only. Stock moves through PATCH /{id}/quantity or billing,
    so ``quantity`` is not accepted here.
    """
    model_config = ConfigDict(extra="forbid")

    item_name: Optional[str] = Field(None, min_length=1, max_length=255)
    generic_name: Optional[str] = None
    category: Optional[ItemCategory] = None
    manufacturer: Optional[str] = None

    batch_number: Optional[str] = None
    expiry_date: Optional[date] = None
    min_stock_level: Optional[int] = Field(None, ge=0)
    unit: Optional[str] = None

    purchase_price: Optional[Decimal] = Field(None, ge=0)
    selling_price: Optional[Decimal] = Field(None, ge=0)
    mrp: Optional[Decimal] = Field(None, ge=0)

    description: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    is_active: Optional[bool] = None

    # may be omitted, but an explicit null would hit a NOT NULL column
    @field_validator("item_name", "category", "min_stock_level", "unit", "is_active", mode="before")
    @classmethod
    def _not_null(cls, v, info):
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v

    @field_validator("item_name", "batch_number")
    @classmethod
    def _strip(cls, v):
        return v.strip() if isinstance(v, str) else v


class QuantityAdjustIn(ApiModel):
    quantity_change: int


class InventoryItemOut(ApiModel):
    id: int
    hospital_id: int
    item_name: str
    generic_name: Optional[str] = None
    category: str
    manufacturer: Optional[str] = None

    batch_number: Optional[str] = None
    expiry_date: Optional[date] = None
    quantity: int
    min_stock_level: int
    unit: str

    purchase_price: Optional[Decimal] = None
    selling_price: Optional[Decimal] = None
    mrp: Optional[Decimal] = None

    description: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = None

    is_active: bool
    added_by: Optional[int] = None
    last_updated_by: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class InventoryPageOut(ApiModel):
    inventory: List[InventoryItemOut]
    pagination: PaginationOut


class InventoryStatsOut(ApiModel):
    total_items: int
    active_items: int
    low_stock_count: int
    expired_count: int
    total_value: Decimal
    category_counts: Dict[str, int]
