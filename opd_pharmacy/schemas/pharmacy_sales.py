# FILE: opd_pharmacy/schemas/pharmacy_sales.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import ConfigDict

from opd_pharmacy.schemas.common import ApiModel, PaginationOut


class SaleItemOut(ApiModel):
    id: int
    inventory_id: int
    item_name: str
    batch_number: Optional[str] = None
    quantity: int
    unit_price: Decimal
    total_price: Decimal

    model_config = ConfigDict(from_attributes=True)


class SaleOut(ApiModel):
    id: int
    hospital_id: int
    patient_id: int
    visit_id: int
    prescription_id: int
    total_amount: Decimal
    sale_date: datetime
    sold_by: Optional[int] = None
    items: List[SaleItemOut]

    model_config = ConfigDict(from_attributes=True)


class SalesPageOut(ApiModel):
    sales: List[SaleOut]
    pagination: PaginationOut
