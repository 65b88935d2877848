# FILE: opd_pharmacy/services/medication_billing.py
"""
Prescription + stock deduction + pharmacy sale, committed as one unit.

    Started -> PatientAndVisitVerified -> StockChecked -> Committed
    (any step may end in Rejected instead)

Nothing is written unless every step succeeds. Stock is taken with a
compare-and-swap UPDATE (inventory.deduct_stock), so two requests that both
saw enough stock cannot both consume it: the loser gets zero rows back and
its whole transaction (prescription insert included) is rolled back.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from opd_pharmacy.core.config import settings
from opd_pharmacy.models.medication_history import MedicationHistory
from opd_pharmacy.models.pharmacy_inventory import InventoryItem
from opd_pharmacy.models.pharmacy_sales import PharmacySale
from opd_pharmacy.schemas.medication_history import MedicationHistoryCreate, MedicationLineIn
from opd_pharmacy.services.billing_calc import required_quantity
from opd_pharmacy.services.billing_errors import (
    FATAL_ERRORS,
    BillingError,
    BillingTimeout,
    ConcurrentStockChange,
    InsufficientStock,
    NoMedications,
)
from opd_pharmacy.services.inventory import deduct_stock, find_active_item
from opd_pharmacy.services.medication_history import build_history, verify_patient_and_visit
from opd_pharmacy.services.pharmacy_sales import build_sale_item, create_sales_record

logger = logging.getLogger(__name__)

# MySQL lock wait timeout / deadlock, SQLite busy
_WRITE_CONFLICT_CODES = (1205, 1213)
_WRITE_CONFLICT_TEXT = ("deadlock", "lock wait timeout", "database is locked", "could not serialize")


@dataclass
class ResolvedLine:
    item: InventoryItem
    required_quantity: int
    medicine_name: str


@dataclass
class BillingResult:
    medication_history: MedicationHistory
    sales_record: PharmacySale
    deducted_items: List[Dict[str, object]] = field(default_factory=list)

    @property
    def total_amount(self) -> Decimal:
        return self.sales_record.total_amount


async def check_availability(
    db: AsyncSession,
    hospital_id: int,
    medications: Sequence[MedicationLineIn],
) -> Tuple[List[ResolvedLine], List[str]]:
    """
    Resolve every line to a stock row and compare quantities.

    Lines that resolve to the same stock row share its quantity, so two lines
    of the same medicine are checked against what is left after the first.
    """
    resolved: List[ResolvedLine] = []
    shortages: List[str] = []
    reserved: Dict[int, int] = {}

    for line in medications:
        qty = required_quantity(line)
        name = line.medicine_name

        item = await find_active_item(db, hospital_id, name)
        if not item:
            shortages.append(f"{name} - Not found in inventory")
            continue

        available = item.quantity - reserved.get(item.id, 0)
        if available < qty:
            shortages.append(f"{name} - Required: {qty}, Available: {available}")
            continue

        reserved[item.id] = reserved.get(item.id, 0) + qty
        resolved.append(ResolvedLine(item=item, required_quantity=qty, medicine_name=name))

    return resolved, shortages


def _is_write_conflict(exc: DBAPIError) -> bool:
    orig = getattr(exc, "orig", None)
    args = getattr(orig, "args", None) or ()
    if args and args[0] in _WRITE_CONFLICT_CODES:
        return True
    text = str(orig or exc).lower()
    return any(t in text for t in _WRITE_CONFLICT_TEXT)


async def _begin(db: AsyncSession) -> None:
    level = (settings.BILLING_ISOLATION_LEVEL or "").strip()
    if not level or db.in_transaction():
        return
    if db.get_bind().dialect.name == "sqlite":
        return
    await db.connection(execution_options={"isolation_level": level})


async def _bill(
    db: AsyncSession,
    *,
    hospital_id: int,
    user_id: Optional[int],
    payload: MedicationHistoryCreate,
) -> BillingResult:
    await _begin(db)

    state = "started"
    current: Optional[str] = None
    try:
        await verify_patient_and_visit(db, hospital_id, payload.patient_id, payload.visit_id)
        state = "patient_and_visit_verified"

        if not payload.medications:
            raise NoMedications()

        resolved, shortages = await check_availability(db, hospital_id, payload.medications)
        if shortages:
            raise InsufficientStock(shortages)
        state = "stock_checked"

        history = build_history(hospital_id, payload)
        db.add(history)
        await db.flush()

        sale_items = []
        deducted: List[Dict[str, object]] = []
        for line in resolved:
            current = line.medicine_name
            if not await deduct_stock(db, line.item, line.required_quantity):
                raise ConcurrentStockChange(line.medicine_name)

            sale_items.append(build_sale_item(line.item, line.required_quantity, line.medicine_name))
            deducted.append({
                "medicine_name": line.medicine_name,
                "quantity_deducted": line.required_quantity,
            })
            logger.info(
                f"Deducted {line.required_quantity} of {line.medicine_name} "
                f"(item {line.item.id}), {line.item.quantity} left")
        current = None

        sale = create_sales_record(
            db,
            hospital_id=hospital_id,
            patient_id=payload.patient_id,
            visit_id=payload.visit_id,
            prescription_id=history.id,
            items=sale_items,
            sold_by=payload.sold_by or user_id,
        )
        await db.flush()
        await db.commit()

    except BillingError as exc:
        await db.rollback()
        if isinstance(exc, FATAL_ERRORS):
            logger.error(f"Billing aborted at {state} for patient {payload.patient_id}: {exc.message}")
        else:
            logger.info(f"Billing rejected at {state} for patient {payload.patient_id}: {exc.message}")
        raise

    except DBAPIError as exc:
        await db.rollback()
        if _is_write_conflict(exc):
            logger.warning(f"Write conflict while billing patient {payload.patient_id}: {exc.orig}")
            raise ConcurrentStockChange(current or "one or more medicines") from exc
        raise

    except BaseException:
        await db.rollback()
        raise

    logger.info(
        f"Medication history with billing added for patient: {payload.patient_id}, "
        f"visit: {payload.visit_id}, sale: {sale.id}, total: {sale.total_amount}")
    return BillingResult(medication_history=history, sales_record=sale, deducted_items=deducted)


async def add_medication_history_with_billing(
    db: AsyncSession,
    *,
    hospital_id: int,
    user_id: Optional[int],
    payload: MedicationHistoryCreate,
) -> BillingResult:
    """
    Create the prescription, deduct stock for every line and record the sale
    in a single transaction bounded by BILLING_COMMIT_TIMEOUT_SECONDS.
    """
    try:
        return await asyncio.wait_for(
            _bill(db, hospital_id=hospital_id, user_id=user_id, payload=payload),
            timeout=settings.BILLING_COMMIT_TIMEOUT_SECONDS,
        )
    except asyncio.TimeoutError:
        await db.rollback()
        logger.error(
            f"Billing timed out after {settings.BILLING_COMMIT_TIMEOUT_SECONDS}s "
            f"for patient {payload.patient_id}, rolled back")
        raise BillingTimeout()
