# FILE: opd_pharmacy/services/billing_calc.py
from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable

from opd_pharmacy.services.billing_errors import (
    InvalidMedicationData,
    InvalidQuantity,
    NoTimingSelected,
)

MONEY = Decimal("0.01")
ZERO = Decimal("0")

TIMING_FLAGS = ("morning", "afternoon", "evening", "night")


def round_money(value: Decimal) -> Decimal:
    return value.quantize(MONEY, rounding=ROUND_HALF_UP)


def _d(v) -> Decimal:
    if v is None:
        return ZERO
    return Decimal(str(v))


def doses_per_day(line: Any) -> int:
    return sum(1 for flag in TIMING_FLAGS if getattr(line, flag, False))


def validate_medication_data(line: Any) -> None:
    name = (getattr(line, "medicine_name", None) or "").strip()
    days = getattr(line, "days", None)
    if not name or days is None or days <= 0:
        raise InvalidMedicationData(name or None)


def required_quantity(line: Any) -> int:
    """
    Units a medication line consumes from stock:
    (number of timing flags set) x days.

    Works on anything exposing medicine_name / days / the four timing flags
    (request schema or ORM line).
    """
    validate_medication_data(line)

    per_day = doses_per_day(line)
    if per_day == 0:
        raise NoTimingSelected(line.medicine_name)

    qty = per_day * int(line.days)
    if qty <= 0:
        raise InvalidQuantity(line.medicine_name)
    return qty


def unit_price_for(item: Any) -> Decimal:
    """Selling price, else purchase price, else 0."""
    price = getattr(item, "selling_price", None)
    if price is None or _d(price) == ZERO:
        price = getattr(item, "purchase_price", None)
    return round_money(_d(price))


def line_total(unit_price: Decimal, qty: int) -> Decimal:
    return round_money(_d(unit_price) * Decimal(qty))


def sale_total(totals: Iterable[Decimal]) -> Decimal:
    return round_money(sum((_d(t) for t in totals), ZERO))
