from decimal import Decimal
from types import SimpleNamespace

import pytest

from opd_pharmacy.services.billing_calc import (
    line_total,
    required_quantity,
    round_money,
    sale_total,
    unit_price_for,
)
from opd_pharmacy.services.billing_errors import (
    InvalidMedicationData,
    InvalidQuantity,
    NoTimingSelected,
)

from factories import med_line


def test_quantity_is_doses_per_day_times_days():
    assert required_quantity(med_line(days=5)) == 10
    assert required_quantity(med_line(days=3, morning=True, afternoon=True,
                                      evening=True, night=True)) == 12
    assert required_quantity(med_line(days=7, evening=True)) == 7


def test_meal_flags_do_not_count_as_doses():
    line = med_line(days=4, morning=True, before_meal=True, after_meal=True)
    assert required_quantity(line) == 4


def test_no_timing_selected():
    line = med_line(days=5, morning=False, afternoon=False, evening=False, night=False)
    with pytest.raises(NoTimingSelected) as e:
        required_quantity(line)
    assert e.value.message == "No timing selected for medication: Paracetamol"
    assert e.value.status_code == 400


@pytest.mark.parametrize("name,days", [("Paracetamol", 0), ("Paracetamol", -2), ("   ", 5)])
def test_invalid_medication_data(name, days):
    with pytest.raises(InvalidMedicationData) as e:
        required_quantity(med_line(name=name, days=days))
    assert e.value.message.startswith("Invalid medication data for: ")


def test_invalid_quantity_guard_on_inconsistent_line():
    # a line whose day count collapses to zero after validation
    class Flaky:
        medicine_name = "Amoxicillin"
        morning = True
        afternoon = evening = night = False

        def __init__(self):
            self._reads = 0

        @property
        def days(self):
            self._reads += 1
            return 3 if self._reads == 1 else 0

    with pytest.raises(InvalidQuantity) as e:
        required_quantity(Flaky())
    assert e.value.status_code == 500
    assert e.value.message == "Invalid quantity calculated for: Amoxicillin"


def test_unit_price_falls_back_to_purchase_then_zero():
    assert unit_price_for(SimpleNamespace(selling_price=Decimal("4.5"), purchase_price=Decimal("3"))) == Decimal("4.50")
    assert unit_price_for(SimpleNamespace(selling_price=None, purchase_price=Decimal("3"))) == Decimal("3.00")
    assert unit_price_for(SimpleNamespace(selling_price=Decimal("0"), purchase_price=Decimal("3"))) == Decimal("3.00")
    assert unit_price_for(SimpleNamespace(selling_price=None, purchase_price=None)) == Decimal("0.00")


def test_money_helpers_round_half_up():
    assert round_money(Decimal("1.005")) == Decimal("1.01")
    assert line_total(Decimal("2.50"), 10) == Decimal("25.00")
    assert sale_total([Decimal("25.00"), Decimal("3.33"), Decimal("0")]) == Decimal("28.33")
    assert sale_total([]) == Decimal("0.00")
