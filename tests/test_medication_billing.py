import asyncio
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from opd_pharmacy.core.config import settings
from opd_pharmacy.models import (
    InventoryItem,
    MedicationHistory,
    MedicationLine,
    Patient,
    PharmacySale,
    PharmacySaleItem,
    Visit,
)
from opd_pharmacy.schemas.medication_history import MedicationHistoryUpdate
from opd_pharmacy.services import inventory, medication_billing, medication_history, pharmacy_sales
from opd_pharmacy.services.billing_errors import (
    BillingTimeout,
    ConcurrentStockChange,
    InsufficientStock,
    NoMedications,
    NoTimingSelected,
    PatientNotFound,
    VisitNotFound,
)

from factories import med_line, prescription


async def bill(session_factory, hospital_id, payload, user_id=7):
    async with session_factory() as s:
        return await medication_billing.add_medication_history_with_billing(
            s, hospital_id=hospital_id, user_id=user_id, payload=payload)


async def count(session_factory, model) -> int:
    async with session_factory() as s:
        return (await s.execute(select(func.count()).select_from(model))).scalar_one()


async def stock(session_factory, item_id) -> int:
    async with session_factory() as s:
        return (await s.get(InventoryItem, item_id)).quantity


async def assert_nothing_written(session_factory):
    assert await count(session_factory, MedicationHistory) == 0
    assert await count(session_factory, MedicationLine) == 0
    assert await count(session_factory, PharmacySale) == 0
    assert await count(session_factory, PharmacySaleItem) == 0


# ---------- happy path ----------


async def test_billing_deducts_stock_and_records_sale(session_factory, hospital, patient, visit, make_item):
    item = await make_item("Paracetamol", quantity=20, selling_price=Decimal("2.50"), batch_number="PCM-7")

    result = await bill(session_factory, hospital.id, prescription(patient, visit, med_line(days=5)))

    history = result.medication_history
    assert history.id and history.hospital_id == hospital.id
    assert [m.medicine_name for m in history.medications] == ["Paracetamol"]

    sale = result.sales_record
    assert sale.prescription_id == history.id
    assert sale.patient_id == patient.id and sale.visit_id == visit.id
    assert sale.sold_by == 7
    assert sale.total_amount == Decimal("25.00")
    assert result.total_amount == Decimal("25.00")

    [line] = sale.items
    assert (line.inventory_id, line.item_name, line.batch_number) == (item.id, "Paracetamol", "PCM-7")
    assert line.quantity == 10
    assert line.unit_price == Decimal("2.50") and line.total_price == Decimal("25.00")

    assert result.deducted_items == [{"medicine_name": "Paracetamol", "quantity_deducted": 10}]
    assert await stock(session_factory, item.id) == 10


async def test_lowercase_name_matches_catalog_entry(session_factory, hospital, patient, visit, make_item):
    item = await make_item("Paracetamol", quantity=20)

    result = await bill(session_factory, hospital.id,
                        prescription(patient, visit, med_line(name="paracetamol", days=5)))

    assert result.deducted_items == [{"medicine_name": "paracetamol", "quantity_deducted": 10}]
    assert result.sales_record.items[0].inventory_id == item.id
    assert await stock(session_factory, item.id) == 10


async def test_multi_line_totals_and_conservation(session_factory, hospital, patient, visit, make_item):
    pcm = await make_item("Paracetamol", quantity=20, selling_price=Decimal("2.50"))
    amox = await make_item("Amoxicillin", quantity=30, selling_price=None, purchase_price=Decimal("4.10"))
    free = await make_item("ORS", quantity=5, selling_price=None, purchase_price=None)

    payload = prescription(
        patient, visit,
        med_line("Paracetamol", days=5),
        med_line("Amoxicillin", days=3, morning=True, afternoon=True, night=True),
        med_line("ORS", days=2, evening=True),
        sold_by=42,
    )
    result = await bill(session_factory, hospital.id, payload)

    sale = result.sales_record
    assert [(x.item_name, x.quantity, x.total_price) for x in sale.items] == [
        ("Paracetamol", 10, Decimal("25.00")),
        ("Amoxicillin", 9, Decimal("36.90")),
        ("ORS", 2, Decimal("0.00")),
    ]
    assert sale.total_amount == sum(x.total_price for x in sale.items) == Decimal("61.90")
    assert sale.sold_by == 42
    assert [m.position for m in result.medication_history.medications] == [0, 1, 2]

    before = {pcm.id: 20, amox.id: 30, free.id: 5}
    for x in sale.items:
        assert before[x.inventory_id] - await stock(session_factory, x.inventory_id) == x.quantity


async def test_same_medicine_twice_is_checked_against_combined_need(
        session_factory, hospital, patient, visit, make_item):
    item = await make_item("Paracetamol", quantity=15)

    payload = prescription(patient, visit, med_line(days=5), med_line(days=4, night=True))
    result = await bill(session_factory, hospital.id, payload)
    assert [d["quantity_deducted"] for d in result.deducted_items] == [10, 4]
    assert await stock(session_factory, item.id) == 1

    with pytest.raises(InsufficientStock) as e:
        await bill(session_factory, hospital.id,
                   prescription(patient, visit, med_line(days=1, night=True), med_line(days=1, night=True)))
    assert e.value.shortages == ["Paracetamol - Required: 1, Available: 0"]
    assert await stock(session_factory, item.id) == 1


# ---------- rejections ----------


async def test_insufficient_stock_writes_nothing(session_factory, hospital, patient, visit, make_item):
    item = await make_item("Paracetamol", quantity=5)

    with pytest.raises(InsufficientStock) as e:
        await bill(session_factory, hospital.id, prescription(patient, visit, med_line(days=5)))

    assert e.value.message == "Insufficient inventory for some medications"
    assert e.value.shortages == ["Paracetamol - Required: 10, Available: 5"]
    assert await stock(session_factory, item.id) == 5
    await assert_nothing_written(session_factory)


async def test_one_short_line_blocks_the_whole_prescription(session_factory, hospital, patient, visit, make_item):
    ok_item = await make_item("Paracetamol", quantity=100)
    await make_item("Cetirizine", quantity=1)

    payload = prescription(
        patient, visit,
        med_line("Paracetamol", days=5),
        med_line("Cetirizine", days=3, night=True),
        med_line("Unobtainium", days=1, morning=True),
    )
    with pytest.raises(InsufficientStock) as e:
        await bill(session_factory, hospital.id, payload)

    assert e.value.shortages == [
        "Cetirizine - Required: 3, Available: 1",
        "Unobtainium - Not found in inventory",
    ]
    assert await stock(session_factory, ok_item.id) == 100
    await assert_nothing_written(session_factory)


async def test_no_timing_selected_writes_nothing(session_factory, hospital, patient, visit, make_item):
    item = await make_item("Paracetamol", quantity=20)
    line = med_line(days=5, morning=False, afternoon=False, evening=False, night=False)

    with pytest.raises(NoTimingSelected) as e:
        await bill(session_factory, hospital.id, prescription(patient, visit, line))

    assert e.value.message == "No timing selected for medication: Paracetamol"
    assert await stock(session_factory, item.id) == 20
    await assert_nothing_written(session_factory)


async def test_missing_visit(session_factory, hospital, patient, visit, make_item):
    item = await make_item("Paracetamol", quantity=20)
    payload = prescription(patient, visit, med_line(days=5))
    payload.visit_id = visit.id + 1000

    with pytest.raises(VisitNotFound) as e:
        await bill(session_factory, hospital.id, payload)

    assert e.value.status_code == 404 and e.value.message == "Visit not found"
    assert await stock(session_factory, item.id) == 20
    await assert_nothing_written(session_factory)


async def test_visit_of_another_patient(db, session_factory, hospital, patient, make_item):
    await make_item("Paracetamol", quantity=20)

    other = Patient(hospital_id=hospital.id, name="Ravi", phone_number="9000000002")
    db.add(other)
    await db.flush()
    foreign_visit = Visit(hospital_id=hospital.id, patient_id=other.id, status="pending")
    db.add(foreign_visit)
    await db.commit()

    payload = prescription(patient, foreign_visit, med_line(days=5))
    with pytest.raises(VisitNotFound):
        await bill(session_factory, hospital.id, payload)
    await assert_nothing_written(session_factory)


async def test_patient_of_another_hospital(session_factory, other_hospital, patient, visit):
    with pytest.raises(PatientNotFound):
        await bill(session_factory, other_hospital.id, prescription(patient, visit, med_line()))
    await assert_nothing_written(session_factory)


async def test_empty_prescription(session_factory, hospital, patient, visit):
    with pytest.raises(NoMedications) as e:
        await bill(session_factory, hospital.id, prescription(patient, visit))
    assert e.value.message == "At least one medication is required"


async def test_stock_of_another_hospital_is_invisible(session_factory, hospital, other_hospital,
                                                      patient, visit, make_item):
    foreign = await make_item("Paracetamol", quantity=500, hospital_id=other_hospital.id)

    with pytest.raises(InsufficientStock) as e:
        await bill(session_factory, hospital.id, prescription(patient, visit, med_line()))
    assert e.value.shortages == ["Paracetamol - Not found in inventory"]
    assert await stock(session_factory, foreign.id) == 500


# ---------- concurrency ----------


async def test_stock_taken_between_check_and_deduction(
        monkeypatch, session_factory, hospital, patient, visit, make_item):
    item = await make_item("Paracetamol", quantity=15)
    hospital_id, item_id = hospital.id, item.id
    real_check = medication_billing.check_availability

    async def check_then_lose_the_race(db, hid, medications):
        result = await real_check(db, hid, medications)
        # another counter sells 10 after our check passed
        async with session_factory() as other:
            await inventory.update_item_quantity(
                other, hospital_id=hospital_id, item_id=item_id, quantity_change=-10)
        return result

    monkeypatch.setattr(medication_billing, "check_availability", check_then_lose_the_race)

    with pytest.raises(ConcurrentStockChange) as e:
        await bill(session_factory, hospital_id, prescription(patient, visit, med_line(days=5)))

    assert e.value.status_code == 409
    assert e.value.message == "Stock changed during processing for: Paracetamol"
    assert await stock(session_factory, item_id) == 5
    await assert_nothing_written(session_factory)


async def test_two_concurrent_billings_only_one_commits(
        monkeypatch, session_factory, hospital, patient, visit, make_item):
    item = await make_item("Paracetamol", quantity=15)
    payload = prescription(patient, visit, med_line(days=5))
    real_check = medication_billing.check_availability

    # both requests see 15 in stock before either one deducts
    checked = 0
    both_checked = asyncio.Event()

    async def check_in_lockstep(db, hid, medications):
        nonlocal checked
        result = await real_check(db, hid, medications)
        checked += 1
        if checked == 2:
            both_checked.set()
        await asyncio.wait_for(both_checked.wait(), timeout=5)
        return result

    monkeypatch.setattr(medication_billing, "check_availability", check_in_lockstep)

    results = await asyncio.gather(
        bill(session_factory, hospital.id, payload),
        bill(session_factory, hospital.id, payload),
        return_exceptions=True,
    )

    won = [r for r in results if isinstance(r, medication_billing.BillingResult)]
    lost = [r for r in results if not isinstance(r, medication_billing.BillingResult)]
    assert len(won) == 1 and len(lost) == 1
    assert type(lost[0]) is ConcurrentStockChange
    assert lost[0].status_code == 409
    assert lost[0].message == "Stock changed during processing for: Paracetamol"

    assert await stock(session_factory, item.id) == 5
    assert await count(session_factory, MedicationHistory) == 1
    assert await count(session_factory, PharmacySale) == 1


async def test_timeout_rolls_back(monkeypatch, session_factory, hospital, patient, visit, make_item):
    item = await make_item("Paracetamol", quantity=20)
    monkeypatch.setattr(settings, "BILLING_COMMIT_TIMEOUT_SECONDS", 0.05)

    async def stalled(db, hid, medications):
        await asyncio.sleep(2)

    monkeypatch.setattr(medication_billing, "check_availability", stalled)

    with pytest.raises(BillingTimeout) as e:
        await bill(session_factory, hospital.id, prescription(patient, visit, med_line(days=5)))

    assert e.value.status_code == 503
    assert await stock(session_factory, item.id) == 20
    await assert_nothing_written(session_factory)


# ---------- plain prescriptions & queries ----------


async def test_plain_prescription_leaves_stock_alone(db, session_factory, hospital, patient, visit, make_item):
    item = await make_item("Paracetamol", quantity=3)

    history = await medication_history.add_medication_history(
        db, hospital_id=hospital.id, payload=prescription(patient, visit, med_line(days=5)))

    assert history.id
    assert await stock(session_factory, item.id) == 3
    assert await count(session_factory, PharmacySale) == 0


async def test_prescription_queries(db, session_factory, hospital, patient, visit, make_item):
    await make_item("Paracetamol", quantity=100)
    first = await bill(session_factory, hospital.id, prescription(patient, visit, med_line(days=1)))
    second = await bill(session_factory, hospital.id, prescription(patient, visit, med_line(days=2)))
    first_id, second_id = first.medication_history.id, second.medication_history.id

    rows = await medication_history.list_patient_history(db, hospital.id, patient.id)
    assert {h.id for h in rows} == {first_id, second_id}

    recent = await medication_history.recent_prescriptions(db, hospital.id, patient.id, limit=1)
    assert len(recent) == 1

    latest = await medication_history.get_visit_history(db, hospital.id, visit.id)
    assert latest.id == second_id

    sale = await pharmacy_sales.get_sale_for_prescription(db, hospital.id, first_id)
    assert sale.id == first.sales_record.id

    sales, total = await pharmacy_sales.list_sales(db, hospital.id, patient_id=patient.id)
    assert total == 2 and {s.id for s in sales} == {first.sales_record.id, second.sales_record.id}


async def test_update_replaces_medication_lines(db, hospital, patient, visit):
    history = await medication_history.add_medication_history(
        db, hospital_id=hospital.id,
        payload=prescription(patient, visit, med_line("Paracetamol"), med_line("Cetirizine")))

    updated = await medication_history.update_medication_history(
        db, hospital_id=hospital.id, history_id=history.id,
        payload=MedicationHistoryUpdate(diagnosis="Allergic rhinitis",
                                        medications=[med_line("Levocetirizine", days=10, night=True)]))

    assert updated.diagnosis == "Allergic rhinitis"
    assert [(m.medicine_name, m.position) for m in updated.medications] == [("Levocetirizine", 0)]
    assert (await db.execute(select(func.count()).select_from(MedicationLine))).scalar_one() == 1


def test_update_rejects_empty_medication_list():
    with pytest.raises(ValueError):
        MedicationHistoryUpdate(medications=[])
