# FILE: opd_pharmacy/services/billing_errors.py
"""
Errors raised by the pharmacy / billing services.

Each one is terminal for the request: the billing transaction is rolled
back and the error is rendered by api.exception_handlers. None of them is
retried here; a ConcurrentStockChange is the caller's cue to resend.
"""
from __future__ import annotations

from typing import List, Optional


class BillingError(Exception):
    code: str = "BILLING_ERROR"
    status_code: int = 400
    message: str = "Billing failed"

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.message
        super().__init__(self.message)


class PatientNotFound(BillingError):
    code = "PATIENT_NOT_FOUND"
    status_code = 404
    message = "Patient not found"


class VisitNotFound(BillingError):
    code = "VISIT_NOT_FOUND"
    status_code = 404
    message = "Visit not found"


class NoMedications(BillingError):
    code = "NO_MEDICATIONS"
    message = "At least one medication is required"


class _PerMedicineError(BillingError):
    prefix: str = ""

    def __init__(self, medicine_name: Optional[str]) -> None:
        self.medicine_name = medicine_name or "Unknown"
        super().__init__(f"{self.prefix}{self.medicine_name}")


class InvalidMedicationData(_PerMedicineError):
    code = "INVALID_MEDICATION_DATA"
    prefix = "Invalid medication data for: "


class NoTimingSelected(_PerMedicineError):
    code = "NO_TIMING_SELECTED"
    prefix = "No timing selected for medication: "


class InvalidQuantity(_PerMedicineError):
    code = "INVALID_QUANTITY"
    status_code = 500
    prefix = "Invalid quantity calculated for: "


class ConcurrentStockChange(_PerMedicineError):
    code = "CONCURRENT_UPDATE"
    status_code = 409
    prefix = "Stock changed during processing for: "


class InsufficientStock(BillingError):
    code = "INSUFFICIENT_STOCK"
    message = "Insufficient inventory for some medications"

    def __init__(self, shortages: Optional[List[str]] = None,
                 message: Optional[str] = None) -> None:
        self.shortages = list(shortages or [])
        super().__init__(message)


class InvalidTotalAmount(BillingError):
    code = "INVALID_TOTAL_AMOUNT"
    status_code = 500
    message = "Invalid total amount calculated"


class BillingTimeout(BillingError):
    code = "BILLING_TIMEOUT"
    status_code = 503
    message = "Billing could not be committed in time, nothing was saved"


class InventoryItemNotFound(BillingError):
    code = "INVENTORY_ITEM_NOT_FOUND"
    status_code = 404
    message = "Inventory item not found"


class DuplicateInventoryItem(BillingError):
    code = "DUPLICATE_INVENTORY_ITEM"
    status_code = 409
    message = ("Item with same name and batch number already exists. "
               "Please update the existing item instead.")


# internal-consistency failures: logged as errors, not business rejections
FATAL_ERRORS = (InvalidQuantity, InvalidTotalAmount)
