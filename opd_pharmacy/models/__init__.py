from opd_pharmacy.models.hospital import Hospital  # noqa: F401
from opd_pharmacy.models.patient import Patient  # noqa: F401
from opd_pharmacy.models.visit import Visit, VisitStatus  # noqa: F401
from opd_pharmacy.models.pharmacy_inventory import InventoryItem, ItemCategory  # noqa: F401
from opd_pharmacy.models.medication_history import MedicationHistory, MedicationLine  # noqa: F401
from opd_pharmacy.models.pharmacy_sales import PharmacySale, PharmacySaleItem  # noqa: F401
