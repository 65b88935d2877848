# opd_pharmacy/api/router.py
from fastapi import APIRouter

from opd_pharmacy.api import (
    # Patients / OPD
    routes_patients,

    # Prescriptions + billing
    routes_medications,

    # Pharmacy
    routes_pharmacy_inventory,
    routes_pharmacy_sales,
)

api_router = APIRouter()

api_router.include_router(routes_patients.router)
api_router.include_router(routes_medications.router)
api_router.include_router(routes_pharmacy_inventory.router)
api_router.include_router(routes_pharmacy_sales.router)


@api_router.get("/health", tags=["Health"])
async def health():
    return {"success": True, "message": "OK"}
