# rxprint/api/router.py
from fastapi import APIRouter
from rxprint.api import (
    routes_prescriptions,
    routes_layouts,
    routes_dosage,
)

api_router = APIRouter()

api_router.include_router(routes_prescriptions.router,
                          prefix="/prescriptions",
                          tags=["Prescriptions"])
api_router.include_router(routes_layouts.router,
                          prefix="/layouts",
                          tags=["Layouts"])
api_router.include_router(routes_dosage.router,
                          prefix="/dosage",
                          tags=["Dosage"])
