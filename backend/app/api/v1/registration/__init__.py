"""
Registration ("usajili") API routers.

Provides endpoints for:
- Members and attendance
- Salvations, testimonies and trainings
"""
from fastapi import APIRouter

from app.api.v1.registration.members import router as members_router
from app.api.v1.registration.records import router as records_router

registration_router = APIRouter(tags=["registration"])

registration_router.include_router(members_router, prefix="/registration")
registration_router.include_router(records_router, prefix="/registration")

__all__ = ["registration_router"]
