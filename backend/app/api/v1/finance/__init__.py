"""
Finance API routers.

Provides endpoints for:
- Budget requests and their approval queues
- Contributions ("michango") and pledge progress
"""
from fastapi import APIRouter

from app.api.v1.finance.budgets import router as budgets_router
from app.api.v1.finance.contributions import router as contributions_router

finance_router = APIRouter(tags=["finance"])

finance_router.include_router(budgets_router, prefix="/finance")
finance_router.include_router(contributions_router, prefix="/finance")

__all__ = ["finance_router"]
