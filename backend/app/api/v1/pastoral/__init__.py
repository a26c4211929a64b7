"""
Pastoral API routers.

Provides endpoints for:
- Service summaries and their review queues
- Announcements for the media team
- Branch listing
"""
from fastapi import APIRouter

from app.api.v1.pastoral.summaries import router as summaries_router
from app.api.v1.pastoral.announcements import router as announcements_router
from app.api.v1.pastoral.branches import router as branches_router

pastoral_router = APIRouter(tags=["pastoral"])

pastoral_router.include_router(summaries_router, prefix="/pastoral")
pastoral_router.include_router(announcements_router, prefix="/pastoral")
pastoral_router.include_router(branches_router, prefix="/pastoral")

__all__ = ["pastoral_router"]
