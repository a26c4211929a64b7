"""
Admin API routers.

Provides endpoints for:
- User accounts, tab assignment, reactivation and password resets
- Public notices shown on the login screen
- Correcting and deleting registration and finance records
"""
from fastapi import APIRouter

from app.api.v1.admin.users import router as users_router
from app.api.v1.admin.notices import router as notices_router
from app.api.v1.admin.records import router as records_router

# Combined admin router
admin_router = APIRouter(tags=["admin"])

admin_router.include_router(
    users_router,
    prefix="/admin/users",
    tags=["admin-users"]
)

admin_router.include_router(
    notices_router,
    prefix="/admin/notices",
    tags=["admin-notices"]
)

admin_router.include_router(
    records_router,
    prefix="/admin/records",
    tags=["admin-records"]
)

__all__ = ["admin_router"]
