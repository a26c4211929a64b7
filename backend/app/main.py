"""
Rhema Church API - Main entry point.

Back office for a multi-branch church. It includes the following modules:

- Auth: Login with lockout, reactivation requests, admin-approved password resets
- Admin: Users, tab assignment, reactivation, notices
- Registration (usajili): Members, attendance, salvations, testimonies, trainings
- Finance: Budget approval queues, contributions (michango)
- Pastoral: Service summaries, announcements for the media team
- Messages: Direct, branch and broadcast messages
- Storage: Bucket file storage, usage and cleanup suggestions
- Reports: Registration and finance reports by period

All endpoints live under /api/v1/{module}/; /api/health is the health check.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.db.base import init_db, close_db
from app.schemas.common import HealthResponse

from app.api.v1 import auth, notices, messages, storage, reports
from app.api.v1.admin import admin_router
from app.api.v1.registration import registration_router
from app.api.v1.finance import finance_router
from app.api.v1.pastoral import pastoral_router

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    # Startup: create tables owned by the ORM models
    await init_db()
    logger.info(f"{settings.APP_NAME} started ({settings.APP_ENV})")
    yield
    # Shutdown: release pooled connections
    await close_db()


app = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    description="""
Rhema Church back office.

## Modules

- **Auth**: Login, reactivation, password reset steps
- **Admin**: User and tab management, notices
- **Registration** (usajili): Members, attendance, salvations, testimonies, trainings
- **Finance**: Budgets and contributions
- **Pastoral**: Service summaries, announcements, branches
- **Messages**: Internal messaging
- **Storage**: Buckets, usage and cleanup
- **Reports**: Registration and finance reports
    """,
    lifespan=lifespan,
    docs_url="/api/docs" if settings.DEBUG else None,
    redoc_url="/api/redoc" if settings.DEBUG else None,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# HEALTH CHECK
# ============================================================================

@app.get("/api/health", response_model=HealthResponse, tags=["health"])
async def health_check():
    """Health check endpoint."""
    return HealthResponse(code=200, message="API is healthy.")


# ============================================================================
# V1 API ENDPOINTS
# ============================================================================

# Auth - /api/v1/auth/*
app.include_router(
    auth.router,
    prefix=f"{settings.API_V1_PREFIX}/auth",
    tags=["auth"]
)

# Public notice for the login screen - /api/v1/notices/*
app.include_router(
    notices.router,
    prefix=f"{settings.API_V1_PREFIX}/notices",
    tags=["notices"]
)

# Admin - /api/v1/admin/users/*, /api/v1/admin/notices/*, /api/v1/admin/records/*
app.include_router(
    admin_router,
    prefix=settings.API_V1_PREFIX,
)

# Registration - /api/v1/registration/*
app.include_router(
    registration_router,
    prefix=settings.API_V1_PREFIX,
)

# Finance - /api/v1/finance/*
app.include_router(
    finance_router,
    prefix=settings.API_V1_PREFIX,
)

# Pastoral - /api/v1/pastoral/*
app.include_router(
    pastoral_router,
    prefix=settings.API_V1_PREFIX,
)

# Messages - /api/v1/messages/*
app.include_router(
    messages.router,
    prefix=f"{settings.API_V1_PREFIX}/messages",
    tags=["messages"]
)

# Storage - /api/v1/storage/*
app.include_router(
    storage.router,
    prefix=f"{settings.API_V1_PREFIX}/storage",
    tags=["storage"]
)

# Reports - /api/v1/reports/*
app.include_router(
    reports.router,
    prefix=f"{settings.API_V1_PREFIX}/reports",
    tags=["reports"]
)


# ============================================================================
# ERROR HANDLERS
# ============================================================================

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    if settings.DEBUG:
        return JSONResponse(
            status_code=500,
            content={"detail": str(exc)}
        )
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"}
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG
    )
