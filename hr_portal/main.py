"""HR Portal — FastAPI Application Factory.

Run with ``uvicorn --factory hr_portal.main:create_app``.
"""

import logging
import uuid
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from hr_portal.admins.router import router as admins_router
from hr_portal.attendance.router import router as attendance_router
from hr_portal.auth.router import router as auth_router
from hr_portal.common import timeutils
from hr_portal.common.exceptions import register_exception_handlers
from hr_portal.common.logging import request_id_var, setup_logging
from hr_portal.common.rate_limit import limiter
from hr_portal.config import Settings
from hr_portal.database import build_engine, build_session_factory, init_models
from hr_portal.employees.router import router as employees_router
from hr_portal.leave.router import router as leave_router
from hr_portal.tasks.router import router as tasks_router

logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown events."""
    settings: Settings = app.state.settings
    if settings.AUTO_CREATE_TABLES:
        await init_models(app.state.engine)
    logger.info("HR Portal started", extra={"environment": settings.ENVIRONMENT})
    yield
    await app.state.engine.dispose()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or Settings()
    setup_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title="HR Portal",
        description="Employees, geofenced attendance, leave and task tracking",
        version="1.0.0",
        docs_url="/api/docs" if settings.ENVIRONMENT != "production" else None,
        redoc_url="/api/redoc" if settings.ENVIRONMENT != "production" else None,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.engine = build_engine(settings)
    app.state.session_factory = build_session_factory(app.state.engine)

    # Exception handlers (RFC 7807)
    register_exception_handlers(app)

    # Rate limiting (slowapi)
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        token = request_id_var.set(request_id)
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)
        response.headers["X-Request-ID"] = request_id
        for header, value in SECURITY_HEADERS.items():
            response.headers.setdefault(header, value)
        return response

    # Health check (no auth)
    @app.get("/api/health", tags=["system"])
    async def health_check():
        return {
            "status": "ok",
            "timestamp": timeutils.utcnow().isoformat(),
        }

    # Register routers
    app.include_router(auth_router, prefix="/api/auth", tags=["auth"])
    app.include_router(employees_router, prefix="/api/employees", tags=["employees"])
    app.include_router(admins_router, prefix="/api/admins", tags=["admins"])
    app.include_router(attendance_router, prefix="/api/attendance", tags=["attendance"])
    app.include_router(leave_router, prefix="/api/leaves", tags=["leave"])
    app.include_router(tasks_router, prefix="/api/tasks", tags=["tasks"])

    # Stored leave documents and task attachments
    app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR, check_dir=False), name="uploads")

    return app
