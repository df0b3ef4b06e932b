"""
Main FastAPI application (entrypoint).

Responsibilities:
- Build the per-process ServiceContainer (settings, DB engine, fare table)
- Wire API routers (auth0 sync, admin, passenger, fares)
- Register centralized exception handlers
- Provide middleware: CORS, request-id logging
- Add health / readiness endpoints
- Create DB tables on startup (development convenience; production uses Alembic)
"""
import logging
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api import (
    routes_admin,
    routes_auth0,
    routes_checkpoints,
    routes_drivers,
    routes_fares,
    routes_jeepneys,
    routes_passenger,
)
from config.settings import Settings, get_settings
from core.container import ServiceContainer
from core.exception_handlers import register_exception_handlers
from core.logging import configure_logging, request_logging_middleware
from core.response import error, ok

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(title=settings.API_TITLE, version=settings.API_VERSION)
    container = ServiceContainer.from_settings(settings)
    app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Auth0-Action", "X-User-Sync"],
    )

    app.include_router(routes_auth0.router, prefix="/api/auth0", tags=["auth0"])
    app.include_router(routes_admin.router, prefix="/admin", tags=["admin"])
    app.include_router(routes_jeepneys.router, prefix="/admin/jeepneys", tags=["admin"])
    app.include_router(routes_drivers.router, prefix="/admin/drivers", tags=["admin"])
    app.include_router(routes_checkpoints.router, prefix="/admin", tags=["admin"])
    app.include_router(routes_fares.admin_router, prefix="/admin/fare-matrix", tags=["admin"])
    app.include_router(routes_fares.router, tags=["fares"])
    app.include_router(routes_passenger.router, prefix="/passenger", tags=["passenger"])

    register_exception_handlers(app)

    # Adds X-Request-ID header and logs each request
    app.middleware("http")(request_logging_middleware)

    @app.get("/health")
    async def health():
        """Simple health endpoint used by load balancers and orchestrators."""
        return ok({"status": "ok"})

    @app.get("/ready")
    async def ready():
        """Readiness: check DB connectivity."""
        try:
            await container.ping()
        except Exception as e:
            logger.warning("Readiness check failed: %s", e)
            return JSONResponse(status_code=503, content=error(code="db_unreachable", message="Database connection failed"))
        return ok({"ready": True})

    @app.on_event("startup")
    async def on_startup():
        try:
            await container.create_all()
        except Exception as e:
            # Do not crash the process for a missing DB during local dev
            logger.warning("DB initialization failed on startup (ok for local dev): %s", e)

    @app.on_event("shutdown")
    async def on_shutdown():
        await container.dispose()

    return app


app = create_app()

if __name__ == "__main__":
    # Run with: python main.py for local dev. For production use uvicorn/gunicorn with workers.
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
