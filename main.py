"""
Scheduling Engine - Main Application Entry Point

Task placement, recurring occurrences, calendar conflicts and reschedule proposals.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from scheduling_engine.core.config import get_settings
from scheduling_engine.core.exceptions import SchedulingError
from scheduling_engine.core.logger import logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    # Startup
    settings = get_settings()
    logger.info(f"Starting Scheduling Engine in {settings.ENVIRONMENT} mode...")

    if settings.ENVIRONMENT == "local":
        from scheduling_engine.infrastructure.local.database import init_db

        await init_db()

    # Start background scheduler for periodic overdue checks
    from scheduling_engine.services.background_scheduler import (
        start_background_scheduler,
        stop_background_scheduler,
    )

    await start_background_scheduler()

    yield

    # Shutdown
    logger.info("Shutting down Scheduling Engine...")
    await stop_background_scheduler()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Scheduling Engine",
        description="Deterministic task placement and reschedule workflow",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(SchedulingError)
    async def scheduling_error_handler(request: Request, exc: SchedulingError):
        # Raised outside a route, e.g. while validating a request body
        from scheduling_engine.api.deps import to_http_exception

        http_exc = to_http_exception(exc)
        return JSONResponse(status_code=http_exc.status_code, content={"detail": http_exc.detail})

    from scheduling_engine.api import (
        conflicts,
        reschedules,
        schedules,
        tasks,
        workday_settings,
    )

    app.include_router(tasks.router, prefix="/api/tasks", tags=["tasks"])
    app.include_router(schedules.router, prefix="/api", tags=["schedules"])
    app.include_router(conflicts.router, prefix="/api", tags=["conflicts"])
    app.include_router(reschedules.router, prefix="/api/reschedules", tags=["reschedules"])
    app.include_router(workday_settings.router, prefix="/api", tags=["workday_settings"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "environment": settings.ENVIRONMENT}

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "name": "Scheduling Engine",
            "version": "0.1.0",
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )
