"""
FastAPI application entry point with async lifespan.
"""
import structlog
import uvicorn
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import get_settings
from app.core.database import init_db, close_db
from app.core.exceptions import add_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import LoggingMiddleware
from app.routes import activity, credits, health, ledger, projects, users, verifications

settings = get_settings()
configure_logging(settings)
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Async lifespan manager for startup and shutdown."""
    logger.info("Starting up", service=settings.app_name, version=settings.app_version)
    await init_db()
    yield
    await close_db()
    logger.info("Shut down")


def create_application() -> FastAPI:
    """Build the FastAPI app with middleware, error handlers and routes."""
    application = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Carbon credit registry: projects, verification and credit lifecycle",
        lifespan=lifespan
    )

    # CORS middleware (for Streamlit dashboard)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # In production, specify exact origins
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.add_middleware(LoggingMiddleware)
    add_exception_handlers(application)

    # Register routes
    application.include_router(health.router)
    application.include_router(users.router)
    application.include_router(projects.router)
    application.include_router(verifications.router)
    application.include_router(credits.router)
    application.include_router(activity.router)
    application.include_router(ledger.router)

    @application.get("/")
    async def root():
        """Root endpoint."""
        return {
            "service": settings.app_name,
            "version": settings.app_version,
            "docs": "/docs",
            "health": "/health"
        }

    return application


app = create_application()


if __name__ == "__main__":
    uvicorn.run(
        app,
        host='0.0.0.0',
        port=settings.port,
        log_level=settings.log_level.lower()
    )
