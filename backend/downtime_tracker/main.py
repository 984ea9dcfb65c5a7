"""Main FastAPI application: dashboard API plus the background probe loop."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .config import settings
from .database import init_db, close_db
from .routers import dashboard_router
from .services.scheduler import scheduler_service

# Configure logging
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    logger.info("Starting downtime tracker")

    await init_db()
    logger.info("Database initialized")

    if settings.probe_enabled:
        scheduler_service.start()
    else:
        logger.info("Probe loop disabled - serving stored samples only")

    yield

    # Shutdown
    if settings.probe_enabled:
        scheduler_service.stop()

    await close_db()
    logger.info("Shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Downtime Tracker",
        description="Internet reachability history, outages, and firmware updates",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    app.include_router(dashboard_router)

    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "probe_enabled": settings.probe_enabled,
        }

    return app


# Create the application instance
app = create_app()


def run():
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.web_port)


if __name__ == "__main__":
    run()
