from contextlib import asynccontextmanager

from fastapi import FastAPI

from newsscraper.api.crawler import router as crawler_router
from newsscraper.core.config import get_settings
from newsscraper.core.database import database
from newsscraper.core.logging import configure_logging
from newsscraper.services.crawler import get_crawler_service


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown."""
    # Startup
    await database.connect()
    await database.create_all()
    yield
    # Shutdown
    await get_crawler_service().wait()
    await database.disconnect()


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title=settings.APP_NAME,
        description="News article acquisition API",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Include routers
    app.include_router(crawler_router, prefix="/api/v1")

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "database": database.connected}

    return app


app = create_app()
