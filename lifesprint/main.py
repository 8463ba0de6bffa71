"""
LifeSprint - Main Application Entry Point

FastAPI application exposing the activity and container backlog API.
"""

import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI

from config import settings
from . import __version__
from .database import init_database, close_database, get_database
from .web.routes import router as api_router

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown."""
    logger.info(f"Starting {settings.app_name}...")

    try:
        if await init_database():
            logger.info("Database initialized")
        else:
            logger.warning("Database not configured or failed to initialize")
    except Exception as e:
        logger.warning(f"Database init failed: {e}")

    yield

    logger.info(f"Shutting down {settings.app_name}...")
    await close_database()


app = FastAPI(
    title=settings.app_name,
    description="Hierarchical activities planned into annual, monthly, weekly and daily backlogs",
    version=__version__,
    lifespan=lifespan,
)

app.include_router(api_router)


@app.get("/")
async def root():
    """Basic service info."""
    return {
        "status": "healthy",
        "service": settings.app_name,
        "version": __version__,
    }


@app.get("/health")
async def health_check():
    """Health check including database connectivity."""
    try:
        db_health = await get_database().health_check()
    except Exception as e:
        db_health = {"status": "error", "error": str(e)}

    return {
        "status": "healthy" if db_health.get("status") == "healthy" else "degraded",
        "environment": settings.environment,
        "services": {
            "database": db_health.get("status", "unknown"),
        },
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "lifesprint.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
