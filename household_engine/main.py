"""Main FastAPI application module for the Household Task Engine.

This module initializes the FastAPI application and wires up the routers.
"""

import logging
import logging.config
from contextlib import asynccontextmanager
from typing import Any, Dict

import uvicorn
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from household_engine.core.config import Settings, get_settings
from household_engine.core.dependencies import close_db, get_db_path, reset_singletons
from household_engine.core.logging_config import LOGGING_CONFIG
from household_engine.database.crud import initialize_database
from household_engine.api.routers import analysis as analysis_router
from household_engine.api.routers import auth_google
from household_engine.api.routers import calendar as calendar_router
from household_engine.api.routers import dev as dev_router
from household_engine.api.routers import settings as settings_router
from household_engine.api.routers import tasks as tasks_router

logging.config.dictConfig(LOGGING_CONFIG)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("Starting Household Task Engine API...")
    try:
        current_settings = get_settings()
        logger.info(f"Settings loaded (environment={current_settings.environment}, llm_provider={current_settings.llm_provider}).")
    except Exception as e:
        logger.error(f"Failed to load settings on startup: {e}", exc_info=True)
        raise

    db_path = get_db_path(current_settings)
    logger.info(f"Ensuring database exists and is initialized at: {db_path}")
    try:
        initialize_database(db_path)
    except Exception as e:
        logger.error(f"Failed to initialize database on startup: {e}", exc_info=True)
        raise

    yield

    # Shutdown
    logger.info("Shutting down Household Task Engine API...")
    reset_singletons()
    close_db()
    logger.info("Shutdown complete.")


app = FastAPI(
    title="Household Task Engine API",
    description="Turns calendar events into household preparation tasks using an LLM.",
    version="0.1.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, replace with specific origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(analysis_router.router, prefix="/api/calendar", tags=["Event Analysis"])
app.include_router(calendar_router.router, prefix="/api/calendar", tags=["Google Calendar"])
app.include_router(tasks_router.router, prefix="/api/tasks", tags=["Tasks"])
app.include_router(settings_router.router, prefix="/api/settings", tags=["Settings"])
app.include_router(dev_router.router, prefix="/api/dev", tags=["Development"])
app.include_router(auth_google.router, tags=["Google Authentication"])


@app.get("/health", response_model=Dict[str, Any])
async def health_check(settings: Settings = Depends(get_settings)) -> Dict[str, Any]:
    """Health check endpoint to verify the API is running."""
    return {
        "status": "healthy",
        "version": app.version,
        "environment": settings.environment,
    }


if __name__ == "__main__":
    settings = get_settings()
    logger.info(f"Starting Uvicorn server on {settings.api_host}:{settings.api_port} with reload={settings.api_reload}")
    uvicorn.run(
        "household_engine.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
        log_config=LOGGING_CONFIG,
        log_level=settings.api_log_level.lower()
    )
