"""
Swiftdesk Backend - FastAPI Application

Main entry point for the application.
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from app.api.v1 import router as api_v1_router
from app.core.config import settings
from app.core.database import close_db, init_db, session_scope
from app.core.exceptions import register_exception_handlers
from app.core.http_client import close_http_client
from app.services import auth_service


logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    # Startup
    logger.info("Starting Swiftdesk Backend (%s)", settings.ENVIRONMENT)
    if settings.AUTO_CREATE_TABLES:
        await init_db()
    async with session_scope() as db:
        purged = await auth_service.cleanup_expired_revocations(db)
    if purged:
        logger.info("Purged %d expired token revocations", purged)
    yield
    # Shutdown
    logger.info("Shutting down Swiftdesk Backend")
    await close_http_client()
    await close_db()


# Create FastAPI application
app = FastAPI(
    title="Swiftdesk Backend",
    description="Support desk backend with OTP sign-in, tickets, community posts, intake forms and an AI assistant.",
    version=VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

register_exception_handlers(app)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Uploaded files are served from the parent of UPLOAD_DIR
static_root = Path(settings.UPLOAD_DIR).parent
static_root.mkdir(parents=True, exist_ok=True)
app.mount("/static", StaticFiles(directory=str(static_root)), name="static")

# Include API routers
app.include_router(api_v1_router, prefix="/api/v1")


@app.get("/health", tags=["Health"])
async def health_check() -> dict:
    """
    Health check endpoint.

    Returns:
        dict: Health status and environment info.
    """
    return {
        "status": "healthy",
        "environment": settings.ENVIRONMENT,
        "version": VERSION,
    }


@app.get("/", tags=["Root"])
async def root() -> dict:
    return {
        "message": "Welcome to Swiftdesk Backend API",
        "docs": "/docs",
        "health": "/health",
    }
