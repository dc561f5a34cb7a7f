"""
Postcraft API - FastAPI backend for the AI-assisted content generation pipeline
"""

import logging
import os
from datetime import datetime, timezone

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from postcraft import __version__
from postcraft.errors import (
    PostcraftError,
    postcraft_exception_handler,
    storage_exception_handler,
    validation_exception_handler,
)
from postcraft.routers import generation, projects, sessions, usage

# Load environment variables from .env file
load_dotenv()

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Postcraft API",
    description="AI-assisted content generation pipeline",
    version=__version__,
)

# =============================================================================
# CORS Configuration
# =============================================================================
# Production accepts HTTPS origins only; development allows localhost.

ENVIRONMENT = os.getenv("ENVIRONMENT", "development").lower()

if ENVIRONMENT == "production":
    ALLOWED_ORIGINS = []
    for origin in os.getenv("ALLOWED_ORIGINS", "").split(","):
        origin = origin.strip()
        if not origin:
            continue
        if not origin.startswith("https://") or "localhost" in origin:
            logger.warning("[CORS] Rejecting origin in production: %s", origin)
            continue
        ALLOWED_ORIGINS.append(origin)
else:
    default_origins = "http://localhost:3000,http://localhost:5173"
    ALLOWED_ORIGINS = [
        origin.strip()
        for origin in os.getenv("ALLOWED_ORIGINS", default_origins).split(",")
        if origin.strip()
    ]

logger.info("[CORS] Environment: %s, allowed origins: %s", ENVIRONMENT, ALLOWED_ORIGINS)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Requested-With"],
)

# =============================================================================
# Error handling
# =============================================================================
app.add_exception_handler(PostcraftError, postcraft_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(SQLAlchemyError, storage_exception_handler)

# =============================================================================
# Routers
# =============================================================================
app.include_router(projects.router)
app.include_router(sessions.router)
app.include_router(generation.router)
app.include_router(usage.router)


@app.get("/health")
async def health_check():
    """Liveness probe."""
    return {
        "status": "healthy",
        "version": __version__,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
