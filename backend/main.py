# backend/main.py
"""
Field Tracking API - Main API Entry Point
"""
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from datetime import datetime
import uvicorn
from contextlib import asynccontextmanager

from config.settings import get_settings
from config.logging import get_logger, setup_logging
from core.database import init_db
from core.middleware import LoggingMiddleware, RequestIDMiddleware
from core.exceptions import custom_exception_handler
from api.v1.endpoints import agents, destinations, places, tracking
from utils.date_utils import UTC_TZ

settings = get_settings()
logger = get_logger("fieldtrack")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    # Startup
    setup_logging(settings.LOG_FILE)
    logger.info(f"Starting {settings.APP_NAME} {settings.VERSION}...")

    # Create database tables
    init_db()

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.APP_NAME}...")


# Create FastAPI application
app = FastAPI(
    title=f"{settings.APP_NAME} API",
    description="Live and historical agent locations with prioritized destination lists",
    version=settings.VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# Add middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=settings.CORS_ALLOW_METHODS,
    allow_headers=settings.CORS_ALLOW_HEADERS,
)
app.add_middleware(LoggingMiddleware)
app.add_middleware(RequestIDMiddleware)

# Add exception handlers
app.add_exception_handler(HTTPException, custom_exception_handler)

# Include routers
app.include_router(
    agents.router,
    prefix="/api/v1/agents",
    tags=["Agents"]
)
app.include_router(
    tracking.router,
    prefix="/api/v1/tracking",
    tags=["Tracking"]
)
app.include_router(
    destinations.router,
    prefix="/api/v1/destinations",
    tags=["Destinations"]
)
app.include_router(
    places.router,
    prefix="/api/v1/places",
    tags=["Places"]
)


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": f"{settings.APP_NAME} API",
        "version": settings.VERSION,
        "status": "operational"
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "timestamp": datetime.now(UTC_TZ).isoformat(),
        "version": settings.VERSION
    }


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.DEBUG
    )
