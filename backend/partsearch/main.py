"""Part Search Backend -- FastAPI Application Entry Point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from partsearch import __version__
from partsearch.api.v1.router import api_v1_router
from partsearch.config import settings
from partsearch.services.search_service import get_search_service

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown events."""
    logger.info("Starting part search API server...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug mode: {settings.DEBUG}")

    # Builds the adapters and registers them with the factory
    service = get_search_service()
    logger.info(f"Suppliers enabled: {', '.join(a.source_id for a in service.adapters)}")

    # Warm the rate cache; falls back to static rates when offline
    if settings.ENVIRONMENT != "test":
        rates = await service.rate_provider.get_rates()
        if rates.is_fallback:
            logger.warning("Exchange rate fetch failed, using fallback rates")
        else:
            logger.info("Exchange rates loaded")

    yield

    logger.info("Shutting down part search API server...")
    await service.close()


app = FastAPI(
    title="Part Search API",
    description="Multi-supplier auto part search",
    version=__version__,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL, "http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register API v1 router
app.include_router(api_v1_router, prefix="/api/v1")


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": "Part Search API",
        "version": __version__,
        "docs": "/docs" if settings.DEBUG else None,
        "health": "/api/v1/health",
        "search": "/api/v1/search?q=",
    }
