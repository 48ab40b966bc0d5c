"""
FastAPI application entry point for the SparkSave recommendation API.

This module configures logging and CORS, registers the API routers, and starts
the ASGI server when run directly.

The engine is stateless per request, so startup only loads and logs settings.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from sparksave import __version__
from sparksave.api import api_router
from sparksave.core.config import get_settings


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Lifespan context manager for FastAPI application startup and shutdown events.

    On startup:
        - Load settings so configuration errors surface immediately
        - Log startup message
    On shutdown:
        - Log shutdown message
    """
    settings = get_settings()
    logger.info(
        f"SparkSave API starting (top_n={settings.top_n}, "
        f"explanation_timeout={settings.explanation_timeout_seconds}s)"
    )

    yield

    logger.info("SparkSave API shutting down")


# Create FastAPI application
app = FastAPI(
    title="SparkSave Recommendation API",
    version=__version__,
    description=(
        "Plan recommendation and risk assessment engine. "
        "Ranks energy supply plans against a customer's usage history and "
        "preferences, with cost projections, risk flags and switching advice."
    ),
    lifespan=lifespan,
)

# Web client dev servers
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)


@app.get("/health")
async def health_check():
    """
    Health check endpoint for monitoring and load balancers.

    Returns:
        Dict with status 'healthy'
    """
    return {"status": "healthy"}


@app.get("/")
async def root():
    """
    Root endpoint providing API information.

    Returns:
        Dict with API name and version
    """
    return {
        "name": "SparkSave Recommendation API",
        "version": __version__,
        "docs": "/docs",
        "openapi": "/openapi.json",
    }


# Run with uvicorn when executed directly
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "sparksave.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
