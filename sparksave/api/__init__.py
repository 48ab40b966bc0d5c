"""
SparkSave API package initialization.

This package contains FastAPI router modules for the recommendation service:
- recommendations: Ranked plan recommendations with risk flags and explanations
"""

from fastapi import APIRouter

from sparksave.api.recommendations import router as recommendations_router

# Create main API router
api_router = APIRouter()

# recommendations router has its own /recommendations prefix
api_router.include_router(recommendations_router)

__all__ = [
    "api_router",
    "recommendations_router",
]
