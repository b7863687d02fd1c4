"""API routes."""
from fastapi import APIRouter

from . import health, images, history

# Create API router
api_router = APIRouter(prefix="/api")

# Include all route modules
api_router.include_router(health.router, tags=["health"])
api_router.include_router(images.router, tags=["images"])
api_router.include_router(history.router, tags=["history"])

__all__ = ["api_router"]
