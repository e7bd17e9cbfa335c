"""API router initialization."""

# Yo, this is the main API router that aggregates everything! Gets mounted at /api in main.py, so
# the library endpoints end up under /api/library/... (the prefix lives in library.py).

from fastapi import APIRouter

from medialibrary.api.routers import library

api_router = APIRouter()

api_router.include_router(library.router)

__all__ = ["api_router", "library"]
