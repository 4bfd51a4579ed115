"""
API routers for the application.
"""

from fastapi import APIRouter
from app.routers import sessions, allocations, periods

api_router = APIRouter()

# Include routers
api_router.include_router(sessions.router)  # Sessions & SKU import
api_router.include_router(allocations.router)  # Allocation edits, tree & export
api_router.include_router(periods.router)  # Allocation periods

__all__ = ["api_router", "sessions", "allocations", "periods"]
