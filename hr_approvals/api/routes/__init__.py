"""API Routes module"""
from fastapi import APIRouter

from .hr import router as hr_router

# Main API router
api_router = APIRouter()

api_router.include_router(hr_router, prefix="/hr")

__all__ = ["api_router"]
