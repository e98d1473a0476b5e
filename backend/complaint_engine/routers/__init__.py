"""Complaint Engine - API Routers"""
from .complaints import router as complaints_router
from .scheduler import router as scheduler_router

__all__ = [
    "complaints_router",
    "scheduler_router",
]
