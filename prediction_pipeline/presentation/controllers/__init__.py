"""
Controllers Package - Presentation Layer

This package contains FastAPI controllers (routers) that handle
HTTP requests and responses. Controllers are responsible for
input validation, error handling, and mapping between API DTOs
and application layer use cases.
"""

from .batch_controller import router as batch_router
from .sessions_controller import router as sessions_router
from .system_controller import router as system_router

__all__ = ["batch_router", "sessions_router", "system_router"]
