"""API route modules."""

from .certificates_routes import legacy_router as legacy_certificates_router
from .certificates_routes import router as certificates_router
from .health_routes import router as health_router

__all__ = [
    "certificates_router",
    "health_router",
    "legacy_certificates_router",
]
