"""API routes package."""

from app.routes.alerts import router as alerts_router
from app.routes.contracts import router as contracts_router
from app.routes.health import router as health_router

__all__ = ["alerts_router", "contracts_router", "health_router"]
