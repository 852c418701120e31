from __future__ import annotations

from weanime.api.routes.admin import router as admin_router
from weanime.api.routes.health import router as health_router
from weanime.api.routes.monitoring import router as monitoring_router

__all__ = ["admin_router", "health_router", "monitoring_router"]
