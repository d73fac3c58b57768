from __future__ import annotations

from riskguard.api.routes.admin import router as admin_router
from riskguard.api.routes.guard import router as guard_router
from riskguard.api.routes.health import router as health_router

__all__ = ["admin_router", "guard_router", "health_router"]
