from fastapi import APIRouter

from rawdahscope.api.routes.dashboard_routes import dashboard_router

# ============================================================================
# API ROUTER
# ============================================================================

api_router = APIRouter()

# Dashboard status, refresh and cache diagnostics (5 endpoints)
api_router.include_router(dashboard_router)
