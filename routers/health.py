# routers/health.py

from fastapi import APIRouter, Depends

from core.access_store import AccessStore
from core.config import settings
from dependencies.access import get_access_store

router = APIRouter(
    prefix="/health",
    tags=["Health"],
)


# -----------------------------------------------------
# GET /health/db
# Checks store connectivity (one-row select per table)
# No auth required
# -----------------------------------------------------
@router.get("/db", summary="Access store health check")
def health_db(store: AccessStore = Depends(get_access_store)):
    """
    Verifies the access store is reachable.
    Returns per-table status for the Supabase backend.

    Safe for external health monitors (no auth required).
    """
    try:
        status = store.ping()
        return {
            "service": status.get("service", settings.ACCESS_STORE_BACKEND),
            "status": status.get("status", "unknown"),
            "details": status,
        }

    except Exception as e:
        return {
            "service": settings.ACCESS_STORE_BACKEND,
            "status": "error",
            "error": str(e),
        }


# -----------------------------------------------------
# GET /health/app
# Simple API health check
# -----------------------------------------------------
@router.get("/app", summary="App health check")
def health_app():
    return {
        "service": settings.PROJECT_NAME,
        "status": "ok",
    }
