"""
Per-plugin API for maintenance. Mounted at /api/maintenance/.
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Query

from iman.plugins.maintenance.retention import MAX_LOG_DAYS, cleanup_old_logs


def get_router(iman_app) -> Optional[APIRouter]:
    """Return router for this plugin; mounted with prefix /api/maintenance."""
    router = APIRouter(tags=["Maintenance"])

    @router.post("/cleanup")
    def cleanup(retention_days: Optional[int] = Query(None, ge=1)) -> Dict[str, Any]:
        if retention_days is None:
            retention_days = (iman_app.config.data.get("retention") or {}).get("days", MAX_LOG_DAYS)
        return cleanup_old_logs(iman_app.tracker, retention_days).to_dict()

    return router
