"""
Per-plugin API for sync. Mounted at /api/sync/.
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, HTTPException

from iman.plugins.sync.service import SyncService


def get_router(iman_app) -> Optional[APIRouter]:
    """Return router for this plugin; mounted with prefix /api/sync."""
    router = APIRouter(tags=["Sync"])

    def service() -> SyncService:
        return SyncService.from_config(iman_app.tracker, iman_app.config.get_plugin_config("sync"))

    @router.get("/bundle")
    def get_bundle() -> Dict[str, Any]:
        return service().gather_bundle()

    @router.put("/bundle")
    def put_bundle(bundle: Dict[str, Any]) -> Dict[str, Any]:
        restored = service().restore_bundle(bundle)
        return {"restored": restored, "profile": iman_app.tracker.get_profile().to_dict()}

    @router.post("/push")
    def push() -> Dict[str, bool]:
        if not service().push():
            raise HTTPException(status_code=502, detail="Sync push failed")
        return {"pushed": True}

    @router.post("/pull")
    def pull() -> Dict[str, bool]:
        if not service().pull():
            raise HTTPException(status_code=502, detail="Sync pull failed")
        return {"pulled": True}

    return router
