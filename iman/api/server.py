"""
FastAPI server for the tracker. run_api_server(app) serves it with uvicorn.
Core endpoints: /api/profile, /api/levels, /api/points, /api/reload, /api/reset, /api/tasks.
Per-plugin routes are mounted from iman.plugins.<package>.api (get_router(iman_app))
under /api/<package>/.
Docs when enabled: http://<host>:<port>/docs
"""
import importlib
import logging
import pkgutil
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from iman.core.points import LEVELS, POINTS, get_current_level, get_next_level, level_progress

logger = logging.getLogger(__name__)


class ProfileResponse(BaseModel):
    """Pydantic view of UserProfile; serializes from the dataclass."""

    model_config = ConfigDict(from_attributes=True)

    name: str
    external_id: Optional[str] = None
    city: str
    lat: Optional[float] = None
    lng: Optional[float] = None
    language: str
    level: str
    total_points: int
    streak: int
    longest_streak: int
    joined_at: str


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=100)
    external_id: Optional[str] = None
    city: Optional[str] = Field(None, max_length=100)
    lat: Optional[float] = Field(None, ge=-90, le=90)
    lng: Optional[float] = Field(None, ge=-180, le=180)
    language: Optional[str] = Field(None, max_length=8)


class LevelResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    icon: str
    min_points: int


def _serialize_datetime(dt: Optional[datetime]) -> Optional[str]:
    """Serialize datetime to ISO string (UTC)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat()


def create_app(iman_app: Any) -> FastAPI:
    """Create FastAPI app with routes that use the given ImanApp instance."""
    app = FastAPI(title="Iman Tracker API", description="Prayers, habits, points and rewards")
    tracker = iman_app.tracker

    @app.get("/api/profile", response_model=ProfileResponse)
    def get_profile() -> ProfileResponse:
        return ProfileResponse.model_validate(tracker.get_profile())

    @app.patch("/api/profile", response_model=ProfileResponse)
    def update_profile(body: ProfileUpdate) -> ProfileResponse:
        changes = body.model_dump(exclude_unset=True)
        return ProfileResponse.model_validate(tracker.update_profile(changes))

    @app.get("/api/levels")
    def list_levels() -> Dict[str, Any]:
        """Level ladder plus where the user stands on it."""
        points = tracker.get_profile().total_points
        next_level = get_next_level(points)
        return {
            "levels": [LevelResponse.model_validate(level) for level in LEVELS],
            "current": LevelResponse.model_validate(get_current_level(points)),
            "next": LevelResponse.model_validate(next_level) if next_level else None,
            "progress": level_progress(points),
        }

    @app.get("/api/points")
    def points_table() -> Dict[str, int]:
        return dict(POINTS)

    @app.post("/api/reload", response_model=ProfileResponse)
    def reload() -> ProfileResponse:
        return ProfileResponse.model_validate(tracker.reload())

    @app.post("/api/reset")
    def reset(confirm: bool = False) -> Dict[str, Any]:
        if not confirm:
            raise HTTPException(status_code=400, detail="Pass confirm=true to delete all data")
        removed = tracker.reset_all()
        tracker.ensure_profile()
        return {"removed": removed}

    @app.get("/api/tasks")
    def list_tasks() -> Dict[str, Any]:
        """List scheduled tasks: DB schedules and active in-memory timers."""
        from iman.core.models import get_all_task_schedules

        db_schedules = get_all_task_schedules()
        for row in db_schedules:
            row["next_run_at"] = _serialize_datetime(row.get("next_run_at"))
            row["last_run_at"] = _serialize_datetime(row.get("last_run_at"))

        active_list = [
            {"name": t["name"], "next_run_at": _serialize_datetime(t["next_run_at"])}
            for t in iman_app.task_manager.get_active_timers()
        ]
        return {"db_schedules": db_schedules, "active_timers": active_list}

    @app.post("/api/tasks/{task_name}/run")
    def run_task(task_name: str) -> Dict[str, str]:
        if not iman_app.task_manager.run_task_now(task_name):
            raise HTTPException(status_code=404, detail=f"No task registered: {task_name}")
        return {"status": "ran"}

    # Mount per-plugin API routers from iman.plugins.<name>.api (get_router(iman_app))
    for name, router in _discover_plugin_routers(iman_app):
        app.include_router(router, prefix=f"/api/{name}")

    return app


def _discover_plugin_routers(iman_app: Any) -> List[Any]:
    routers = []
    plugins_pkg = importlib.import_module("iman.plugins")
    for _mod, name, is_pkg in pkgutil.iter_modules(plugins_pkg.__path__):
        if not is_pkg:
            continue
        try:
            api_module = importlib.import_module(f"iman.plugins.{name}.api")
        except ModuleNotFoundError as e:
            if e.name != f"iman.plugins.{name}.api":
                raise
            continue
        if not callable(getattr(api_module, "get_router", None)):
            continue
        try:
            router = api_module.get_router(iman_app)
            if router is not None:
                routers.append((name, router))
        except Exception as e:
            logger.warning(f"Failed to mount API router for plugin {name}: {e}", exc_info=True)
    return routers


def run_api_server(iman_app: Any) -> bool:
    """
    Serve the API in the foreground if api.enabled is true. Returns False without serving otherwise.
    Reads api.host (default 127.0.0.1) and api.port (default 8765) from config.
    """
    api_config = iman_app.config.data.get("api") or {}
    enabled = api_config.get("enabled", False)
    logger.info(
        f"API config: enabled={enabled}, config_file={iman_app.config.config_file}, "
        f"api section={list(api_config.keys())}"
    )
    if not enabled:
        logger.info("API server not started: set api.enabled to true in your config file to enable.")
        return False
    host = api_config.get("host", "127.0.0.1")
    port = int(api_config.get("port", 8765))

    import uvicorn
    logger.info(f"API server listening at http://{host}:{port} (docs at /docs)")
    uvicorn.run(create_app(iman_app), host=host, port=port)
    return True
