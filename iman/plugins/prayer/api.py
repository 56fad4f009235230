"""
Per-plugin API for prayers. Mounted at /api/prayer/.
"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from iman.core import clock
from iman.core.logs import PRAYER_NAMES, PrayerStatus
from iman.plugins.prayer.prayer_base import create_backend
from iman.plugins.prayer.service import PrayerService


class MarkResultResponse(BaseModel):
    applied: bool
    prayer: str
    date: str
    status: PrayerStatus
    previous: PrayerStatus
    reason: Optional[str] = None


class StatusRequest(BaseModel):
    status: PrayerStatus
    date: Optional[str] = None


class MarkRequest(BaseModel):
    date: Optional[str] = None


def _service(iman_app) -> PrayerService:
    config = iman_app.config.get_plugin_config("prayer")
    return PrayerService(iman_app.tracker, create_backend(config) if config else None)


def _check(prayer: str) -> None:
    if prayer not in PRAYER_NAMES:
        raise HTTPException(status_code=404, detail=f"Unknown prayer: {prayer}")


def _day(value: Optional[str]):
    try:
        return clock.to_date(value)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


def get_router(iman_app) -> Optional[APIRouter]:
    """Return router for this plugin; mounted with prefix /api/prayer."""
    router = APIRouter(tags=["Prayer"])

    @router.get("/names")
    def get_names() -> List[str]:
        return list(PRAYER_NAMES)

    @router.get("/times")
    def get_times(date: Optional[str] = None, fetch: bool = False) -> Dict[str, str]:
        """Cached times for a day; fetch=true asks the backend when nothing is cached."""
        return _service(iman_app).times_for(_day(date), fetch=fetch)

    @router.post("/times/refresh")
    def refresh_times(date: Optional[str] = None) -> Dict[str, str]:
        times = _service(iman_app).refresh(_day(date))
        if times is None:
            raise HTTPException(status_code=502, detail="Prayer times backend unavailable")
        return times

    @router.get("/next")
    def get_next() -> Optional[Dict[str, str]]:
        return _service(iman_app).next_prayer()

    @router.get("/log")
    def get_log(date: Optional[str] = None) -> Dict[str, Any]:
        log = iman_app.tracker.get_prayer_log(_day(date))
        return {**log.to_dict(), "completed": log.completed, "ontime": log.ontime}

    @router.post("/{prayer}/mark", response_model=MarkResultResponse)
    def mark(prayer: str, body: Optional[MarkRequest] = None) -> MarkResultResponse:
        """One-tap mark. A rejected mark is a 200 with applied=false and a reason."""
        _check(prayer)
        day = _day(body.date if body else None)
        return MarkResultResponse(**_service(iman_app).mark(prayer, day).to_dict())

    @router.post("/{prayer}/status", response_model=MarkResultResponse)
    def set_status(prayer: str, body: StatusRequest) -> MarkResultResponse:
        _check(prayer)
        result = _service(iman_app).set_status(prayer, body.status, _day(body.date))
        return MarkResultResponse(**result.to_dict())

    return router
