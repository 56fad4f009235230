"""
Per-plugin API for statistics. Mounted at /api/stats/.
"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException, Query

from iman.core import clock
from iman.plugins.stats import aggregation


def _day(value: Optional[str]):
    try:
        return clock.to_date(value)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


def get_router(iman_app) -> Optional[APIRouter]:
    """Return router for this plugin; mounted with prefix /api/stats."""
    router = APIRouter(tags=["Stats"])
    logbook = iman_app.tracker.logbook

    @router.get("/day")
    def get_day(date: Optional[str] = None) -> Dict[str, Any]:
        return aggregation.day_stats(logbook, _day(date)).to_dict()

    @router.get("/today")
    def get_today() -> Dict[str, Any]:
        return aggregation.today_stats(logbook).to_dict()

    @router.get("/daily")
    def get_daily(start: str, end: Optional[str] = None) -> List[Dict[str, Any]]:
        return [d.to_dict() for d in aggregation.daily_stats(logbook, _day(start), _day(end))]

    @router.get("/weekly")
    def get_weekly(end: Optional[str] = None) -> Dict[str, Any]:
        return aggregation.weekly_stats(logbook, _day(end))

    @router.get("/monthly")
    def get_monthly(year: int = Query(..., ge=1970, le=9999), month: int = Query(..., ge=1, le=12)) -> Dict[str, Any]:
        return aggregation.monthly_stats(logbook, year, month)

    @router.get("/prayers")
    def get_prayer_stats(days: int = Query(7, ge=1, le=clock.MAX_RANGE_DAYS), end: Optional[str] = None) -> List[Dict[str, Any]]:
        return aggregation.prayer_stats(logbook, clock.last_n_days(days, _day(end)))

    @router.get("/habits")
    def get_habit_stats(days: int = Query(7, ge=1, le=clock.MAX_RANGE_DAYS), end: Optional[str] = None) -> List[Dict[str, Any]]:
        return aggregation.habit_stats(logbook, clock.last_n_days(days, _day(end)))

    @router.get("/heatmap")
    def get_heatmap(year: Optional[int] = Query(None, ge=1970, le=9999),
                    month: Optional[int] = Query(None, ge=1, le=12)) -> Dict[str, Any]:
        today = clock.today()
        return aggregation.calendar_heatmap(logbook, year or today.year, month or today.month)

    @router.get("/strip")
    def get_strip() -> List[Dict[str, Any]]:
        return aggregation.weekly_prayer_strip(logbook)

    return router
