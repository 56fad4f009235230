"""
Per-plugin API for daily habits. Mounted at /api/habits/.
"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from iman.core import clock
from iman.core.logs import HABIT_KEYS
from iman.core.points import HABIT_POINTS


class HabitValue(BaseModel):
    value: bool
    date: Optional[str] = None


class HabitLogUpdate(BaseModel):
    quran: Optional[bool] = None
    azkar_morning: Optional[bool] = None
    azkar_evening: Optional[bool] = None
    charity: Optional[bool] = None
    fasting: Optional[bool] = None
    dua: Optional[bool] = None


def _day(value: Optional[str]):
    try:
        return clock.to_date(value)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


def _check(habit: str) -> None:
    if habit not in HABIT_KEYS:
        raise HTTPException(status_code=404, detail=f"Unknown habit: {habit}")


def _log_response(log) -> Dict[str, Any]:
    return {**log.to_dict(), "completed": log.completed}


def get_router(iman_app) -> Optional[APIRouter]:
    """Return router for this plugin; mounted with prefix /api/habits."""
    router = APIRouter(tags=["Habits"])
    tracker = iman_app.tracker

    @router.get("/names")
    def get_names() -> List[Dict[str, Any]]:
        return [{"key": habit, "points": HABIT_POINTS[habit]} for habit in HABIT_KEYS]

    @router.get("/log")
    def get_log(date: Optional[str] = None) -> Dict[str, Any]:
        return _log_response(tracker.get_habit_log(_day(date)))

    @router.put("/log")
    def put_log(body: HabitLogUpdate, date: Optional[str] = None) -> Dict[str, Any]:
        values = body.model_dump(exclude_none=True)
        return _log_response(tracker.set_habit_log(_day(date), values))

    @router.post("/{habit}/toggle")
    def toggle(habit: str, date: Optional[str] = None) -> Dict[str, Any]:
        _check(habit)
        return _log_response(tracker.toggle_habit(habit, _day(date)))

    @router.put("/{habit}")
    def set_value(habit: str, body: HabitValue) -> Dict[str, Any]:
        _check(habit)
        return _log_response(tracker.set_habit(habit, body.value, _day(body.date)))

    return router
