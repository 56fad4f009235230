"""
Base task type and abstract BaseTask with next_run persistence in DB.
"""
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple

from sqlalchemy import select

from iman.core.db import session_scope
from iman.core.models import TaskSchedule

logger = logging.getLogger(__name__)


class TaskType:
    """Schedule kind for tasks."""
    DAILY = "daily"
    HOURLY = "hourly"
    INTERVAL_SECONDS = "interval_seconds"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def daily_schedule(time_str: Optional[str], fallback: str = "00:00") -> Tuple[str, Dict[str, Any]]:
    """(TaskType.DAILY, {"time": "HH:MM"}) from a config value; fallback on bad input."""
    try:
        parts = str(time_str or fallback).strip().split(":")
        hour = int(parts[0]) if parts else 0
        minute = int(parts[1]) if len(parts) > 1 else 0
        if not (0 <= hour <= 23 and 0 <= minute <= 59):
            raise ValueError(time_str)
        return TaskType.DAILY, {"time": f"{hour:02d}:{minute:02d}"}
    except (ValueError, IndexError):
        return TaskType.DAILY, {"time": fallback}


def compute_next_run(
    schedule_type: str,
    schedule_config: Optional[Dict[str, Any]],
    last_run: Optional[datetime],
) -> datetime:
    """Compute next run datetime from schedule_type, schedule_config, and last_run.
    DAILY times are local wall-clock; stored datetimes are naive UTC."""
    now = _utc_now()
    if last_run is None:
        last_run = now

    if schedule_type == TaskType.DAILY and schedule_config:
        time_str = schedule_config.get("time", "00:00")
        parts = str(time_str).strip().split(":")
        hour = int(parts[0]) if parts else 0
        minute = int(parts[1]) if len(parts) > 1 else 0
        local_last = last_run.replace(tzinfo=timezone.utc).astimezone()
        local_next = local_last.replace(hour=hour, minute=minute, second=0, microsecond=0)
        if local_next <= local_last:
            local_next += timedelta(days=1)
        return local_next.astimezone(timezone.utc).replace(tzinfo=None)

    if schedule_type == TaskType.HOURLY:
        return last_run + timedelta(hours=1)

    if schedule_type == TaskType.INTERVAL_SECONDS and schedule_config:
        sec = int(schedule_config.get("interval_seconds", 86400))
        return last_run + timedelta(seconds=max(1, sec))

    return last_run + timedelta(days=1)


def get_next_run_from_db(task_name: str) -> Optional[datetime]:
    """Read next_run_at for a task from DB. Returns None if no row or next_run_at is null (task will run immediately)."""
    try:
        with session_scope() as session:
            row = session.execute(
                select(TaskSchedule).where(TaskSchedule.task_name == task_name)
            ).scalars().first()
            if row and row.next_run_at is not None:
                return row.next_run_at
    except Exception as e:
        logger.debug(f"get_next_run_from_db {task_name}: {e}")
    return None


def upsert_task_schedule(
    task_name: str,
    schedule_type: str,
    schedule_config: Optional[Dict[str, Any]],
    next_run_at: Optional[datetime] = None,
    last_run_at: Optional[datetime] = None,
    last_error: Optional[str] = None,
) -> None:
    """Create or update TaskSchedule row. If next_run_at not given: for new row leave it null (run immediately); for existing row leave next_run_at unchanged."""
    with session_scope() as session:
        row = session.execute(
            select(TaskSchedule).where(TaskSchedule.task_name == task_name)
        ).scalars().first()
        now = _utc_now()
        if row:
            row.schedule_type = schedule_type
            row.schedule_config = schedule_config
            if next_run_at is not None:
                row.next_run_at = next_run_at
            if last_run_at is not None:
                row.last_run_at = last_run_at
            if last_error is not None:
                row.last_error = last_error
            row.updated_at = now
        else:
            session.add(TaskSchedule(
                task_name=task_name,
                schedule_type=schedule_type,
                schedule_config=schedule_config,
                next_run_at=next_run_at,
                last_run_at=last_run_at,
                last_error=last_error,
                created_at=now,
                updated_at=now,
            ))


def update_after_run(task_name: str, error: Optional[str] = None) -> None:
    """Update last_run_at and next_run_at in DB after a task run. A failed run keeps its error text."""
    with session_scope() as session:
        row = session.execute(
            select(TaskSchedule).where(TaskSchedule.task_name == task_name)
        ).scalars().first()
        if not row:
            return
        now = _utc_now()
        row.last_run_at = now
        row.last_error = error
        row.next_run_at = compute_next_run(row.schedule_type, row.schedule_config, now)
        row.updated_at = now


class BaseTask(ABC):
    """
    Abstract base for plugin background tasks. Subclasses set `name` and implement run();
    the base persists next_run in DB so schedules survive restarts.
    """

    name: str = ""

    def __init__(self, config: Dict[str, Any], schedule_type: str, schedule_config: Optional[Dict[str, Any]] = None):
        self.config = config or {}
        self.schedule_type = schedule_type
        self.schedule_config = schedule_config or {}
        self.logger = logging.getLogger(self.__class__.__name__)

    def get_next_run(self, last_run: Optional[datetime] = None) -> datetime:
        """Compute next run time from schedule_type and schedule_config."""
        return compute_next_run(self.schedule_type, self.schedule_config, last_run)

    def ensure_scheduled(self, next_run_at: Optional[datetime] = None) -> None:
        """Ensure TaskSchedule row exists so next run survives restarts. Does not overwrite next_run_at on existing row."""
        upsert_task_schedule(
            self.name,
            self.schedule_type,
            self.schedule_config,
            next_run_at=next_run_at,
        )

    def execute(self, app: Any) -> None:
        """Run the task and record the outcome in TaskSchedule."""
        try:
            self.run(app)
        except Exception as e:
            self.logger.exception(f"Task {self.name} failed: {e}")
            update_after_run(self.name, error=str(e))
            return
        update_after_run(self.name)

    @abstractmethod
    def run(self, app: Any) -> None:
        """Do the work. Raise on failure; execute() records the error and reschedules."""
        pass
