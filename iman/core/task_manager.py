"""
Single place for scheduling: in-memory timers for DB-backed registered tasks.
"""
import logging
from datetime import datetime, timezone
from threading import Timer
from typing import Any, Dict, List

from iman.core.task import BaseTask, get_next_run_from_db


class TaskManager:
    def __init__(self, app: Any = None):
        self.app = app
        self.timers: Dict[str, Timer] = {}
        self.logger = logging.getLogger("TaskManager")
        self._registered_tasks: Dict[str, BaseTask] = {}
        self._stopped = False

    def register_task(self, task: BaseTask) -> None:
        """Register a task instance and make sure its schedule row exists."""
        self._registered_tasks[task.name] = task
        task.ensure_scheduled()
        self.logger.debug(f"Registered task: {task.name}")

    @property
    def tasks(self) -> Dict[str, BaseTask]:
        return dict(self._registered_tasks)

    def schedule_registered_task(self, task_name: str) -> None:
        """
        Schedule a registered task at next_run from DB (or immediately if past due / never run).
        After running, execute() updates next_run in DB and we reschedule for the new value.
        """
        if self._stopped:
            return
        if task_name not in self._registered_tasks:
            self.logger.warning(f"No task registered: {task_name}")
            return
        next_run = get_next_run_from_db(task_name)
        now = datetime.now(timezone.utc).replace(tzinfo=None)
        if next_run is None:
            delay = 0
        else:
            delay = max(0, int((next_run - now).total_seconds()))
        self._start_timer(task_name, delay)

    def schedule_all(self) -> None:
        for task_name in self._registered_tasks:
            self.schedule_registered_task(task_name)

    def _start_timer(self, task_name: str, delay: int) -> None:
        try:
            if task_name in self.timers:
                self.timers[task_name].cancel()
            scheduled_time = datetime.now().timestamp() + delay
            timer = Timer(delay, self._run_and_reschedule, args=(task_name,))
            timer.daemon = True
            timer.scheduled_time = scheduled_time
            self.timers[task_name] = timer
            timer.start()
            self.logger.info(f"Timer started for {task_name}, scheduled for {datetime.fromtimestamp(scheduled_time)}")
        except Exception as e:
            self.logger.error(f"Error scheduling task {task_name}: {e}")

    def _run_and_reschedule(self, task_name: str) -> None:
        self.run_task_now(task_name)
        self.schedule_registered_task(task_name)

    def run_task_now(self, task_name: str) -> bool:
        """Run a registered task once immediately (e.g. manual refresh)."""
        task = self._registered_tasks.get(task_name)
        if not task:
            self.logger.warning(f"No task registered: {task_name}")
            return False
        task.execute(self.app)
        return True

    def get_active_timers(self) -> List[Dict[str, Any]]:
        """Return list of active timer names and their next run time (for API)."""
        result = []
        for name, timer in self.timers.items():
            if getattr(timer, "scheduled_time", None) is not None:
                next_run = datetime.fromtimestamp(timer.scheduled_time, tz=timezone.utc)
                result.append({"name": name, "next_run_at": next_run})
        return result

    def stop(self) -> None:
        """Stop all scheduled tasks."""
        self._stopped = True
        for timer in self.timers.values():
            timer.cancel()
        self.timers.clear()
