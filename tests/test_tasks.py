import threading
from datetime import datetime, timedelta

from iman.core.models import get_all_task_schedules
from iman.core.plugin_manager import PluginManager
from iman.core.task import BaseTask, TaskType, compute_next_run, daily_schedule, get_next_run_from_db
from iman.core.task_manager import TaskManager


class RecordingTask(BaseTask):
    name = "recording"

    def __init__(self, config, fail=False):
        super().__init__(config, TaskType.INTERVAL_SECONDS, {"interval_seconds": 60})
        self.fail = fail
        self.runs = []

    def run(self, app):
        self.runs.append(app)
        if self.fail:
            raise RuntimeError("backend down")


def test_daily_schedule_falls_back_on_bad_input():
    assert daily_schedule("7:05") == (TaskType.DAILY, {"time": "07:05"})
    assert daily_schedule("25:00", "03:00") == (TaskType.DAILY, {"time": "03:00"})
    assert daily_schedule(None, "00:30") == (TaskType.DAILY, {"time": "00:30"})


def test_compute_next_run_intervals():
    last = datetime(2026, 1, 1, 12, 0)
    assert compute_next_run(TaskType.HOURLY, None, last) == last + timedelta(hours=1)
    assert compute_next_run(TaskType.INTERVAL_SECONDS, {"interval_seconds": 90}, last) == last + timedelta(seconds=90)
    daily = compute_next_run(TaskType.DAILY, {"time": "03:00"}, last)
    assert last < daily <= last + timedelta(days=1)


def test_run_task_now_records_schedule(db):
    manager = TaskManager(app="app")
    task = RecordingTask({})
    manager.register_task(task)
    assert get_next_run_from_db("recording") is None

    assert manager.run_task_now("recording") is True
    assert task.runs == ["app"]
    row = get_all_task_schedules()[0]
    assert row["last_error"] is None
    assert row["next_run_at"] is not None
    assert manager.run_task_now("unknown") is False


def test_failed_task_keeps_error_text(db):
    manager = TaskManager()
    manager.register_task(RecordingTask({}, fail=True))
    manager.run_task_now("recording")
    assert get_all_task_schedules()[0]["last_error"] == "backend down"


def test_stopped_manager_does_not_schedule(db):
    manager = TaskManager()
    manager.register_task(RecordingTask({}))
    manager.stop()
    manager.schedule_all()
    assert manager.get_active_timers() == []


def test_plugin_manager_registers_plugin_tasks():
    manager = PluginManager()
    assert {"prayer", "maintenance", "sync"} <= set(manager.task_classes)
    assert "stats" in manager.plugins
    assert manager.create_task("sync", {"enable": False}) is None
    assert manager.create_task("nope", {"enable": True}) is None
    task = manager.create_task("sync", {"enable": True, "interval_seconds": 5})
    assert task.schedule_config == {"interval_seconds": 60}


def test_run_without_api_keeps_serving_tasks_until_shutdown(iman_app):
    iman_app.task_manager = TaskManager(iman_app)
    iman_app.task_manager.register_task(RecordingTask({}))
    runner = threading.Thread(target=iman_app.run, daemon=True)
    runner.start()
    runner.join(0.5)
    assert runner.is_alive()
    assert "recording" in iman_app.task_manager.timers

    iman_app.request_shutdown()
    runner.join(5)
    assert not runner.is_alive()
