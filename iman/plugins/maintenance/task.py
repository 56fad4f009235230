"""
Background task: nightly retention cleanup.
"""
from typing import Any, Dict

from iman.core.task import BaseTask, daily_schedule
from iman.plugins.maintenance.retention import MAX_LOG_DAYS, cleanup_old_logs


class CleanupTask(BaseTask):
    name = "maintenance"

    def __init__(self, config: Dict[str, Any]):
        schedule_type, schedule_config = daily_schedule(config.get("schedule_time"), "03:00")
        super().__init__(config, schedule_type, schedule_config)

    def run(self, app: Any) -> None:
        retention_days = (app.config.data.get("retention") or {}).get("days", MAX_LOG_DAYS)
        cleanup_old_logs(app.tracker, retention_days)
