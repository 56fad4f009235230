"""
Background task: fetch today's prayer times from the configured backend and cache them.
"""
from typing import Any, Dict

from iman.core.task import BaseTask, daily_schedule
from iman.plugins.prayer.prayer_base import create_backend
from iman.plugins.prayer.service import PrayerService


class PrayerTimesTask(BaseTask):
    """Fetch prayer times once a day, shortly after midnight."""

    name = "prayer"

    def __init__(self, config: Dict[str, Any]):
        schedule_type, schedule_config = daily_schedule(config.get("schedule_time"), "00:30")
        super().__init__(config, schedule_type, schedule_config)

    def run(self, app: Any) -> None:
        backend = create_backend(self.config)
        if backend is None:
            raise RuntimeError(f"Unsupported prayer backend: {self.config.get('backend')}")
        times = PrayerService(app.tracker, backend).refresh()
        if not times:
            raise RuntimeError("Prayer times fetch returned nothing")
        self.logger.info(f"Prayer times refreshed: {times}")
