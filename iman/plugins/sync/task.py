"""
Background task: push the local bundle to the sync server on an interval.
"""
from typing import Any, Dict

from iman.core.task import BaseTask, TaskType
from iman.plugins.sync.service import SyncService


class SyncTask(BaseTask):
    name = "sync"

    def __init__(self, config: Dict[str, Any]):
        interval = int(config.get("interval_seconds", 900))
        super().__init__(config, TaskType.INTERVAL_SECONDS, {"interval_seconds": max(60, interval)})

    def run(self, app: Any) -> None:
        if not SyncService.from_config(app.tracker, self.config).push():
            raise RuntimeError("Sync push did not complete")
