"""
Whole-state sync with a remote copy: gather every core record into one bundle, or restore a
bundle over the local records (last writer wins per key) and re-derive points and streak.
"""
import json
import logging
from typing import Any, Dict, Optional

from iman.core import clock, keys
from iman.core.tracker import Tracker
from iman.plugins.sync.backend import HttpSyncBackend, SyncBackend

logger = logging.getLogger(__name__)

UPDATED_AT = "_updated_at"


class SyncService:
    def __init__(self, tracker: Tracker, backend: Optional[SyncBackend], external_id: Optional[str] = None):
        self.tracker = tracker
        self.backend = backend
        self.external_id = external_id

    @classmethod
    def from_config(cls, tracker: Tracker, config: Dict[str, Any]) -> "SyncService":
        backend = None
        if config.get("base_url"):
            backend = HttpSyncBackend(config["base_url"], timeout=config.get("timeout", 10))
        return cls(tracker, backend, config.get("external_id"))

    def _user_id(self) -> Optional[str]:
        user_id = self.external_id or self.tracker.get_profile().external_id
        return str(user_id) if user_id else None

    def gather_bundle(self) -> Dict[str, Any]:
        bundle = {key: value for key, value in self.tracker.store.items() if keys.is_core_key(key)}
        bundle[UPDATED_AT] = clock.now().isoformat()
        return bundle

    def restore_bundle(self, bundle: Dict[str, Any]) -> int:
        """Write the bundle's core keys over local records, then reload derived state."""
        values = {}
        for key, value in bundle.items():
            if key == UPDATED_AT:
                continue
            if not keys.is_core_key(key):
                logger.debug(f"Ignoring non-core key in sync bundle: {key}")
                continue
            if isinstance(value, str):
                try:
                    value = json.loads(value)
                except ValueError:
                    pass
            values[key] = value
        with self.tracker.lock:
            self.tracker.store.set_many(values)
            self.tracker.reload()
        logger.info(f"Restored {len(values)} records from sync bundle")
        return len(values)

    def push(self) -> bool:
        user_id = self._user_id()
        if self.backend is None or not user_id:
            logger.info("Sync push skipped: no backend or external id")
            return False
        try:
            self.backend.push(user_id, self.gather_bundle())
        except Exception as e:
            logger.warning(f"Sync push failed: {e}")
            return False
        logger.info(f"Pushed local data for user {user_id}")
        return True

    def pull(self) -> bool:
        """Restore the server copy; when the server has none yet, seed it with the local data."""
        user_id = self._user_id()
        if self.backend is None or not user_id:
            logger.info("Sync pull skipped: no backend or external id")
            return False
        try:
            remote = self.backend.fetch(user_id)
        except Exception as e:
            logger.warning(f"Sync fetch failed: {e}")
            return False
        if remote is None:
            logger.info(f"No server data for user {user_id}; pushing local data")
            return self.push()
        self.restore_bundle(remote)
        self.tracker.track("sync_restored", records=len(remote))
        return True
