import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import requests


class SyncBackend(ABC):
    """Remote copy of one user's record bundle."""

    @abstractmethod
    def fetch(self, external_id: str) -> Optional[Dict[str, Any]]:
        """Return the stored bundle, or None when the server has nothing for this user"""
        pass

    @abstractmethod
    def push(self, external_id: str, bundle: Dict[str, Any]) -> bool:
        pass


class HttpSyncBackend(SyncBackend):
    """GET/POST {base_url}/api/user/{external_id}; the payload is {"data": bundle}."""

    def __init__(self, base_url: str, timeout: float = 10):
        self.base_url = (base_url or "").rstrip("/")
        self.timeout = timeout
        self.logger = logging.getLogger(self.__class__.__name__)

    def _url(self, external_id: str) -> str:
        return f"{self.base_url}/api/user/{external_id}"

    def fetch(self, external_id: str) -> Optional[Dict[str, Any]]:
        response = requests.get(self._url(external_id), timeout=self.timeout)
        if response.status_code == 404:
            return None
        response.raise_for_status()
        payload = response.json() or {}
        data = payload.get("data") if isinstance(payload, dict) else None
        # some servers store the bundle double-encoded
        if isinstance(data, str):
            data = json.loads(data)
        if not isinstance(data, dict):
            self.logger.warning(f"Sync server returned no usable data for {external_id}")
            return None
        return data

    def push(self, external_id: str, bundle: Dict[str, Any]) -> bool:
        response = requests.post(self._url(external_id), json={"data": bundle}, timeout=self.timeout)
        response.raise_for_status()
        return True


class MemorySyncBackend(SyncBackend):
    """In-process backend; handy for tests and for a local copy between two trackers."""

    def __init__(self):
        self.bundles: Dict[str, Dict[str, Any]] = {}

    def fetch(self, external_id: str) -> Optional[Dict[str, Any]]:
        bundle = self.bundles.get(str(external_id))
        return json.loads(json.dumps(bundle)) if bundle is not None else None

    def push(self, external_id: str, bundle: Dict[str, Any]) -> bool:
        self.bundles[str(external_id)] = json.loads(json.dumps(bundle))
        return True
