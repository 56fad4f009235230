import json

import pytest
import requests
from freezegun import freeze_time

from iman.core import keys
from iman.core.points import POINTS, RewardKind
from iman.plugins.sync.backend import HttpSyncBackend, MemorySyncBackend
from iman.plugins.sync.service import UPDATED_AT, SyncService


@pytest.fixture
def backend():
    return MemorySyncBackend()


@pytest.fixture
def sync(tracker, backend):
    return SyncService(tracker, backend, external_id="42")


def test_bundle_holds_core_keys_only(tracker, sync):
    tracker.store.set("ui:theme", "dark")
    tracker.store.set("profile_photo", "data:")
    tracker.award_once(RewardKind.HADITH, "1", 3)
    bundle = sync.gather_bundle()
    assert "profile_photo" not in bundle
    assert keys.PROFILE in bundle
    assert "rewarded:hadith" in bundle
    assert "ui:theme" not in bundle
    assert UPDATED_AT in bundle


@freeze_time("2026-03-10 21:00:00")
def test_restore_recomputes_derived_state(tracker, sync, backend):
    tracker.toggle_habit("fasting", "2026-03-09")
    assert sync.push()
    tracker.reset_all()
    tracker.ensure_profile()
    assert tracker.get_profile().total_points == 0

    assert sync.pull()
    assert tracker.get_profile().total_points == POINTS["FASTING"]
    assert tracker.get_habit_log("2026-03-09").fasting


def test_restore_parses_string_values_and_skips_foreign_keys(tracker, sync):
    bundle = {
        keys.habit_log_key("2026-01-01"): json.dumps({"date": "2026-01-01", "quran": True}),
        "iman_onboarded": True,
        UPDATED_AT: 123,
    }
    assert sync.restore_bundle(bundle) == 1
    assert tracker.get_profile().total_points == POINTS["QURAN"]
    assert not tracker.store.exists("iman_onboarded")


def test_pull_without_remote_copy_pushes_local(tracker, sync, backend):
    assert sync.pull()
    assert "42" in backend.bundles


def test_sync_needs_an_external_id(tracker, backend):
    service = SyncService(tracker, backend)
    assert service.push() is False
    tracker.update_profile({"external_id": "777"})
    assert service.push() is True
    assert "777" in backend.bundles


class _FakeResponse:
    def __init__(self, status_code, payload=None):
        self.status_code = status_code
        self._payload = payload

    def json(self):
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


def test_http_backend_fetch(monkeypatch):
    calls = []

    def fake_get(url, timeout):
        calls.append((url, timeout))
        return _FakeResponse(200, {"data": json.dumps({"profile": {"name": "A"}}), "updated_at": 1})

    monkeypatch.setattr(requests, "get", fake_get)
    backend = HttpSyncBackend("https://example.test/", timeout=3)
    assert backend.fetch("42") == {"profile": {"name": "A"}}
    assert calls == [("https://example.test/api/user/42", 3)]


def test_http_backend_missing_user(monkeypatch):
    monkeypatch.setattr(requests, "get", lambda url, timeout: _FakeResponse(404))
    assert HttpSyncBackend("https://example.test").fetch("42") is None


def test_failed_fetch_leaves_local_state_alone(tracker, monkeypatch):
    def broken_get(url, timeout):
        raise requests.ConnectionError("offline")

    monkeypatch.setattr(requests, "get", broken_get)
    tracker.award_once(RewardKind.HADITH, "1", 3)
    service = SyncService(tracker, HttpSyncBackend("https://example.test"), "42")
    assert service.pull() is False
    assert tracker.get_profile().total_points == 3
