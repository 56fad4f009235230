import pytest
import yaml
from fastapi.testclient import TestClient
from typing import Generator

from iman.api.server import create_app
from iman.core.app import ImanApp
from iman.core.db import dispose_db, init_db
from iman.core.events import MemoryAnalyticsSink
from iman.core.tracker import Tracker


@pytest.fixture(scope="function")
def db() -> Generator[None, None, None]:
    """
    Fresh in-memory database for every test.
    """
    dispose_db()
    init_db(db_url="sqlite://")
    yield
    dispose_db()


@pytest.fixture
def analytics() -> MemoryAnalyticsSink:
    return MemoryAnalyticsSink()


@pytest.fixture
def tracker(db, analytics) -> Tracker:
    t = Tracker(analytics=analytics)
    t.ensure_profile()
    return t


@pytest.fixture
def config_path(tmp_path):
    """
    Config file in a temp dir: no network backends, API disabled, fixed prayer times.
    """
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({
        "database": {"path": str(tmp_path / "iman.db")},
        "logging": {"level": "DEBUG", "file": str(tmp_path / "iman.log")},
        "api": {"enabled": False},
        "plugins": {
            "prayer": {
                "enable": True,
                "backend": "static",
                "times": {"fajr": "05:00", "dhuhr": "12:30", "asr": "15:45",
                          "maghrib": "18:20", "isha": "19:50"},
            },
            "maintenance": {"enable": True},
            "sync": {"enable": False},
        },
    }))
    return path


@pytest.fixture
def iman_app(config_path) -> Generator[ImanApp, None, None]:
    dispose_db()
    app = ImanApp(config_path=str(config_path), db_url="sqlite://", setup_logging=False)
    yield app
    app.stop()


@pytest.fixture
def client(iman_app) -> Generator[TestClient, None, None]:
    """
    FastAPI test client bound to the app fixture.
    """
    with TestClient(create_app(iman_app)) as c:
        yield c
