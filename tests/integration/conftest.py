"""Pytest configuration and fixtures for integration tests."""

from collections.abc import AsyncGenerator, Generator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from src.core import db_client
from src.core.config import settings
from src.main import app
from src.services.presence_service import presence_tracker
from src.services.realtime_service import realtime_hub
from tests.unit.mocks import InMemoryDBClient


@pytest.fixture
async def sqlite_db(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> AsyncGenerator[Path]:
    """A fresh SQLite database file with the schema applied."""
    db_path = tmp_path / "gantry.db"
    monkeypatch.setattr(settings, "sqlite_db_path", str(db_path))

    await db_client.init_db()
    yield db_path
    await db_client.close_connection()


@pytest.fixture(autouse=True)
def clean_realtime_state() -> Generator[None]:
    """No channel members, handlers or editing sessions leak between tests."""
    realtime_hub.reset()
    presence_tracker.reset()
    yield
    realtime_hub.reset()
    presence_tracker.reset()


@pytest.fixture
def memory_db(monkeypatch: pytest.MonkeyPatch) -> InMemoryDBClient:
    """Patches src.core.db_client functions to use InMemoryDBClient."""
    memory = InMemoryDBClient()
    for name in ("create_record", "get_record", "update_record", "delete_record", "list_records", "get_first_record"):
        monkeypatch.setattr(f"src.core.db_client.{name}", getattr(memory, name))
    return memory


@pytest.fixture
def api_client(memory_db: InMemoryDBClient) -> TestClient:
    """FastAPI test client over the in-memory store (lifespan not started)."""
    return TestClient(app)
