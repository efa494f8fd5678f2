"""Pytest configuration and fixtures for unit tests."""

from datetime import date

import pytest

from src.domain.task import Task
from src.services.realtime_service import realtime_hub
from tests.unit.mocks import InMemoryDBClient, RecordingMember, make_task


@pytest.fixture
def in_memory_db():
    """Provides a fresh InMemoryDBClient for each test."""
    return InMemoryDBClient()


@pytest.fixture
def patched_db(monkeypatch, in_memory_db):
    """Patches src.core.db_client functions to use InMemoryDBClient."""
    monkeypatch.setattr("src.core.db_client.create_record", in_memory_db.create_record)
    monkeypatch.setattr("src.core.db_client.get_record", in_memory_db.get_record)
    monkeypatch.setattr("src.core.db_client.update_record", in_memory_db.update_record)
    monkeypatch.setattr("src.core.db_client.delete_record", in_memory_db.delete_record)
    monkeypatch.setattr("src.core.db_client.list_records", in_memory_db.list_records)
    monkeypatch.setattr("src.core.db_client.get_first_record", in_memory_db.get_first_record)

    return in_memory_db


@pytest.fixture(autouse=True)
def clean_realtime_hub():
    """Every test starts with no channel members and no handlers."""
    realtime_hub.reset()
    yield
    realtime_hub.reset()


@pytest.fixture
def recording_member():
    """Factory for RecordingMember instances."""
    return RecordingMember


@pytest.fixture
def sample_project_tasks() -> list[Task]:
    """A small project: two roots, one with two children and a grandchild."""
    return [
        make_task("1", name="Design", start_date=date(2024, 1, 1), end_date=date(2024, 1, 10)),
        make_task("2", name="Wireframes", parent_id="1", start_date=date(2024, 1, 2), end_date=date(2024, 1, 5)),
        make_task("3", name="Review", parent_id="1", start_date=date(2024, 1, 8), end_date=date(2024, 1, 8)),
        make_task("4", name="Sign-off", parent_id="3", start_date=date(2024, 1, 9), end_date=date(2024, 1, 10)),
        make_task("5", name="Build", start_date=date(2024, 1, 11), end_date=date(2024, 2, 20)),
    ]
