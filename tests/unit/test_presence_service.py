"""Unit tests for editing presence with a debounced stop."""

import asyncio
from datetime import UTC

import pytest
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from src.core.scheduler import DelayedActions
from src.services.presence_service import PresenceTracker
from src.services.realtime_service import RealtimeHub, channel_for_project


DELAY = 0.05


@pytest.fixture
async def backend():
    """A real scheduler running on the test's event loop."""
    scheduler = AsyncIOScheduler(timezone=UTC)
    scheduler.start()
    yield scheduler
    scheduler.shutdown(wait=False)


@pytest.fixture
def hub():
    return RealtimeHub(instance_id="test")


@pytest.fixture
def tracker(hub, backend):
    return PresenceTracker(hub, DelayedActions(backend, prefix="presence-test"), delay_seconds=DELAY)


@pytest.fixture
def viewer(hub, recording_member):
    member = recording_member("viewer")
    hub.join(channel_for_project("1"), member.member)
    return member


def _flags(member) -> list[bool]:
    return [envelope["payload"]["isEditing"] for envelope in member.received]


@pytest.mark.unit
class TestPresenceTracker:
    """Tests for PresenceTracker."""

    async def test_start_is_broadcast_immediately(self, tracker, viewer):
        await tracker.start_editing(project_id="1", user_id="u1", user_name="Ana", client_id="c1")

        assert viewer.events() == ["presence:editing"]
        assert viewer.received[0]["payload"] == {
            "userId": "u1",
            "userName": "Ana",
            "clientId": "c1",
            "isEditing": True,
        }

    async def test_stop_is_broadcast_once_after_quiet_window(self, tracker, viewer):
        await tracker.start_editing(project_id="1", user_id="u1", user_name="Ana", client_id="c1")
        await tracker.stop_editing(project_id="1", user_id="u1", client_id="c1")

        assert _flags(viewer) == [True]
        await asyncio.sleep(DELAY * 6)

        assert _flags(viewer) == [True, False]
        assert tracker.editors("1") == []

    async def test_restart_within_window_cancels_stop(self, tracker, viewer):
        await tracker.start_editing(project_id="1", user_id="u1", user_name="Ana", client_id="c1")
        await tracker.stop_editing(project_id="1", user_id="u1", client_id="c1")
        await tracker.start_editing(project_id="1", user_id="u1", user_name="Ana", client_id="c1")

        await asyncio.sleep(DELAY * 6)

        assert _flags(viewer) == [True, True]
        assert [editor.user_id for editor in tracker.editors("1")] == ["u1"]

    async def test_repeated_stops_rearm_a_single_timer(self, tracker, viewer):
        await tracker.start_editing(project_id="1", user_id="u1", user_name="Ana", client_id="c1")
        for _ in range(3):
            await tracker.stop_editing(project_id="1", user_id="u1", client_id="c1")

        await asyncio.sleep(DELAY * 6)

        assert _flags(viewer) == [True, False]

    async def test_stop_without_start_is_ignored(self, tracker, viewer):
        await tracker.stop_editing(project_id="1", user_id="u1", client_id="c1")

        await asyncio.sleep(DELAY * 3)

        assert viewer.received == []

    async def test_disconnect_stops_immediately(self, tracker, viewer):
        await tracker.start_editing(project_id="1", user_id="u1", user_name="Ana", client_id="c1")
        await tracker.start_editing(project_id="1", user_id="u2", user_name="Ben", client_id="c2")
        await tracker.stop_editing(project_id="1", user_id="u1", client_id="c1")

        stopped = await tracker.disconnect("c1")
        await asyncio.sleep(DELAY * 6)

        assert stopped == 1
        assert _flags(viewer) == [True, True, False]
        assert [editor.user_id for editor in tracker.editors("1")] == ["u2"]

    async def test_sessions_are_keyed_per_client(self, tracker, viewer):
        await tracker.start_editing(project_id="1", user_id="u1", user_name="Ana", client_id="laptop")
        await tracker.start_editing(project_id="1", user_id="u1", user_name="Ana", client_id="phone")
        await tracker.stop_editing(project_id="1", user_id="u1", client_id="laptop")

        await asyncio.sleep(DELAY * 6)

        assert [editor.client_id for editor in tracker.editors("1")] == ["phone"]

    async def test_editors_filtered_by_project(self, tracker):
        await tracker.start_editing(project_id="1", user_id="u1", user_name="Ana", client_id="c1")
        await tracker.start_editing(project_id="2", user_id="u2", user_name="Ben", client_id="c2")

        assert [editor.user_name for editor in tracker.editors("2")] == ["Ben"]


@pytest.mark.unit
class TestDelayedActions:
    """Tests for DelayedActions."""

    async def test_schedule_and_cancel(self, backend):
        actions = DelayedActions(backend, prefix="unit")
        fired = []

        async def fire(value):
            fired.append(value)

        actions.schedule("k", DELAY, fire, "x")
        assert actions.is_pending("k")

        assert actions.cancel("k") is True
        assert actions.cancel("k") is False
        await asyncio.sleep(DELAY * 3)

        assert fired == []

    async def test_fires_once(self, backend):
        actions = DelayedActions(backend, prefix="unit")
        fired = []

        async def fire(value):
            fired.append(value)

        actions.schedule("k", DELAY, fire, "x")
        await asyncio.sleep(DELAY * 6)

        assert fired == ["x"]
        assert not actions.is_pending("k")
