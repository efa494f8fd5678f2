"""Editing presence with a debounced stop.

A client that starts editing is announced immediately. A stop is only
announced after a quiet window: each stop request (re)arms one delayed job
per (project, user, client), and a new start cancels it. Only a timer that
survives the whole window broadcasts ``isEditing: false``.
"""

import logging
from dataclasses import dataclass

from src.core.config import settings
from src.core.scheduler import DelayedActions, scheduler
from src.domain.events import EventName
from src.models.service_models import EditorPresence
from src.services.realtime_service import RealtimeHub, channel_for_project, realtime_hub


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PresenceKey:
    """Identity of one editing session."""

    project_id: str
    user_id: str
    client_id: str

    @property
    def job_key(self) -> str:
        return f"{self.project_id}:{self.user_id}:{self.client_id}"


class PresenceTracker:
    """Tracks who is editing which project and broadcasts changes."""

    def __init__(self, hub: RealtimeHub, delayed: DelayedActions, *, delay_seconds: float | None = None) -> None:
        self._hub = hub
        self._delayed = delayed
        self._delay_seconds = delay_seconds
        self._editing: dict[PresenceKey, str] = {}

    @property
    def delay_seconds(self) -> float:
        """Quiet window before a stop is broadcast."""
        if self._delay_seconds is not None:
            return self._delay_seconds
        return settings.presence_stop_delay_seconds

    async def _broadcast(self, key: PresenceKey, user_name: str, *, is_editing: bool) -> None:
        await self._hub.publish(
            channel_for_project(key.project_id),
            EventName.PRESENCE_EDITING,
            {
                "userId": key.user_id,
                "userName": user_name,
                "clientId": key.client_id,
                "isEditing": is_editing,
            },
        )

    async def start_editing(self, *, project_id: str, user_id: str, user_name: str, client_id: str) -> None:
        """Flag the user as editing and cancel any pending stop."""
        key = PresenceKey(project_id=project_id, user_id=user_id, client_id=client_id)
        self._delayed.cancel(key.job_key)
        self._editing[key] = user_name
        await self._broadcast(key, user_name, is_editing=True)

    async def stop_editing(self, *, project_id: str, user_id: str, client_id: str) -> None:
        """(Re)arm the delayed stop; a no-op for a session that is not editing."""
        key = PresenceKey(project_id=project_id, user_id=user_id, client_id=client_id)
        if key not in self._editing:
            return
        self._delayed.schedule(key.job_key, self.delay_seconds, self._expire, key)

    async def _expire(self, key: PresenceKey) -> None:
        user_name = self._editing.pop(key, None)
        if user_name is None:
            return
        logger.debug("Presence stop window elapsed", extra={"project_id": key.project_id, "user_id": key.user_id})
        await self._broadcast(key, user_name, is_editing=False)

    async def disconnect(self, client_id: str) -> int:
        """Immediately stop every session of a disconnected client.

        Returns:
            Number of sessions stopped
        """
        keys = [key for key in self._editing if key.client_id == client_id]
        for key in keys:
            self._delayed.cancel(key.job_key)
            user_name = self._editing.pop(key)
            await self._broadcast(key, user_name, is_editing=False)
        if keys:
            logger.info("Stopped presence on disconnect", extra={"client_id": client_id, "sessions": len(keys)})
        return len(keys)

    def editors(self, project_id: str) -> list[EditorPresence]:
        """Users currently flagged as editing a project."""
        return [
            EditorPresence(user_id=key.user_id, user_name=user_name, client_id=key.client_id)
            for key, user_name in self._editing.items()
            if key.project_id == project_id
        ]

    def reset(self) -> None:
        """Forget all sessions and cancel their timers."""
        for key in list(self._editing):
            self._delayed.cancel(key.job_key)
        self._editing.clear()


# Global tracker instance
presence_tracker = PresenceTracker(realtime_hub, DelayedActions(scheduler, prefix="presence-stop"))
