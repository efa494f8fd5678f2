"""Realtime event names broadcast on project channels."""

from enum import StrEnum


class EventName(StrEnum):
    """Events a project channel carries."""

    TASK_CREATED = "task:created"
    TASK_UPDATED = "task:updated"
    TASK_DELETED = "task:deleted"
    PROJECT_UPDATED = "project:updated"
    PROJECT_DELETED = "project:deleted"
    PRESENCE_EDITING = "presence:editing"
