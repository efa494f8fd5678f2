"""Update models for database operations.

Only fields explicitly present in a payload are applied
(``model_dump(exclude_unset=True)``); an explicit ``null`` clears a field.
Neither model carries ``id`` or ``project_id``: updates never move a record.
"""

from datetime import date

from pydantic import BaseModel, Field, field_validator

from src.domain.task import TaskPriority, TaskStatus, coerce_day


class TaskUpdate(BaseModel):
    """Partial update payload for a task."""

    name: str | None = None
    description: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    duration: int | None = Field(default=None, ge=0)
    progress: int | None = Field(default=None, ge=0, le=100)
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    parent_id: str | None = None
    order: int | None = None

    @field_validator("name", "progress", "status", "priority", "order", mode="before")
    @classmethod
    def reject_explicit_null(cls, v: object) -> object:
        """These columns are required; they may be omitted but never cleared."""
        if v is None:
            msg = "Field cannot be cleared"
            raise ValueError(msg)
        if isinstance(v, str) and not v.strip():
            msg = "Field cannot be blank"
            raise ValueError(msg)
        return v

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def truncate_to_day(cls, v: object) -> date | None:
        """Accept ISO datetimes and keep only the calendar day."""
        return coerce_day(v)


class ProjectUpdate(BaseModel):
    """Partial update payload for a project."""

    name: str | None = None
    description: str | None = None
    start_date: date | None = None
    end_date: date | None = None

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def truncate_to_day(cls, v: object) -> date | None:
        """Accept ISO datetimes and keep only the calendar day."""
        return coerce_day(v)
