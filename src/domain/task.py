"""Task domain models and enums."""

from datetime import date, datetime
from enum import StrEnum

from pydantic import BaseModel, Field, field_validator


class TaskStatus(StrEnum):
    """Task progress status."""

    TODO = "todo"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    BLOCKED = "blocked"


class TaskPriority(StrEnum):
    """Task priority."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


def coerce_day(value: object) -> date | None:
    """Reduce a date, datetime, or ISO string to its calendar day.

    Raises:
        ValueError: If a string is not an ISO date or datetime
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if len(text) == 10:  # noqa: PLR2004 - YYYY-MM-DD
            return date.fromisoformat(text)
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    msg = f"Unsupported date value: {value!r}"
    raise ValueError(msg)


class Task(BaseModel):
    """Task data transfer object (canonical, fully hydrated store record)."""

    id: str = Field(..., description="Unique task ID from database")
    project_id: str = Field(..., description="Owning project ID")
    name: str = Field(..., description="Task name")
    description: str | None = Field(default=None, description="Detailed task description")
    start_date: date | None = Field(default=None, description="First day of the task")
    end_date: date | None = Field(default=None, description="Last day of the task")
    duration: int | None = Field(default=None, ge=0, description="Stored duration in days")
    progress: int = Field(default=0, ge=0, le=100, description="Completion percentage")
    status: TaskStatus = Field(default=TaskStatus.TODO, description="Progress status")
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM, description="Priority")
    parent_id: str | None = Field(default=None, description="Weak reference to the parent task")
    order: int = Field(default=0, description="Sibling ordering (advisory, not unique)")
    created: str | None = Field(default=None, description="Creation timestamp (ISO format)")
    updated: str | None = Field(default=None, description="Last update timestamp (ISO format)")

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def truncate_to_day(cls, v: object) -> date | None:
        """Accept ISO datetimes and keep only the calendar day."""
        return coerce_day(v)

    @field_validator("parent_id", mode="before")
    @classmethod
    def normalize_parent_id(cls, v: object) -> str | None:
        """Store-level integers and empty strings become str / None."""
        if v is None or v == "":
            return None
        return str(v)

    @property
    def effective_duration(self) -> int:
        """Duration in days: derived from the dates when present, else the stored value."""
        if self.start_date and self.end_date:
            return max(0, (self.end_date - self.start_date).days)
        if self.start_date:
            return 0
        return self.duration or 0

    @property
    def is_milestone(self) -> bool:
        """Zero-duration tasks render as a point rather than a bar."""
        if self.duration == 0:
            return True
        if self.start_date is not None and self.start_date == self.end_date:
            return True
        return self.effective_duration == 0


class FlatTask(Task):
    """Task annotated with its depth in the pre-order flattening."""

    depth: int = Field(..., ge=0, description="0 for roots, parent depth + 1 otherwise")
