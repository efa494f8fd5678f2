"""Pydantic models for creating records in database."""

from datetime import date

from pydantic import BaseModel, Field, field_validator

from src.domain.dependency import AssignmentRole, DependencyType
from src.domain.task import TaskPriority, TaskStatus, coerce_day


def _require_name(v: str) -> str:
    v = v.strip()
    if not v:
        msg = "Name cannot be empty"
        raise ValueError(msg)
    return v


class ProjectCreate(BaseModel):
    """Pydantic model for creating a project record."""

    name: str = Field(..., description="Project name")
    description: str | None = Field(default=None, description="Project description")
    start_date: date | None = Field(default=None, description="Planned start day")
    end_date: date | None = Field(default=None, description="Planned end day")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate name is not blank."""
        return _require_name(v)

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def truncate_to_day(cls, v: object) -> date | None:
        """Accept ISO datetimes and keep only the calendar day."""
        return coerce_day(v)


class TaskCreate(BaseModel):
    """Pydantic model for creating a task record.

    Omitted fields take the creation defaults: order = project max + 1,
    progress 0, status todo, priority medium.
    """

    name: str = Field(..., description="Task name")
    description: str | None = Field(default=None, description="Detailed task description")
    start_date: date | None = Field(default=None, description="First day of the task")
    end_date: date | None = Field(default=None, description="Last day of the task")
    duration: int | None = Field(default=None, ge=0, description="Stored duration in days")
    progress: int = Field(default=0, ge=0, le=100, description="Completion percentage")
    status: TaskStatus = Field(default=TaskStatus.TODO, description="Progress status")
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM, description="Priority")
    parent_id: str | None = Field(default=None, description="Parent task in the same project")
    order: int | None = Field(default=None, description="Sibling ordering; defaults to project max + 1")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate name is not blank."""
        return _require_name(v)

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def truncate_to_day(cls, v: object) -> date | None:
        """Accept ISO datetimes and keep only the calendar day."""
        return coerce_day(v)


class DependencyCreate(BaseModel):
    """Pydantic model for creating a dependency edge."""

    depends_on_id: str = Field(..., description="Prerequisite task ID")
    type: DependencyType = Field(default=DependencyType.FINISH_TO_START, description="Edge type")


class AssignmentCreate(BaseModel):
    """Pydantic model for assigning a user to a task."""

    user_id: str = Field(..., description="External user ID")
    role: AssignmentRole = Field(default=AssignmentRole.ASSIGNEE, description="Assignment role")


class ProjectImport(BaseModel):
    """Request body for importing a legacy project from extracted records."""

    name: str = Field(..., description="Name of the project to create")
    records: list[dict] = Field(default_factory=list, description="Raw records from the legacy extractor")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate name is not blank."""
        return _require_name(v)


class NewTaskRequest(TaskCreate):
    """HTTP body for ``POST /tasks``: a task plus the project it belongs to."""

    project_id: str = Field(..., description="Owning project ID")
