"""Dependency edge and assignment models (display metadata only)."""

from enum import StrEnum

from pydantic import BaseModel, Field


class DependencyType(StrEnum):
    """How two tasks relate; never enforced on dates."""

    FINISH_TO_START = "finish_to_start"
    START_TO_START = "start_to_start"
    FINISH_TO_FINISH = "finish_to_finish"
    START_TO_FINISH = "start_to_finish"


class AssignmentRole(StrEnum):
    """Role a user plays on a task."""

    ASSIGNEE = "assignee"
    REVIEWER = "reviewer"
    WATCHER = "watcher"


class Dependency(BaseModel):
    """Typed directed edge: ``task_id`` depends on ``depends_on_id``."""

    id: str = Field(..., description="Unique edge ID from database")
    task_id: str = Field(..., description="Dependent task")
    depends_on_id: str = Field(..., description="Prerequisite task")
    type: DependencyType = Field(default=DependencyType.FINISH_TO_START, description="Edge type")


class Assignment(BaseModel):
    """User assigned to a task in a given role."""

    id: str = Field(..., description="Unique assignment ID from database")
    task_id: str = Field(..., description="Assigned task")
    user_id: str = Field(..., description="External user ID")
    role: AssignmentRole = Field(default=AssignmentRole.ASSIGNEE, description="Assignment role")
