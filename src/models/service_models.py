"""Pydantic models for service layer return types.

These models provide type safety at service boundaries, converting computed
layouts and import summaries into typed objects with validation.
"""

from datetime import date
from enum import StrEnum

from pydantic import BaseModel, Field

from src.domain.dependency import DependencyType
from src.domain.task import FlatTask


class Resolution(StrEnum):
    """Timeline zoom level, declared finest to coarsest."""

    DAYS = "days"
    WEEKS = "weeks"
    MONTHS = "months"
    QUARTERS = "quarters"
    SEMESTERS = "semesters"
    YEAR = "year"


class DateRange(BaseModel):
    """Inclusive span of calendar days covered by a timeline."""

    start: date
    end: date


class TimelineColumn(BaseModel):
    """One header column: a single bucket of the active resolution."""

    position: int
    start: date
    end: date
    label: str
    width: int


class TaskBar(BaseModel):
    """Horizontal placement of one visible task row."""

    task_id: str
    row: int
    x: float
    width: float
    is_milestone: bool
    progress: int = 0


class DependencyLink(BaseModel):
    """Edge drawn between two visible rows: prerequisite to dependent."""

    id: str
    from_task_id: str
    to_task_id: str
    from_row: int
    to_row: int
    type: DependencyType


class TimelineLayout(BaseModel):
    """Everything a client needs to draw the table and the Gantt chart."""

    resolution: Resolution
    column_width: int
    total_width: int
    date_range: DateRange
    columns: list[TimelineColumn]
    rows: list[FlatTask]
    bars: list[TaskBar]
    links: list[DependencyLink]
    expanded_ids: list[str] = Field(default_factory=list, description="Expansion set applied, sorted")


class ImportResult(BaseModel):
    """Summary of one reconciliation run."""

    project_id: str | None = None
    attempted: int = 0
    created: int = 0
    linked: int = 0
    failed: int = 0
    unresolved: int = 0
    errors: list[str] = Field(default_factory=list)


class EditorPresence(BaseModel):
    """A user currently flagged as editing a project."""

    user_id: str
    user_name: str
    client_id: str
