"""Domain models and DTOs."""

from src.domain.create_models import (
    AssignmentCreate,
    DependencyCreate,
    NewTaskRequest,
    ProjectCreate,
    ProjectImport,
    TaskCreate,
)
from src.domain.dependency import Assignment, AssignmentRole, Dependency, DependencyType
from src.domain.events import EventName
from src.domain.import_record import ImportRecord
from src.domain.project import Project
from src.domain.task import FlatTask, Task, TaskPriority, TaskStatus
from src.domain.update_models import ProjectUpdate, TaskUpdate


__all__ = [
    "Assignment",
    "AssignmentCreate",
    "AssignmentRole",
    "Dependency",
    "DependencyCreate",
    "DependencyType",
    "EventName",
    "FlatTask",
    "ImportRecord",
    "NewTaskRequest",
    "Project",
    "ProjectCreate",
    "ProjectImport",
    "ProjectUpdate",
    "Task",
    "TaskCreate",
    "TaskPriority",
    "TaskStatus",
    "TaskUpdate",
]
