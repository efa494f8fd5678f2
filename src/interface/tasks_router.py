"""Task endpoints: CRUD, dependency edges and assignments."""

import logging

from fastapi import APIRouter, Response

from src.domain.create_models import AssignmentCreate, DependencyCreate, NewTaskRequest, TaskCreate
from src.domain.dependency import Assignment, Dependency
from src.domain.task import Task
from src.domain.update_models import TaskUpdate
from src.services import dependency_service, task_service


router = APIRouter(tags=["tasks"])
logger = logging.getLogger(__name__)


@router.post("/tasks", status_code=201)
async def create_task(body: NewTaskRequest) -> Task:
    """Create a task; the new state is broadcast to the project channel."""
    data = TaskCreate(**body.model_dump(exclude={"project_id"}))
    return await task_service.create_task(project_id=body.project_id, data=data)


@router.get("/tasks/{task_id}")
async def get_task(task_id: str) -> Task:
    """Get a single task."""
    return await task_service.get_task(task_id=task_id)


@router.put("/tasks/{task_id}")
async def update_task(task_id: str, body: TaskUpdate) -> Task:
    """Partially update a task; only submitted fields change."""
    return await task_service.update_task(task_id=task_id, data=body)


@router.delete("/tasks/{task_id}", status_code=204)
async def delete_task(task_id: str) -> Response:
    """Delete a task with its dependency edges and assignments."""
    await task_service.delete_task(task_id=task_id)
    return Response(status_code=204)


@router.post("/tasks/{task_id}/dependencies", status_code=201)
async def add_dependency(task_id: str, body: DependencyCreate) -> Dependency:
    """Record that the task depends on another task."""
    return await dependency_service.add_dependency(
        task_id=task_id,
        depends_on_id=body.depends_on_id,
        dependency_type=body.type,
    )


@router.delete("/dependencies/{dependency_id}", status_code=204)
async def remove_dependency(dependency_id: str) -> Response:
    """Delete a dependency edge."""
    await dependency_service.remove_dependency(dependency_id=dependency_id)
    return Response(status_code=204)


@router.post("/tasks/{task_id}/assignments", status_code=201)
async def assign_user(task_id: str, body: AssignmentCreate) -> Assignment:
    """Assign a user to the task."""
    return await dependency_service.assign_user(task_id=task_id, user_id=body.user_id, role=body.role)


@router.get("/tasks/{task_id}/assignments")
async def list_assignments(task_id: str) -> list[Assignment]:
    """Assignments of the task."""
    await task_service.get_task(task_id=task_id)
    return await dependency_service.list_assignments(task_id=task_id)
