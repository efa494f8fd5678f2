"""Dependency edges and task assignments.

Edges are display metadata: no cycle check, no cross-project check, and no
date propagation. Changing a prerequisite never moves its dependents.
"""

import logging

from src.core import db_client
from src.core.logging import span
from src.domain.dependency import Assignment, AssignmentRole, Dependency, DependencyType
from src.domain.events import EventName
from src.services import task_service
from src.services.realtime_service import publish_to_project


logger = logging.getLogger(__name__)

# Task ids per OR-group when listing a project's edges
_FILTER_CHUNK = 50


async def _broadcast_task(task_id: str) -> None:
    task = await task_service.get_task(task_id=task_id)
    await publish_to_project(task.project_id, EventName.TASK_UPDATED, task.model_dump(mode="json"))


async def add_dependency(
    *,
    task_id: str,
    depends_on_id: str,
    dependency_type: DependencyType = DependencyType.FINISH_TO_START,
) -> Dependency:
    """Record that ``task_id`` depends on ``depends_on_id``.

    Raises:
        db_client.RecordNotFoundError: If either task does not exist
    """
    with span("dependency_service.add_dependency"):
        await task_service.get_task(task_id=task_id)
        await task_service.get_task(task_id=depends_on_id)

        record = await db_client.create_record(
            collection="task_dependencies",
            data={"task_id": task_id, "depends_on_id": depends_on_id, "type": dependency_type},
        )
        logger.info("Added dependency %s -> %s (%s)", depends_on_id, task_id, dependency_type)

        await _broadcast_task(task_id)
        return Dependency(**record)


async def list_dependencies(*, project_id: str) -> list[Dependency]:
    """Every edge whose dependent task belongs to the project."""
    with span("dependency_service.list_dependencies"):
        tasks = await task_service.list_tasks(project_id=project_id)
        task_ids = [task.id for task in tasks]

        edges: list[Dependency] = []
        for start in range(0, len(task_ids), _FILTER_CHUNK):
            chunk = task_ids[start : start + _FILTER_CHUNK]
            clause = " || ".join(f'task_id = "{db_client.sanitize_param(task_id)}"' for task_id in chunk)
            records = await db_client.list_all_records(
                collection="task_dependencies",
                filter_query=f"({clause})",
            )
            edges.extend(Dependency(**record) for record in records)
        return edges


async def remove_dependency(*, dependency_id: str) -> None:
    """Delete an edge.

    Raises:
        db_client.RecordNotFoundError: If the edge does not exist
    """
    with span("dependency_service.remove_dependency"):
        record = await db_client.get_record(collection="task_dependencies", record_id=dependency_id)
        await db_client.delete_record(collection="task_dependencies", record_id=dependency_id)
        logger.info("Removed dependency %s", dependency_id)

        await _broadcast_task(record["task_id"])


async def assign_user(
    *,
    task_id: str,
    user_id: str,
    role: AssignmentRole = AssignmentRole.ASSIGNEE,
) -> Assignment:
    """Assign a user to a task.

    Raises:
        db_client.RecordNotFoundError: If the task does not exist
    """
    with span("dependency_service.assign_user"):
        await task_service.get_task(task_id=task_id)

        record = await db_client.create_record(
            collection="task_assignments",
            data={"task_id": task_id, "user_id": user_id, "role": role},
        )
        logger.info("Assigned user %s to task %s as %s", user_id, task_id, role)

        await _broadcast_task(task_id)
        return Assignment(**record)


async def list_assignments(*, task_id: str) -> list[Assignment]:
    """Assignments of a task."""
    with span("dependency_service.list_assignments"):
        records = await db_client.list_all_records(
            collection="task_assignments",
            filter_query=f'task_id = "{db_client.sanitize_param(task_id)}"',
        )
        return [Assignment(**record) for record in records]
