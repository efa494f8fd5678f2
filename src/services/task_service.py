"""Task store: CRUD over project tasks, with realtime rebroadcast after each write."""

import logging

from src.core import db_client
from src.core.logging import span
from src.domain.create_models import TaskCreate
from src.domain.events import EventName
from src.domain.task import Task
from src.domain.update_models import TaskUpdate
from src.services import hierarchy_service
from src.services.realtime_service import publish_to_project


logger = logging.getLogger(__name__)


async def _next_order(project_id: str) -> int:
    """Current project max order + 1, or 1 for an empty project."""
    last = await db_client.get_first_record(
        collection="tasks",
        filter_query=f'project_id = "{db_client.sanitize_param(project_id)}"',
        sort="-order",
    )
    return int(last["order"]) + 1 if last else 1


async def list_tasks(*, project_id: str) -> list[Task]:
    """All tasks of a project, in stored sibling order.

    Args:
        project_id: Project ID

    Returns:
        Tasks sorted by ``order`` then creation
    """
    with span("task_service.list_tasks"):
        records = await db_client.list_all_records(
            collection="tasks",
            filter_query=f'project_id = "{db_client.sanitize_param(project_id)}"',
            sort="+order",
        )
        return [Task(**record) for record in records]


async def get_task(*, task_id: str) -> Task:
    """Get task by ID.

    Raises:
        db_client.RecordNotFoundError: If task not found
    """
    with span("task_service.get_task"):
        record = await db_client.get_record(collection="tasks", record_id=task_id)
        return Task(**record)


async def create_task(*, project_id: str, data: TaskCreate, notify: bool = True) -> Task:
    """Create a task in a project.

    Args:
        project_id: Owning project ID
        data: Task fields; an omitted ``order`` becomes project max + 1
        notify: Whether to broadcast ``task:created`` on the project channel

    Returns:
        The stored task

    Raises:
        db_client.RecordNotFoundError: If the project does not exist
        InvalidParentError: If ``parent_id`` is not a task of the same project
        db_client.DatabaseError: If database operation fails
    """
    with span("task_service.create_task"):
        await db_client.get_record(collection="projects", record_id=project_id)

        fields = data.model_dump()
        if data.parent_id is not None:
            siblings = await list_tasks(project_id=project_id)
            hierarchy_service.validate_reparent(siblings, "", data.parent_id)
        if fields["order"] is None:
            fields["order"] = await _next_order(project_id)

        record = await db_client.create_record(collection="tasks", data={**fields, "project_id": project_id})
        task = Task(**record)
        logger.info("Created task %s in project %s", task.id, project_id)

        if notify:
            await publish_to_project(project_id, EventName.TASK_CREATED, task.model_dump(mode="json"))
        return task


async def update_task(*, task_id: str, data: TaskUpdate, notify: bool = True) -> Task:
    """Apply a partial update; only fields present in ``data`` change.

    Raises:
        db_client.RecordNotFoundError: If task not found
        InvalidParentError: If the new parent is unknown, the task itself, or in another project
        ParentCycleError: If the new parent is one of the task's descendants
    """
    with span("task_service.update_task"):
        current = await get_task(task_id=task_id)
        fields = data.model_dump(exclude_unset=True)
        if not fields:
            return current

        if fields.get("parent_id") is not None:
            siblings = await list_tasks(project_id=current.project_id)
            hierarchy_service.validate_reparent(siblings, task_id, fields["parent_id"])

        record = await db_client.update_record(collection="tasks", record_id=task_id, data=fields)
        task = Task(**record)
        logger.info("Updated task %s fields: %s", task_id, sorted(fields))

        if notify:
            await publish_to_project(task.project_id, EventName.TASK_UPDATED, task.model_dump(mode="json"))
        return task


async def delete_task(*, task_id: str, notify: bool = True) -> None:
    """Delete a task with its dependency edges (both directions) and assignments.

    Children keep their ``parent_id`` and show up as roots on the next read.

    Raises:
        db_client.RecordNotFoundError: If task not found
    """
    with span("task_service.delete_task"):
        task = await get_task(task_id=task_id)
        safe_id = db_client.sanitize_param(task_id)

        edges = await db_client.list_all_records(
            collection="task_dependencies",
            filter_query=f'(task_id = "{safe_id}" || depends_on_id = "{safe_id}")',
        )
        for edge in edges:
            await db_client.delete_record(collection="task_dependencies", record_id=edge["id"])

        assignments = await db_client.list_all_records(
            collection="task_assignments",
            filter_query=f'task_id = "{safe_id}"',
        )
        for assignment in assignments:
            await db_client.delete_record(collection="task_assignments", record_id=assignment["id"])

        await db_client.delete_record(collection="tasks", record_id=task_id)
        logger.info(
            "Deleted task %s (%d dependencies, %d assignments)",
            task_id,
            len(edges),
            len(assignments),
        )

        if notify:
            await publish_to_project(task.project_id, EventName.TASK_DELETED, {"id": task_id})
