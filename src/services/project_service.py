"""Project service for CRUD operations."""

import logging

from src.core import db_client
from src.core.logging import span
from src.domain.create_models import ProjectCreate
from src.domain.events import EventName
from src.domain.project import Project
from src.domain.update_models import ProjectUpdate
from src.services import task_service
from src.services.realtime_service import publish_to_project


logger = logging.getLogger(__name__)


async def create_project(*, data: ProjectCreate) -> Project:
    """Create a new project.

    Raises:
        db_client.DatabaseError: If database operation fails
    """
    with span("project_service.create_project"):
        record = await db_client.create_record(collection="projects", data=data.model_dump())
        logger.info("Created project: %s", data.name)
        return Project(**record)


async def get_project(*, project_id: str) -> Project:
    """Get project by ID.

    Raises:
        db_client.RecordNotFoundError: If project not found
    """
    with span("project_service.get_project"):
        record = await db_client.get_record(collection="projects", record_id=project_id)
        return Project(**record)


async def list_projects() -> list[Project]:
    """All projects, newest first."""
    with span("project_service.list_projects"):
        records = await db_client.list_all_records(
            collection="projects",
            sort="-created",
        )
        return [Project(**record) for record in records]


async def update_project(*, project_id: str, data: ProjectUpdate) -> Project:
    """Apply a partial update and broadcast ``project:updated``.

    Raises:
        db_client.RecordNotFoundError: If project not found
    """
    with span("project_service.update_project"):
        fields = data.model_dump(exclude_unset=True)
        if not fields:
            return await get_project(project_id=project_id)

        record = await db_client.update_record(collection="projects", record_id=project_id, data=fields)
        project = Project(**record)
        logger.info("Updated project %s fields: %s", project_id, sorted(fields))

        await notify_project_updated(project)
        return project


async def delete_project(*, project_id: str) -> None:
    """Delete a project and every task in it, with the tasks' edges and assignments.

    Members of the project channel receive a single ``project:deleted`` event
    instead of one ``task:deleted`` per task.

    Raises:
        db_client.RecordNotFoundError: If project not found
    """
    with span("project_service.delete_project"):
        await get_project(project_id=project_id)

        tasks = await task_service.list_tasks(project_id=project_id)
        for task in tasks:
            await task_service.delete_task(task_id=task.id, notify=False)

        await db_client.delete_record(collection="projects", record_id=project_id)
        logger.info("Deleted project %s with %d tasks", project_id, len(tasks))

        await publish_to_project(project_id, EventName.PROJECT_DELETED, {"id": project_id})


async def notify_project_updated(project: Project) -> None:
    """Tell every member of the project channel to reload the project."""
    await publish_to_project(project.id, EventName.PROJECT_UPDATED, project.model_dump(mode="json"))
