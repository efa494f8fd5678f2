"""Project endpoints: CRUD, import, hierarchy and timeline views."""

import logging

from fastapi import APIRouter, Query, Response

from src.core.config import Constants
from src.domain.create_models import ProjectCreate, ProjectImport
from src.domain.project import Project
from src.domain.task import FlatTask, Task
from src.domain.update_models import ProjectUpdate
from src.models.service_models import EditorPresence, ImportResult, TimelineLayout
from src.services import (
    dependency_service,
    hierarchy_service,
    import_service,
    project_service,
    task_service,
    timeline_service,
)
from src.services.presence_service import presence_tracker


router = APIRouter(prefix="/projects", tags=["projects"])
logger = logging.getLogger(__name__)


@router.post("", status_code=201)
async def create_project(body: ProjectCreate) -> Project:
    """Create an empty project."""
    return await project_service.create_project(data=body)


@router.get("")
async def list_projects() -> list[Project]:
    """List all projects."""
    return await project_service.list_projects()


@router.post("/import", status_code=201)
async def import_project(body: ProjectImport) -> ImportResult:
    """Create a project from records produced by the legacy-schedule extractor."""
    return await import_service.import_project(name=body.name, records=body.records)


@router.get("/{project_id}")
async def get_project(project_id: str) -> Project:
    """Get a single project."""
    return await project_service.get_project(project_id=project_id)


@router.put("/{project_id}")
async def update_project(project_id: str, body: ProjectUpdate) -> Project:
    """Partially update a project."""
    return await project_service.update_project(project_id=project_id, data=body)


@router.delete("/{project_id}", status_code=204)
async def delete_project(project_id: str) -> Response:
    """Delete a project with all of its tasks."""
    await project_service.delete_project(project_id=project_id)
    return Response(status_code=204)


@router.get("/{project_id}/tasks")
async def list_project_tasks(project_id: str) -> list[Task]:
    """Tasks of a project in stored order."""
    await project_service.get_project(project_id=project_id)
    return await task_service.list_tasks(project_id=project_id)


@router.get("/{project_id}/hierarchy")
async def get_hierarchy(project_id: str) -> list[FlatTask]:
    """Pre-order flattening of the project's task forest, with depths."""
    await project_service.get_project(project_id=project_id)
    tasks = await task_service.list_tasks(project_id=project_id)
    return hierarchy_service.flatten_tasks(tasks)


@router.get("/{project_id}/editors")
async def get_editors(project_id: str) -> list[EditorPresence]:
    """Users currently editing the project."""
    return presence_tracker.editors(project_id)


@router.get("/{project_id}/timeline")
async def get_timeline(
    project_id: str,
    zoom: str = Query(default=timeline_service.AUTO_ZOOM, description="Resolution name or 'auto'"),
    viewport_width: int = Query(default=Constants.TIMELINE_DEFAULT_VIEWPORT_PX, gt=0),
    expanded: list[str] | None = Query(default=None, description="Expanded task IDs; omit for fully expanded"),
    collapsed_all: bool = Query(default=False, description="Collapse every task"),
) -> TimelineLayout:
    """Table rows and Gantt geometry for the project, fully rebuilt."""
    await project_service.get_project(project_id=project_id)
    tasks = await task_service.list_tasks(project_id=project_id)
    dependencies = await dependency_service.list_dependencies(project_id=project_id)

    expanded_ids: list[str] | None = [] if collapsed_all else expanded
    return timeline_service.build_timeline(
        tasks,
        dependencies,
        zoom=zoom,
        expanded_ids=expanded_ids,
        viewport_width_px=viewport_width,
    )
