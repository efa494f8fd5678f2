"""Unit tests for task_service and project_service."""

from datetime import date

import pytest

from src.core.config import Constants
from src.core.db_client import RecordNotFoundError
from src.core.errors import InvalidParentError, ParentCycleError
from src.domain.create_models import ProjectCreate, TaskCreate
from src.domain.dependency import AssignmentRole
from src.domain.task import TaskStatus
from src.domain.update_models import ProjectUpdate, TaskUpdate
from src.services import dependency_service, hierarchy_service, project_service, task_service
from src.services.realtime_service import channel_for_project, realtime_hub


@pytest.fixture
async def project(patched_db):
    return await project_service.create_project(data=ProjectCreate(name="Website"))


@pytest.fixture
def watcher(recording_member, project):
    """Channel member subscribed to the project before any write."""
    member = recording_member("watcher")
    realtime_hub.join(channel_for_project(project.id), member.member)
    return member


@pytest.mark.unit
class TestCreateTask:
    """Tests for create_task."""

    async def test_defaults(self, project):
        task = await task_service.create_task(project_id=project.id, data=TaskCreate(name="Plan"))

        assert task.project_id == project.id
        assert task.order == 1
        assert task.progress == 0
        assert task.status == TaskStatus.TODO

    async def test_order_is_max_plus_one(self, project):
        await task_service.create_task(project_id=project.id, data=TaskCreate(name="A", order=7))
        task = await task_service.create_task(project_id=project.id, data=TaskCreate(name="B"))

        assert task.order == 8

    async def test_order_ignores_other_projects(self, project):
        other = await project_service.create_project(data=ProjectCreate(name="Other"))
        await task_service.create_task(project_id=other.id, data=TaskCreate(name="A", order=50))

        task = await task_service.create_task(project_id=project.id, data=TaskCreate(name="B"))

        assert task.order == 1

    async def test_unknown_project(self, patched_db):
        with pytest.raises(RecordNotFoundError):
            await task_service.create_task(project_id="404", data=TaskCreate(name="Plan"))

    async def test_parent_must_be_in_same_project(self, project):
        other = await project_service.create_project(data=ProjectCreate(name="Other"))
        foreign = await task_service.create_task(project_id=other.id, data=TaskCreate(name="Foreign"))

        with pytest.raises(InvalidParentError):
            await task_service.create_task(
                project_id=project.id, data=TaskCreate(name="Child", parent_id=foreign.id)
            )

    async def test_broadcasts_created_task(self, project, watcher):
        task = await task_service.create_task(project_id=project.id, data=TaskCreate(name="Plan"))

        assert watcher.events() == ["task:created"]
        assert watcher.received[0]["payload"]["id"] == task.id
        assert watcher.received[0]["channel"] == f"project:{project.id}"


@pytest.mark.unit
class TestUpdateTask:
    """Tests for update_task."""

    async def test_partial_update(self, project):
        task = await task_service.create_task(
            project_id=project.id, data=TaskCreate(name="Plan", start_date=date(2024, 1, 1))
        )

        updated = await task_service.update_task(task_id=task.id, data=TaskUpdate(progress=40))

        assert updated.progress == 40
        assert updated.name == "Plan"
        assert updated.start_date == date(2024, 1, 1)
        assert updated.project_id == project.id

    async def test_reparent_under_descendant_rejected(self, project):
        root = await task_service.create_task(project_id=project.id, data=TaskCreate(name="Root"))
        child = await task_service.create_task(
            project_id=project.id, data=TaskCreate(name="Child", parent_id=root.id)
        )

        with pytest.raises(ParentCycleError):
            await task_service.update_task(task_id=root.id, data=TaskUpdate(parent_id=child.id))

    async def test_clearing_parent_makes_root(self, project):
        root = await task_service.create_task(project_id=project.id, data=TaskCreate(name="Root"))
        child = await task_service.create_task(
            project_id=project.id, data=TaskCreate(name="Child", parent_id=root.id)
        )

        updated = await task_service.update_task(
            task_id=child.id, data=TaskUpdate.model_validate({"parent_id": None})
        )

        assert updated.parent_id is None

    async def test_empty_update_is_noop(self, project, watcher):
        task = await task_service.create_task(project_id=project.id, data=TaskCreate(name="Plan"))

        unchanged = await task_service.update_task(task_id=task.id, data=TaskUpdate())

        assert unchanged == task
        assert watcher.events() == ["task:created"]

    async def test_originator_receives_its_own_update(self, project, watcher, recording_member):
        editor = recording_member("editor")
        realtime_hub.join(channel_for_project(project.id), editor.member)
        task = await task_service.create_task(project_id=project.id, data=TaskCreate(name="Plan"))

        await task_service.update_task(task_id=task.id, data=TaskUpdate(name="Plan v2"))

        assert editor.events() == ["task:created", "task:updated"]
        assert watcher.events() == ["task:created", "task:updated"]
        assert editor.received[-1]["payload"]["name"] == "Plan v2"

    async def test_unknown_task(self, patched_db):
        with pytest.raises(RecordNotFoundError):
            await task_service.update_task(task_id="404", data=TaskUpdate(progress=1))


@pytest.mark.unit
class TestDeleteTask:
    """Tests for delete_task."""

    async def test_cascades_edges_and_assignments(self, patched_db, project, watcher):
        a = await task_service.create_task(project_id=project.id, data=TaskCreate(name="A"))
        b = await task_service.create_task(project_id=project.id, data=TaskCreate(name="B"))
        c = await task_service.create_task(project_id=project.id, data=TaskCreate(name="C"))
        await dependency_service.add_dependency(task_id=b.id, depends_on_id=a.id)
        await dependency_service.add_dependency(task_id=a.id, depends_on_id=c.id)
        await dependency_service.add_dependency(task_id=c.id, depends_on_id=b.id)
        await dependency_service.assign_user(task_id=a.id, user_id="u7", role=AssignmentRole.REVIEWER)

        await task_service.delete_task(task_id=a.id)

        edges = patched_db.records("task_dependencies")
        assert [(edge["task_id"], edge["depends_on_id"]) for edge in edges] == [(c.id, b.id)]
        assert patched_db.records("task_assignments") == []
        assert watcher.events()[-1] == "task:deleted"
        assert watcher.received[-1]["payload"] == {"id": a.id}

    async def test_cascade_covers_more_than_one_page(self, patched_db, project, monkeypatch):
        monkeypatch.setattr(Constants, "DEFAULT_PER_PAGE_LIMIT", 2)
        hub = await task_service.create_task(project_id=project.id, data=TaskCreate(name="Hub"))
        for index in range(5):
            spoke = await task_service.create_task(project_id=project.id, data=TaskCreate(name=f"S{index}"))
            await dependency_service.add_dependency(task_id=spoke.id, depends_on_id=hub.id)
            await dependency_service.assign_user(task_id=hub.id, user_id=f"u{index}")

        await task_service.delete_task(task_id=hub.id)

        assert patched_db.records("task_dependencies") == []
        assert patched_db.records("task_assignments") == []
        assert await dependency_service.list_dependencies(project_id=project.id) == []

    async def test_children_become_roots(self, project):
        root = await task_service.create_task(project_id=project.id, data=TaskCreate(name="Root"))
        await task_service.create_task(project_id=project.id, data=TaskCreate(name="Child", parent_id=root.id))

        await task_service.delete_task(task_id=root.id)

        flat = hierarchy_service.flatten_tasks(await task_service.list_tasks(project_id=project.id))
        assert [(row.name, row.depth) for row in flat] == [("Child", 0)]


@pytest.mark.unit
class TestListTasks:
    """Tests for list_tasks."""

    async def test_sorted_by_order(self, project):
        await task_service.create_task(project_id=project.id, data=TaskCreate(name="Late", order=5))
        await task_service.create_task(project_id=project.id, data=TaskCreate(name="Early", order=2))

        tasks = await task_service.list_tasks(project_id=project.id)

        assert [task.name for task in tasks] == ["Early", "Late"]

    async def test_reads_every_page(self, project, monkeypatch):
        monkeypatch.setattr(Constants, "DEFAULT_PER_PAGE_LIMIT", 5)
        for index in range(7):
            await task_service.create_task(project_id=project.id, data=TaskCreate(name=f"T{index}"))

        tasks = await task_service.list_tasks(project_id=project.id)

        assert [task.name for task in tasks] == [f"T{index}" for index in range(7)]


@pytest.mark.unit
class TestProjectService:
    """Tests for project_service."""

    async def test_update_broadcasts(self, project, watcher):
        updated = await project_service.update_project(
            project_id=project.id, data=ProjectUpdate(description="Relaunch")
        )

        assert updated.description == "Relaunch"
        assert watcher.events() == ["project:updated"]

    async def test_get_unknown(self, patched_db):
        with pytest.raises(RecordNotFoundError):
            await project_service.get_project(project_id="404")

    async def test_list(self, project):
        projects = await project_service.list_projects()

        assert [p.name for p in projects] == ["Website"]

    async def test_delete_removes_tasks_edges_and_assignments(self, patched_db, project, watcher):
        other = await project_service.create_project(data=ProjectCreate(name="Other"))
        kept = await task_service.create_task(project_id=other.id, data=TaskCreate(name="Kept"))
        root = await task_service.create_task(project_id=project.id, data=TaskCreate(name="Root"))
        child = await task_service.create_task(project_id=project.id, data=TaskCreate(name="Child", parent_id=root.id))
        await dependency_service.add_dependency(task_id=child.id, depends_on_id=root.id)
        await dependency_service.assign_user(task_id=root.id, user_id="u1")
        watcher.received.clear()

        await project_service.delete_project(project_id=project.id)

        assert [p.id for p in await project_service.list_projects()] == [other.id]
        assert [task["id"] for task in patched_db.records("tasks")] == [kept.id]
        assert patched_db.records("task_dependencies") == []
        assert patched_db.records("task_assignments") == []
        assert watcher.events() == ["project:deleted"]
        assert watcher.received[0]["payload"] == {"id": project.id}

    async def test_delete_unknown(self, patched_db):
        with pytest.raises(RecordNotFoundError):
            await project_service.delete_project(project_id="404")
