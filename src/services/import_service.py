"""Import reconciler: rebuild a task hierarchy from noisy legacy records.

Records come from a best-effort extractor. Parent links are resolved in
three passes of decreasing confidence:

1. explicit parent name + parent order (composite key, last task with that key)
2. explicit parent name alone (first task with that name)
3. outline level: nearest preceding record with a strictly smaller level

Every record is handled independently; a failure is logged, counted, and the
rest of the import carries on.
"""

import logging
from collections.abc import Sequence
from typing import Any

from pydantic import ValidationError

from src.core import db_client
from src.core.errors import InvalidParentError
from src.core.logging import log_with_project_context, span
from src.domain.create_models import ProjectCreate, TaskCreate
from src.domain.import_record import ImportRecord
from src.domain.task import Task
from src.models.service_models import ImportResult
from src.services import hierarchy_service, project_service, task_service


logger = logging.getLogger(__name__)


def parse_records(raw_records: Sequence[dict[str, Any]], result: ImportResult) -> list[ImportRecord | None]:
    """Validate each raw dict once; invalid records become None and are counted as failed."""
    parsed: list[ImportRecord | None] = []
    for position, raw in enumerate(raw_records):
        try:
            parsed.append(ImportRecord.from_raw(raw, position))
        except ValidationError as e:
            result.failed += 1
            fields = ", ".join(str(error["loc"][0]) for error in e.errors() if error["loc"])
            result.errors.append(f"Record {position}: invalid ({fields or 'record'})")
            logger.warning("Skipping invalid import record %d: %s", position, fields)
            parsed.append(None)
    return parsed


def _task_fields(record: ImportRecord) -> TaskCreate:
    return TaskCreate(
        name=record.name,
        description=record.notes,
        start_date=record.start_date,
        end_date=record.finish_date,
        duration=record.duration,
        progress=record.progress,
        status=record.effective_status,
        priority=record.priority,
        order=record.effective_order,
    )


def resolve_parent_position(
    position: int,
    records: Sequence[ImportRecord | None],
    by_key: dict[tuple[str, int], int],
    by_name: dict[str, int],
) -> int | None:
    """Position of the record whose task should parent ``records[position]``.

    Returns None when the record should stay a root. The outline scan stops
    at the first shallower record even if that record produced no task.
    """
    record = records[position]
    if record is None:
        return None

    if record.parent_task_name:
        if record.parent_order is not None:
            found = by_key.get((record.parent_task_name, record.parent_order))
            if found is not None:
                return found
        found = by_name.get(record.parent_task_name)
        if found is not None:
            return found

    if record.outline_level > 1:
        for candidate in range(position - 1, -1, -1):
            previous = records[candidate]
            if previous is not None and previous.outline_level < record.outline_level:
                return candidate

    return None


async def import_records(*, project_id: str, records: Sequence[dict[str, Any]]) -> ImportResult:
    """Create tasks for each record, then link them into a hierarchy.

    Args:
        project_id: Project that receives the tasks
        records: Raw extractor output, in document order

    Returns:
        Counts of attempted, created, linked, failed and unresolved records
    """
    with span("import_service.import_records"):
        result = ImportResult(project_id=project_id, attempted=len(records))
        parsed = parse_records(records, result)

        # Phase 1: materialize every valid record as a root task
        created: list[Task | None] = []
        by_key: dict[tuple[str, int], int] = {}
        by_name: dict[str, int] = {}
        for position, record in enumerate(parsed):
            if record is None:
                created.append(None)
                continue
            try:
                task = await task_service.create_task(project_id=project_id, data=_task_fields(record), notify=False)
            except (db_client.DatabaseError, ValidationError, ValueError) as e:
                result.failed += 1
                result.errors.append(f"Record {position} ({record.name}): {e}")
                logger.error("Failed to create imported task %r: %s", record.name, e)
                created.append(None)
                continue
            created.append(task)
            result.created += 1
            by_key[(record.name, record.effective_order)] = position
            by_name.setdefault(record.name, position)

        # Phase 2: resolve parents in document order
        snapshot = {task.id: task for task in created if task is not None}
        for position, record in enumerate(parsed):
            task = created[position]
            if record is None or task is None:
                continue

            hinted = record.parent_task_name is not None or record.outline_level > 1
            parent_position = resolve_parent_position(position, parsed, by_key, by_name)
            parent = created[parent_position] if parent_position is not None else None

            if parent is None or parent.id == task.id:
                if hinted:
                    result.unresolved += 1
                    logger.warning("No parent found for imported task %r (level %d)", record.name, record.outline_level)
                continue

            try:
                hierarchy_service.validate_reparent(list(snapshot.values()), task.id, parent.id)
                record_data = await db_client.update_record(
                    collection="tasks", record_id=task.id, data={"parent_id": parent.id}
                )
            except (InvalidParentError, db_client.DatabaseError, KeyError) as e:
                result.unresolved += 1
                result.errors.append(f"Record {position} ({record.name}): could not link parent: {e}")
                logger.error("Failed to link imported task %r: %s", record.name, e)
                continue

            snapshot[task.id] = Task(**record_data)
            result.linked += 1

        log_with_project_context(
            logger,
            "info",
            "Import finished",
            project_id=project_id,
            records_attempted=result.attempted,
            tasks_created=result.created,
            parents_linked=result.linked,
            records_failed=result.failed,
            parents_unresolved=result.unresolved,
        )
        return result


async def import_project(*, name: str, records: Sequence[dict[str, Any]]) -> ImportResult:
    """Create a project from legacy records and broadcast a single ``project:updated``.

    Raises:
        db_client.DatabaseError: If the project itself cannot be created
    """
    with span("import_service.import_project"):
        project = await project_service.create_project(data=ProjectCreate(name=name))
        result = await import_records(project_id=project.id, records=records)
        await project_service.notify_project_updated(project)
        return result
