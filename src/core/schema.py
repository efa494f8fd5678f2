"""SQLite schema management (code-first approach)."""

import logging

from src.core.db_client import get_connection


logger = logging.getLogger(__name__)


# Central list of all collections in the schema, in creation order
COLLECTIONS = [
    "projects",
    "tasks",
    "task_dependencies",
    "task_assignments",
]


# parent_id is a weak reference: no FOREIGN KEY, so a dangling parent degrades to root on read.
# Edges and assignments cascade at the database level as well as in task_service.delete_task.
_TABLES: dict[str, str] = {
    "projects": """
        CREATE TABLE IF NOT EXISTS projects (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            description TEXT,
            start_date TEXT,
            end_date TEXT,
            created TEXT NOT NULL,
            updated TEXT NOT NULL
        )
    """,
    "tasks": """
        CREATE TABLE IF NOT EXISTS tasks (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            project_id INTEGER NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
            name TEXT NOT NULL,
            description TEXT,
            start_date TEXT,
            end_date TEXT,
            duration INTEGER,
            progress INTEGER NOT NULL DEFAULT 0 CHECK (progress BETWEEN 0 AND 100),
            status TEXT NOT NULL DEFAULT 'todo'
                CHECK (status IN ('todo', 'in_progress', 'completed', 'blocked')),
            priority TEXT NOT NULL DEFAULT 'medium'
                CHECK (priority IN ('low', 'medium', 'high', 'urgent')),
            parent_id INTEGER,
            "order" INTEGER NOT NULL DEFAULT 0,
            created TEXT NOT NULL,
            updated TEXT NOT NULL
        )
    """,
    "task_dependencies": """
        CREATE TABLE IF NOT EXISTS task_dependencies (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            task_id INTEGER NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
            depends_on_id INTEGER NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
            type TEXT NOT NULL DEFAULT 'finish_to_start'
                CHECK (type IN ('finish_to_start', 'start_to_start', 'finish_to_finish', 'start_to_finish')),
            created TEXT NOT NULL,
            updated TEXT NOT NULL
        )
    """,
    "task_assignments": """
        CREATE TABLE IF NOT EXISTS task_assignments (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            task_id INTEGER NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
            user_id TEXT NOT NULL,
            role TEXT NOT NULL DEFAULT 'assignee' CHECK (role IN ('assignee', 'reviewer', 'watcher')),
            created TEXT NOT NULL,
            updated TEXT NOT NULL
        )
    """,
}

_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_tasks_project ON tasks (project_id)",
    "CREATE INDEX IF NOT EXISTS idx_tasks_parent ON tasks (parent_id)",
    "CREATE INDEX IF NOT EXISTS idx_dependencies_task ON task_dependencies (task_id)",
    "CREATE INDEX IF NOT EXISTS idx_dependencies_depends_on ON task_dependencies (depends_on_id)",
    "CREATE INDEX IF NOT EXISTS idx_assignments_task ON task_assignments (task_id)",
]


async def init_db(*, db_path: str | None = None) -> None:
    """Create all tables and indexes (idempotent)."""
    logger.info("Starting SQLite schema sync...")

    conn = await get_connection(db_path=db_path)
    for collection_name in COLLECTIONS:
        await conn.execute(_TABLES[collection_name])
        logger.debug("Ensured table", extra={"collection": collection_name})

    for statement in _INDEXES:
        await conn.execute(statement)

    await conn.commit()
    logger.info("Schema sync complete", extra={"collections": len(COLLECTIONS)})
