from src.services import (
    hierarchy_service,
    visibility_service,
    timeline_service,
    realtime_service,
    presence_service,
    task_service,
    project_service,
    dependency_service,
    import_service,
)


__all__ = [
    "dependency_service",
    "hierarchy_service",
    "import_service",
    "presence_service",
    "project_service",
    "realtime_service",
    "task_service",
    "timeline_service",
    "visibility_service",
]
