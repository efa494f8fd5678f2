"""Hierarchy builder: forest construction, pre-order flattening, reparent checks."""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from src.core.config import Constants
from src.core.errors import InvalidParentError, ParentCycleError
from src.domain.task import FlatTask, Task


logger = logging.getLogger(__name__)


@dataclass
class TaskNode:
    """A task with its ordered children."""

    task: Task
    children: list["TaskNode"] = field(default_factory=list)


def _sort_key(indexed: tuple[int, Task]) -> tuple[int, int]:
    position, task = indexed
    return (task.order, position)


def _cycle_roots(tasks: Sequence[Task], parent_of: dict[str, str]) -> set[str]:
    """Pick one task per parent-chain cycle to promote to root.

    The first cycle member in input order is chosen, so the result is stable
    for a given snapshot.
    """
    position = {task.id: index for index, task in enumerate(tasks)}
    promoted: set[str] = set()
    settled: set[str] = set()

    for task in tasks:
        path: list[str] = []
        on_path: set[str] = set()
        current: str | None = task.id
        while current is not None and current not in settled:
            if current in on_path:
                cycle = path[path.index(current) :]
                promoted.add(min(cycle, key=position.__getitem__))
                break
            path.append(current)
            on_path.add(current)
            current = parent_of.get(current)
        settled.update(path)

    return promoted


def build_forest(tasks: Sequence[Task]) -> list[TaskNode]:
    """Group tasks into trees by resolvable ``parent_id``.

    A task becomes a root when its parent id is missing, does not match a task
    in ``tasks``, or matches a task in another project. Siblings and roots are
    ordered by ``order``, ties kept in input order. Never raises.
    """
    by_id = {task.id: task for task in tasks}

    parent_of: dict[str, str] = {}
    for task in tasks:
        parent = by_id.get(task.parent_id) if task.parent_id else None
        if parent is not None and parent.project_id == task.project_id and parent.id != task.id:
            parent_of[task.id] = parent.id

    for task_id in _cycle_roots(tasks, parent_of):
        logger.warning("Breaking parent cycle", extra={"task_id": task_id})
        del parent_of[task_id]

    nodes = {task.id: TaskNode(task=task) for task in tasks}
    roots: list[tuple[int, Task]] = []
    children: dict[str, list[tuple[int, Task]]] = {}
    for position, task in enumerate(tasks):
        parent_id = parent_of.get(task.id)
        if parent_id is None:
            roots.append((position, task))
        else:
            children.setdefault(parent_id, []).append((position, task))

    for parent_id, kids in children.items():
        nodes[parent_id].children = [nodes[task.id] for _, task in sorted(kids, key=_sort_key)]

    return [nodes[task.id] for _, task in sorted(roots, key=_sort_key)]


def flatten(forest: Iterable[TaskNode]) -> list[FlatTask]:
    """Pre-order walk of the forest, annotating each task with its depth."""
    flat: list[FlatTask] = []
    stack: list[tuple[TaskNode, int]] = [(node, 0) for node in reversed(list(forest))]
    while stack:
        node, depth = stack.pop()
        flat.append(FlatTask(**node.task.model_dump(), depth=depth))
        stack.extend((child, depth + 1) for child in reversed(node.children))
    return flat


def flatten_tasks(tasks: Sequence[Task]) -> list[FlatTask]:
    """Shortcut for ``flatten(build_forest(tasks))``."""
    return flatten(build_forest(tasks))


def validate_reparent(tasks: Sequence[Task], task_id: str, new_parent_id: str | None) -> None:
    """Check that ``task_id`` may move under ``new_parent_id``.

    Moving to the top level (``None``) is always allowed.

    Raises:
        InvalidParentError: If the parent is unknown, the task itself, or in another project
        ParentCycleError: If the task is an ancestor of the new parent
    """
    if new_parent_id is None:
        return

    by_id = {task.id: task for task in tasks}
    task = by_id.get(task_id)
    parent = by_id.get(new_parent_id)

    if new_parent_id == task_id:
        msg = "A task cannot be its own parent"
        raise InvalidParentError(msg)
    if parent is None:
        msg = f"Parent task not found: {new_parent_id}"
        raise InvalidParentError(msg)
    if task is not None and parent.project_id != task.project_id:
        msg = f"Parent task {new_parent_id} belongs to another project"
        raise InvalidParentError(msg)

    visited: set[str] = set()
    current: Task | None = parent
    for _ in range(Constants.MAX_HIERARCHY_DEPTH):
        if current is None or current.id in visited:
            return
        if current.id == task_id:
            msg = f"Task {task_id} is an ancestor of {new_parent_id}"
            raise ParentCycleError(msg)
        visited.add(current.id)
        current = by_id.get(current.parent_id) if current.parent_id else None

    logger.warning("Ancestor walk hit depth limit", extra={"task_id": task_id, "parent_id": new_parent_id})
