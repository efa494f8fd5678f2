"""Visibility filter over the flattened hierarchy."""

from collections.abc import Iterable, Sequence

from src.domain.task import FlatTask


def compute_visible(flat_list: Sequence[FlatTask], expanded_ids: Iterable[str]) -> list[FlatTask]:
    """Rows shown under the given expansion set, in flattened order.

    A row is visible when it is a root, or when its parent is visible and
    expanded. ``flat_list`` must be a pre-order flattening, so a parent is
    always seen before its children.
    """
    expanded = set(expanded_ids)
    open_parents: set[str] = set()
    visible: list[FlatTask] = []

    for row in flat_list:
        if row.depth == 0 or row.parent_id in open_parents:
            visible.append(row)
            if row.id in expanded:
                open_parents.add(row.id)

    return visible


def default_expanded_ids(flat_list: Sequence[FlatTask]) -> set[str]:
    """Every task that has at least one child."""
    return {row.parent_id for row in flat_list if row.depth > 0 and row.parent_id is not None}


def resolve_expanded(flat_list: Sequence[FlatTask], expanded_ids: Iterable[str] | None) -> set[str]:
    """Caller's expansion set, or fully expanded when none was given."""
    if expanded_ids is None:
        return default_expanded_ids(flat_list)
    return set(expanded_ids)


def toggle_expanded(expanded_ids: Iterable[str], task_id: str) -> set[str]:
    """Return a new expansion set with ``task_id`` flipped."""
    toggled = set(expanded_ids)
    if task_id in toggled:
        toggled.remove(task_id)
    else:
        toggled.add(task_id)
    return toggled
