"""Timeline layout engine: date range, bucket math, columns, bars and links.

Every function here is pure and synchronous. A layout is recomputed from the
full task snapshot on each request; nothing is cached between calls.

Buckets are addressed by an absolute index per resolution so that columns and
bars agree on placement:

    days       proleptic ordinal
    weeks      Monday-aligned week number (ordinal 1, 0001-01-01, is a Monday)
    months     year * 12 + month - 1
    quarters   year * 4 + (month - 1) // 3
    semesters  year * 2 + (month - 1) // 6
    year       year
"""

import calendar
import logging
from collections.abc import Iterable, Sequence
from datetime import date, timedelta

from src.core.config import Constants
from src.core.logging import span
from src.domain.dependency import Dependency
from src.domain.task import Task
from src.models.service_models import (
    DateRange,
    DependencyLink,
    Resolution,
    TaskBar,
    TimelineColumn,
    TimelineLayout,
)
from src.services import hierarchy_service, visibility_service


logger = logging.getLogger(__name__)

AUTO_ZOOM = "auto"

# Column width in pixels per resolution
COLUMN_WIDTHS: dict[Resolution, int] = {
    Resolution.DAYS: 30,
    Resolution.WEEKS: 50,
    Resolution.MONTHS: 80,
    Resolution.QUARTERS: 120,
    Resolution.SEMESTERS: 180,
    Resolution.YEAR: 250,
}

_MONTHS_PER_BUCKET: dict[Resolution, int] = {
    Resolution.MONTHS: 1,
    Resolution.QUARTERS: 3,
    Resolution.SEMESTERS: 6,
    Resolution.YEAR: 12,
}


def compute_date_range(tasks: Iterable[Task], today: date) -> DateRange:
    """Span of every task date, padded on both sides.

    Falls back to ``[today, today + default window]`` when no task has a date.
    """
    days = [day for task in tasks for day in (task.start_date, task.end_date) if day is not None]
    if not days:
        return DateRange(start=today, end=today + timedelta(days=Constants.TIMELINE_DEFAULT_WINDOW_DAYS))

    padding = timedelta(days=Constants.TIMELINE_RANGE_PADDING_DAYS)
    return DateRange(start=min(days) - padding, end=max(days) + padding)


def bucket_index(day: date, resolution: Resolution) -> int:
    """Absolute index of the bucket containing ``day``."""
    if resolution == Resolution.DAYS:
        return day.toordinal()
    if resolution == Resolution.WEEKS:
        return (day.toordinal() - 1) // 7
    span_months = _MONTHS_PER_BUCKET[resolution]
    return day.year * (12 // span_months) + (day.month - 1) // span_months


def bucket_bounds(index: int, resolution: Resolution) -> tuple[date, date]:
    """First and last day of bucket ``index``."""
    if resolution == Resolution.DAYS:
        day = date.fromordinal(index)
        return day, day
    if resolution == Resolution.WEEKS:
        first = date.fromordinal(index * 7 + 1)
        return first, first + timedelta(days=6)

    span_months = _MONTHS_PER_BUCKET[resolution]
    year, slot = divmod(index, 12 // span_months)
    first_month = slot * span_months + 1
    last_month = first_month + span_months - 1
    last_day = calendar.monthrange(year, last_month)[1]
    return date(year, first_month, 1), date(year, last_month, last_day)


def _week_label(first: date, last: date) -> str:
    if first.year != last.year:
        return f"{first:%d/%m/%y} - {last:%d/%m/%y}"
    if first.month != last.month:
        return f"{first:%d/%m} - {last:%d/%m}"
    return f"{first:%d}-{last:%d/%m}"


def column_label(first: date, last: date, resolution: Resolution) -> str:
    """Header text for the bucket spanning ``first``..``last``."""
    match resolution:
        case Resolution.DAYS:
            return f"{first:%d/%m/%Y}"
        case Resolution.WEEKS:
            return _week_label(first, last)
        case Resolution.MONTHS:
            return f"{first:%m/%Y}"
        case Resolution.QUARTERS:
            return f"Q{(first.month - 1) // 3 + 1} {first.year}"
        case Resolution.SEMESTERS:
            return f"S{(first.month - 1) // 6 + 1} {first.year}"
        case _:
            return str(first.year)


def column_count(date_range: DateRange, resolution: Resolution) -> int:
    """Number of buckets spanned by the range at this resolution."""
    return bucket_index(date_range.end, resolution) - bucket_index(date_range.start, resolution) + 1


def generate_columns(date_range: DateRange, resolution: Resolution) -> list[TimelineColumn]:
    """One column per bucket from the range start's bucket to the range end's bucket."""
    width = COLUMN_WIDTHS[resolution]
    first_index = bucket_index(date_range.start, resolution)
    columns = []
    for position in range(column_count(date_range, resolution)):
        first, last = bucket_bounds(first_index + position, resolution)
        columns.append(
            TimelineColumn(
                position=position,
                start=first,
                end=last,
                label=column_label(first, last, resolution),
                width=width,
            )
        )
    return columns


def compute_bar_geometry(task: Task, date_range: DateRange, resolution: Resolution, *, row: int = 0) -> TaskBar | None:
    """Pixel placement of a task on the timeline, or None when it has no start date.

    Bars snap to whole buckets. A milestone is a zero-width point centred in
    the bucket of its start date.
    """
    if task.start_date is None:
        return None

    width = COLUMN_WIDTHS[resolution]
    start_index = bucket_index(task.start_date, resolution)
    offset = start_index - bucket_index(date_range.start, resolution)

    if task.is_milestone:
        return TaskBar(
            task_id=task.id,
            row=row,
            x=offset * width + width / 2,
            width=0,
            is_milestone=True,
            progress=task.progress,
        )

    end = task.end_date or task.start_date + timedelta(days=task.effective_duration)
    units = max(1, bucket_index(end, resolution) - start_index + 1)
    return TaskBar(
        task_id=task.id,
        row=row,
        x=offset * width,
        width=units * width,
        is_milestone=False,
        progress=task.progress,
    )


def auto_fit(date_range: DateRange, viewport_width_px: int) -> Resolution:
    """Finest resolution whose columns fit in the viewport; days when none does."""
    for resolution in Resolution:
        if column_count(date_range, resolution) * COLUMN_WIDTHS[resolution] <= viewport_width_px:
            return resolution
    return Resolution.DAYS


def resolve_zoom(zoom: Resolution | str, date_range: DateRange, viewport_width_px: int) -> Resolution:
    """Turn a zoom request into a concrete resolution.

    ``auto`` is evaluated once against the current range; the caller pins the
    returned value for subsequent renders.

    Raises:
        ValueError: If ``zoom`` is neither a resolution name nor ``auto``
    """
    if zoom == AUTO_ZOOM:
        resolution = auto_fit(date_range, viewport_width_px)
        logger.debug("Auto-fit zoom", extra={"resolution": resolution, "viewport_width_px": viewport_width_px})
        return resolution
    return Resolution(zoom)


def _links(dependencies: Iterable[Dependency], rows: dict[str, int]) -> list[DependencyLink]:
    return [
        DependencyLink(
            id=edge.id,
            from_task_id=edge.depends_on_id,
            to_task_id=edge.task_id,
            from_row=rows[edge.depends_on_id],
            to_row=rows[edge.task_id],
            type=edge.type,
        )
        for edge in dependencies
        if edge.depends_on_id in rows and edge.task_id in rows
    ]


def build_timeline(
    tasks: Sequence[Task],
    dependencies: Sequence[Dependency] = (),
    *,
    zoom: Resolution | str = AUTO_ZOOM,
    expanded_ids: Iterable[str] | None = None,
    viewport_width_px: int = Constants.TIMELINE_DEFAULT_VIEWPORT_PX,
    today: date | None = None,
) -> TimelineLayout:
    """Full rebuild of the timeline for one project snapshot.

    Rows are the visible part of the pre-order flattening; a row's index is
    also its vertical position on the chart. ``expanded_ids=None`` means fully
    expanded; an explicit empty collection collapses everything.

    Raises:
        ValueError: If ``zoom`` is not a known resolution or ``auto``
    """
    with span("timeline_service.build_timeline"):
        flat = hierarchy_service.flatten_tasks(tasks)
        expanded = visibility_service.resolve_expanded(flat, expanded_ids)
        visible = visibility_service.compute_visible(flat, expanded)

        date_range = compute_date_range(tasks, today or date.today())  # noqa: DTZ011 - calendar days
        resolution = resolve_zoom(zoom, date_range, viewport_width_px)
        columns = generate_columns(date_range, resolution)

        bars = []
        for row, task in enumerate(visible):
            bar = compute_bar_geometry(task, date_range, resolution, row=row)
            if bar is not None:
                bars.append(bar)

        rows_by_id = {task.id: row for row, task in enumerate(visible)}
        layout = TimelineLayout(
            resolution=resolution,
            column_width=COLUMN_WIDTHS[resolution],
            total_width=len(columns) * COLUMN_WIDTHS[resolution],
            date_range=date_range,
            columns=columns,
            rows=visible,
            bars=bars,
            links=_links(dependencies, rows_by_id),
            expanded_ids=sorted(expanded),
        )

        logger.info(
            "Built timeline",
            extra={"resolution": resolution, "rows": len(visible), "bars": len(bars), "links": len(layout.links)},
        )
        return layout
