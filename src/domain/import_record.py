"""Strict model for records produced by the legacy-schedule extractor.

The extractor is best-effort: fields arrive in camelCase or snake_case, may be
missing, duplicated, or wrong. Each raw dict is validated once into an
``ImportRecord`` so the reconciler never checks raw keys ad hoc.
"""

import logging
import math
from datetime import date

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from src.domain.task import TaskPriority, TaskStatus, coerce_day


logger = logging.getLogger(__name__)

_PRIORITIES = {priority.value for priority in TaskPriority}
_STATUSES = {status.value for status in TaskStatus}


def _lenient_int(value: object) -> int | None:
    """Best-effort integer parse; anything unusable becomes None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        text = value.strip()
        if text.lstrip("-").isdigit():
            return int(text)
    return None


class ImportRecord(BaseModel):
    """One validated legacy record; ``position`` is its index in the input list."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    position: int = Field(..., ge=0, description="Index of the record in the extractor output")
    name: str = Field(..., min_length=1, description="Task name")
    notes: str | None = Field(default=None, validation_alias=AliasChoices("notes", "description"))
    start_date: date | None = Field(default=None, validation_alias=AliasChoices("startDate", "start_date"))
    finish_date: date | None = Field(
        default=None, validation_alias=AliasChoices("finishDate", "finish_date", "endDate", "end_date")
    )
    duration: int | None = Field(default=None)
    progress: int = Field(default=0)
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM)
    status: TaskStatus | None = Field(default=None)
    outline_level: int = Field(default=1, validation_alias=AliasChoices("outlineLevel", "outline_level"))
    parent_task_name: str | None = Field(
        default=None, validation_alias=AliasChoices("parentTaskName", "parent_task_name")
    )
    parent_order: int | None = Field(default=None, validation_alias=AliasChoices("parentOrder", "parent_order"))
    order: int | None = Field(default=None)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v: object) -> object:
        """Names are trimmed; blank names fail validation."""
        return v.strip() if isinstance(v, str) else v

    @field_validator("start_date", "finish_date", mode="before")
    @classmethod
    def lenient_day(cls, v: object) -> date | None:
        """A garbled date degrades to missing instead of rejecting the record."""
        try:
            return coerce_day(v)
        except (TypeError, ValueError):
            logger.debug("Dropping unparseable import date", extra={"value": repr(v)})
            return None

    @field_validator("outline_level", mode="before")
    @classmethod
    def default_outline_level(cls, v: object) -> int:
        """Missing, garbled, or non-positive levels mean top level."""
        level = _lenient_int(v)
        return level if level is not None and level > 0 else 1

    @field_validator("order", "parent_order", mode="before")
    @classmethod
    def lenient_order(cls, v: object) -> int | None:
        """Garbled order numbers are treated as missing."""
        return _lenient_int(v)

    @field_validator("duration", mode="before")
    @classmethod
    def round_duration_up(cls, v: object) -> int | None:
        """Fractional durations round up to whole days; negatives clamp to 0."""
        if isinstance(v, int | float) and not isinstance(v, bool):
            return max(0, math.ceil(v))
        return _lenient_int(v)

    @field_validator("progress", mode="before")
    @classmethod
    def clamp_progress(cls, v: object) -> int:
        """Progress is clamped into 0..100; missing or garbled means 0."""
        if isinstance(v, int | float) and not isinstance(v, bool):
            return min(100, max(0, int(v)))
        value = _lenient_int(v)
        return min(100, max(0, value)) if value is not None else 0

    @field_validator("priority", mode="before")
    @classmethod
    def default_priority(cls, v: object) -> TaskPriority:
        """Unknown priorities fall back to medium."""
        if isinstance(v, str) and v.lower() in _PRIORITIES:
            return TaskPriority(v.lower())
        return TaskPriority.MEDIUM

    @field_validator("status", mode="before")
    @classmethod
    def drop_unknown_status(cls, v: object) -> TaskStatus | None:
        """Unknown statuses are treated as absent."""
        if isinstance(v, str) and v.lower() in _STATUSES:
            return TaskStatus(v.lower())
        return None

    @field_validator("parent_task_name", mode="before")
    @classmethod
    def blank_parent_is_none(cls, v: object) -> object:
        """Empty parent names mean no explicit parent."""
        if isinstance(v, str) and not v.strip():
            return None
        return v.strip() if isinstance(v, str) else v

    @property
    def effective_order(self) -> int:
        """Sibling order: the extractor's value, else the record's position."""
        return self.order if self.order is not None else self.position

    @property
    def effective_status(self) -> TaskStatus:
        """Explicit status, else completed when fully progressed, else todo."""
        if self.status is not None:
            return self.status
        return TaskStatus.COMPLETED if self.progress >= 100 else TaskStatus.TODO  # noqa: PLR2004

    @classmethod
    def from_raw(cls, raw: dict, position: int) -> "ImportRecord":
        """Validate one raw extractor dict.

        Raises:
            pydantic.ValidationError: If the record has no usable name or malformed numbers
        """
        return cls.model_validate({**raw, "position": position})
