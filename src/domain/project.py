"""Project domain model."""

from datetime import date

from pydantic import BaseModel, Field, field_validator

from src.domain.task import coerce_day


class Project(BaseModel):
    """Project data transfer object; owns its tasks."""

    id: str = Field(..., description="Unique project ID from database")
    name: str = Field(..., description="Project name")
    description: str | None = Field(default=None, description="Project description")
    start_date: date | None = Field(default=None, description="Planned start day")
    end_date: date | None = Field(default=None, description="Planned end day")
    created: str | None = Field(default=None, description="Creation timestamp (ISO format)")
    updated: str | None = Field(default=None, description="Last update timestamp (ISO format)")

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def truncate_to_day(cls, v: object) -> date | None:
        """Accept ISO datetimes and keep only the calendar day."""
        return coerce_day(v)
