"""
Pydantic schemas for the project tracker API.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from project_tracker.fields import check_date_order, normalize_keys, normalize_stages, parse_date
from project_tracker.status import ProjectStatus, coerce_status


class _ProjectFields(BaseModel):
    """Shared validation for create and update payloads."""

    @model_validator(mode="before")
    @classmethod
    def _normalize_shape(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return normalize_keys(data)
        return data

    @field_validator("start_date", "end_date", mode="before", check_fields=False)
    @classmethod
    def _parse_dates(cls, value: Any) -> Optional[date]:
        if value is None or value == "":
            return None
        parsed = parse_date(value)
        if parsed is None:
            raise ValueError(f"Invalid date: {value!r}")
        return parsed

    @field_validator("name", mode="before", check_fields=False)
    @classmethod
    def _strip_name(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("status", mode="before", check_fields=False)
    @classmethod
    def _parse_status(cls, value: Any) -> Optional[ProjectStatus]:
        if value is None:
            return None
        return coerce_status(value)

    @field_validator("stages", mode="before", check_fields=False)
    @classmethod
    def _parse_stages(cls, value: Any) -> Optional[dict]:
        if value is None:
            return None
        return normalize_stages(value)

    @field_validator(
        "client_name",
        "client_phone",
        "address",
        "sales_person",
        "installer",
        "team_members",
        "today_task",
        "progress_note",
        "change_note",
        mode="before",
        check_fields=False,
    )
    @classmethod
    def _none_to_blank(cls, value: Any) -> Any:
        return "" if value is None else value

    def to_values(self) -> dict:
        """Return only the fields the caller sent, dates as ISO strings."""
        values = self.model_dump(mode="json", exclude_unset=True)
        if "status" in values and values["status"] is None:
            values.pop("status")
        return values


class ProjectCreate(_ProjectFields):
    name: str = Field(..., min_length=1, max_length=200)
    client_name: str = ""
    client_phone: str = ""
    address: str = ""
    sales_person: str = ""
    installer: str = ""
    team_members: str = ""
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: Optional[ProjectStatus] = ProjectStatus.NOT_STARTED
    today_task: str = ""
    progress_note: str = ""
    change_note: str = ""
    glass_ordered: bool = False
    glass_manufactured: bool = False
    stages: dict[str, bool] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_consistency(self) -> "ProjectCreate":
        check_date_order(self.start_date, self.end_date)
        if self.status is None:
            self.status = ProjectStatus.NOT_STARTED
        if self.glass_manufactured and not self.glass_ordered:
            self.glass_manufactured = False
        return self

    def to_values(self) -> dict:
        return self.model_dump(mode="json")


class ProjectUpdate(_ProjectFields):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    client_name: Optional[str] = None
    client_phone: Optional[str] = None
    address: Optional[str] = None
    sales_person: Optional[str] = None
    installer: Optional[str] = None
    team_members: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: Optional[ProjectStatus] = None
    today_task: Optional[str] = None
    progress_note: Optional[str] = None
    change_note: Optional[str] = None
    glass_ordered: Optional[bool] = None
    glass_manufactured: Optional[bool] = None
    stages: Optional[dict[str, bool]] = None
    archived: Optional[bool] = None

    @model_validator(mode="after")
    def _check_consistency(self) -> "ProjectUpdate":
        check_date_order(self.start_date, self.end_date)
        return self

    def to_values(self) -> dict:
        values = super().to_values()
        # Explicit nulls clear the dates; for every other field they mean "unchanged".
        return {
            key: value
            for key, value in values.items()
            if value is not None or key in ("start_date", "end_date")
        }


class ProjectResponse(BaseModel):
    id: int
    project_code: str
    name: str
    client_name: str = ""
    client_phone: str = ""
    address: str = ""
    sales_person: str = ""
    installer: str = ""
    team_members: str = ""
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    status: str
    today_task: str = ""
    progress_note: str = ""
    change_note: str = ""
    glass_ordered: bool = False
    glass_manufactured: bool = False
    stages: dict[str, bool] = Field(default_factory=dict)
    archived: bool = False
    photo_url: str = ""
    created_at: str
    updated_at: str


class ProjectListResponse(BaseModel):
    items: list[ProjectResponse]
    total: int
    page: int
    page_size: int


class MediaResponse(BaseModel):
    token: str
    project_id: int
    filename: str
    content_type: str
    kind: str
    size: int
    url: str
    created_at: str


class DeleteMediaResponse(BaseModel):
    deleted: int


class CalendarEvent(BaseModel):
    id: str
    title: str
    start: Optional[str] = None
    end: Optional[str] = None
    all_day: bool = True
    status: str


class WeatherDay(BaseModel):
    prob: Optional[float] = None
    mm: Optional[float] = None
    temp_avg: Optional[float] = None


class WeatherResponse(BaseModel):
    location: str
    start: str
    end: str
    days: dict[str, WeatherDay]


class HealthResponse(BaseModel):
    status: str
