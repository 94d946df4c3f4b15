"""
Wire-shape helpers.

The API speaks snake_case. Older backends and older stored data use
camelCase keys plus a handful of historic aliases, and older list endpoints
return a bare array instead of a pagination envelope. Everything entering the
data layer goes through `normalize_project` / `normalize_list_response` so the
rest of the code only ever sees the current shape.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Iterable, Optional

from project_tracker.status import normalize_status

STAGE_ORDER: tuple[str, ...] = (
    "repair",
    "install",
    "transport",
    "purchase",
    "frame",
    "glass",
)

LEGACY_ALIASES: dict[str, str] = {
    "is_archived": "archived",
    "code": "project_code",
    "phone": "client_phone",
    "client": "client_name",
    "team": "team_members",
    "photo": "photo_url",
}

TEXT_FIELDS: tuple[str, ...] = (
    "name",
    "client_name",
    "client_phone",
    "address",
    "sales_person",
    "installer",
    "team_members",
    "today_task",
    "progress_note",
    "change_note",
    "photo_url",
)

BOOL_FIELDS: tuple[str, ...] = ("archived", "glass_ordered", "glass_manufactured")

DATE_FIELDS: tuple[str, ...] = ("start_date", "end_date")

_FIRST_CAP = re.compile(r"([a-z0-9])([A-Z])")
_ACRONYM = re.compile(r"([A-Z]+)([A-Z][a-z])")


def camel_to_snake(name: str) -> str:
    name = _ACRONYM.sub(r"\1_\2", name)
    return _FIRST_CAP.sub(r"\1_\2", name).lower()


def snake_to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def convert_keys(obj: Any, direction: str) -> Any:
    """Recursively convert dict keys, direction is camel_to_snake or snake_to_camel."""
    if direction == "camel_to_snake":
        convert = camel_to_snake
    elif direction == "snake_to_camel":
        convert = snake_to_camel
    else:
        raise ValueError(f"Unknown direction: {direction}")

    if isinstance(obj, dict):
        return {
            convert(k) if isinstance(k, str) else k: convert_keys(v, direction)
            for k, v in obj.items()
        }
    if isinstance(obj, list):
        return [convert_keys(item, direction) for item in obj]
    return obj


def parse_date(value: Any) -> Optional[date]:
    """
    Parse a calendar date from a date, datetime or ISO string.

    Date-time strings keep only their calendar date. Blank or unparseable
    values yield None.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if len(text) < 10:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def format_date(value: Any) -> Optional[str]:
    parsed = parse_date(value)
    return parsed.isoformat() if parsed else None


def check_date_order(start: Any, end: Any) -> None:
    start_date, end_date = parse_date(start), parse_date(end)
    if start_date and end_date and end_date < start_date:
        raise ValueError("end_date must not be before start_date")


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def normalize_keys(payload: dict) -> dict:
    """Convert camelCase and legacy keys to snake_case and split a `dates` pair."""
    data = convert_keys(dict(payload or {}), "camel_to_snake")
    for legacy, current in LEGACY_ALIASES.items():
        if legacy in data and current not in data:
            data[current] = data.pop(legacy)
        else:
            data.pop(legacy, None)

    dates = data.pop("dates", None)
    if isinstance(dates, (list, tuple)) and len(dates) == 2:
        data.setdefault("start_date", dates[0])
        data.setdefault("end_date", dates[1])
    return data


def normalize_stages(stages: Any) -> dict[str, bool]:
    if not isinstance(stages, dict):
        return {}
    return {key: _as_bool(stages[key]) for key in STAGE_ORDER if key in stages}


def normalize_project(raw: dict) -> dict:
    """Return raw in the current snake_case shape with coerced values."""
    data = normalize_keys(raw)
    if "status" in data:
        data["status"] = normalize_status(data["status"])
    for key in BOOL_FIELDS:
        if key in data:
            data[key] = _as_bool(data[key])
    for key in DATE_FIELDS:
        if key in data:
            data[key] = format_date(data[key])
    for key in TEXT_FIELDS:
        if key in data and data[key] is None:
            data[key] = ""
    if "stages" in data:
        data["stages"] = normalize_stages(data["stages"])
    if "id" in data and data["id"] is not None:
        try:
            data["id"] = int(data["id"])
        except (TypeError, ValueError):
            pass
    return data


def to_wire(project: dict, style: str = "snake") -> dict:
    """Render a normalised project dict in the requested key style."""
    if style == "snake":
        return dict(project)
    if style == "camel":
        return convert_keys(dict(project), "snake_to_camel")
    raise ValueError(f"Unknown wire style: {style}")


@dataclass
class ProjectPage:
    items: list[dict] = field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 10

    def as_dict(self) -> dict:
        return {
            "items": self.items,
            "total": self.total,
            "page": self.page,
            "page_size": self.page_size,
        }


def _first_int(values: Iterable[Any], fallback: int) -> int:
    for value in values:
        try:
            if value is not None:
                return int(value)
        except (TypeError, ValueError):
            continue
    return fallback


def normalize_list_response(
    resp: Any, page: int = 1, page_size: int = 10
) -> ProjectPage:
    """Accept a bare array or a pagination envelope and return a ProjectPage."""
    if isinstance(resp, list):
        items = [normalize_project(item) for item in resp]
        return ProjectPage(items=items, total=len(items), page=page, page_size=page_size)

    if not isinstance(resp, dict):
        return ProjectPage(items=[], total=0, page=page, page_size=page_size)

    raw_items = resp.get("items")
    if not isinstance(raw_items, list):
        raw_items = []
    items = [normalize_project(item) for item in raw_items]
    return ProjectPage(
        items=items,
        total=_first_int([resp.get("total")], len(items)),
        page=_first_int([resp.get("page")], page) or page,
        page_size=_first_int([resp.get("page_size"), resp.get("pageSize")], page_size)
        or page_size,
    )


def list_params(
    *,
    q: Optional[str] = None,
    status: Optional[str] = None,
    start: Any = None,
    end: Any = None,
    include_archived: bool = False,
    page: Optional[int] = None,
    page_size: Optional[int] = None,
    style: str = "snake",
) -> dict:
    """Build list query parameters, omitting empty filters."""
    params: dict[str, Any] = {}
    if q:
        params["q"] = q
    if status:
        params["status"] = normalize_status(status)
    if format_date(start):
        params["start"] = format_date(start)
    if format_date(end):
        params["end"] = format_date(end)
    if include_archived:
        params["include_archived"] = "true"
    if page is not None:
        params["page"] = page
    if page_size is not None:
        params["page_size"] = page_size
    if style == "camel":
        return {snake_to_camel(k): v for k, v in params.items()}
    return params
