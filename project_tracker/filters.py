"""
Listing filters: text query, status, date-range overlap, archival and paging.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable, Optional

from project_tracker.fields import ProjectPage, parse_date
from project_tracker.status import normalize_status

QUERY_FIELDS = ("project_code", "name", "client_name", "address")


@dataclass
class ProjectFilters:
    q: Optional[str] = None
    status: Optional[str] = None
    start: Optional[date] = None
    end: Optional[date] = None
    include_archived: bool = False
    page: int = 1
    page_size: int = 10


def match_query(project: dict, q: Optional[str]) -> bool:
    if not q:
        return True
    haystack = " ".join(str(project.get(key) or "") for key in QUERY_FIELDS)
    return str(q).lower() in haystack.lower()


def match_status(project: dict, status: Optional[str]) -> bool:
    if not status:
        return True
    return normalize_status(project.get("status")) == normalize_status(status)


def match_archived(project: dict, include_archived: bool) -> bool:
    return include_archived or not project.get("archived")


def in_range(project: dict, start: Any = None, end: Any = None) -> bool:
    """
    Inclusive overlap of the project's [start_date, end_date] with [start, end].

    Projects missing either date cannot be placed on the calendar and always
    match.
    """
    s, e = parse_date(start), parse_date(end)
    if not s and not e:
        return True
    ps, pe = parse_date(project.get("start_date")), parse_date(project.get("end_date"))
    if not ps or not pe:
        return True
    if s and e:
        return ps <= e and pe >= s
    if s:
        return pe >= s
    return ps <= e


def apply_filters(projects: Iterable[dict], filters: ProjectFilters) -> list[dict]:
    return [
        p
        for p in projects
        if match_archived(p, filters.include_archived)
        and match_query(p, filters.q)
        and match_status(p, filters.status)
        and in_range(p, filters.start, filters.end)
    ]


def paginate(items: list[dict], page: int = 1, page_size: int = 10) -> ProjectPage:
    page = max(1, int(page or 1))
    page_size = max(1, int(page_size or 1))
    offset = (page - 1) * page_size
    return ProjectPage(
        items=items[offset : offset + page_size],
        total=len(items),
        page=page,
        page_size=page_size,
    )
