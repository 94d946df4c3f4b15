"""
HTTP routes for the project tracker API.
"""

from __future__ import annotations

import logging
import mimetypes
from datetime import date, timedelta
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, HTTPException, Query, Response, UploadFile

from project_tracker import calendar_events, export
from project_tracker.config import get_settings
from project_tracker.dependencies import get_project_service, get_weather_client
from project_tracker.fields import parse_date
from project_tracker.filters import ProjectFilters
from project_tracker.projects import ProjectService
from project_tracker.schemas import (
    CalendarEvent,
    DeleteMediaResponse,
    HealthResponse,
    MediaResponse,
    ProjectCreate,
    ProjectListResponse,
    ProjectResponse,
    ProjectUpdate,
    WeatherResponse,
)
from project_tracker.weather import FORECAST_HORIZON_DAYS, WEATHER_TYPES, WeatherClient

logger = logging.getLogger(__name__)

router = APIRouter()


def _query_date(value: Optional[str], name: str) -> Optional[date]:
    if value is None or value == "":
        return None
    parsed = parse_date(value)
    if parsed is None:
        raise HTTPException(status_code=400, detail=f"Invalid {name} date: {value}")
    return parsed


def _report_range(start: Optional[str], end: Optional[str]) -> tuple[date, date]:
    month_start, month_end = export.month_range()
    return (
        _query_date(start, "start") or month_start,
        _query_date(end, "end") or month_end,
    )


def _attachment(file: export.ExportFile) -> Response:
    logger.info("Exporting %s (%d bytes)", file.filename, len(file.content))
    disposition = f"attachment; filename*=UTF-8''{quote(file.filename)}"
    return Response(
        content=file.content,
        media_type=file.content_type,
        headers={"Content-Disposition": disposition},
    )


@router.get("/health", response_model=HealthResponse)
def health():
    return HealthResponse(status="ok")


@router.get("/projects", response_model=ProjectListResponse)
def list_projects(
    q: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    start: Optional[str] = Query(None),
    end: Optional[str] = Query(None),
    include_archived: Optional[bool] = Query(None),
    include_archived_camel: Optional[bool] = Query(None, alias="includeArchived"),
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, ge=1),
    page_size_camel: Optional[int] = Query(None, alias="pageSize", ge=1),
    service: ProjectService = Depends(get_project_service),
):
    """
    List projects matching the filters, paged in id order.

    Both snake_case and camelCase spellings of the paging and archival
    parameters are accepted.
    """
    if include_archived is None:
        include_archived = bool(include_archived_camel)
    size = page_size or page_size_camel or get_settings().default_page_size
    filters = ProjectFilters(
        q=q,
        status=status,
        start=_query_date(start, "start"),
        end=_query_date(end, "end"),
        include_archived=include_archived,
        page=page,
        page_size=size,
    )
    return service.list_projects(filters).as_dict()


@router.post("/projects", response_model=ProjectResponse, status_code=201)
def create_project(
    payload: ProjectCreate, service: ProjectService = Depends(get_project_service)
):
    return service.create_project(payload).as_dict()


@router.get("/projects/{project_id}", response_model=ProjectResponse)
def get_project(project_id: int, service: ProjectService = Depends(get_project_service)):
    return service.get_project(project_id).as_dict()


@router.patch("/projects/{project_id}", response_model=ProjectResponse)
def update_project(
    project_id: int,
    payload: ProjectUpdate,
    service: ProjectService = Depends(get_project_service),
):
    changes = payload.to_values()
    if set(changes) == {"archived"}:
        return service.archive_project(project_id, changes["archived"]).as_dict()
    return service.update_project(project_id, payload).as_dict()


@router.delete("/projects/{project_id}", status_code=204)
def delete_project(project_id: int, service: ProjectService = Depends(get_project_service)):
    service.delete_project(project_id)
    return Response(status_code=204)


@router.post("/projects/{project_id}/photo", response_model=MediaResponse, status_code=201)
async def upload_project_media(
    project_id: int,
    file: UploadFile = File(...),
    service: ProjectService = Depends(get_project_service),
):
    data = await file.read()
    record = service.add_media(
        project_id, file.filename or "upload", data, file.content_type
    )
    return service.media_as_dict(record)


@router.get("/projects/{project_id}/photos", response_model=list[MediaResponse])
def list_project_media(
    project_id: int, service: ProjectService = Depends(get_project_service)
):
    return [service.media_as_dict(item) for item in service.list_media(project_id)]


@router.delete("/projects/{project_id}/photos/{token}", status_code=204)
def delete_project_media(
    project_id: int, token: str, service: ProjectService = Depends(get_project_service)
):
    service.delete_media(project_id, token)
    return Response(status_code=204)


@router.delete("/projects/{project_id}/photos", response_model=DeleteMediaResponse)
def delete_all_project_media(
    project_id: int, service: ProjectService = Depends(get_project_service)
):
    removed = service.delete_all_media(project_id)
    return DeleteMediaResponse(deleted=len(removed))


@router.get("/media/{path:path}")
def get_media(path: str, service: ProjectService = Depends(get_project_service)):
    """
    Serve stored bytes for in-memory and local-disk storage.

    S3 storage hands out presigned URLs instead, so requests rarely land here.
    """
    try:
        data = service.storage.get_bytes(path)
    except FileNotFoundError:
        raise HTTPException(status_code=404, detail="Media not found")
    content_type = mimetypes.guess_type(path)[0] or "application/octet-stream"
    return Response(content=data, media_type=content_type)


@router.get("/export/excel")
def export_excel(
    start: Optional[str] = Query(None),
    end: Optional[str] = Query(None),
    include_archived: bool = Query(False),
    lang: str = Query("zh"),
    service: ProjectService = Depends(get_project_service),
):
    start_date, end_date = _report_range(start, end)
    projects = service.projects_in_range(start_date, end_date, include_archived)
    return _attachment(export.build_excel(projects, start_date, end_date, lang))


@router.get("/export/pdf")
def export_pdf(
    start: Optional[str] = Query(None),
    end: Optional[str] = Query(None),
    include_archived: bool = Query(False),
    lang: str = Query("zh"),
    service: ProjectService = Depends(get_project_service),
):
    start_date, end_date = _report_range(start, end)
    projects = service.projects_in_range(start_date, end_date, include_archived)
    return _attachment(export.build_pdf(projects, start_date, end_date, lang))


@router.get("/calendar/events", response_model=list[CalendarEvent])
def list_calendar_events(
    start: Optional[str] = Query(None),
    end: Optional[str] = Query(None),
    include_archived: bool = Query(False),
    lang: str = Query("zh"),
    service: ProjectService = Depends(get_project_service),
):
    projects = service.projects_in_range(
        _query_date(start, "start"), _query_date(end, "end"), include_archived
    )
    return calendar_events.to_events(projects, lang)


@router.get("/weather", response_model=WeatherResponse)
def get_weather(
    location: str = Query("auckland"),
    start: Optional[str] = Query(None),
    end: Optional[str] = Query(None),
    types: str = Query(",".join(WEATHER_TYPES)),
    weather: WeatherClient = Depends(get_weather_client),
):
    today = date.today()
    start_date = _query_date(start, "start") or today
    end_date = _query_date(end, "end") or today + timedelta(days=FORECAST_HORIZON_DAYS)
    if end_date < start_date:
        raise HTTPException(status_code=400, detail="end must not be before start")
    wanted = [t.strip() for t in types.split(",") if t.strip()]
    days = weather.fetch_daily(location, start_date, end_date, wanted, today=today)
    return WeatherResponse(
        location=location.lower(),
        start=start_date.isoformat(),
        end=end_date.isoformat(),
        days=days,
    )
