"""
Dual-mode data access for the dashboard.

`local` mode runs the project service in-process over the JSON file store and
local-disk media. The backend modes talk to a running instance of the API
over HTTP. Both return projects in the current snake_case shape, whatever
shape the other side used.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Optional, Protocol
from urllib.parse import unquote

import requests

from project_tracker import export
from project_tracker.config import Settings, get_settings
from project_tracker.db import JsonFileDbClient
from project_tracker.demo import seed_demo_projects
from project_tracker.fields import (
    ProjectPage,
    convert_keys,
    format_date,
    list_params,
    normalize_list_response,
    normalize_project,
    parse_date,
    to_wire,
)
from project_tracker.filters import ProjectFilters
from project_tracker.projects import ProjectService
from project_tracker.storage import LocalDiskStorageClient

logger = logging.getLogger(__name__)

API_MODES = ("local", "backend-test", "backend-prod")
MODE_ALIASES = {
    "backend": "backend-test",
    "backend-dev": "backend-test",
}


class ApiError(Exception):
    """Raised when the backend answers with an error or cannot be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None, payload: Any = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload


def _checked_date(value: Any, name: str) -> Optional[date]:
    """Parse an optional filter date, rejecting values the API would answer 400 to."""
    if value is None or value == "":
        return None
    parsed = parse_date(value)
    if parsed is None:
        raise ValueError(f"Invalid {name} date: {value}")
    return parsed


def resolve_api_mode(mode: Optional[str]) -> str:
    value = (mode or "local").strip().lower()
    value = MODE_ALIASES.get(value, value)
    if value not in API_MODES:
        raise ValueError(f"Unknown API mode {mode!r}; expected one of: {', '.join(API_MODES)}")
    return value


class ProjectApi(Protocol):
    """Operations the dashboard needs, independent of where data lives."""

    def list_projects(
        self,
        *,
        q: Optional[str] = None,
        status: Optional[str] = None,
        start: Any = None,
        end: Any = None,
        include_archived: bool = False,
        page: int = 1,
        page_size: int = 10,
    ) -> ProjectPage:
        ...

    def get_project(self, project_id: int) -> dict:
        ...

    def create_project(self, values: dict) -> dict:
        ...

    def update_project(self, project_id: int, values: dict) -> dict:
        ...

    def archive_project(self, project_id: int, archived: bool = True) -> dict:
        ...

    def delete_project(self, project_id: int) -> None:
        ...

    def upload_photo(
        self, project_id: int, filename: str, data: bytes, content_type: Optional[str] = None
    ) -> dict:
        ...

    def list_photos(self, project_id: int) -> list[dict]:
        ...

    def delete_photo(self, project_id: int, token: str) -> None:
        ...

    def delete_all_photos(self, project_id: int) -> int:
        ...

    def export_excel(
        self, start: Any = None, end: Any = None, include_archived: bool = False, lang: str = "zh"
    ) -> export.ExportFile:
        ...

    def export_pdf(
        self, start: Any = None, end: Any = None, include_archived: bool = False, lang: str = "zh"
    ) -> export.ExportFile:
        ...


class LocalProjectApi:
    """In-process implementation over a ProjectService."""

    mode = "local"

    def __init__(self, service: ProjectService):
        self.service = service

    @classmethod
    def from_settings(cls, settings: Settings) -> "LocalProjectApi":
        service = ProjectService(
            JsonFileDbClient(settings.data_file),
            LocalDiskStorageClient(root=settings.media_dir, base_url=settings.media_base_url),
            photo_target_bytes=settings.photo_target_bytes,
            max_upload_bytes=settings.max_upload_bytes,
            max_page_size=settings.max_page_size,
        )
        return cls(service)

    def list_projects(
        self,
        *,
        q: Optional[str] = None,
        status: Optional[str] = None,
        start: Any = None,
        end: Any = None,
        include_archived: bool = False,
        page: int = 1,
        page_size: int = 10,
    ) -> ProjectPage:
        filters = ProjectFilters(
            q=q,
            status=status,
            start=_checked_date(start, "start"),
            end=_checked_date(end, "end"),
            include_archived=include_archived,
            page=page,
            page_size=page_size,
        )
        return self.service.list_projects(filters)

    def get_project(self, project_id: int) -> dict:
        return self.service.get_project(project_id).as_dict()

    def create_project(self, values: dict) -> dict:
        return self.service.create_project(values).as_dict()

    def update_project(self, project_id: int, values: dict) -> dict:
        return self.service.update_project(project_id, values).as_dict()

    def archive_project(self, project_id: int, archived: bool = True) -> dict:
        return self.service.archive_project(project_id, archived).as_dict()

    def delete_project(self, project_id: int) -> None:
        self.service.delete_project(project_id)

    def upload_photo(
        self, project_id: int, filename: str, data: bytes, content_type: Optional[str] = None
    ) -> dict:
        record = self.service.add_media(project_id, filename, data, content_type)
        return self.service.media_as_dict(record)

    def list_photos(self, project_id: int) -> list[dict]:
        return [self.service.media_as_dict(m) for m in self.service.list_media(project_id)]

    def delete_photo(self, project_id: int, token: str) -> None:
        self.service.delete_media(project_id, token)

    def delete_all_photos(self, project_id: int) -> int:
        return len(self.service.delete_all_media(project_id))

    def _report(self, build, start, end, include_archived, lang) -> export.ExportFile:
        month_start, month_end = export.month_range()
        start = _checked_date(start, "start") or month_start
        end = _checked_date(end, "end") or month_end
        projects = self.service.projects_in_range(start, end, include_archived)
        return build(projects, start, end, lang)

    def export_excel(
        self, start: Any = None, end: Any = None, include_archived: bool = False, lang: str = "zh"
    ) -> export.ExportFile:
        return self._report(export.build_excel, start, end, include_archived, lang)

    def export_pdf(
        self, start: Any = None, end: Any = None, include_archived: bool = False, lang: str = "zh"
    ) -> export.ExportFile:
        return self._report(export.build_pdf, start, end, include_archived, lang)

    def seed_demo_projects(self, count: int = 10, seed: Optional[int] = None) -> int:
        return seed_demo_projects(self.service, count, seed=seed)


def _disposition_filename(header: Optional[str]) -> Optional[str]:
    """Pull the filename out of a Content-Disposition header."""
    if not header:
        return None
    for part in header.split(";"):
        key, _, value = part.strip().partition("=")
        if key.lower() == "filename*" and "''" in value:
            return unquote(value.split("''", 1)[1])
    for part in header.split(";"):
        key, _, value = part.strip().partition("=")
        if key.lower() == "filename":
            return value.strip('"')
    return None


class HttpProjectApi:
    """
    Client for a running project tracker API.

    `wire_style` picks the key style sent to the server; responses are
    accepted in either style.
    """

    def __init__(
        self,
        base_url: str,
        *,
        api_prefix: str = "/api",
        session: Optional[requests.Session] = None,
        timeout: float = 30.0,
        wire_style: str = "snake",
        mode: str = "backend-test",
    ):
        if not base_url:
            raise ValueError(f"No API base URL configured for {mode}")
        self.base_url = base_url.rstrip("/") + api_prefix
        self.session = session or requests.Session()
        self.timeout = timeout
        self.wire_style = wire_style
        self.mode = mode

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = self.base_url + path
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            logger.warning("%s %s failed: %s", method, url, exc)
            raise ApiError(f"Request failed: {exc}") from exc
        if response.status_code >= 400:
            raise self._error_from(response)
        return response

    @staticmethod
    def _error_from(response: requests.Response) -> ApiError:
        try:
            payload = response.json()
        except ValueError:
            payload = None
        message = None
        if isinstance(payload, dict):
            message = payload.get("message") or payload.get("detail")
        if not isinstance(message, str) or not message:
            message = f"HTTP {response.status_code}: {response.reason or 'error'}"
        return ApiError(message, status_code=response.status_code, payload=payload)

    def list_projects(
        self,
        *,
        q: Optional[str] = None,
        status: Optional[str] = None,
        start: Any = None,
        end: Any = None,
        include_archived: bool = False,
        page: int = 1,
        page_size: int = 10,
    ) -> ProjectPage:
        params = list_params(
            q=q,
            status=status,
            start=start,
            end=end,
            include_archived=include_archived,
            page=page,
            page_size=page_size,
            style=self.wire_style,
        )
        response = self._request("GET", "/projects", params=params)
        return normalize_list_response(response.json(), page, page_size)

    def get_project(self, project_id: int) -> dict:
        return normalize_project(self._request("GET", f"/projects/{project_id}").json())

    def create_project(self, values: dict) -> dict:
        body = to_wire(normalize_project(values), self.wire_style)
        return normalize_project(self._request("POST", "/projects", json=body).json())

    def update_project(self, project_id: int, values: dict) -> dict:
        body = to_wire(normalize_project(values), self.wire_style)
        response = self._request("PATCH", f"/projects/{project_id}", json=body)
        return normalize_project(response.json())

    def archive_project(self, project_id: int, archived: bool = True) -> dict:
        return self.update_project(project_id, {"archived": archived})

    def delete_project(self, project_id: int) -> None:
        self._request("DELETE", f"/projects/{project_id}")

    def upload_photo(
        self, project_id: int, filename: str, data: bytes, content_type: Optional[str] = None
    ) -> dict:
        files = {"file": (filename, data, content_type or "application/octet-stream")}
        response = self._request("POST", f"/projects/{project_id}/photo", files=files)
        return convert_keys(response.json(), "camel_to_snake")

    def list_photos(self, project_id: int) -> list[dict]:
        response = self._request("GET", f"/projects/{project_id}/photos")
        return convert_keys(response.json() or [], "camel_to_snake")

    def delete_photo(self, project_id: int, token: str) -> None:
        self._request("DELETE", f"/projects/{project_id}/photos/{token}")

    def delete_all_photos(self, project_id: int) -> int:
        response = self._request("DELETE", f"/projects/{project_id}/photos")
        payload = response.json() if response.content else {}
        return int((payload or {}).get("deleted", 0))

    def _report(self, kind, ext, start, end, include_archived, lang) -> export.ExportFile:
        params: dict[str, Any] = {"lang": lang}
        if format_date(start):
            params["start"] = format_date(start)
        if format_date(end):
            params["end"] = format_date(end)
        if include_archived:
            params["include_archived"] = "true"
        response = self._request("GET", f"/export/{kind}", params=params)
        filename = _disposition_filename(response.headers.get("Content-Disposition"))
        return export.ExportFile(
            filename=filename or export.export_filename(ext, start, end, lang),
            content_type=response.headers.get("Content-Type", "application/octet-stream"),
            content=response.content,
        )

    def export_excel(
        self, start: Any = None, end: Any = None, include_archived: bool = False, lang: str = "zh"
    ) -> export.ExportFile:
        return self._report("excel", "xlsx", start, end, include_archived, lang)

    def export_pdf(
        self, start: Any = None, end: Any = None, include_archived: bool = False, lang: str = "zh"
    ) -> export.ExportFile:
        return self._report("pdf", "pdf", start, end, include_archived, lang)


def create_api(mode: Optional[str] = None, settings: Optional[Settings] = None) -> ProjectApi:
    """Build the ProjectApi for mode, falling back to the configured API_MODE."""
    settings = settings or get_settings()
    resolved = resolve_api_mode(mode or settings.api_mode)
    if resolved == "local":
        return LocalProjectApi.from_settings(settings)
    base_url = settings.api_base_test if resolved == "backend-test" else settings.api_base_prod
    logger.info("Using %s backend at %s", resolved, base_url or "<unset>")
    return HttpProjectApi(
        base_url,
        api_prefix=settings.api_prefix,
        timeout=settings.api_timeout,
        mode=resolved,
    )
