"""
Project use cases shared by the HTTP routes and the offline client.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Optional, Union

from project_tracker import media as media_utils
from project_tracker.db import DbClient, MediaRecord, ProjectRecord
from project_tracker.fields import ProjectPage, check_date_order
from project_tracker.filters import ProjectFilters, apply_filters, in_range, paginate
from project_tracker.schemas import ProjectCreate, ProjectUpdate
from project_tracker.storage import StorageClient

logger = logging.getLogger(__name__)


class ProjectNotFound(LookupError):
    def __init__(self, project_id: Any):
        super().__init__(f"Project not found: {project_id}")
        self.project_id = project_id


class MediaNotFound(LookupError):
    def __init__(self, project_id: Any, token: str):
        super().__init__(f"Media {token} not found for project {project_id}")
        self.project_id = project_id
        self.token = token


class ProjectService:
    """CRUD, archival and attachment handling on top of a DbClient and storage."""

    def __init__(
        self,
        db: DbClient,
        storage: StorageClient,
        *,
        photo_target_bytes: int = 100 * 1024,
        max_upload_bytes: int = 50 * 1024 * 1024,
        max_page_size: int = 100,
    ):
        self.db = db
        self.storage = storage
        self.photo_target_bytes = photo_target_bytes
        self.max_upload_bytes = max_upload_bytes
        self.max_page_size = max_page_size

    # Projects

    def list_projects(self, filters: Optional[ProjectFilters] = None) -> ProjectPage:
        filters = filters or ProjectFilters()
        page_size = min(max(1, filters.page_size), self.max_page_size)
        rows = [p.as_dict() for p in self.db.list_projects()]
        matched = apply_filters(rows, filters)
        return paginate(matched, filters.page, page_size)

    def get_project(self, project_id: int) -> ProjectRecord:
        record = self.db.get_project(project_id)
        if not record:
            raise ProjectNotFound(project_id)
        return record

    def create_project(self, values: Union[ProjectCreate, dict]) -> ProjectRecord:
        payload = values if isinstance(values, ProjectCreate) else ProjectCreate.model_validate(values)
        record = self.db.create_project(payload.to_values())
        logger.info("Created project %s (%s)", record.project_code, record.name)
        return record

    def update_project(
        self, project_id: int, values: Union[ProjectUpdate, dict]
    ) -> ProjectRecord:
        payload = values if isinstance(values, ProjectUpdate) else ProjectUpdate.model_validate(values)
        changes = payload.to_values()
        current = self.get_project(project_id)

        start = changes.get("start_date", current.start_date)
        end = changes.get("end_date", current.end_date)
        check_date_order(start, end)

        ordered = changes.get("glass_ordered", current.glass_ordered)
        manufactured = changes.get("glass_manufactured", current.glass_manufactured)
        if manufactured and not ordered:
            changes["glass_manufactured"] = False

        record = self.db.update_project(project_id, changes)
        if not record:
            raise ProjectNotFound(project_id)
        return record

    def archive_project(self, project_id: int, archived: bool = True) -> ProjectRecord:
        record = self.update_project(project_id, {"archived": archived})
        logger.info(
            "%s project %s", "Archived" if archived else "Unarchived", record.project_code
        )
        return record

    def delete_project(self, project_id: int) -> None:
        self.get_project(project_id)
        for item in self.db.list_media(project_id):
            self._delete_object(item)
        if not self.db.delete_project(project_id):
            raise ProjectNotFound(project_id)
        logger.info("Deleted project %s", project_id)

    def projects_in_range(
        self, start: Any = None, end: Any = None, include_archived: bool = False
    ) -> list[dict]:
        return [
            p.as_dict()
            for p in self.db.list_projects()
            if (include_archived or not p.archived) and in_range(p.as_dict(), start, end)
        ]

    # Media

    def media_url(self, path: str) -> str:
        return self.storage.url_for(path)

    def media_as_dict(self, item: MediaRecord) -> dict:
        data = item.as_dict()
        data["url"] = self.media_url(item.storage_path)
        return data

    def add_media(
        self,
        project_id: int,
        filename: str,
        data: bytes,
        content_type: Optional[str] = None,
    ) -> MediaRecord:
        self.get_project(project_id)
        if not data:
            raise ValueError("Uploaded file is empty")
        if len(data) > self.max_upload_bytes:
            raise ValueError(
                f"Uploaded file is {len(data)} bytes; limit is {self.max_upload_bytes}"
            )

        kind = media_utils.media_kind(filename, content_type)
        content_type = media_utils.resolve_content_type(filename, content_type)
        if kind == "image":
            data, filename, content_type = media_utils.compress_image(
                data, filename, self.photo_target_bytes, content_type
            )

        token = uuid.uuid4().hex
        path = media_utils.storage_path(project_id, token, filename, content_type)
        self.storage.put_bytes(path, data, content_type)
        record = MediaRecord(
            token=token,
            project_id=project_id,
            filename=filename,
            content_type=content_type,
            kind=kind,
            size=len(data),
            storage_path=path,
        )
        self.db.add_media(record)
        if kind == "image":
            self.db.update_project(project_id, {"photo_url": self.media_url(path)})
        logger.info("Stored %s %s for project %s (%d bytes)", kind, path, project_id, len(data))
        return record

    def list_media(self, project_id: int) -> list[MediaRecord]:
        self.get_project(project_id)
        return self.db.list_media(project_id)

    def delete_media(self, project_id: int, token: str) -> MediaRecord:
        self.get_project(project_id)
        record = self.db.delete_media(project_id, token)
        if not record:
            raise MediaNotFound(project_id, token)
        self._delete_object(record)
        self._refresh_photo_url(project_id)
        return record

    def delete_all_media(self, project_id: int) -> list[MediaRecord]:
        self.get_project(project_id)
        removed = self.db.delete_all_media(project_id)
        for item in removed:
            self._delete_object(item)
        self._refresh_photo_url(project_id)
        return removed

    def _refresh_photo_url(self, project_id: int) -> None:
        images = [m for m in self.db.list_media(project_id) if m.kind == "image"]
        url = self.media_url(images[-1].storage_path) if images else ""
        self.db.update_project(project_id, {"photo_url": url})

    def _delete_object(self, item: MediaRecord) -> None:
        try:
            self.storage.delete(item.storage_path)
        except FileNotFoundError:
            logger.warning("Media object already gone: %s", item.storage_path)
