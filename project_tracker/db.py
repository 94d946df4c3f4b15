"""
Database abstraction: SQLAlchemy, a JSON file store and an in-memory store.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional, Protocol

from dacite import Config, DaciteError, from_dict
from sqlalchemy import JSON, Boolean, Column, Integer, String, Text, create_engine, select
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from project_tracker.fields import normalize_project

logger = logging.getLogger(__name__)

LOCAL_STORE_KEY = "rw_projects"
LOCAL_MEDIA_KEY = "rw_media"

# Fields a client may change after creation.
MUTABLE_FIELDS: tuple[str, ...] = (
    "name",
    "client_name",
    "client_phone",
    "address",
    "sales_person",
    "installer",
    "team_members",
    "start_date",
    "end_date",
    "status",
    "today_task",
    "progress_note",
    "change_note",
    "glass_ordered",
    "glass_manufactured",
    "stages",
    "archived",
    "photo_url",
)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def format_project_code(project_id: int) -> str:
    return f"P-{project_id:03d}"


class DbClient(Protocol):
    """Interface for project and media persistence."""

    def create_project(self, values: dict) -> "ProjectRecord":
        ...

    def get_project(self, project_id: int) -> Optional["ProjectRecord"]:
        ...

    def list_projects(self) -> list["ProjectRecord"]:
        ...

    def count_projects(self) -> int:
        ...

    def update_project(
        self, project_id: int, changes: dict
    ) -> Optional["ProjectRecord"]:
        ...

    def delete_project(self, project_id: int) -> bool:
        ...

    def add_media(self, media: "MediaRecord") -> None:
        ...

    def list_media(self, project_id: int) -> list["MediaRecord"]:
        ...

    def delete_media(self, project_id: int, token: str) -> Optional["MediaRecord"]:
        ...

    def delete_all_media(self, project_id: int) -> list["MediaRecord"]:
        ...


@dataclass
class ProjectRecord:
    id: int
    project_code: str
    name: str = ""
    client_name: str = ""
    client_phone: str = ""
    address: str = ""
    sales_person: str = ""
    installer: str = ""
    team_members: str = ""
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    status: str = "not_started"
    today_task: str = ""
    progress_note: str = ""
    change_note: str = ""
    glass_ordered: bool = False
    glass_manufactured: bool = False
    stages: dict = field(default_factory=dict)
    archived: bool = False
    photo_url: str = ""
    created_at: str = field(default_factory=_now_iso)
    updated_at: str = field(default_factory=_now_iso)

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass
class MediaRecord:
    token: str
    project_id: int
    filename: str
    content_type: str
    kind: str
    size: int
    storage_path: str
    created_at: str = field(default_factory=_now_iso)

    def as_dict(self) -> dict:
        return asdict(self)


def _apply_changes(record: ProjectRecord, changes: dict) -> ProjectRecord:
    for key in MUTABLE_FIELDS:
        if key in changes:
            setattr(record, key, changes[key])
    record.updated_at = _now_iso()
    return record


class InMemoryDbClient:
    """Simple in-memory database for development and tests."""

    def __init__(self):
        self.projects: Dict[int, ProjectRecord] = {}
        self.media: Dict[str, MediaRecord] = {}

    def _next_id(self) -> int:
        return max(self.projects, default=0) + 1

    def create_project(self, values: dict) -> ProjectRecord:
        project_id = self._next_id()
        record = ProjectRecord(id=project_id, project_code=format_project_code(project_id))
        _apply_changes(record, values)
        record.updated_at = record.created_at
        self.projects[project_id] = record
        return record

    def get_project(self, project_id: int) -> Optional[ProjectRecord]:
        return self.projects.get(project_id)

    def list_projects(self) -> list[ProjectRecord]:
        return [self.projects[key] for key in sorted(self.projects)]

    def count_projects(self) -> int:
        return len(self.projects)

    def update_project(self, project_id: int, changes: dict) -> Optional[ProjectRecord]:
        record = self.projects.get(project_id)
        if not record:
            return None
        return _apply_changes(record, changes)

    def delete_project(self, project_id: int) -> bool:
        if project_id not in self.projects:
            return False
        del self.projects[project_id]
        for token in [t for t, m in self.media.items() if m.project_id == project_id]:
            del self.media[token]
        return True

    def add_media(self, media: MediaRecord) -> None:
        self.media[media.token] = media

    def list_media(self, project_id: int) -> list[MediaRecord]:
        items = [m for m in self.media.values() if m.project_id == project_id]
        return sorted(items, key=lambda m: m.created_at)

    def delete_media(self, project_id: int, token: str) -> Optional[MediaRecord]:
        media = self.media.get(token)
        if not media or media.project_id != project_id:
            return None
        return self.media.pop(token)

    def delete_all_media(self, project_id: int) -> list[MediaRecord]:
        removed = self.list_media(project_id)
        for media in removed:
            self.media.pop(media.token, None)
        return removed

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        self.projects.clear()
        self.media.clear()


class JsonFileDbClient(InMemoryDbClient):
    """
    File-backed store for offline use.

    The file holds the same records the dashboard keeps in the browser under
    the `rw_projects` key. A bare JSON array (the browser export format) is
    accepted on load; saves always write an object with projects and media.
    Entries that cannot be rebuilt are logged and skipped. Every change and
    its save happen under one lock.
    """

    _dacite_config = Config(check_types=False)

    def __init__(self, path: str):
        super().__init__()
        self.path = path
        self._lock = threading.RLock()
        self._load()

    def _load(self) -> None:
        if not os.path.exists(self.path):
            return
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, json.JSONDecodeError):
            logger.exception("Could not read local store %s; starting empty", self.path)
            return

        if isinstance(raw, list):
            raw_projects, raw_media = raw, []
        elif isinstance(raw, dict):
            raw_projects = raw.get(LOCAL_STORE_KEY) or []
            raw_media = raw.get(LOCAL_MEDIA_KEY) or []
        else:
            logger.error(
                "Local store %s holds %s, not a project list; starting empty",
                self.path,
                type(raw).__name__,
            )
            return

        for item in raw_projects:
            record = self._record_from_raw(item)
            if record:
                self.projects[record.id] = record
        for item in raw_media:
            media = self._media_from_raw(item)
            if media:
                self.media[media.token] = media

    def _record_from_raw(self, item: dict) -> Optional[ProjectRecord]:
        if not isinstance(item, dict):
            logger.warning("Skipping stored project that is not an object: %r", item)
            return None
        data = normalize_project(item)
        if not isinstance(data.get("id"), int):
            logger.warning("Skipping stored project without a numeric id: %r", item)
            return None
        data.setdefault("project_code", format_project_code(data["id"]))
        if not data.get("status"):
            data.pop("status", None)
        return from_dict(ProjectRecord, data, config=self._dacite_config)

    def _media_from_raw(self, item: dict) -> Optional[MediaRecord]:
        if not isinstance(item, dict):
            logger.warning("Skipping stored media entry that is not an object: %r", item)
            return None
        try:
            return from_dict(MediaRecord, item, config=self._dacite_config)
        except DaciteError as exc:
            logger.warning("Skipping stored media entry %r: %s", item, exc)
            return None

    def _save(self) -> None:
        payload = {
            LOCAL_STORE_KEY: [p.as_dict() for p in self.list_projects()],
            LOCAL_MEDIA_KEY: [m.as_dict() for m in self.media.values()],
        }
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, suffix=".tmp")
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(payload, f, ensure_ascii=False, indent=2)
        os.replace(tmp_path, self.path)

    def list_projects(self) -> list[ProjectRecord]:
        with self._lock:
            return super().list_projects()

    def list_media(self, project_id: int) -> list[MediaRecord]:
        with self._lock:
            return super().list_media(project_id)

    def create_project(self, values: dict) -> ProjectRecord:
        with self._lock:
            record = super().create_project(values)
            self._save()
            return record

    def update_project(self, project_id: int, changes: dict) -> Optional[ProjectRecord]:
        with self._lock:
            record = super().update_project(project_id, changes)
            if record:
                self._save()
            return record

    def delete_project(self, project_id: int) -> bool:
        with self._lock:
            deleted = super().delete_project(project_id)
            if deleted:
                self._save()
            return deleted

    def add_media(self, media: MediaRecord) -> None:
        with self._lock:
            super().add_media(media)
            self._save()

    def delete_media(self, project_id: int, token: str) -> Optional[MediaRecord]:
        with self._lock:
            media = super().delete_media(project_id, token)
            if media:
                self._save()
            return media

    def delete_all_media(self, project_id: int) -> list[MediaRecord]:
        with self._lock:
            removed = super().delete_all_media(project_id)
            if removed:
                self._save()
            return removed

    def reset(self) -> None:
        with self._lock:
            super().reset()
            self._save()


class SqlDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlDbClient")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    def _to_project_record(self, row: "ProjectRow") -> ProjectRecord:
        return ProjectRecord(
            id=row.id,
            project_code=row.project_code,
            name=row.name or "",
            client_name=row.client_name or "",
            client_phone=row.client_phone or "",
            address=row.address or "",
            sales_person=row.sales_person or "",
            installer=row.installer or "",
            team_members=row.team_members or "",
            start_date=row.start_date,
            end_date=row.end_date,
            status=row.status,
            today_task=row.today_task or "",
            progress_note=row.progress_note or "",
            change_note=row.change_note or "",
            glass_ordered=bool(row.glass_ordered),
            glass_manufactured=bool(row.glass_manufactured),
            stages=dict(row.stages or {}),
            archived=bool(row.archived),
            photo_url=row.photo_url or "",
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def _to_media_record(self, row: "MediaRow") -> MediaRecord:
        return MediaRecord(
            token=row.token,
            project_id=row.project_id,
            filename=row.filename,
            content_type=row.content_type,
            kind=row.kind,
            size=row.size,
            storage_path=row.storage_path,
            created_at=row.created_at,
        )

    def create_project(self, values: dict) -> ProjectRecord:
        now = _now_iso()
        with self.Session() as session:
            row = ProjectRow(project_code="", created_at=now, updated_at=now)
            for key in MUTABLE_FIELDS:
                if key in values:
                    setattr(row, key, values[key])
            if not row.status:
                row.status = "not_started"
            session.add(row)
            session.flush()
            row.project_code = format_project_code(row.id)
            session.commit()
            session.refresh(row)
            return self._to_project_record(row)

    def get_project(self, project_id: int) -> Optional[ProjectRecord]:
        with self.Session() as session:
            row = session.get(ProjectRow, project_id)
            if not row:
                return None
            return self._to_project_record(row)

    def list_projects(self) -> list[ProjectRecord]:
        with self.Session() as session:
            rows = session.execute(select(ProjectRow).order_by(ProjectRow.id.asc())).scalars()
            return [self._to_project_record(row) for row in rows]

    def count_projects(self) -> int:
        with self.Session() as session:
            return session.query(ProjectRow).count()

    def update_project(self, project_id: int, changes: dict) -> Optional[ProjectRecord]:
        with self.Session() as session:
            row = session.get(ProjectRow, project_id)
            if not row:
                return None
            for key in MUTABLE_FIELDS:
                if key in changes:
                    setattr(row, key, changes[key])
            row.updated_at = _now_iso()
            session.commit()
            session.refresh(row)
            return self._to_project_record(row)

    def delete_project(self, project_id: int) -> bool:
        with self.Session() as session:
            row = session.get(ProjectRow, project_id)
            if not row:
                return False
            session.query(MediaRow).filter(MediaRow.project_id == project_id).delete(
                synchronize_session=False
            )
            session.delete(row)
            session.commit()
            return True

    def add_media(self, media: MediaRecord) -> None:
        with self.Session() as session:
            session.add(
                MediaRow(
                    token=media.token,
                    project_id=media.project_id,
                    filename=media.filename,
                    content_type=media.content_type,
                    kind=media.kind,
                    size=media.size,
                    storage_path=media.storage_path,
                    created_at=media.created_at,
                )
            )
            session.commit()

    def list_media(self, project_id: int) -> list[MediaRecord]:
        with self.Session() as session:
            rows = (
                session.query(MediaRow)
                .filter(MediaRow.project_id == project_id)
                .order_by(MediaRow.created_at.asc())
                .all()
            )
            return [self._to_media_record(row) for row in rows]

    def delete_media(self, project_id: int, token: str) -> Optional[MediaRecord]:
        with self.Session() as session:
            row = session.get(MediaRow, token)
            if not row or row.project_id != project_id:
                return None
            record = self._to_media_record(row)
            session.delete(row)
            session.commit()
            return record

    def delete_all_media(self, project_id: int) -> list[MediaRecord]:
        removed = self.list_media(project_id)
        if not removed:
            return removed
        with self.Session() as session:
            session.query(MediaRow).filter(MediaRow.project_id == project_id).delete(
                synchronize_session=False
            )
            session.commit()
        return removed


Base = declarative_base()


class ProjectRow(Base):
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_code = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False, default="")
    client_name = Column(String, nullable=False, default="")
    client_phone = Column(String, nullable=False, default="")
    address = Column(String, nullable=False, default="")
    sales_person = Column(String, nullable=False, default="")
    installer = Column(String, nullable=False, default="")
    team_members = Column(String, nullable=False, default="")
    start_date = Column(String(10), nullable=True, index=True)
    end_date = Column(String(10), nullable=True, index=True)
    status = Column(String, nullable=False, default="not_started", index=True)
    today_task = Column(Text, nullable=False, default="")
    progress_note = Column(Text, nullable=False, default="")
    change_note = Column(Text, nullable=False, default="")
    glass_ordered = Column(Boolean, nullable=False, default=False)
    glass_manufactured = Column(Boolean, nullable=False, default=False)
    stages = Column(JSON, nullable=False, default=dict)
    archived = Column(Boolean, nullable=False, default=False, index=True)
    photo_url = Column(String, nullable=False, default="")
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)


class MediaRow(Base):
    __tablename__ = "project_media"

    token = Column(String, primary_key=True)
    project_id = Column(Integer, nullable=False, index=True)
    filename = Column(String, nullable=False)
    content_type = Column(String, nullable=False)
    kind = Column(String, nullable=False)
    size = Column(Integer, nullable=False)
    storage_path = Column(String, nullable=False)
    created_at = Column(String, nullable=False)
