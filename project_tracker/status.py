"""
Project status codes, their order and their display labels.

Older data and older clients carry Chinese labels instead of codes; these are
normalised to the canonical codes on the way in.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Optional


class ProjectStatus(StrEnum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FINAL_PAYMENT_RECEIVED = "final_payment_received"


STATUS_ORDER: tuple[ProjectStatus, ...] = (
    ProjectStatus.NOT_STARTED,
    ProjectStatus.IN_PROGRESS,
    ProjectStatus.COMPLETED,
    ProjectStatus.FINAL_PAYMENT_RECEIVED,
)

DEFAULT_STATUS = ProjectStatus.NOT_STARTED

LEGACY_LABELS: dict[str, ProjectStatus] = {
    "未开始": ProjectStatus.NOT_STARTED,
    "施工中": ProjectStatus.IN_PROGRESS,
    "完成": ProjectStatus.COMPLETED,
    "尾款已收到": ProjectStatus.FINAL_PAYMENT_RECEIVED,
}

STATUS_LABELS: dict[str, dict[ProjectStatus, str]] = {
    "zh": {
        ProjectStatus.NOT_STARTED: "未开始",
        ProjectStatus.IN_PROGRESS: "施工中",
        ProjectStatus.COMPLETED: "完成",
        ProjectStatus.FINAL_PAYMENT_RECEIVED: "尾款已收到",
    },
    "zh-TW": {
        ProjectStatus.NOT_STARTED: "未開始",
        ProjectStatus.IN_PROGRESS: "施工中",
        ProjectStatus.COMPLETED: "完成",
        ProjectStatus.FINAL_PAYMENT_RECEIVED: "尾款已收到",
    },
    "en": {
        ProjectStatus.NOT_STARTED: "Not started",
        ProjectStatus.IN_PROGRESS: "In progress",
        ProjectStatus.COMPLETED: "Completed",
        ProjectStatus.FINAL_PAYMENT_RECEIVED: "Final payment received",
    },
}

_CODES = {status.value: status for status in ProjectStatus}


def normalize_status(value):
    """
    Normalize a status value to its canonical code.

    Canonical codes are returned as-is and known legacy labels are mapped to
    the matching code. Anything else (including empty values) is returned
    unchanged so newer statuses pass through older code paths.
    """
    if not value:
        return value
    if isinstance(value, ProjectStatus):
        return value.value
    text = str(value).strip()
    if text in _CODES:
        return text
    legacy = LEGACY_LABELS.get(text)
    if legacy is not None:
        return legacy.value
    return value


def coerce_status(value) -> ProjectStatus:
    """Return the ProjectStatus for value, raising ValueError for unknown values."""
    if value is None or value == "":
        return DEFAULT_STATUS
    normalized = normalize_status(value)
    status = _CODES.get(normalized) if isinstance(normalized, str) else None
    if status is None:
        allowed = ", ".join(s.value for s in STATUS_ORDER)
        raise ValueError(f"Unknown status {value!r}; expected one of: {allowed}")
    return status


def status_rank(value) -> int:
    return STATUS_ORDER.index(coerce_status(value))


def status_label(value, lang: str = "zh") -> str:
    labels = STATUS_LABELS.get(lang) or STATUS_LABELS["zh"]
    normalized = normalize_status(value)
    status: Optional[ProjectStatus] = (
        _CODES.get(normalized) if isinstance(normalized, str) else None
    )
    if status is None:
        return str(value or "")
    return labels[status]
