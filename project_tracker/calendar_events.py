"""
Calendar feed: one all-day event per project.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Iterable

from project_tracker.fields import STAGE_ORDER, parse_date
from project_tracker.status import normalize_status

STAGE_LABELS: dict[str, dict[str, str]] = {
    "zh": {
        "repair": "维修",
        "install": "安装",
        "transport": "运输",
        "purchase": "采购",
        "frame": "框架",
        "glass": "玻璃",
    },
    "en": {
        "repair": "Repair",
        "install": "Install",
        "transport": "Transport",
        "purchase": "Purchase",
        "frame": "Frame",
        "glass": "Glass",
    },
}


def first_stage(stages: dict) -> str | None:
    stages = stages or {}
    for key in STAGE_ORDER:
        if stages.get(key):
            return key
    return None


def to_event(project: dict, lang: str = "zh") -> dict:
    labels = STAGE_LABELS.get(lang) or STAGE_LABELS["zh"]
    stage = first_stage(project.get("stages"))
    label = labels[stage] if stage else ""
    start = parse_date(project.get("start_date"))
    end = parse_date(project.get("end_date"))
    return {
        "id": str(project.get("id")),
        "title": f"{project.get('installer') or '-'} / {label or '-'}",
        "start": start.isoformat() if start else None,
        # Calendar end dates are exclusive.
        "end": (end + timedelta(days=1)).isoformat() if end else None,
        "all_day": True,
        "status": normalize_status(project.get("status")) or "",
    }


def to_events(projects: Iterable[dict], lang: str = "zh") -> list[dict]:
    return [to_event(p, lang) for p in projects or []]
