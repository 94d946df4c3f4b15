"""
Demo data for offline use: a handful of Auckland window/door installation jobs.
"""

from __future__ import annotations

import logging
import random
from datetime import date, timedelta
from typing import Optional

from project_tracker.fields import STAGE_ORDER
from project_tracker.projects import ProjectService
from project_tracker.status import STATUS_ORDER

logger = logging.getLogger(__name__)

AUCKLAND_ADDRESSES = (
    "12 Queen Street, Auckland CBD",
    "45 Ponsonby Road, Ponsonby",
    "8 Dominion Road, Mount Eden",
    "221 Great North Road, Grey Lynn",
    "17 Tamaki Drive, Mission Bay",
    "3 Lake Road, Takapuna",
    "96 Remuera Road, Remuera",
    "54 Hurstmere Road, Takapuna",
    "130 Jervois Road, Herne Bay",
    "27 Tui Street, Point Chevalier",
    "61 Main Highway, Ellerslie",
    "9 Victoria Road, Devonport",
)

CLIENT_NAMES = (
    "Aroha Ngata",
    "James Wilson",
    "Mei Chen",
    "Liam Thompson",
    "Priya Patel",
    "Wiremu Parata",
    "Sophie Brown",
    "Daniel Li",
    "Olivia Walker",
    "Hemi Tane",
)

SALES_PEOPLE = ("Tim", "Amy", "Ben", "Grace")
INSTALLERS = ("Peter", "Jack", "Liam", "Noah")
TEAM_MATES = ("Jack", "Liam", "Noah", "Oscar", "Leo", "Mason")
JOB_TYPES = (
    "Double glazing retrofit",
    "Aluminium joinery replacement",
    "Bifold door install",
    "Sliding door repair",
    "Skylight install",
    "Window frame repaint",
)


def _demo_values(rng: random.Random, month_start: date, index: int) -> dict:
    start = month_start + timedelta(days=rng.randint(0, 24))
    end = start + timedelta(days=rng.randint(0, 5))
    installer = rng.choice(INSTALLERS)
    team = [installer] + rng.sample([m for m in TEAM_MATES if m != installer], 1)
    stage_count = rng.randint(1, 3)
    stages = {stage: True for stage in rng.sample(list(STAGE_ORDER), stage_count)}
    glass_ordered = rng.random() < 0.6
    return {
        "name": f"{rng.choice(JOB_TYPES)} #{index}",
        "client_name": rng.choice(CLIENT_NAMES),
        "client_phone": f"021-{rng.randint(100000, 999999)}",
        "address": rng.choice(AUCKLAND_ADDRESSES),
        "sales_person": rng.choice(SALES_PEOPLE),
        "installer": installer,
        "team_members": ", ".join(team),
        "start_date": start.isoformat(),
        "end_date": end.isoformat(),
        "status": rng.choice(STATUS_ORDER).value,
        "today_task": "",
        "progress_note": "",
        "glass_ordered": glass_ordered,
        "glass_manufactured": glass_ordered and rng.random() < 0.5,
        "stages": stages,
    }


def seed_demo_projects(
    service: ProjectService,
    count: int = 10,
    *,
    seed: Optional[int] = None,
    today: Optional[date] = None,
) -> int:
    """
    Create demo projects until the store holds at least `count` projects.

    Returns the number of projects created, 0 when there were already enough.
    """
    existing = service.db.count_projects()
    missing = max(0, count - existing)
    if not missing:
        logger.info("Store already has %d projects; no demo data added", existing)
        return 0

    rng = random.Random(seed)
    month_start = (today or date.today()).replace(day=1)
    for offset in range(missing):
        service.create_project(_demo_values(rng, month_start, existing + offset + 1))
    logger.info("Seeded %d demo projects", missing)
    return missing
