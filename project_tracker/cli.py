"""
Command-line access to projects, in local or backend mode.

Examples:
  project-tracker list --q ponsonby --include-archived
  project-tracker create --name "Bifold door install" --installer Peter --start 2026-10-01 --end 2026-10-03
  project-tracker --mode backend-test upload 3 ./site.jpg
  project-tracker export excel --start 2026-10-01 --end 2026-10-31 --out report.xlsx
"""

from __future__ import annotations

import argparse
import json
import logging
import mimetypes
import os
import sys

from project_tracker.client import ApiError, LocalProjectApi, create_api
from project_tracker.config import get_settings
from project_tracker.projects import MediaNotFound, ProjectNotFound

logger = logging.getLogger(__name__)

PROJECT_OPTIONS = (
    ("name", "Project name"),
    ("client_name", "Client name"),
    ("client_phone", "Client phone"),
    ("address", "Site address"),
    ("sales_person", "Sales person"),
    ("installer", "Lead installer"),
    ("team_members", "Team members, comma separated"),
    ("status", "Status code or legacy label"),
    ("today_task", "Today's task"),
    ("progress_note", "Progress note"),
    ("change_note", "Change note"),
)


def _print_json(value) -> None:
    print(json.dumps(value, ensure_ascii=False, indent=2, default=str))


def _add_project_options(parser: argparse.ArgumentParser) -> None:
    for key, help_text in PROJECT_OPTIONS:
        parser.add_argument(f"--{key.replace('_', '-')}", dest=key, default=None, help=help_text)
    parser.add_argument("--start", dest="start_date", default=None, help="Start date (YYYY-MM-DD)")
    parser.add_argument("--end", dest="end_date", default=None, help="End date (YYYY-MM-DD)")
    parser.add_argument(
        "--stage",
        dest="stages",
        action="append",
        default=None,
        help="Stage to mark done (repeatable): repair, install, transport, purchase, frame, glass",
    )
    parser.add_argument("--glass-ordered", dest="glass_ordered", action="store_true", default=None)
    parser.add_argument(
        "--glass-manufactured", dest="glass_manufactured", action="store_true", default=None
    )


def _project_values(args: argparse.Namespace) -> dict:
    values = {}
    for key, _ in PROJECT_OPTIONS:
        if getattr(args, key) is not None:
            values[key] = getattr(args, key)
    for key in ("start_date", "end_date", "glass_ordered", "glass_manufactured"):
        if getattr(args, key) is not None:
            values[key] = getattr(args, key)
    if args.stages:
        values["stages"] = {stage: True for stage in args.stages}
    return values


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Project tracker")
    parser.add_argument(
        "--mode",
        default=None,
        help="local, backend-test or backend-prod (defaults to API_MODE)",
    )
    parser.add_argument("--verbose", action="store_true", help="Log at DEBUG level")
    sub = parser.add_subparsers(dest="command", required=True)

    list_cmd = sub.add_parser("list", help="List projects")
    list_cmd.add_argument("--q", default=None, help="Search code, name, client and address")
    list_cmd.add_argument("--status", default=None)
    list_cmd.add_argument("--start", default=None)
    list_cmd.add_argument("--end", default=None)
    list_cmd.add_argument("--include-archived", action="store_true")
    list_cmd.add_argument("--page", type=int, default=1)
    list_cmd.add_argument("--page-size", type=int, default=None)

    show_cmd = sub.add_parser("show", help="Show one project")
    show_cmd.add_argument("project_id", type=int)

    create_cmd = sub.add_parser("create", help="Create a project")
    _add_project_options(create_cmd)

    update_cmd = sub.add_parser("update", help="Update fields of a project")
    update_cmd.add_argument("project_id", type=int)
    _add_project_options(update_cmd)

    for name, help_text in (("archive", "Archive a project"), ("unarchive", "Restore a project")):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("project_id", type=int)

    delete_cmd = sub.add_parser("delete", help="Delete a project and its media")
    delete_cmd.add_argument("project_id", type=int)

    upload_cmd = sub.add_parser("upload", help="Attach a photo or video")
    upload_cmd.add_argument("project_id", type=int)
    upload_cmd.add_argument("path")

    photos_cmd = sub.add_parser("photos", help="List or delete attachments")
    photos_cmd.add_argument("project_id", type=int)
    photos_cmd.add_argument("--delete", metavar="TOKEN", default=None)
    photos_cmd.add_argument("--delete-all", action="store_true")

    export_cmd = sub.add_parser("export", help="Export the schedule")
    export_cmd.add_argument("format", choices=("excel", "pdf"))
    export_cmd.add_argument("--start", default=None)
    export_cmd.add_argument("--end", default=None)
    export_cmd.add_argument("--include-archived", action="store_true")
    export_cmd.add_argument("--lang", choices=("zh", "en"), default="zh")
    export_cmd.add_argument("--out", default=None, help="Output path (defaults to the report name)")

    seed_cmd = sub.add_parser("seed", help="Fill the local store with demo projects")
    seed_cmd.add_argument("--count", type=int, default=10)
    seed_cmd.add_argument("--seed", type=int, default=None)

    return parser


def run(args: argparse.Namespace) -> int:
    settings = get_settings()
    api = create_api(args.mode, settings)

    if args.command == "list":
        page = api.list_projects(
            q=args.q,
            status=args.status,
            start=args.start,
            end=args.end,
            include_archived=args.include_archived,
            page=args.page,
            page_size=args.page_size or settings.default_page_size,
        )
        _print_json(page.as_dict())
    elif args.command == "show":
        _print_json(api.get_project(args.project_id))
    elif args.command == "create":
        _print_json(api.create_project(_project_values(args)))
    elif args.command == "update":
        _print_json(api.update_project(args.project_id, _project_values(args)))
    elif args.command in ("archive", "unarchive"):
        _print_json(api.archive_project(args.project_id, args.command == "archive"))
    elif args.command == "delete":
        api.delete_project(args.project_id)
        logger.info("Deleted project %s", args.project_id)
    elif args.command == "upload":
        with open(args.path, "rb") as f:
            data = f.read()
        content_type = mimetypes.guess_type(args.path)[0]
        _print_json(
            api.upload_photo(args.project_id, os.path.basename(args.path), data, content_type)
        )
    elif args.command == "photos":
        if args.delete_all:
            _print_json({"deleted": api.delete_all_photos(args.project_id)})
        elif args.delete:
            api.delete_photo(args.project_id, args.delete)
        else:
            _print_json(api.list_photos(args.project_id))
    elif args.command == "export":
        build = api.export_excel if args.format == "excel" else api.export_pdf
        report = build(args.start, args.end, args.include_archived, args.lang)
        out = args.out or report.filename
        with open(out, "wb") as f:
            f.write(report.content)
        logger.info("Wrote %s (%d bytes)", out, len(report.content))
    elif args.command == "seed":
        if not isinstance(api, LocalProjectApi):
            logger.error("Demo data can only be seeded in local mode")
            return 2
        created = api.seed_demo_projects(args.count, seed=args.seed)
        _print_json({"created": created})
    return 0


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    level = logging.DEBUG if args.verbose else get_settings().log_level.upper()
    logging.basicConfig(level=level, format="%(levelname)s:%(message)s")
    try:
        return run(args)
    except (ProjectNotFound, MediaNotFound, ApiError) as exc:
        logger.error("%s", exc)
        return 1
    except ValueError as exc:
        logger.error("Invalid input: %s", exc)
        return 2


if __name__ == "__main__":
    sys.exit(main())
