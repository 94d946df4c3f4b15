import json
import os
import tempfile
import unittest
from concurrent.futures import ThreadPoolExecutor

from project_tracker.db import (
    InMemoryDbClient,
    JsonFileDbClient,
    MediaRecord,
    SqlDbClient,
)


def _media(token, project_id, created_at, kind="image"):
    return MediaRecord(
        token=token,
        project_id=project_id,
        filename=f"{token}.jpg",
        content_type="image/jpeg",
        kind=kind,
        size=10,
        storage_path=f"projects/{project_id}/media/{token}.jpg",
        created_at=created_at,
    )


class DbClientContract:
    """Behaviour every DbClient implementation shares."""

    def make_db(self):
        raise NotImplementedError

    def setUp(self):
        self.db = self.make_db()

    def test_create_assigns_id_and_code(self):
        first = self.db.create_project({"name": "Deck", "installer": "Peter"})
        second = self.db.create_project({"name": "Fence"})
        self.assertEqual((first.id, first.project_code), (1, "P-001"))
        self.assertEqual((second.id, second.project_code), (2, "P-002"))
        self.assertEqual(first.installer, "Peter")
        self.assertEqual(first.status, "not_started")
        self.assertEqual(first.created_at, first.updated_at)

    def test_codes_stay_unique_after_delete(self):
        self.db.create_project({"name": "A"})
        self.db.create_project({"name": "B"})
        self.assertTrue(self.db.delete_project(1))
        third = self.db.create_project({"name": "C"})
        codes = [p.project_code for p in self.db.list_projects()]
        self.assertEqual(len(codes), len(set(codes)))
        self.assertEqual(third.project_code, f"P-{third.id:03d}")

    def test_get_list_and_count(self):
        self.db.create_project({"name": "A"})
        self.db.create_project({"name": "B"})
        self.assertEqual(self.db.get_project(2).name, "B")
        self.assertIsNone(self.db.get_project(42))
        self.assertEqual([p.id for p in self.db.list_projects()], [1, 2])
        self.assertEqual(self.db.count_projects(), 2)

    def test_update_changes_only_given_fields(self):
        created = self.db.create_project({"name": "Deck", "address": "3 Lake Road"})
        updated = self.db.update_project(
            created.id,
            {"status": "in_progress", "stages": {"install": True}, "id": 99},
        )
        self.assertEqual(updated.id, created.id)
        self.assertEqual(updated.status, "in_progress")
        self.assertEqual(updated.stages, {"install": True})
        self.assertEqual(updated.address, "3 Lake Road")
        self.assertIsNone(self.db.update_project(42, {"name": "x"}))

    def test_delete_missing_project(self):
        self.assertFalse(self.db.delete_project(42))

    def test_media_lifecycle(self):
        self.db.create_project({"name": "A"})
        self.db.create_project({"name": "B"})
        self.db.add_media(_media("t1", 1, "2026-10-01T00:00:00+00:00"))
        self.db.add_media(_media("t2", 1, "2026-10-01T00:00:01+00:00", kind="video"))
        self.db.add_media(_media("t3", 2, "2026-10-01T00:00:02+00:00"))

        self.assertEqual([m.token for m in self.db.list_media(1)], ["t1", "t2"])
        self.assertIsNone(self.db.delete_media(2, "t1"))
        self.assertEqual(self.db.delete_media(1, "t1").token, "t1")
        self.assertEqual([m.token for m in self.db.list_media(1)], ["t2"])

        removed = self.db.delete_all_media(1)
        self.assertEqual([m.token for m in removed], ["t2"])
        self.assertEqual(self.db.list_media(1), [])
        self.assertEqual(len(self.db.list_media(2)), 1)

    def test_delete_project_removes_media(self):
        self.db.create_project({"name": "A"})
        self.db.add_media(_media("t1", 1, "2026-10-01T00:00:00+00:00"))
        self.db.delete_project(1)
        self.assertEqual(self.db.list_media(1), [])


class InMemoryDbClientTests(DbClientContract, unittest.TestCase):
    def make_db(self):
        return InMemoryDbClient()

    def test_reset(self):
        self.db.create_project({"name": "A"})
        self.db.reset()
        self.assertEqual(self.db.count_projects(), 0)


class SqlDbClientTests(DbClientContract, unittest.TestCase):
    """
    Uses SQLite via SQLAlchemy URL for fast/local testing of the SQL client logic.
    """

    def make_db(self):
        return SqlDbClient("sqlite+pysqlite:///:memory:")

    def test_requires_url(self):
        with self.assertRaises(ValueError):
            SqlDbClient("")


class JsonFileDbClientTests(DbClientContract, unittest.TestCase):
    def make_db(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)
        self.path = os.path.join(self.tmpdir.name, "store", "rw_projects.json")
        return JsonFileDbClient(self.path)

    def test_persists_across_instances(self):
        self.db.create_project({"name": "Deck", "stages": {"glass": True}})
        self.db.add_media(_media("t1", 1, "2026-10-01T00:00:00+00:00"))

        reopened = JsonFileDbClient(self.path)
        project = reopened.get_project(1)
        self.assertEqual(project.name, "Deck")
        self.assertEqual(project.stages, {"glass": True})
        self.assertEqual([m.token for m in reopened.list_media(1)], ["t1"])

        with open(self.path, encoding="utf-8") as f:
            raw = json.load(f)
        self.assertEqual(sorted(raw), ["rw_media", "rw_projects"])

    def test_loads_legacy_array(self):
        legacy = [
            {
                "id": 3,
                "name": "旧项目",
                "client": "Hemi",
                "isArchived": True,
                "status": "施工中",
                "dates": ["2026-09-01", "2026-09-04"],
            },
            {"name": "no id"},
        ]
        os.makedirs(os.path.dirname(self.path), exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(legacy, f, ensure_ascii=False)

        db = JsonFileDbClient(self.path)
        self.assertEqual(db.count_projects(), 1)
        project = db.get_project(3)
        self.assertEqual(project.project_code, "P-003")
        self.assertEqual(project.client_name, "Hemi")
        self.assertEqual(project.status, "in_progress")
        self.assertEqual((project.start_date, project.end_date), ("2026-09-01", "2026-09-04"))
        self.assertTrue(project.archived)
        self.assertEqual(db.create_project({"name": "next"}).id, 4)

    def test_unreadable_file_starts_empty(self):
        os.makedirs(os.path.dirname(self.path), exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            f.write("{not json")
        with self.assertLogs("project_tracker.db", level="ERROR"):
            db = JsonFileDbClient(self.path)
        self.assertEqual(db.count_projects(), 0)

    def test_malformed_media_entries_are_skipped(self):
        stored = {
            "rw_projects": [{"id": 1, "name": "Deck"}],
            "rw_media": [
                {"token": "broken", "project_id": 1},
                "not an object",
                _media("t1", 1, "2026-10-01T00:00:00+00:00").as_dict(),
            ],
        }
        os.makedirs(os.path.dirname(self.path), exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(stored, f)
        with self.assertLogs("project_tracker.db", level="WARNING"):
            db = JsonFileDbClient(self.path)
        self.assertEqual(db.get_project(1).name, "Deck")
        self.assertEqual([m.token for m in db.list_media(1)], ["t1"])

    def test_unexpected_json_root_starts_empty(self):
        os.makedirs(os.path.dirname(self.path), exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump("x", f)
        with self.assertLogs("project_tracker.db", level="ERROR"):
            db = JsonFileDbClient(self.path)
        self.assertEqual(db.count_projects(), 0)
        self.assertEqual(db.create_project({"name": "first"}).id, 1)

    def test_concurrent_creates_get_distinct_ids(self):
        with ThreadPoolExecutor(max_workers=8) as pool:
            records = list(
                pool.map(lambda i: self.db.create_project({"name": f"job {i}"}), range(40))
            )
        self.assertEqual(sorted(r.id for r in records), list(range(1, 41)))
        self.assertEqual(JsonFileDbClient(self.path).count_projects(), 40)


if __name__ == "__main__":
    unittest.main()
