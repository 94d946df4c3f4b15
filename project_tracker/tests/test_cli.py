import contextlib
import io
import json
import os
import tempfile
import unittest
from unittest.mock import patch

from project_tracker.cli import main
from project_tracker.config import Settings


class CliTests(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)
        settings = Settings(
            api_mode="local",
            data_file=os.path.join(self.tmpdir.name, "rw_projects.json"),
            media_dir=os.path.join(self.tmpdir.name, "uploads"),
        )
        patcher = patch("project_tracker.cli.get_settings", return_value=settings)
        patcher.start()
        self.addCleanup(patcher.stop)

    def _run(self, *argv):
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            code = main(list(argv))
        return code, out.getvalue()

    def test_create_update_and_list(self):
        code, out = self._run(
            "create", "--name", "Bifold door", "--installer", "Peter",
            "--start", "2026-10-01", "--end", "2026-10-03", "--stage", "install",
        )
        self.assertEqual(code, 0)
        created = json.loads(out)
        self.assertEqual(created["project_code"], "P-001")
        self.assertEqual(created["stages"], {"install": True})

        code, out = self._run("update", "1", "--status", "施工中")
        self.assertEqual(json.loads(out)["status"], "in_progress")

        code, out = self._run("list", "--q", "bifold")
        page = json.loads(out)
        self.assertEqual(page["total"], 1)
        self.assertEqual(page["items"][0]["installer"], "Peter")

    def test_archive_and_export(self):
        self._run("create", "--name", "Deck", "--start", "2026-10-01", "--end", "2026-10-01")
        code, out = self._run("archive", "1")
        self.assertTrue(json.loads(out)["archived"])

        target = os.path.join(self.tmpdir.name, "report.xlsx")
        code, _ = self._run(
            "export", "excel", "--start", "2026-10-01", "--end", "2026-10-31",
            "--include-archived", "--out", target,
        )
        self.assertEqual(code, 0)
        with open(target, "rb") as f:
            self.assertEqual(f.read(2), b"PK")

    def test_errors_return_non_zero(self):
        code, _ = self._run("show", "42")
        self.assertEqual(code, 1)
        code, _ = self._run("create", "--name", "x", "--status", "on_hold")
        self.assertEqual(code, 2)

    def test_seed_is_local_only(self):
        code, out = self._run("seed", "--count", "3", "--seed", "5")
        self.assertEqual(code, 0)
        self.assertEqual(json.loads(out), {"created": 3})
        code, _ = self._run("--mode", "backend-test", "seed")
        self.assertEqual(code, 2)


if __name__ == "__main__":
    unittest.main()
