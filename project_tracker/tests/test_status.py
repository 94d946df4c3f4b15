import unittest

from project_tracker.status import (
    STATUS_ORDER,
    ProjectStatus,
    coerce_status,
    normalize_status,
    status_label,
    status_rank,
)


class StatusTests(unittest.TestCase):
    def test_normalize_maps_legacy_labels(self):
        self.assertEqual(normalize_status("未开始"), "not_started")
        self.assertEqual(normalize_status("施工中"), "in_progress")
        self.assertEqual(normalize_status("完成"), "completed")
        self.assertEqual(normalize_status("尾款已收到"), "final_payment_received")

    def test_normalize_keeps_codes_and_unknown_values(self):
        self.assertEqual(normalize_status("completed"), "completed")
        self.assertEqual(normalize_status(ProjectStatus.IN_PROGRESS), "in_progress")
        self.assertEqual(normalize_status("on_hold"), "on_hold")
        self.assertIsNone(normalize_status(None))
        self.assertEqual(normalize_status(""), "")

    def test_coerce_defaults_and_rejects_unknown(self):
        self.assertEqual(coerce_status(None), ProjectStatus.NOT_STARTED)
        self.assertEqual(coerce_status(""), ProjectStatus.NOT_STARTED)
        self.assertEqual(coerce_status("施工中"), ProjectStatus.IN_PROGRESS)
        with self.assertRaises(ValueError):
            coerce_status("on_hold")

    def test_rank_follows_fixed_order(self):
        ranks = [status_rank(s) for s in STATUS_ORDER]
        self.assertEqual(ranks, [0, 1, 2, 3])
        self.assertLess(status_rank("未开始"), status_rank("final_payment_received"))

    def test_labels(self):
        self.assertEqual(status_label("completed", "en"), "Completed")
        self.assertEqual(status_label("not_started"), "未开始")
        self.assertEqual(status_label("not_started", "zh-TW"), "未開始")
        self.assertEqual(status_label("in_progress", "fr"), "施工中")
        self.assertEqual(status_label("on_hold", "en"), "on_hold")
        self.assertEqual(status_label(None), "")


if __name__ == "__main__":
    unittest.main()
