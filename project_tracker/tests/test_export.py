import io
import unittest
from datetime import date

from openpyxl import load_workbook

from project_tracker.export import (
    PDF_CONTENT_TYPE,
    XLSX_CONTENT_TYPE,
    build_excel,
    build_pdf,
    export_filename,
    export_rows,
    headers,
    month_range,
)

PROJECTS = [
    {
        "project_code": "P-001",
        "name": "Bifold door install",
        "client_name": "Mei Chen",
        "address": "45 Ponsonby Road & Co <rear>",
        "sales_person": "Amy",
        "installer": "Peter",
        "start_date": "2026-10-01",
        "end_date": "2026-10-03",
        "status": "in_progress",
    },
    {
        "project_code": "P-002",
        "name": "窗户维修",
        "client_name": "王先生",
        "address": "",
        "sales_person": None,
        "installer": "",
        "start_date": None,
        "end_date": None,
        "status": "尾款已收到",
    },
]


class ExportRowsTests(unittest.TestCase):
    def test_headers(self):
        self.assertEqual(headers("en")[0], "Code")
        self.assertEqual(headers()[1], "项目名称")
        self.assertEqual(len(headers("en")), 9)

    def test_rows_use_status_labels(self):
        rows = export_rows(PROJECTS, "en")
        self.assertEqual(rows[0][-1], "In progress")
        self.assertEqual(rows[0][6:8], ["2026-10-01", "2026-10-03"])
        self.assertEqual(rows[1][-1], "Final payment received")
        self.assertEqual(rows[1][4], "")
        self.assertEqual(export_rows(PROJECTS)[0][-1], "施工中")

    def test_filenames(self):
        start, end = date(2026, 10, 1), date(2026, 10, 31)
        self.assertEqual(export_filename("xlsx", start, end), "施工安排表_2026-10-01_2026-10-31.xlsx")
        self.assertEqual(export_filename("pdf", start, end, "en"), "schedule_2026-10-01_2026-10-31.pdf")

    def test_month_range(self):
        self.assertEqual(month_range(date(2028, 2, 10)), (date(2028, 2, 1), date(2028, 2, 29)))
        self.assertEqual(month_range(date(2026, 12, 31)), (date(2026, 12, 1), date(2026, 12, 31)))


class BuildReportTests(unittest.TestCase):
    def test_excel(self):
        report = build_excel(PROJECTS, date(2026, 10, 1), date(2026, 10, 31))
        self.assertEqual(report.content_type, XLSX_CONTENT_TYPE)
        self.assertTrue(report.filename.endswith(".xlsx"))

        wb = load_workbook(io.BytesIO(report.content))
        ws = wb.active
        self.assertEqual(ws.title, "当月施工安排")
        rows = list(ws.iter_rows(values_only=True))
        self.assertEqual(list(rows[0]), headers())
        self.assertEqual(rows[1][0], "P-001")
        self.assertEqual(rows[2][-1], "尾款已收到")
        self.assertEqual(len(rows), 3)

    def test_excel_english_sheet(self):
        report = build_excel([], lang="en")
        ws = load_workbook(io.BytesIO(report.content)).active
        self.assertEqual(ws.title, "Schedule")
        self.assertEqual(ws.max_row, 1)

    def test_pdf(self):
        for lang in ("zh", "en"):
            report = build_pdf(PROJECTS, date(2026, 10, 1), date(2026, 10, 31), lang)
            self.assertEqual(report.content_type, PDF_CONTENT_TYPE)
            self.assertTrue(report.content.startswith(b"%PDF"))
            self.assertTrue(report.filename.endswith(".pdf"))


if __name__ == "__main__":
    unittest.main()
