"""
Schedule reports: Excel via openpyxl, PDF via reportlab.
"""

from __future__ import annotations

import calendar
import io
from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable, Optional
from xml.sax.saxutils import escape

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.units import inch
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.cidfonts import UnicodeCIDFont
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from project_tracker.fields import format_date
from project_tracker.status import status_label

XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
PDF_CONTENT_TYPE = "application/pdf"

HEADER_RGB = (8, 145, 178)
PDF_COLUMN_WEIGHTS = (0.08, 0.15, 0.11, 0.2, 0.08, 0.08, 0.1, 0.1, 0.1)
CJK_FONT = "STSong-Light"

EXPORT_COLUMNS: tuple[tuple[str, str, str], ...] = (
    ("project_code", "项目编号", "Code"),
    ("name", "项目名称", "Project"),
    ("client_name", "客户", "Client"),
    ("address", "地址", "Address"),
    ("sales_person", "销售", "Sales"),
    ("installer", "安装", "Installer"),
    ("start_date", "开始日期", "Start"),
    ("end_date", "结束日期", "End"),
    ("status", "状态", "Status"),
)

TITLES = {"zh": "当月施工安排", "en": "Schedule"}
FILENAME_PREFIX = {"zh": "施工安排表", "en": "schedule"}


@dataclass
class ExportFile:
    filename: str
    content_type: str
    content: bytes


def _lang(lang: Optional[str]) -> str:
    return "en" if lang == "en" else "zh"


def headers(lang: str = "zh") -> list[str]:
    idx = 2 if _lang(lang) == "en" else 1
    return [column[idx] for column in EXPORT_COLUMNS]


def export_rows(projects: Iterable[dict], lang: str = "zh") -> list[list[str]]:
    rows = []
    for project in projects:
        row = []
        for key, _, _ in EXPORT_COLUMNS:
            value: Any = project.get(key)
            if key == "status":
                value = status_label(value, _lang(lang))
            elif key in ("start_date", "end_date"):
                value = format_date(value) or ""
            row.append("" if value is None else str(value))
        rows.append(row)
    return rows


def export_filename(ext: str, start: Any = None, end: Any = None, lang: str = "zh") -> str:
    prefix = FILENAME_PREFIX[_lang(lang)]
    return f"{prefix}_{format_date(start) or ''}_{format_date(end) or ''}.{ext}"


def month_range(today: Optional[date] = None) -> tuple[date, date]:
    """First and last day of the month containing today."""
    today = today or date.today()
    last_day = calendar.monthrange(today.year, today.month)[1]
    return today.replace(day=1), today.replace(day=last_day)


def build_excel(
    projects: Iterable[dict], start: Any = None, end: Any = None, lang: str = "zh"
) -> ExportFile:
    wb = Workbook()
    ws = wb.active
    ws.title = TITLES[_lang(lang)]
    ws.append(headers(lang))
    fill = PatternFill("solid", fgColor="%02X%02X%02X" % HEADER_RGB)
    for cell in ws[1]:
        cell.font = Font(bold=True, color="FFFFFF")
        cell.fill = fill
    for row in export_rows(projects, lang):
        ws.append(row)
    for column_cells in ws.columns:
        width = max(len(str(c.value or "")) for c in column_cells)
        ws.column_dimensions[column_cells[0].column_letter].width = min(60, width + 4)
    ws.freeze_panes = "A2"

    buffer = io.BytesIO()
    wb.save(buffer)
    return ExportFile(
        filename=export_filename("xlsx", start, end, lang),
        content_type=XLSX_CONTENT_TYPE,
        content=buffer.getvalue(),
    )


def _font_name(lang: str) -> str:
    if _lang(lang) == "en":
        return "Helvetica"
    if CJK_FONT not in pdfmetrics.getRegisteredFontNames():
        pdfmetrics.registerFont(UnicodeCIDFont(CJK_FONT))
    return CJK_FONT


def build_pdf(
    projects: Iterable[dict], start: Any = None, end: Any = None, lang: str = "zh"
) -> ExportFile:
    font = _font_name(lang)
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        leftMargin=0.55 * inch,
        rightMargin=0.55 * inch,
        topMargin=0.55 * inch,
        bottomMargin=0.55 * inch,
        title=TITLES[_lang(lang)],
    )
    title_style = ParagraphStyle("title", fontName=font, fontSize=12, leading=16)
    cell_style = ParagraphStyle("cell", fontName=font, fontSize=9, leading=11)
    head_style = ParagraphStyle(
        "head", parent=cell_style, textColor=colors.white
    )

    data = [[Paragraph(escape(h), head_style) for h in headers(lang)]]
    for row in export_rows(projects, lang):
        data.append([Paragraph(escape(value), cell_style) for value in row])

    col_widths = [doc.width * w for w in PDF_COLUMN_WEIGHTS]
    table = Table(data, colWidths=col_widths, repeatRows=1)
    table.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), colors.Color(*(c / 255 for c in HEADER_RGB))),
                ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
                ("VALIGN", (0, 0), (-1, -1), "TOP"),
                ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.whitesmoke]),
            ]
        )
    )
    doc.build([Paragraph(TITLES[_lang(lang)], title_style), Spacer(1, 12), table])
    return ExportFile(
        filename=export_filename("pdf", start, end, lang),
        content_type=PDF_CONTENT_TYPE,
        content=buffer.getvalue(),
    )
