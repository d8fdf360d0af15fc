"""
import_engine.report - Downloadable error report of an import job.
"""

from __future__ import annotations

import io

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from import_engine.progress import ImportJob

# (header, error-entry key, column width)
REPORT_COLUMNS: list[tuple[str, str, int]] = [
    ("行号",     "row",     8),
    ("列",       "column",  14),
    ("错误信息", "message", 60),
    ("值",       "value",   30),
]

SUMMARY_SHEET = "汇总"
ERRORS_SHEET  = "错误明细"


def build_error_report(job: ImportJob) -> bytes:
    """Return an .xlsx with a summary sheet and one line per error entry."""
    wb = Workbook()

    summary = wb.active
    summary.title = SUMMARY_SHEET
    for label, value in (
        ("任务", job.job_id),
        ("状态", job.status),
        ("总行数", job.total),
        ("已处理", job.processed),
        ("成功", job.success),
        ("失败", job.failed),
        ("跳过", job.skipped),
    ):
        summary.append([label, value])
    summary.column_dimensions["A"].width = 12
    summary.column_dimensions["B"].width = 36

    ws = wb.create_sheet(ERRORS_SHEET)
    ws.append([h for h, _, _ in REPORT_COLUMNS])
    header_fill = PatternFill(start_color="C00000", end_color="C00000", fill_type="solid")
    for cell in ws[1]:
        cell.font = Font(bold=True, color="FFFFFF")
        cell.fill = header_fill
        cell.alignment = Alignment(horizontal="center")

    for err in job.errors:
        ws.append([err.get(key) for _, key, _ in REPORT_COLUMNS])

    for idx, (_, _, width) in enumerate(REPORT_COLUMNS, start=1):
        ws.column_dimensions[get_column_letter(idx)].width = width
    ws.freeze_panes = "A2"

    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()
