"""
services.template_service - Downloadable .xlsx import template.

The sheet holds exactly the two rows the importer skips: a header row
and one filled-in example row.  Column order matches
import_engine.field_map.XLSX_COLUMNS.
"""

from __future__ import annotations

import io

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

# (header, example, column width)
TEMPLATE_COLUMNS: list[tuple[str, str, int]] = [
    ("序号",     "1",                                       8),
    ("用例标题", "用户登录功能验证",                         30),
    ("系统名称", "用户管理系统",                             20),
    ("功能模块", "登录模块",                                 20),
    ("功能场景", "密码登录",                                 20),
    ("前置条件", "用户已注册账号",                           30),
    ("测试步骤", "1. 打开登录页面\n2. 输入用户名和密码\n3. 点击登录", 50),
    ("预期结果", "成功登录系统，跳转到首页",                 50),
    ("状态",     "待测试",                                   12),
    ("优先级",   "高",                                        8),
    ("标签",     "登录,功能测试,正向测试",                   20),
]

SHEET_TITLE = "模板"


def build_import_template() -> bytes:
    """Return the template workbook as .xlsx bytes."""
    wb = Workbook()
    ws = wb.active
    ws.title = SHEET_TITLE

    ws.append([h for h, _, _ in TEMPLATE_COLUMNS])
    ws.append([e for _, e, _ in TEMPLATE_COLUMNS])

    thin = Side(style="thin")
    header_font = Font(bold=True, size=11, color="FFFFFF")
    header_fill = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
    for cell in ws[1]:
        cell.font = header_font
        cell.fill = header_fill
        cell.alignment = Alignment(horizontal="center", vertical="center")
        cell.border = Border(top=thin, left=thin, bottom=thin, right=thin)

    for cell in ws[2]:
        cell.alignment = Alignment(horizontal="left", vertical="top", wrap_text=True)

    for idx, (_, _, width) in enumerate(TEMPLATE_COLUMNS, start=1):
        ws.column_dimensions[get_column_letter(idx)].width = width
    ws.row_dimensions[1].height = 20
    ws.row_dimensions[2].height = 40

    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()
