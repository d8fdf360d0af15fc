"""
import_engine.field_map - Column ↔ RawRow-attribute mapping.

The spreadsheet template is read by position, delimited text by header
name.  Both localized and romanized headers are accepted for CSV.
"""

# Spreadsheet: 0-based column index → RawRow attribute.
# Column A holds a free sequence number and is ignored.
XLSX_COLUMNS: dict[int, str] = {
    1:  "title",
    2:  "system_name",
    3:  "module_name",
    4:  "scenario_name",
    5:  "preconditions",
    6:  "steps",
    7:  "expected_result",
    8:  "status",
    9:  "priority",
    10: "tags",
}

# CSV: RawRow attribute → accepted header names, first match wins
CSV_ALIASES: dict[str, tuple[str, ...]] = {
    "title":           ("用例标题", "title"),
    "system_name":     ("系统", "系统名称", "systemName", "system"),
    "module_name":     ("功能模块", "moduleName", "module"),
    "scenario_name":   ("功能场景", "scenarioName", "scenario"),
    "preconditions":   ("前置条件", "preconditions"),
    "steps":           ("测试步骤", "steps"),
    "expected_result": ("预期结果", "expectedResult"),
    "status":          ("状态", "status"),
    "priority":        ("优先级", "priority"),
    "tags":            ("标签", "tags"),
}

# Column labels used in error entries (they match the template headers)
COLUMN_LABELS: dict[str, str] = {
    "title":           "用例标题",
    "system_name":     "系统名称",
    "module_name":     "功能模块",
    "scenario_name":   "功能场景",
    "preconditions":   "前置条件",
    "steps":           "测试步骤",
    "expected_result": "预期结果",
    "status":          "状态",
    "priority":        "优先级",
    "tags":            "标签",
}

# Localized synonyms; English tokens are matched case-insensitively
PRIORITY_SYNONYMS: dict[str, str] = {
    "低": "LOW",
    "中": "MEDIUM",
    "高": "HIGH",
}

STATUS_SYNONYMS: dict[str, str] = {
    "待执行": "PENDING",
    "待测试": "PENDING",
    "通过":   "PASSED",
    "已通过": "PASSED",
    "失败":   "FAILED",
    "已失败": "FAILED",
    "跳过":   "SKIPPED",
    "已跳过": "SKIPPED",
}
