"""
import_engine - Spreadsheet / CSV batch import pipeline.

Public API:
    ImportOrchestrator(store, session_factory, runner).start(...) → job dict
    run_import(content, fmt, strategy) → finished ImportJob
    detect_format(filename, mimetype) → "xlsx" | "csv"
"""

from import_engine.file_parser import (                     # noqa: F401
    detect_format, parse_rows, RawRow,
    ImportFormatError, UnsupportedFileType, FORMAT_CSV, FORMAT_XLSX,
)
from import_engine.importer import ImportOrchestrator, run_import   # noqa: F401
from import_engine.progress import ImportJob, JobStore      # noqa: F401
from import_engine.report import build_error_report         # noqa: F401
from import_engine.row_processor import ConflictStrategy    # noqa: F401
from import_engine.runner import BackgroundRunner           # noqa: F401
