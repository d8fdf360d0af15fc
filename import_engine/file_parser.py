"""
import_engine.file_parser - Spreadsheet / CSV reading and cleaning.

Responsibilities:
  • Format detection from file name or MIME type
  • BOM removal and charset fallback for CSV
  • Skipping the header + example rows of the import template
  • End-of-data sentinels (first blank title for .xlsx, a run of
    blank titles for .csv)
  • Priority / status / tag normalisation

parse_rows() opens the container eagerly, so an unsupported or corrupt
file raises before the first row is produced.  The returned iterator
is single-pass.
"""

from __future__ import annotations

import csv
import io
import logging
import zipfile
from dataclasses import dataclass
from typing import Iterator, Optional

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

import config
from db.models import PRIORITIES, STATUSES, DEFAULT_PRIORITY, DEFAULT_STATUS
from import_engine.field_map import (
    XLSX_COLUMNS, CSV_ALIASES, PRIORITY_SYNONYMS, STATUS_SYNONYMS,
)

logger = logging.getLogger(__name__)

FORMAT_XLSX = "xlsx"
FORMAT_CSV  = "csv"


class ImportFormatError(Exception):
    """Raised when a file cannot be parsed at all."""
    pass


class UnsupportedFileType(ImportFormatError):
    pass


@dataclass
class RawRow:
    """One loosely-typed spreadsheet / CSV line."""

    row_number: int
    title: str
    preconditions: Optional[str] = None
    steps: Optional[str] = None
    expected_result: Optional[str] = None
    system_name: Optional[str] = None
    module_name: Optional[str] = None
    scenario_name: Optional[str] = None
    priority: Optional[str] = None
    status: Optional[str] = None
    tags: Optional[list[str]] = None

    @property
    def is_blank(self) -> bool:
        return not (self.title or "").strip()

    def to_dict(self) -> dict:
        return {
            "row": self.row_number,
            "title": self.title,
            "preconditions": self.preconditions,
            "steps": self.steps,
            "expectedResult": self.expected_result,
            "systemName": self.system_name,
            "moduleName": self.module_name,
            "scenarioName": self.scenario_name,
            "priority": self.priority,
            "status": self.status,
            "tags": self.tags,
        }


# ── Format detection ───────────────────────────────────────────────────

def detect_format(filename: str | None, mimetype: str | None = None) -> str:
    """Return FORMAT_XLSX / FORMAT_CSV or raise UnsupportedFileType."""
    name = (filename or "").lower()
    for ext in config.ALLOWED_IMPORT_EXTENSIONS:
        if name.endswith(ext):
            return ext.lstrip(".")

    mime = (mimetype or "").lower()
    if "spreadsheetml" in mime:
        return FORMAT_XLSX
    if "csv" in mime:
        return FORMAT_CSV

    raise UnsupportedFileType(
        f"Unsupported file type {filename or mimetype!r}; upload "
        + " or ".join(config.ALLOWED_IMPORT_EXTENSIONS)
    )


# ── Value normalisation ────────────────────────────────────────────────

def normalize_priority(value: str | None) -> Optional[str]:
    """LOW/MEDIUM/HIGH or a localized synonym; anything else → MEDIUM."""
    text = (value or "").strip()
    if not text:
        return None
    upper = text.upper()
    if upper in PRIORITIES:
        return upper
    if text in PRIORITY_SYNONYMS:
        return PRIORITY_SYNONYMS[text]
    logger.debug("Unrecognised priority %r, using %s", text, DEFAULT_PRIORITY)
    return DEFAULT_PRIORITY


def normalize_status(value: str | None) -> Optional[str]:
    """PENDING/PASSED/FAILED/SKIPPED or a localized synonym; else PENDING."""
    text = (value or "").strip()
    if not text:
        return None
    upper = text.upper()
    if upper in STATUSES:
        return upper
    if text in STATUS_SYNONYMS:
        return STATUS_SYNONYMS[text]
    logger.debug("Unrecognised status %r, using %s", text, DEFAULT_STATUS)
    return DEFAULT_STATUS


def split_tags(value: str | None) -> Optional[list[str]]:
    """'a, b,c' → ['a', 'b', 'c'].  Blank input → None."""
    if not value or not value.strip():
        return None
    tags = [t.strip() for t in value.replace("，", ",").split(",")]
    tags = [t for t in tags if t]
    return tags or None


def _build_row(row_number: int, fields: dict) -> RawRow:
    return RawRow(
        row_number=row_number,
        title=fields.get("title") or "",
        preconditions=fields.get("preconditions"),
        steps=fields.get("steps"),
        expected_result=fields.get("expected_result"),
        system_name=fields.get("system_name"),
        module_name=fields.get("module_name"),
        scenario_name=fields.get("scenario_name"),
        priority=normalize_priority(fields.get("priority")),
        status=normalize_status(fields.get("status")),
        tags=split_tags(fields.get("tags")),
    )


def _cell_text(values, idx: int) -> Optional[str]:
    """Stringify one cell; unreadable or blank cells become None."""
    if idx >= len(values):
        return None
    value = values[idx]
    if value is None:
        return None
    try:
        text = str(value).strip()
    except Exception as exc:
        logger.warning("Unreadable cell at column %d: %s", idx + 1, exc)
        return None
    return text or None


# ── Entry point ────────────────────────────────────────────────────────

def parse_rows(content: bytes | str, fmt: str) -> Iterator[RawRow]:
    """Open *content* as *fmt* and return an iterator of RawRow."""
    if fmt == FORMAT_XLSX:
        if isinstance(content, str):
            raise ImportFormatError("Spreadsheet content must be bytes")
        return _iter_xlsx(_open_workbook(content))
    if fmt == FORMAT_CSV:
        prepared = prepare_reader(content)
        if prepared is None:
            return iter(())
        header_map, reader = prepared
        return _iter_csv(header_map, reader)
    raise UnsupportedFileType(f"Unsupported file format {fmt!r}")


# ── Spreadsheet ────────────────────────────────────────────────────────

def _open_workbook(content: bytes):
    try:
        wb = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError, ValueError) as exc:
        raise ImportFormatError(f"Cannot read spreadsheet: {exc}") from exc
    if not wb.worksheets:
        wb.close()
        raise ImportFormatError("Spreadsheet has no worksheet")
    return wb


def _iter_xlsx(wb) -> Iterator[RawRow]:
    try:
        ws = wb.worksheets[0]
        for row_number, values in enumerate(_sheet_rows(ws), start=1):
            if row_number <= config.IMPORT_HEADER_ROWS:
                continue
            fields = {attr: _cell_text(values, idx)
                      for idx, attr in XLSX_COLUMNS.items()}
            if not fields["title"]:
                logger.debug("Blank title at row %d, end of data", row_number)
                return
            yield _build_row(row_number, fields)
    finally:
        wb.close()


def _sheet_rows(ws):
    """Sheet XML is parsed lazily in read-only mode; surface damage as ImportFormatError."""
    rows = ws.iter_rows(values_only=True)
    while True:
        try:
            values = next(rows)
        except StopIteration:
            return
        except Exception as exc:
            raise ImportFormatError(f"Cannot read spreadsheet rows: {exc}") from exc
        yield values


# ── Delimited text ─────────────────────────────────────────────────────

def prepare_reader(raw: str | bytes):
    """
    Accept raw CSV content, clean it, and return (header_map, reader)
    where header_map is {attribute: [column indices]} and reader yields
    the remaining records.  Returns None if content is empty.
    """
    text = _decode(raw)
    if not text or not text.strip():
        return None

    # A single cell may hold most of an upload
    csv.field_size_limit(config.MAX_UPLOAD_BYTES)
    reader = csv.reader(io.StringIO(text))
    try:
        header = next(reader)
    except StopIteration:
        return None
    except csv.Error as exc:
        raise ImportFormatError(f"Malformed CSV header: {exc}") from exc

    # Strip whitespace from every header
    header = [h.strip() for h in header]

    header_map: dict[str, list[int]] = {}
    for attr, aliases in CSV_ALIASES.items():
        idxs = [header.index(a) for a in aliases if a in header]
        if idxs:
            header_map[attr] = idxs

    if "title" not in header_map:
        raise ImportFormatError(
            "CSV header has no title column (用例标题 / title)"
        )
    return header_map, reader


def _iter_csv(header_map: dict[str, list[int]], reader) -> Iterator[RawRow]:
    """
    Rows are numbered by the physical line their record starts on, so a
    quoted multi-line cell does not shift later row numbers.  A record the
    csv module cannot read counts as a blank row.
    """
    blank_run = 0
    record = 1      # header already consumed
    while True:
        row_number = reader.line_num + 1
        try:
            values = next(reader)
        except StopIteration:
            return
        except csv.Error as exc:
            logger.warning("Unreadable CSV record at line %d: %s", row_number, exc)
            values = []

        record += 1
        if record <= config.IMPORT_HEADER_ROWS:
            continue

        fields: dict[str, Optional[str]] = {}
        for attr, idxs in header_map.items():
            fields[attr] = next(
                (v for v in (_cell_text(values, i) for i in idxs) if v), None
            )

        if not fields.get("title"):
            blank_run += 1
            if blank_run >= config.CSV_BLANK_RUN_LIMIT:
                logger.debug("%d blank titles in a row at row %d, end of data",
                             blank_run, row_number)
                return
            continue

        blank_run = 0
        yield _build_row(row_number, fields)


def _decode(raw: str | bytes) -> str:
    if isinstance(raw, bytes):
        # Strip UTF-8 BOM
        if raw.startswith(b"\xef\xbb\xbf"):
            raw = raw[3:]
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError:
            pass
        # Spreadsheet tools on Chinese locales save CSV as GBK
        try:
            return raw.decode("gb18030")
        except UnicodeDecodeError:
            return raw.decode("utf-8", errors="replace")
    if raw.startswith("\ufeff"):
        return raw[1:]
    return raw
