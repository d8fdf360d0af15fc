"""
CaseHub - Centralised configuration.

All tunables live here.  Every other module imports from config
instead of reading os.environ directly.
"""

from __future__ import annotations
import os
from pathlib import Path


# ── Paths ──────────────────────────────────────────────────────────────
BASE_DIR = Path(__file__).resolve().parent

_seed = os.environ.get("CASEHUB_SEED", "")
SEED_PATH = Path(_seed) if _seed else None     # .xlsx / .csv imported into an empty DB

# ── Database ───────────────────────────────────────────────────────────
DB_URL = os.environ.get("CASEHUB_DB", f"sqlite:///{BASE_DIR / 'casehub.sqlite'}")

# ── Server ─────────────────────────────────────────────────────────────
HOST      = os.environ.get("CASEHUB_HOST", "0.0.0.0")
PORT      = int(os.environ.get("CASEHUB_PORT", "3001"))
DEBUG     = os.environ.get("CASEHUB_DEBUG", "0") == "1"
SECRET    = os.environ.get("CASEHUB_SECRET", "casehub-dev-key-change-in-prod")
LOG_LEVEL = os.environ.get("CASEHUB_LOG_LEVEL", "INFO").upper()

# ── Uploads ────────────────────────────────────────────────────────────
MAX_UPLOAD_BYTES = int(os.environ.get("CASEHUB_MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)))
ALLOWED_IMPORT_EXTENSIONS = (".xlsx", ".csv")

# ── Batch import ───────────────────────────────────────────────────────
IMPORT_HEADER_ROWS  = 2       # header + example row, skipped unconditionally
IMPORT_PREVIEW_ROWS = 10
CSV_BLANK_RUN_LIMIT = 5
IMPORT_PACING_EVERY = 10
IMPORT_PACING_DELAY = float(os.environ.get("CASEHUB_IMPORT_PACING_DELAY", "0.01"))
IMPORT_JOB_TTL      = float(os.environ.get("CASEHUB_IMPORT_JOB_TTL", "3600"))
IMPORT_JOB_MAX      = int(os.environ.get("CASEHUB_IMPORT_JOB_MAX", "500"))
COPY_SUFFIX         = os.environ.get("CASEHUB_COPY_SUFFIX", " (副本)")
IMPORT_REPORT_URL   = "/api/v1/test-cases/batch/import/{job_id}/report"

# ── Pagination ─────────────────────────────────────────────────────────
API_DEFAULT_LIMIT = 20
API_MAX_LIMIT     = 200
