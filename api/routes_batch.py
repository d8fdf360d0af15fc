"""
api.routes_batch - /api/v1/test-cases/batch/* endpoints.

Import is asynchronous: POST returns 202 with a job record and the
client polls the progress endpoint until status is completed / failed.
"""

import csv
import io
import logging

from flask import current_app, request, jsonify, send_file
from werkzeug.utils import secure_filename

from api import api_bp
from db import get_session
from import_engine import ImportFormatError, UnsupportedFileType, detect_format
from import_engine.report import build_error_report
from import_engine.row_processor import ConflictStrategy
from services.batch_delete_service import delete_test_cases, parse_ids
from services.template_service import build_import_template

logger = logging.getLogger(__name__)

XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _importer():
    return current_app.extensions["casehub.importer"]


def _read_upload():
    """Return ((content, fmt), None) or (None, error response)."""
    f = request.files.get("file")
    if f is None or not f.filename:
        return None, (jsonify({"error": "no file in upload"}), 400)
    try:
        fmt = detect_format(f.filename, f.mimetype)
    except UnsupportedFileType as exc:
        return None, (jsonify({"error": str(exc)}), 400)
    content = f.read()
    if not content:
        return None, (jsonify({"error": "uploaded file is empty"}), 400)
    logger.info("Upload %s (%s, %d bytes)",
                secure_filename(f.filename) or "<unnamed>", fmt, len(content))
    return (content, fmt), None


@api_bp.route("/test-cases/batch/validate", methods=["POST"])
def batch_validate():
    """
    POST /api/v1/test-cases/batch/validate   (multipart, field 'file')

    Validates the first rows only; nothing is written.
    Returns {valid, errors, preview, totalRows}.
    """
    upload, error = _read_upload()
    if error:
        return error
    content, fmt = upload
    try:
        return jsonify(_importer().preview(content, fmt))
    except (ImportFormatError, csv.Error) as exc:
        return jsonify({"error": str(exc)}), 400


@api_bp.route("/test-cases/batch/import", methods=["POST"])
def batch_import():
    """
    POST /api/v1/test-cases/batch/import
    Multipart: 'file' (.xlsx / .csv), optional 'conflictStrategy'
    (skip | overwrite | new_version, default skip).
    """
    upload, error = _read_upload()
    if error:
        return error
    content, fmt = upload
    try:
        strategy = ConflictStrategy.parse(request.form.get("conflictStrategy"))
    except ValueError as exc:
        return jsonify({"error": str(exc)}), 400

    accepted = _importer().start(content, fmt, strategy)
    return jsonify(accepted), 202


@api_bp.route("/test-cases/batch/import/<job_id>/progress")
def batch_import_progress(job_id: str):
    """GET /api/v1/test-cases/batch/import/{jobId}/progress"""
    job = _importer().progress(job_id)
    if job is None:
        return jsonify({"error": "import job not found"}), 404
    return jsonify(job.to_dict())


@api_bp.route("/test-cases/batch/import/<job_id>/report")
def batch_import_report(job_id: str):
    """GET /api/v1/test-cases/batch/import/{jobId}/report - error report (.xlsx)."""
    job = _importer().progress(job_id)
    if job is None:
        return jsonify({"error": "import job not found"}), 404
    if not job.finished:
        return jsonify({"error": "import job still running"}), 409
    return send_file(
        io.BytesIO(build_error_report(job)),
        mimetype=XLSX_MIME,
        as_attachment=True,
        download_name=f"import_report_{job_id}.xlsx",
    )


@api_bp.route("/test-cases/batch/delete", methods=["DELETE"])
def batch_delete():
    """DELETE /api/v1/test-cases/batch/delete   JSON {ids: [int]}"""
    data = request.get_json(silent=True) or {}
    try:
        ids = parse_ids(data.get("ids"))
    except ValueError as exc:
        return jsonify({"error": str(exc)}), 400

    session = get_session()
    try:
        result = delete_test_cases(session, ids)
        session.commit()
        logger.info("Batch delete: %d deleted, %d failed",
                    result["deleted"], result["failed"])
        return jsonify(result)
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


@api_bp.route("/test-cases/batch/template")
def batch_template():
    """GET /api/v1/test-cases/batch/template - blank .xlsx import template."""
    return send_file(
        io.BytesIO(build_import_template()),
        mimetype=XLSX_MIME,
        as_attachment=True,
        download_name="test_case_import_template.xlsx",
    )
