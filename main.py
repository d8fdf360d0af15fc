#!/usr/bin/env python3
"""
CaseHub - Test case management backend
======================================

Single-command run:  python main.py

See config.py for all environment-variable tunables.
"""

import logging

from flask import Flask, jsonify

import config
from db import init_db, get_session, TestCase
from api import api_bp
from import_engine import ImportOrchestrator, JobStore, detect_format, run_import


def create_app(db_url: str | None = None,
               importer: ImportOrchestrator | None = None) -> Flask:
    """Flask application factory."""

    app = Flask(__name__)
    app.secret_key = config.SECRET
    app.config["MAX_CONTENT_LENGTH"] = config.MAX_UPLOAD_BYTES
    app.json.ensure_ascii = False

    # ── Initialise database ─────────────────────────────────────────
    init_db(db_url or config.DB_URL)

    # ── Batch import orchestrator (one job store per app) ───────────
    app.extensions["casehub.importer"] = importer or ImportOrchestrator(JobStore())

    # ── Register blueprints ─────────────────────────────────────────
    app.register_blueprint(api_bp)

    # ── Error handlers ──────────────────────────────────────────────
    @app.errorhandler(404)
    def _404(e):
        return jsonify({"error": "not found"}), 404

    @app.errorhandler(413)
    def _413(e):
        limit_mb = config.MAX_UPLOAD_BYTES // (1024 * 1024)
        return jsonify({"error": f"file exceeds {limit_mb}MB upload limit"}), 413

    return app


def _seed_if_empty():
    """Auto-import the seed file when the database has no test cases."""
    session = get_session()
    count = session.query(TestCase).count()
    session.close()

    if count > 0:
        print(f"\n  Database has {count} test cases.")
        return

    if not config.SEED_PATH or not config.SEED_PATH.exists():
        print("\n  No seed file - starting empty.")
        return

    print(f"\n  Database empty → importing {config.SEED_PATH.name} …")
    job = run_import(config.SEED_PATH.read_bytes(),
                     detect_format(config.SEED_PATH.name))

    print(f"  Done: {job.success} imported, "
          f"{job.failed} failed / {job.total} rows")
    if job.errors:
        print("  First errors (max 10):")
        for err in job.errors[:10]:
            print(f"    Row {err['row']}: {err['message']}")


def main():
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    print("=" * 56)
    print("  CaseHub - Test Case Management")
    print("=" * 56)

    app = create_app()
    print(f"  Database: {config.DB_URL}")
    _seed_if_empty()

    print(f"\n  http://{config.HOST}:{config.PORT}/api/v1")
    print("=" * 56)

    app.run(host=config.HOST, port=config.PORT, debug=config.DEBUG)


if __name__ == "__main__":
    main()
