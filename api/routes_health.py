"""
api.routes_health - /api/v1/health liveness check.
"""

from datetime import datetime, timezone

from flask import jsonify
from sqlalchemy import text

from api import api_bp
from db import get_session


@api_bp.route("/health")
def health():
    """GET /api/v1/health - reports database reachability."""
    session = get_session()
    try:
        session.execute(text("SELECT 1"))
        db_ok = True
    except Exception:
        db_ok = False
    finally:
        session.close()
    return jsonify({
        "status": "ok" if db_ok else "degraded",
        "database": db_ok,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }), (200 if db_ok else 503)
