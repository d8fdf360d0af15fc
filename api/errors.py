"""
api.errors - JSON error handlers for the API blueprint.
"""

import logging

from flask import jsonify

import config
from api import api_bp

logger = logging.getLogger(__name__)


@api_bp.errorhandler(404)
def api_not_found(_e):
    return jsonify({"error": "not found"}), 404


@api_bp.errorhandler(400)
def api_bad_request(_e):
    return jsonify({"error": "bad request"}), 400


@api_bp.errorhandler(405)
def api_method_not_allowed(_e):
    return jsonify({"error": "method not allowed"}), 405


@api_bp.errorhandler(413)
def api_too_large(_e):
    limit_mb = config.MAX_UPLOAD_BYTES // (1024 * 1024)
    return jsonify({"error": f"file exceeds {limit_mb}MB upload limit"}), 413


@api_bp.errorhandler(500)
def api_server_error(e):
    logger.error("Unhandled API error: %s", e)
    return jsonify({"error": "internal server error"}), 500
