"""
api.routes_testcases - /api/v1/test-cases CRUD endpoints.
"""

from flask import request, jsonify

from api import api_bp
from db import get_session
from services.testcase_service import TestCaseService
import config


def _int_arg(name: str) -> int | None:
    raw = request.args.get(name, "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


@api_bp.route("/test-cases")
def list_test_cases():
    """GET /api/v1/test-cases?systemId=&moduleId=&scenarioId="""
    session = get_session()
    try:
        cases = TestCaseService.list_cases(
            session,
            system_id=_int_arg("systemId"),
            module_id=_int_arg("moduleId"),
            scenario_id=_int_arg("scenarioId"),
        )
        return jsonify([c.to_dict() for c in cases])
    finally:
        session.close()


@api_bp.route("/test-cases/by-hierarchy")
def list_by_hierarchy():
    """
    GET /api/v1/test-cases/by-hierarchy?systemId=&moduleId=&scenarioId=&page=1&limit=20

    Filters by the most specific level supplied.
    """
    page = _int_arg("page") or 1
    limit = min(_int_arg("limit") or config.API_DEFAULT_LIMIT, config.API_MAX_LIMIT)
    session = get_session()
    try:
        return jsonify(TestCaseService.by_hierarchy(
            session,
            system_id=_int_arg("systemId"),
            module_id=_int_arg("moduleId"),
            scenario_id=_int_arg("scenarioId"),
            page=page,
            limit=limit,
        ))
    finally:
        session.close()


@api_bp.route("/test-cases/<int:case_id>")
def get_test_case(case_id: int):
    """GET /api/v1/test-cases/{id}"""
    session = get_session()
    try:
        tc = TestCaseService.get(session, case_id)
        if not tc:
            return jsonify({"error": "not found"}), 404
        return jsonify(tc.to_dict())
    finally:
        session.close()


@api_bp.route("/test-cases", methods=["POST"])
def create_test_case():
    """
    POST /api/v1/test-cases

    JSON body: {title, preconditions, steps, expectedResult, priority,
    status, tags, systemId, moduleId, scenarioId}.
    """
    data = request.get_json(silent=True) or {}
    session = get_session()
    try:
        tc = TestCaseService.create(session, data)
        session.commit()
        session.refresh(tc)
        return jsonify(tc.to_dict()), 201
    except ValueError as exc:
        session.rollback()
        return jsonify({"error": str(exc)}), 400
    finally:
        session.close()


@api_bp.route("/test-cases/<int:case_id>", methods=["PUT"])
def update_test_case(case_id: int):
    """PUT /api/v1/test-cases/{id}  (JSON body with fields to update)"""
    data = request.get_json(silent=True) or {}
    session = get_session()
    try:
        tc = TestCaseService.get(session, case_id)
        if not tc:
            return jsonify({"error": "not found"}), 404
        TestCaseService.update(session, tc, data)
        session.commit()
        session.refresh(tc)
        return jsonify(tc.to_dict())
    except ValueError as exc:
        session.rollback()
        return jsonify({"error": str(exc)}), 400
    finally:
        session.close()


@api_bp.route("/test-cases/<int:case_id>", methods=["DELETE"])
def delete_test_case(case_id: int):
    """DELETE /api/v1/test-cases/{id}"""
    session = get_session()
    try:
        tc = TestCaseService.get(session, case_id)
        if not tc:
            return jsonify({"error": "not found"}), 404
        TestCaseService.delete(session, tc)
        session.commit()
        return jsonify({"deleted": case_id})
    finally:
        session.close()
