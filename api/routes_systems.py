"""
api.routes_systems - /api/v1 system / module / scenario endpoints.
"""

from flask import request, jsonify

from api import api_bp
from db import get_session
from services.hierarchy_service import HierarchyService, DeletionBlocked


def _body() -> dict:
    return request.get_json(silent=True) or {}


# ── Systems ────────────────────────────────────────────────────────────

@api_bp.route("/systems")
def list_systems():
    """GET /api/v1/systems"""
    session = get_session()
    try:
        return jsonify([s.to_dict() for s in HierarchyService.list_systems(session)])
    finally:
        session.close()


@api_bp.route("/systems/tree")
def systems_tree():
    """GET /api/v1/systems/tree - full system → module → scenario tree."""
    session = get_session()
    try:
        return jsonify(HierarchyService.tree(session))
    finally:
        session.close()


@api_bp.route("/systems/<int:system_id>")
def get_system(system_id: int):
    """GET /api/v1/systems/{id} - includes its modules and scenarios."""
    session = get_session()
    try:
        system = HierarchyService.get_system(session, system_id)
        if not system:
            return jsonify({"error": "system not found"}), 404
        data = system.to_dict()
        data["modules"] = [
            dict(m.to_dict(), scenarios=[sc.to_dict() for sc in m.scenarios])
            for m in system.modules
        ]
        return jsonify(data)
    finally:
        session.close()


@api_bp.route("/systems", methods=["POST"])
def create_system():
    """POST /api/v1/systems  {name, description}"""
    session = get_session()
    try:
        system = HierarchyService.create_system(session, _body())
        session.commit()
        return jsonify(system.to_dict()), 201
    except ValueError as exc:
        session.rollback()
        return jsonify({"error": str(exc)}), 400
    finally:
        session.close()


@api_bp.route("/systems/<int:system_id>", methods=["PUT"])
def update_system(system_id: int):
    """PUT /api/v1/systems/{id}  {name?, description?}"""
    session = get_session()
    try:
        system = HierarchyService.get_system(session, system_id)
        if not system:
            return jsonify({"error": "system not found"}), 404
        HierarchyService.update_system(session, system, _body())
        session.commit()
        return jsonify(system.to_dict())
    except ValueError as exc:
        session.rollback()
        return jsonify({"error": str(exc)}), 400
    finally:
        session.close()


@api_bp.route("/systems/<int:system_id>", methods=["DELETE"])
def delete_system(system_id: int):
    """DELETE /api/v1/systems/{id} - refused while modules remain."""
    session = get_session()
    try:
        system = HierarchyService.get_system(session, system_id)
        if not system:
            return jsonify({"error": "system not found"}), 404
        HierarchyService.delete_system(session, system)
        session.commit()
        return jsonify({"deleted": system_id})
    except DeletionBlocked as exc:
        session.rollback()
        return jsonify(exc.to_dict()), 409
    finally:
        session.close()


# ── Modules ────────────────────────────────────────────────────────────

@api_bp.route("/systems/<int:system_id>/modules", methods=["POST"])
def create_module(system_id: int):
    """POST /api/v1/systems/{id}/modules  {name, description, sortOrder}"""
    session = get_session()
    try:
        system = HierarchyService.get_system(session, system_id)
        if not system:
            return jsonify({"error": "system not found"}), 404
        module = HierarchyService.create_module(session, system, _body())
        session.commit()
        return jsonify(module.to_dict()), 201
    except ValueError as exc:
        session.rollback()
        return jsonify({"error": str(exc)}), 400
    finally:
        session.close()


@api_bp.route("/modules/<int:module_id>", methods=["PUT"])
def update_module(module_id: int):
    """PUT /api/v1/modules/{id}"""
    session = get_session()
    try:
        module = HierarchyService.get_module(session, module_id)
        if not module:
            return jsonify({"error": "module not found"}), 404
        HierarchyService.update_module(session, module, _body())
        session.commit()
        return jsonify(module.to_dict())
    except ValueError as exc:
        session.rollback()
        return jsonify({"error": str(exc)}), 400
    finally:
        session.close()


@api_bp.route("/modules/<int:module_id>", methods=["DELETE"])
def delete_module(module_id: int):
    """DELETE /api/v1/modules/{id} - refused while scenarios remain."""
    session = get_session()
    try:
        module = HierarchyService.get_module(session, module_id)
        if not module:
            return jsonify({"error": "module not found"}), 404
        HierarchyService.delete_module(session, module)
        session.commit()
        return jsonify({"deleted": module_id})
    except DeletionBlocked as exc:
        session.rollback()
        return jsonify(exc.to_dict()), 409
    finally:
        session.close()


# ── Scenarios ──────────────────────────────────────────────────────────

@api_bp.route("/modules/<int:module_id>/scenarios", methods=["POST"])
def create_scenario(module_id: int):
    """POST /api/v1/modules/{id}/scenarios  {name, description, content, sortOrder}"""
    session = get_session()
    try:
        module = HierarchyService.get_module(session, module_id)
        if not module:
            return jsonify({"error": "module not found"}), 404
        scenario = HierarchyService.create_scenario(session, module, _body())
        session.commit()
        return jsonify(scenario.to_dict()), 201
    except ValueError as exc:
        session.rollback()
        return jsonify({"error": str(exc)}), 400
    finally:
        session.close()


@api_bp.route("/scenarios/<int:scenario_id>", methods=["PUT"])
def update_scenario(scenario_id: int):
    """PUT /api/v1/scenarios/{id}"""
    session = get_session()
    try:
        scenario = HierarchyService.get_scenario(session, scenario_id)
        if not scenario:
            return jsonify({"error": "scenario not found"}), 404
        HierarchyService.update_scenario(session, scenario, _body())
        session.commit()
        return jsonify(scenario.to_dict())
    except ValueError as exc:
        session.rollback()
        return jsonify({"error": str(exc)}), 400
    finally:
        session.close()


@api_bp.route("/scenarios/<int:scenario_id>", methods=["DELETE"])
def delete_scenario(scenario_id: int):
    """DELETE /api/v1/scenarios/{id} - linked test cases are detached."""
    session = get_session()
    try:
        scenario = HierarchyService.get_scenario(session, scenario_id)
        if not scenario:
            return jsonify({"error": "scenario not found"}), 404
        HierarchyService.delete_scenario(session, scenario)
        session.commit()
        return jsonify({"deleted": scenario_id})
    finally:
        session.close()
