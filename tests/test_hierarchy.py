import pytest
from sqlalchemy.exc import IntegrityError

from db.models import System, Module, Scenario
from import_engine.hierarchy import HierarchyResolver, ResolvedHierarchy
from tests.factories import ModuleFactory, SystemFactory


class _MissOnce(HierarchyResolver):
    """Lookup misses once, as if another writer committed in between."""

    def __init__(self):
        self.missed = False

    def find(self, session, model, **criteria):
        if not self.missed:
            self.missed = True
            return None
        return super().find(session, model, **criteria)


class _AlwaysMiss(HierarchyResolver):
    def find(self, session, model, **criteria):
        return None


def test_resolve_creates_full_path(session):
    result = HierarchyResolver().resolve(session, "Acme", "Login", "Password")
    session.commit()

    system = session.query(System).one()
    module = session.query(Module).one()
    scenario = session.query(Scenario).one()
    assert result == ResolvedHierarchy(system.id, module.id, scenario.id)
    assert module.system_id == system.id
    assert scenario.module_id == module.id


def test_resolve_reuses_existing_nodes(session):
    module = ModuleFactory(name="Login", system=SystemFactory(name="Acme"))

    result = HierarchyResolver().resolve(session, " Acme ", "Login")

    assert result == ResolvedHierarchy(module.system_id, module.id)
    assert session.query(System).count() == 1
    assert session.query(Module).count() == 1


def test_resolve_without_system_ignores_lower_levels(session):
    """Test that a module name without a system name resolves nothing."""
    result = HierarchyResolver().resolve(session, "", "Login", "Password")

    assert result == ResolvedHierarchy()
    assert session.query(Module).count() == 0


def test_resolve_stops_at_missing_module(session):
    result = HierarchyResolver().resolve(session, "Acme", None, "Password")

    assert result.system_id is not None
    assert result.module_id is None
    assert result.scenario_id is None
    assert session.query(Scenario).count() == 0


def test_same_module_name_under_different_systems(session):
    resolver = HierarchyResolver()

    a = resolver.resolve(session, "Acme", "Login")
    b = resolver.resolve(session, "Globex", "Login")

    assert a.system_id != b.system_id
    assert a.module_id != b.module_id
    assert session.query(Module).filter_by(name="Login").count() == 2


def test_lost_create_race_uses_winner(session):
    """Test that a unique violation falls back to the committed row."""
    existing = SystemFactory(name="Acme")
    resolver = _MissOnce()

    result = resolver.resolve(session, "Acme")
    session.commit()

    assert resolver.missed
    assert result.system_id == existing.id
    assert session.query(System).filter_by(name="Acme").count() == 1


def test_integrity_error_without_winner_propagates(session):
    SystemFactory(name="Acme")

    with pytest.raises(IntegrityError):
        _AlwaysMiss().resolve(session, "Acme")
