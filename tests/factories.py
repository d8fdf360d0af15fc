import factory

from db.models import System, Module, Scenario, TestCase


class _BaseFactory(factory.alchemy.SQLAlchemyModelFactory):
    """Session is bound per test by the `session` fixture."""

    class Meta:
        abstract = True
        sqlalchemy_session = None
        sqlalchemy_session_persistence = "commit"


class SystemFactory(_BaseFactory):
    """Factory for creating System instances."""

    class Meta:
        model = System

    name = factory.Sequence(lambda n: f"System{n}")
    description = factory.Sequence(lambda n: f"Description for system {n}")


class ModuleFactory(_BaseFactory):
    class Meta:
        model = Module

    system = factory.SubFactory(SystemFactory)
    name = factory.Sequence(lambda n: f"Module{n}")


class ScenarioFactory(_BaseFactory):
    class Meta:
        model = Scenario

    module = factory.SubFactory(ModuleFactory)
    name = factory.Sequence(lambda n: f"Scenario{n}")


class CaseFactory(_BaseFactory):
    """Factory for creating TestCase instances."""

    class Meta:
        model = TestCase

    title = factory.Sequence(lambda n: f"Case {n}")
    preconditions = "user is registered"
    steps = "1. open page\n2. submit"
    expected_result = "page shows success"
    priority = factory.Faker("random_element", elements=["LOW", "MEDIUM", "HIGH"])
    status = "PENDING"
    source = "manual"


ALL_FACTORIES = (SystemFactory, ModuleFactory, ScenarioFactory, CaseFactory)
