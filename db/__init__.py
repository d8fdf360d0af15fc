"""
db - Database layer.

Public API:
    init_db()       → create engine + tables
    get_session()   → new Session
    System, Module, Scenario, TestCase → ORM models
"""

from db.engine import init_db, dispose_db, get_session      # noqa: F401
from db.models import (                                      # noqa: F401
    Base, System, Module, Scenario, TestCase,
    PRIORITIES, STATUSES, DEFAULT_PRIORITY, DEFAULT_STATUS,
)
