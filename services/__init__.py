"""
services - Business-logic layer sitting between API and DB.
"""

from services.testcase_service import TestCaseService               # noqa: F401
from services.hierarchy_service import HierarchyService, DeletionBlocked   # noqa: F401
from services.batch_delete_service import delete_test_cases, parse_ids     # noqa: F401
from services.template_service import build_import_template         # noqa: F401
