import csv
import io
import time

import pytest
from openpyxl import Workbook

from db import init_db, dispose_db, get_session
from import_engine import BackgroundRunner, ImportOrchestrator, JobStore
from main import create_app
from tests.factories import ALL_FACTORIES

CSV_HEADER = ["用例标题", "系统", "功能模块", "功能场景", "前置条件",
              "测试步骤", "预期结果", "状态", "优先级", "标签"]
XLSX_HEADER = ["序号", "用例标题", "系统名称", "功能模块", "功能场景", "前置条件",
               "测试步骤", "预期结果", "状态", "优先级", "标签"]
EXAMPLE_TITLE = "用户登录功能验证"


@pytest.fixture
def db_url(tmp_path):
    """File-backed SQLite so the import loop thread sees the same data."""
    url = f"sqlite:///{tmp_path / 'casehub-test.sqlite'}"
    init_db(url)
    yield url
    dispose_db()


@pytest.fixture
def session(db_url):
    s = get_session()
    for f in ALL_FACTORIES:
        f._meta.sqlalchemy_session = s
    yield s
    s.close()
    for f in ALL_FACTORIES:
        f._meta.sqlalchemy_session = None


@pytest.fixture
def runner():
    r = BackgroundRunner(name="casehub-test-import")
    yield r
    r.stop()


@pytest.fixture
def app(db_url, runner):
    importer = ImportOrchestrator(JobStore(), runner=runner, pacing_delay=0)
    app = create_app(db_url, importer=importer)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    """Return a Flask test client."""
    return app.test_client()


# ── File builders ──────────────────────────────────────────────────────

def make_csv(rows, header=None, encoding="utf-8") -> bytes:
    """Header + example row + *rows*; a row of None is written as a blank line."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(header or CSV_HEADER)
    writer.writerow([EXAMPLE_TITLE, "用户管理系统", "登录模块", "密码登录", "", "1. 登录",
                     "成功", "待测试", "高", "登录"])
    for row in rows:
        if row is None:
            buf.write("\n")
        else:
            writer.writerow(row)
    return buf.getvalue().encode(encoding)


def make_xlsx(rows) -> bytes:
    """Header + example row + *rows* (each row starts at column B)."""
    wb = Workbook()
    ws = wb.active
    ws.append(XLSX_HEADER)
    ws.append([1, EXAMPLE_TITLE, "用户管理系统", "登录模块", "密码登录", "", "1. 登录",
               "成功", "待测试", "高", "登录"])
    for idx, row in enumerate(rows, start=2):
        ws.append([idx] + list(row))
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def wait_for_job(client, job_id, timeout=10.0) -> dict:
    """Poll the progress endpoint until the job reaches a terminal state."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        resp = client.get(f"/api/v1/test-cases/batch/import/{job_id}/progress")
        assert resp.status_code == 200
        data = resp.get_json()
        if data["status"] in ("completed", "failed"):
            return data
        time.sleep(0.02)
    raise AssertionError(f"import job {job_id} did not finish in {timeout}s")
