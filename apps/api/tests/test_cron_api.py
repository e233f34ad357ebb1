"""Scheduler endpoints guarded by the cron secret."""
import dataclasses

import pytest

from models import CronJobExecution, CronJobStatus, Question
from services.cron_jobs import CRON_JOBS


@pytest.fixture
def stub_runner(monkeypatch):
    """Swap a registered job's runner for the duration of a test."""
    def install(job_name, runner):
        monkeypatch.setitem(CRON_JOBS, job_name, dataclasses.replace(CRON_JOBS[job_name], runner=runner))
    return install


@pytest.mark.parametrize("headers", [{}, {"Authorization": "Bearer wrong"}, {"Authorization": "test-cron-secret"}])
def test_rejects_missing_or_wrong_secret(client, db_session, headers):
    resp = client.get("/v1/cron/fetch-questions", headers=headers)
    assert resp.status_code == 401
    assert db_session.query(CronJobExecution).count() == 0


def test_user_jwt_is_not_a_cron_secret(client, admin_headers):
    assert client.get("/v1/cron/dispute-summary", headers=admin_headers).status_code == 401


def test_success_is_logged_as_cron(client, cron_headers, db_session, stub_runner):
    stub_runner("fetch-questions", lambda db: {"created": 5, "skipped": 0})

    resp = client.get("/v1/cron/fetch-questions", headers=cron_headers)

    assert resp.status_code == 200
    assert resp.json() == {"success": True, "job": "fetch-questions", "result": {"created": 5, "skipped": 0}}
    execution = db_session.query(CronJobExecution).one()
    assert execution.job_name == "fetch-questions"
    assert execution.triggered_by == "cron"
    assert execution.status == CronJobStatus.SUCCESS


def test_triggered_by_header(client, cron_headers, db_session):
    resp = client.get("/v1/cron/dispute-summary", headers={**cron_headers, "x-triggered-by": "admin-42"})

    assert resp.status_code == 200
    assert resp.json()["result"]["pendingCount"] == 0
    assert db_session.query(CronJobExecution).one().triggered_by == "admin-42"


def test_skip_logging_header(client, cron_headers, db_session, stub_runner):
    stub_runner("fetch-questions", lambda db: {"created": 0})

    resp = client.get("/v1/cron/fetch-questions", headers={**cron_headers, "x-skip-cron-logging": "true"})

    assert resp.status_code == 200
    assert db_session.query(CronJobExecution).count() == 0


def test_failure_returns_500_and_keeps_failed_record(client, cron_headers, db_session, stub_runner):
    def half_done(db):
        db.add(Question(question="orphan", answer="x"))
        raise RuntimeError("archive unreachable")

    stub_runner("fetch-questions", half_done)

    resp = client.get("/v1/cron/fetch-questions", headers=cron_headers)

    assert resp.status_code == 500
    assert resp.json() == {"success": False, "error": "archive unreachable"}
    execution = db_session.query(CronJobExecution).one()
    assert execution.status == CronJobStatus.FAILED
    assert execution.error == "archive unreachable"
    assert db_session.query(Question).count() == 0
