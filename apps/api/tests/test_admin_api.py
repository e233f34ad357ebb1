"""Admin endpoints for disputes, users, player games, guests and cron jobs."""
import dataclasses
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from fixtures.trivia_fixtures import make_question, make_user
from models import (
    AnswerDispute,
    AnswerOverride,
    CronJobExecution,
    CronJobStatus,
    DisputeMode,
    DisputeStatus,
    GameHistory,
    GameStatus,
    GuestSession,
    PlayerGame,
    PlayerGameQuestion,
    User,
)
from services.cron_jobs import CRON_JOBS
from services.cron_logger import utcnow


def _dispute(db, user, question, user_answer="Red Planet", created_at=None):
    dispute = AnswerDispute(
        user_id=user.id,
        question_id=question.id,
        mode=DisputeMode.GAME,
        round=question.round,
        user_answer=user_answer,
        created_at=created_at or datetime(2025, 3, 1, 12, tzinfo=timezone.utc),
    )
    db.add(dispute)
    db.commit()
    return dispute


class TestDisputes:
    def test_list_and_stats(self, client, admin_headers, db_session, player):
        question = make_question(db_session)
        _dispute(db_session, player, question, created_at=datetime(2025, 3, 1, tzinfo=timezone.utc))
        _dispute(db_session, player, question, user_answer="Venus", created_at=datetime(2025, 3, 2, tzinfo=timezone.utc))

        body = client.get("/v1/admin/disputes", params={"status": "PENDING", "pageSize": 1}, headers=admin_headers).json()

        assert body["pagination"] == {"page": 1, "pageSize": 1, "total": 2, "totalPages": 2}
        assert body["disputes"][0]["userAnswer"] == "Venus"
        assert body["disputes"][0]["user"]["displayName"] == "Player One"

        stats = client.get("/v1/admin/disputes/stats", headers=admin_headers).json()
        assert stats == {"pendingCount": 2}

    def test_approve_creates_override_and_regrades(self, client, admin_headers, admin_user, db_session, player):
        question = make_question(db_session)
        dispute = _dispute(db_session, player, question)
        db_session.add(GameHistory(user_id=player.id, question_id=question.id, correct=False, user_answer="Red Planet"))
        db_session.commit()

        resp = client.post(
            f"/v1/admin/disputes/{dispute.id}/approve",
            json={"adminComment": "fair", "overrideText": "Red Planet"},
            headers=admin_headers,
        )

        assert resp.status_code == 200
        body = resp.json()
        assert body["regradedCount"] == 1
        db_session.expire_all()
        resolved = db_session.get(AnswerDispute, dispute.id)
        assert resolved.status == DisputeStatus.APPROVED
        assert resolved.admin_id == admin_user.id
        assert db_session.query(AnswerOverride).one().text == "red planet"

    def test_reject_without_body_then_double_resolve(self, client, admin_headers, db_session, player):
        dispute = _dispute(db_session, player, make_question(db_session))

        first = client.post(f"/v1/admin/disputes/{dispute.id}/reject", headers=admin_headers)
        second = client.post(f"/v1/admin/disputes/{dispute.id}/reject", headers=admin_headers)

        assert first.json() == {"success": True, "message": "Dispute rejected"}
        assert second.status_code == 400

    def test_unknown_dispute(self, client, admin_headers):
        resp = client.post(f"/v1/admin/disputes/{uuid4()}/approve", headers=admin_headers)
        assert resp.status_code == 404


class TestUsers:
    def test_list(self, client, admin_headers, player):
        body = client.get("/v1/admin/users", params={"search": "player one"}, headers=admin_headers).json()
        assert [u["email"] for u in body["users"]] == ["player@example.com"]

    def test_delete_requires_matching_email(self, client, admin_headers, db_session, player):
        resp = client.request(
            "DELETE", f"/v1/admin/users/{player.id}", json={"confirmEmail": "wrong@example.com"}, headers=admin_headers,
        )
        assert resp.status_code == 400
        assert db_session.get(User, player.id) is not None

    def test_delete(self, client, admin_headers, db_session, player):
        player_id = player.id
        resp = client.request(
            "DELETE", f"/v1/admin/users/{player_id}", json={"confirmEmail": "player@example.com"}, headers=admin_headers,
        )
        assert resp.status_code == 200
        db_session.expire_all()
        assert db_session.query(User).filter(User.id == player_id).first() is None

    def test_cannot_delete_self(self, client, admin_headers, admin_user):
        resp = client.request(
            "DELETE", f"/v1/admin/users/{admin_user.id}", json={"confirmEmail": admin_user.email}, headers=admin_headers,
        )
        assert resp.status_code == 400

    def test_send_email_fails_when_email_disabled(self, client, admin_headers, player):
        resp = client.post(
            "/v1/admin/users/send-email",
            json={"userId": str(player.id), "subject": "Hello", "body": "Hi there"},
            headers=admin_headers,
        )
        assert resp.status_code == 400

    def test_send_email_requires_subject(self, client, admin_headers, player):
        resp = client.post(
            "/v1/admin/users/send-email",
            json={"userId": str(player.id), "subject": "", "body": "Hi"},
            headers=admin_headers,
        )
        assert resp.status_code == 422


@pytest.fixture
def player_game(db_session, player):
    question = make_question(db_session)
    game = PlayerGame(user_id=player.id, current_score=200)
    db_session.add(game)
    db_session.flush()
    db_session.add(PlayerGameQuestion(game_id=game.id, question_id=question.id, answered=True, correct=True))
    db_session.commit()
    return game, question


class TestPlayerGames:
    def test_list_with_details(self, client, admin_headers, player_game):
        game, _ = player_game
        games = client.get("/v1/admin/player-games", headers=admin_headers).json()["games"]

        assert len(games) == 1
        assert games[0]["id"] == str(game.id)
        assert games[0]["answeredQuestions"] == 1
        assert games[0]["correctQuestions"] == 1
        assert games[0]["categories"][0]["name"] == "SCIENCE"
        assert games[0]["user"]["email"] == "player@example.com"

    def test_patch(self, client, admin_headers, player_game):
        game, _ = player_game
        resp = client.patch(
            "/v1/admin/player-games",
            json={"gameId": str(game.id), "updates": {"currentScore": 1000, "status": "COMPLETED"}},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["game"]["currentScore"] == 1000
        assert resp.json()["game"]["status"] == GameStatus.COMPLETED

    def test_patch_without_updates(self, client, admin_headers, player_game):
        game, _ = player_game
        resp = client.patch("/v1/admin/player-games", json={"gameId": str(game.id), "updates": {}}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json()["detail"] == "No updates provided"

    def test_update_and_reset_question(self, client, admin_headers, db_session, player_game):
        game, question = player_game
        update = client.post(
            "/v1/admin/player-games",
            json={"action": "updateQuestion", "gameId": str(game.id), "questionId": str(question.id),
                  "updates": {"correct": False}},
            headers=admin_headers,
        )
        assert update.json()["gameQuestion"]["correct"] is False
        assert update.json()["gameQuestion"]["answered"] is True

        reset = client.post(
            "/v1/admin/player-games",
            json={"action": "resetQuestion", "gameId": str(game.id), "questionId": str(question.id)},
            headers=admin_headers,
        )
        assert reset.json() == {"success": True, "message": "Question reset"}
        assert db_session.query(PlayerGameQuestion).count() == 0

    def test_delete_requires_confirmation(self, client, admin_headers, db_session, player_game):
        game, _ = player_game
        refused = client.request(
            "DELETE", f"/v1/admin/player-games/{game.id}", json={"confirm": "delete"}, headers=admin_headers,
        )
        assert refused.status_code == 400

        resp = client.request(
            "DELETE", f"/v1/admin/player-games/{game.id}", json={"confirm": "DELETE"}, headers=admin_headers,
        )
        assert resp.status_code == 200
        db_session.expire_all()
        assert db_session.query(PlayerGame).count() == 0


class TestGuests:
    def test_get_creates_defaults(self, client, admin_headers):
        body = client.get("/v1/admin/guest-config", headers=admin_headers).json()
        assert body["id"] == "default"
        assert body["dailyChallengeMinLookbackDays"] == 365
        assert body["randomGameMaxCategoriesBeforeAuth"] is None

    def test_partial_update_and_null_handling(self, client, admin_headers):
        client.put(
            "/v1/admin/guest-config",
            json={"randomGameMaxCategoriesBeforeAuth": 3, "dailyChallengeSeasons": [40, 41]},
            headers=admin_headers,
        )
        body = client.put(
            "/v1/admin/guest-config",
            json={"randomGameMaxCategoriesBeforeAuth": None, "timeToAuthenticateMinutes": None},
            headers=admin_headers,
        ).json()

        assert body["randomGameMaxCategoriesBeforeAuth"] is None
        assert body["timeToAuthenticateMinutes"] == 1440
        assert body["dailyChallengeSeasons"] == [40, 41]

    @pytest.mark.parametrize("days", [29, 1826])
    def test_lookback_bounds(self, client, admin_headers, days):
        resp = client.put("/v1/admin/guest-config", json={"dailyChallengeMinLookbackDays": days}, headers=admin_headers)
        assert resp.status_code == 422

    def test_guest_stats(self, client, admin_headers, db_session):
        now = utcnow()
        db_session.add_all([
            GuestSession(type="RANDOM_GAME", expires_at=now + timedelta(hours=1)),
            GuestSession(type="RANDOM_GAME", expires_at=now - timedelta(hours=1)),
            GuestSession(type="DAILY_CHALLENGE", expires_at=now + timedelta(hours=1), claimed_at=now),
        ])
        db_session.commit()

        body = client.get("/v1/admin/guest-stats", headers=admin_headers).json()

        assert body["active"] == 1
        assert body["claimed"] == 1
        assert body["expired"] == 1
        assert body["byType"] == {"RANDOM_GAME": 1}


class TestCronJobs:
    def test_overview_sweeps_timed_out_runs(self, client, admin_headers, db_session):
        now = utcnow()
        db_session.add_all([
            CronJobExecution(job_name="fetch-games", status=CronJobStatus.RUNNING, started_at=now - timedelta(hours=1)),
            CronJobExecution(job_name="fetch-questions", status=CronJobStatus.SUCCESS, started_at=now - timedelta(hours=2)),
        ])
        db_session.commit()

        body = client.get("/v1/admin/cron-jobs", headers=admin_headers).json()

        assert body["timedOutCount"] == 1
        assert body["stats"] == {"fetch-games:FAILED": 1, "fetch-questions:SUCCESS": 1}
        assert body["latestExecutions"]["dispute-summary"] is None
        assert body["latestExecutions"]["fetch-games"]["status"] == CronJobStatus.FAILED
        assert body["jobs"]["fetch-games"]["endpoint"] is None
        assert [e["jobName"] for e in body["executions"]] == ["fetch-games", "fetch-questions"]

    def test_internal_job_cannot_be_triggered(self, client, admin_headers, db_session):
        resp = client.post("/v1/admin/cron-jobs/fetch-games/trigger", headers=admin_headers)
        assert resp.status_code == 400
        assert db_session.query(CronJobExecution).count() == 0

    def test_unknown_job(self, client, admin_headers):
        assert client.post("/v1/admin/cron-jobs/nope/trigger", headers=admin_headers).status_code == 400

    def test_trigger_logs_admin_as_trigger(self, client, admin_headers, admin_user, db_session):
        resp = client.post("/v1/admin/cron-jobs/dispute-summary/trigger", headers=admin_headers)

        assert resp.status_code == 200
        assert resp.json()["message"] == "Cron job dispute-summary triggered successfully"
        assert resp.json()["result"]["pendingCount"] == 0
        execution = db_session.query(CronJobExecution).one()
        assert execution.triggered_by == str(admin_user.id)
        assert execution.status == CronJobStatus.SUCCESS

    def test_trigger_failure_returns_500(self, client, admin_headers, db_session, monkeypatch):
        def boom(db):
            raise RuntimeError("smtp down")

        job = CRON_JOBS["dispute-summary"]
        monkeypatch.setitem(CRON_JOBS, "dispute-summary", dataclasses.replace(job, runner=boom))

        resp = client.post("/v1/admin/cron-jobs/dispute-summary/trigger", headers=admin_headers)

        assert resp.status_code == 500
        assert resp.json() == {"success": False, "error": "smtp down"}
        assert db_session.query(CronJobExecution).one().status == CronJobStatus.FAILED
