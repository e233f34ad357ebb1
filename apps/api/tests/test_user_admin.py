"""Tests for admin user listing, deletion and direct email."""
from datetime import datetime, timedelta, timezone

import pytest

from core.exceptions import BadRequestError, NotFoundError
from fixtures.trivia_fixtures import make_question, make_user
from models import (
    AnswerDispute,
    AnswerOverride,
    DisputeMode,
    GameHistory,
    GameStatus,
    GuestSession,
    PlayerGame,
    PlayerGameQuestion,
    User,
    UserRole,
)
from services import user_admin


class FakeMailer:
    def __init__(self, ok=True):
        self.ok = ok
        self.sent = []

    def send_email(self, to_email, subject, html_content, text_content=None):
        self.sent.append((to_email, subject, html_content, text_content))
        return self.ok


class TestListUsers:
    def test_most_recently_online_first_never_seen_last(self, db_session):
        now = datetime(2025, 6, 1, tzinfo=timezone.utc)
        make_user(db_session, email="never@example.com")
        make_user(db_session, email="old@example.com", last_online_at=now - timedelta(days=30))
        make_user(db_session, email="recent@example.com", last_online_at=now)

        result = user_admin.list_users(db_session)

        assert [u["email"] for u in result["users"]] == [
            "recent@example.com", "old@example.com", "never@example.com",
        ]
        assert result["totalCount"] == 3

    def test_search_is_case_insensitive_across_fields(self, db_session):
        make_user(db_session, email="alice@example.com")
        make_user(db_session, email="b@example.com", display_name="Alice B")
        make_user(db_session, email="c@example.com", name="Carol")

        result = user_admin.list_users(db_session, search="ALICE")
        assert sorted(u["email"] for u in result["users"]) == ["alice@example.com", "b@example.com"]

    def test_includes_only_in_progress_games(self, db_session):
        user = make_user(db_session)
        db_session.add_all([
            PlayerGame(user_id=user.id, status=GameStatus.IN_PROGRESS, current_score=400),
            PlayerGame(user_id=user.id, status=GameStatus.COMPLETED),
        ])
        db_session.commit()

        games = user_admin.list_users(db_session)["users"][0]["games"]
        assert len(games) == 1
        assert games[0]["currentScore"] == 400

    def test_pagination(self, db_session):
        for i in range(5):
            make_user(db_session, email=f"u{i}@example.com")
        result = user_admin.list_users(db_session, limit=2, offset=4)
        assert len(result["users"]) == 1
        assert result["totalCount"] == 5
        assert (result["limit"], result["offset"]) == (2, 4)


class TestDeleteUser:
    def test_confirmation_must_match(self, db_session):
        user = make_user(db_session, email="x@example.com")
        with pytest.raises(BadRequestError, match="does not match"):
            user_admin.delete_user(db_session, user.id, "X@example.com")

    def test_unknown_user(self, db_session):
        from uuid import uuid4
        with pytest.raises(NotFoundError):
            user_admin.delete_user(db_session, uuid4(), "x@example.com")

    def test_removes_user_data_and_clears_references(self, db_session):
        doomed = make_user(db_session, email="doomed@example.com", role=UserRole.ADMIN)
        other = make_user(db_session, email="other@example.com")
        question = make_question(db_session)

        game = PlayerGame(user_id=doomed.id)
        db_session.add(game)
        db_session.flush()
        db_session.add(PlayerGameQuestion(game_id=game.id, question_id=question.id))
        db_session.add(GameHistory(user_id=doomed.id, question_id=question.id, correct=True))
        override = AnswerOverride(question_id=question.id, text="mars planet", created_by_user_id=doomed.id)
        db_session.add(override)
        db_session.flush()
        own_dispute = AnswerDispute(
            user_id=doomed.id, question_id=question.id, game_id=game.id, mode=DisputeMode.GAME, user_answer="a",
        )
        reviewed = AnswerDispute(
            user_id=other.id, question_id=question.id, mode=DisputeMode.GAME, user_answer="b",
            admin_id=doomed.id, override_id=override.id, status="APPROVED",
        )
        guest = GuestSession(
            type="RANDOM_GAME",
            expires_at=datetime(2030, 1, 1, tzinfo=timezone.utc),
            claimed_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
            claimed_by_user_id=doomed.id,
        )
        db_session.add_all([own_dispute, reviewed, guest])
        db_session.commit()
        reviewed_id, guest_id = reviewed.id, guest.id

        result = user_admin.delete_user(db_session, doomed.id, "doomed@example.com")
        db_session.commit()
        db_session.expire_all()

        assert result["message"] == "User and all related data deleted successfully"
        assert db_session.query(User).filter(User.id == doomed.id).first() is None
        assert db_session.query(PlayerGame).count() == 0
        assert db_session.query(PlayerGameQuestion).count() == 0
        assert db_session.query(GameHistory).count() == 0
        assert db_session.query(AnswerOverride).count() == 0

        kept = db_session.get(AnswerDispute, reviewed_id)
        assert kept is not None
        assert kept.admin_id is None
        assert kept.override_id is None
        assert db_session.query(AnswerDispute).count() == 1

        claimed = db_session.get(GuestSession, guest_id)
        assert claimed.claimed_by_user_id is None


class TestSendUserEmail:
    def test_sends_escaped_html(self, db_session):
        user = make_user(db_session, email="p@example.com", display_name="Pat")
        mailer = FakeMailer()

        result = user_admin.send_user_email(db_session, user.id, "Hi", "Line 1\n<b>Line 2</b>", mailer=mailer)

        assert result["message"] == "Email sent to Pat (p@example.com)"
        to, subject, html, text = mailer.sent[0]
        assert (to, subject) == ("p@example.com", "Hi")
        assert html == "Line 1<br>&lt;b&gt;Line 2&lt;/b&gt;"
        assert text == "Line 1\n<b>Line 2</b>"

    def test_delivery_failure_is_an_error(self, db_session):
        user = make_user(db_session)
        with pytest.raises(BadRequestError, match="Failed to send"):
            user_admin.send_user_email(db_session, user.id, "Hi", "Body", mailer=FakeMailer(ok=False))
