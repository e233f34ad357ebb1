"""Tests for dispute review: approve with override + re-grade, reject."""
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from core.exceptions import BadRequestError, NotFoundError
from fixtures.trivia_fixtures import make_question, make_user
from models import (
    AnswerDispute,
    AnswerOverride,
    DisputeMode,
    DisputeStatus,
    GameHistory,
    OverrideSource,
    Round,
    UserRole,
)
from services import dispute_service
from services.dispute_service import stats_points


def _dispute(db, user, question, user_answer="Marz", created_at=None, **kwargs):
    dispute = AnswerDispute(
        user_id=user.id,
        question_id=question.id,
        mode=kwargs.pop("mode", DisputeMode.GAME),
        round=question.round,
        user_answer=user_answer,
        created_at=created_at or datetime(2025, 1, 1, tzinfo=timezone.utc),
        **kwargs,
    )
    db.add(dispute)
    db.commit()
    return dispute


@pytest.fixture
def admin(db_session):
    return make_user(db_session, role=UserRole.ADMIN, email="reviewer@example.com")


@pytest.fixture
def player(db_session):
    return make_user(db_session, email="p@example.com")


def test_stats_points():
    assert stats_points(Round.FINAL, 0) == 2000
    assert stats_points(Round.DOUBLE, 1600) == 1600
    assert stats_points(Round.SINGLE, None) == 200


class TestApprove:
    def test_creates_override_and_regrades_history(self, db_session, admin, player):
        question = make_question(db_session, answer="Mars", value=400)
        dispute = _dispute(db_session, player, question, user_answer="Marz!")
        wrong = GameHistory(user_id=player.id, question_id=question.id, correct=False, points=0, user_answer="marz")
        unrelated = GameHistory(user_id=player.id, question_id=question.id, correct=False, points=0, user_answer="Venus")
        db_session.add_all([wrong, unrelated])
        db_session.commit()

        result = dispute_service.approve_dispute(db_session, dispute.id, admin, admin_comment="fair")
        db_session.commit()

        assert result["success"] is True
        assert result["message"] == "Dispute approved and override created"
        assert result["regradedCount"] == 1

        override = db_session.query(AnswerOverride).one()
        assert override.text == "marz"
        assert override.source == OverrideSource.DISPUTE
        assert override.created_by_user_id == admin.id
        assert result["overrideId"] == str(override.id)

        db_session.refresh(dispute)
        assert dispute.status == DisputeStatus.APPROVED
        assert dispute.admin_id == admin.id
        assert dispute.admin_comment == "fair"
        assert dispute.override_id == override.id
        assert dispute.resolved_at is not None

        db_session.refresh(wrong)
        db_session.refresh(unrelated)
        assert wrong.correct is True
        assert wrong.points == 400
        assert unrelated.correct is False

    def test_override_text_takes_precedence(self, db_session, admin, player):
        question = make_question(db_session)
        dispute = _dispute(db_session, player, question, user_answer="the red one")
        dispute_service.approve_dispute(db_session, dispute.id, admin, override_text="Red Planet")
        assert db_session.query(AnswerOverride).one().text == "red planet"

    def test_reuses_existing_override(self, db_session, admin, player):
        question = make_question(db_session)
        db_session.add(AnswerOverride(question_id=question.id, text="marz"))
        db_session.commit()
        dispute = _dispute(db_session, player, question, user_answer="Marz")

        dispute_service.approve_dispute(db_session, dispute.id, admin)
        assert db_session.query(AnswerOverride).count() == 1

    def test_final_round_regrade_uses_fixed_points(self, db_session, admin, player):
        question = make_question(db_session, round_=Round.FINAL, value=0, answer="Paris")
        dispute = _dispute(db_session, player, question, user_answer="Paree")
        history = GameHistory(user_id=player.id, question_id=question.id, correct=False, user_answer=None)
        db_session.add(history)
        db_session.commit()

        dispute_service.approve_dispute(db_session, dispute.id, admin)
        db_session.refresh(history)
        assert history.correct is True
        assert history.points == 2000
        assert history.user_answer == "Paree"

    def test_empty_override_rejected(self, db_session, admin, player):
        question = make_question(db_session)
        dispute = _dispute(db_session, player, question, user_answer="?!")
        with pytest.raises(BadRequestError):
            dispute_service.approve_dispute(db_session, dispute.id, admin)


class TestResolvedGuard:
    def test_cannot_resolve_twice(self, db_session, admin, player):
        question = make_question(db_session)
        dispute = _dispute(db_session, player, question)
        dispute_service.reject_dispute(db_session, dispute.id, admin, admin_comment="no")
        db_session.commit()

        with pytest.raises(BadRequestError) as exc:
            dispute_service.approve_dispute(db_session, dispute.id, admin)
        assert exc.value.error_code == "DISPUTE_RESOLVED"
        with pytest.raises(BadRequestError):
            dispute_service.reject_dispute(db_session, dispute.id, admin)

    def test_unknown_dispute(self, db_session, admin):
        with pytest.raises(NotFoundError):
            dispute_service.reject_dispute(db_session, uuid4(), admin)


def test_reject_records_comment(db_session, admin, player):
    question = make_question(db_session)
    dispute = _dispute(db_session, player, question)

    result = dispute_service.reject_dispute(db_session, dispute.id, admin, admin_comment="Not close enough")
    db_session.commit()

    assert result == {"success": True, "message": "Dispute rejected"}
    db_session.refresh(dispute)
    assert dispute.status == DisputeStatus.REJECTED
    assert dispute.admin_comment == "Not close enough"
    assert db_session.query(AnswerOverride).count() == 0


class TestListing:
    def test_filters_and_pagination(self, db_session, player):
        question = make_question(db_session)
        base = datetime(2025, 1, 1, tzinfo=timezone.utc)
        for i in range(3):
            _dispute(db_session, player, question, created_at=base + timedelta(hours=i))
        _dispute(db_session, player, question, mode=DisputeMode.PRACTICE, status=DisputeStatus.REJECTED)

        page = dispute_service.list_disputes(db_session, status=DisputeStatus.PENDING, page=1, page_size=2)
        assert page["pagination"] == {"page": 1, "pageSize": 2, "total": 3, "totalPages": 2}
        assert len(page["disputes"]) == 2
        # Newest first
        assert page["disputes"][0]["createdAt"] > page["disputes"][1]["createdAt"]
        assert page["disputes"][0]["question"]["category"]["name"] == "SCIENCE"

        practice = dispute_service.list_disputes(db_session, mode=DisputeMode.PRACTICE)
        assert practice["pagination"]["total"] == 1

    def test_pending_count(self, db_session, player):
        question = make_question(db_session)
        _dispute(db_session, player, question)
        _dispute(db_session, player, question, status=DisputeStatus.APPROVED)
        assert dispute_service.pending_count(db_session) == 1
