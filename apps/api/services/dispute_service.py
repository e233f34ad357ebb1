"""
Answer dispute review.

Approve: record the disputed answer as an accepted override for the
question, mark the dispute APPROVED and re-grade the player's incorrect
history rows that the override now makes correct.
Reject: mark REJECTED with an optional comment.
Both refuse disputes that are no longer PENDING.
"""
import logging
import math
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from core.exceptions import BadRequestError, NotFoundError
from models import (
    AnswerDispute,
    AnswerOverride,
    DisputeStatus,
    GameHistory,
    OverrideSource,
    Question,
    Round,
    User,
)
from services.answer_matching import answers_match, normalize_answer
from services.cron_logger import utcnow

logger = logging.getLogger(__name__)

DEFAULT_STATS_CLUE_VALUE = 200
FINAL_STATS_CLUE_VALUE = 2000


def stats_points(round_: str, face_value: Optional[int]) -> int:
    """Points credited to a re-graded correct answer."""
    if round_ == Round.FINAL:
        return FINAL_STATS_CLUE_VALUE
    return face_value or DEFAULT_STATS_CLUE_VALUE


def _user_brief(user: Optional[User]) -> Optional[Dict[str, Any]]:
    if user is None:
        return None
    return {
        "id": str(user.id),
        "displayName": user.display_name,
        "name": user.name,
        "email": user.email,
    }


def serialize_dispute(dispute: AnswerDispute) -> Dict[str, Any]:
    question = dispute.question
    override = dispute.override
    return {
        "id": str(dispute.id),
        "userId": str(dispute.user_id),
        "questionId": str(dispute.question_id),
        "gameId": str(dispute.game_id) if dispute.game_id else None,
        "mode": dispute.mode,
        "round": dispute.round,
        "userAnswer": dispute.user_answer,
        "systemWasCorrect": dispute.system_was_correct,
        "status": dispute.status,
        "adminComment": dispute.admin_comment,
        "createdAt": dispute.created_at.isoformat() if dispute.created_at else None,
        "resolvedAt": dispute.resolved_at.isoformat() if dispute.resolved_at else None,
        "user": _user_brief(dispute.user),
        "admin": _user_brief(dispute.admin),
        "question": {
            "id": str(question.id),
            "question": question.question,
            "answer": question.answer,
            "value": question.value,
            "round": question.round,
            "category": {"id": str(question.category.id), "name": question.category.name} if question.category else None,
        } if question else None,
        "override": {"id": str(override.id), "text": override.text} if override else None,
    }


def list_disputes(
    db: Session,
    status: Optional[str] = None,
    mode: Optional[str] = None,
    page: int = 1,
    page_size: int = 20,
) -> Dict[str, Any]:
    query = db.query(AnswerDispute)
    if status:
        query = query.filter(AnswerDispute.status == status)
    if mode:
        query = query.filter(AnswerDispute.mode == mode)

    total = query.count()
    disputes = (
        query.options(
            joinedload(AnswerDispute.user),
            joinedload(AnswerDispute.admin),
            joinedload(AnswerDispute.override),
            joinedload(AnswerDispute.question).joinedload(Question.category),
        )
        .order_by(AnswerDispute.created_at.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    return {
        "disputes": [serialize_dispute(d) for d in disputes],
        "pagination": {
            "page": page,
            "pageSize": page_size,
            "total": total,
            "totalPages": math.ceil(total / page_size) if page_size else 0,
        },
    }


def pending_count(db: Session) -> int:
    return db.query(func.count(AnswerDispute.id)).filter(AnswerDispute.status == DisputeStatus.PENDING).scalar() or 0


def _get_pending(db: Session, dispute_id: UUID) -> AnswerDispute:
    dispute = (
        db.query(AnswerDispute)
        .options(joinedload(AnswerDispute.question))
        .filter(AnswerDispute.id == dispute_id)
        .first()
    )
    if not dispute:
        raise NotFoundError("Dispute")
    if dispute.status != DisputeStatus.PENDING:
        raise BadRequestError("Dispute has already been resolved", error_code="DISPUTE_RESOLVED")
    return dispute


def approve_dispute(
    db: Session,
    dispute_id: UUID,
    admin: User,
    admin_comment: Optional[str] = None,
    override_text: Optional[str] = None,
) -> Dict[str, Any]:
    dispute = _get_pending(db, dispute_id)
    question = dispute.question

    normalized = normalize_answer(override_text or dispute.user_answer)
    if not normalized:
        raise BadRequestError("Override text is empty after normalization")

    override = (
        db.query(AnswerOverride)
        .filter(AnswerOverride.question_id == dispute.question_id, AnswerOverride.text == normalized)
        .first()
    )
    if override is None:
        override = AnswerOverride(
            question_id=dispute.question_id,
            text=normalized,
            created_by_user_id=admin.id,
            source=OverrideSource.DISPUTE,
            notes=admin_comment or None,
        )
        db.add(override)
        db.flush()

    dispute.status = DisputeStatus.APPROVED
    dispute.admin_id = admin.id
    dispute.admin_comment = admin_comment or None
    dispute.override_id = override.id
    dispute.resolved_at = utcnow()

    override_texts = [
        row.text for row in db.query(AnswerOverride.text).filter(AnswerOverride.question_id == dispute.question_id).all()
    ]
    histories = (
        db.query(GameHistory)
        .filter(
            GameHistory.user_id == dispute.user_id,
            GameHistory.question_id == dispute.question_id,
            GameHistory.correct.is_(False),
        )
        .order_by(GameHistory.timestamp.asc())
        .all()
    )
    regraded = 0
    for history in histories:
        answer = history.user_answer or dispute.user_answer
        if answers_match(answer, question.answer, override_texts):
            history.correct = True
            history.points = stats_points(question.round, question.value)
            history.user_answer = answer
            regraded += 1

    db.flush()
    logger.info(f"Dispute {dispute.id} approved by {admin.id}; re-graded {regraded} history rows")
    return {
        "success": True,
        "message": "Dispute approved and override created",
        "overrideId": str(override.id),
        "regradedCount": regraded,
    }


def reject_dispute(db: Session, dispute_id: UUID, admin: User, admin_comment: Optional[str] = None) -> Dict[str, Any]:
    dispute = _get_pending(db, dispute_id)
    dispute.status = DisputeStatus.REJECTED
    dispute.admin_id = admin.id
    dispute.admin_comment = admin_comment or None
    dispute.resolved_at = utcnow()
    db.flush()
    logger.info(f"Dispute {dispute.id} rejected by {admin.id}")
    return {"success": True, "message": "Dispute rejected"}
