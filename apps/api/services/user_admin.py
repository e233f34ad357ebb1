"""
User management for the admin dashboard: listing with in-progress games,
hard deletion with dependent rows, and one-off emails.
"""
import logging
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

from core.exceptions import BadRequestError, NotFoundError
from models import (
    AnswerDispute,
    AnswerOverride,
    GameHistory,
    GameStatus,
    GuestSession,
    PlayerGame,
    PlayerGameQuestion,
    User,
)
from services.email_service import EmailService, email_service as default_email_service, plain_text_to_html

logger = logging.getLogger(__name__)


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def _serialize_user(user: User, in_progress: List[PlayerGame]) -> Dict[str, Any]:
    return {
        "id": str(user.id),
        "email": user.email,
        "name": user.name,
        "displayName": user.display_name,
        "role": user.role,
        "createdAt": _iso(user.created_at),
        "lastOnlineAt": _iso(user.last_online_at),
        "lastSeenPath": user.last_seen_path,
        "games": [
            {
                "id": str(g.id),
                "seed": g.seed,
                "currentRound": g.current_round,
                "currentScore": g.current_score,
                "createdAt": _iso(g.created_at),
                "updatedAt": _iso(g.updated_at),
            }
            for g in in_progress
        ],
    }


def list_users(db: Session, search: Optional[str] = None, limit: int = 100, offset: int = 0) -> Dict[str, Any]:
    query = db.query(User)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(
            User.email.ilike(pattern),
            User.display_name.ilike(pattern),
            User.name.ilike(pattern),
        ))

    total = query.count()
    # Most recently active first; never-seen users last
    users = (
        query.order_by(User.last_online_at.is_(None), User.last_online_at.desc(), User.created_at.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )

    games_by_user: Dict[UUID, List[PlayerGame]] = {u.id: [] for u in users}
    if users:
        games = (
            db.query(PlayerGame)
            .filter(PlayerGame.user_id.in_(list(games_by_user)), PlayerGame.status == GameStatus.IN_PROGRESS)
            .order_by(PlayerGame.updated_at.desc())
            .all()
        )
        for game in games:
            games_by_user[game.user_id].append(game)

    return {
        "users": [_serialize_user(u, games_by_user[u.id]) for u in users],
        "totalCount": total,
        "limit": limit,
        "offset": offset,
    }


def delete_user(db: Session, user_id: UUID, confirm_email: str) -> Dict[str, Any]:
    """
    Delete a user and everything that references them.

    Disputes they resolved and guest sessions they claimed are kept with the
    reference cleared. The typed email must match exactly.
    """
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError("User")
    if confirm_email != user.email:
        raise BadRequestError("Confirmation email does not match", error_code="CONFIRMATION_MISMATCH")

    game_ids = [row.id for row in db.query(PlayerGame.id).filter(PlayerGame.user_id == user_id).all()]
    if game_ids:
        db.query(AnswerDispute).filter(AnswerDispute.game_id.in_(game_ids)).update(
            {AnswerDispute.game_id: None}, synchronize_session=False
        )
        db.query(PlayerGameQuestion).filter(PlayerGameQuestion.game_id.in_(game_ids)).delete(synchronize_session=False)
        db.query(PlayerGame).filter(PlayerGame.id.in_(game_ids)).delete(synchronize_session=False)

    db.query(GameHistory).filter(GameHistory.user_id == user_id).delete(synchronize_session=False)
    db.query(AnswerDispute).filter(AnswerDispute.user_id == user_id).delete(synchronize_session=False)
    db.query(AnswerDispute).filter(AnswerDispute.admin_id == user_id).update(
        {AnswerDispute.admin_id: None}, synchronize_session=False
    )

    override_ids = [
        row.id for row in db.query(AnswerOverride.id).filter(AnswerOverride.created_by_user_id == user_id).all()
    ]
    if override_ids:
        db.query(AnswerDispute).filter(AnswerDispute.override_id.in_(override_ids)).update(
            {AnswerDispute.override_id: None}, synchronize_session=False
        )
        db.query(AnswerOverride).filter(AnswerOverride.id.in_(override_ids)).delete(synchronize_session=False)

    db.query(GuestSession).filter(GuestSession.claimed_by_user_id == user_id).update(
        {GuestSession.claimed_by_user_id: None}, synchronize_session=False
    )

    db.query(User).filter(User.id == user_id).delete(synchronize_session=False)
    db.flush()
    logger.warning(f"Deleted user {user_id} and related data")
    return {"success": True, "message": "User and all related data deleted successfully"}


def send_user_email(
    db: Session,
    user_id: UUID,
    subject: str,
    body: str,
    mailer: Optional[EmailService] = None,
) -> Dict[str, Any]:
    mailer = mailer or default_email_service
    user = db.query(User).filter(User.id == user_id).first()
    if not user or not user.email:
        raise BadRequestError("User not found or has no email address")

    recipient = user.display_name or user.name or user.email
    if not mailer.send_email(user.email, subject, plain_text_to_html(body), body):
        raise BadRequestError(f"Failed to send email to {user.email}", error_code="EMAIL_FAILED")

    return {"success": True, "message": f"Email sent to {recipient} ({user.email})"}
