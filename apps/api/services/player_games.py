"""
Admin inspection and correction of player games.
"""
import logging
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session, joinedload, selectinload

from core.exceptions import BadRequestError, NotFoundError
from models import AnswerDispute, PlayerGame, PlayerGameQuestion, Question, Round
from schemas import PlayerGameUpdates

logger = logging.getLogger(__name__)

DELETE_CONFIRMATION = "DELETE"


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def serialize_game(game: PlayerGame, with_details: bool = True) -> Dict[str, Any]:
    data = {
        "id": str(game.id),
        "userId": str(game.user_id),
        "seed": game.seed,
        "status": game.status,
        "currentRound": game.current_round,
        "currentScore": game.current_score,
        "visibility": game.visibility,
        "config": game.config,
        "createdAt": _iso(game.created_at),
        "updatedAt": _iso(game.updated_at),
    }
    if not with_details:
        return data

    categories: Dict[str, Dict[str, Any]] = {}
    for gq in game.questions:
        category = gq.question.category
        if category and str(category.id) not in categories:
            categories[str(category.id)] = {
                "id": str(category.id),
                "name": category.name,
                "round": gq.question.round or Round.SINGLE,
            }

    data.update({
        "user": {
            "id": str(game.user.id),
            "email": game.user.email,
            "displayName": game.user.display_name,
        } if game.user else None,
        "answeredQuestions": sum(1 for q in game.questions if q.answered),
        "correctQuestions": sum(1 for q in game.questions if q.correct is True),
        "totalQuestionRecords": len(game.questions),
        "categories": list(categories.values()),
    })
    return data


def list_player_games(
    db: Session,
    user_id: Optional[UUID] = None,
    status: Optional[str] = None,
    limit: int = 50,
) -> List[Dict[str, Any]]:
    query = db.query(PlayerGame).options(
        joinedload(PlayerGame.user),
        selectinload(PlayerGame.questions).joinedload(PlayerGameQuestion.question).joinedload(Question.category),
    )
    if user_id:
        query = query.filter(PlayerGame.user_id == user_id)
    if status:
        query = query.filter(PlayerGame.status == status)

    games = query.order_by(PlayerGame.updated_at.desc()).limit(limit).all()
    return [serialize_game(g) for g in games]


def _get_game(db: Session, game_id: UUID) -> PlayerGame:
    game = db.query(PlayerGame).filter(PlayerGame.id == game_id).first()
    if not game:
        raise NotFoundError("Game")
    return game


def update_player_game(db: Session, game_id: UUID, updates: PlayerGameUpdates) -> Dict[str, Any]:
    game = _get_game(db, game_id)
    changes = updates.model_dump(exclude_none=True)
    if not changes:
        raise BadRequestError("No updates provided")
    for field, value in changes.items():
        setattr(game, field, value)
    db.flush()
    db.refresh(game)
    logger.info(f"Player game {game_id} updated: {sorted(changes)}")
    return {"success": True, "game": serialize_game(game, with_details=False)}


def update_game_question(
    db: Session,
    game_id: UUID,
    question_id: UUID,
    answered: Optional[bool] = None,
    correct: Optional[bool] = None,
) -> Dict[str, Any]:
    game_question = (
        db.query(PlayerGameQuestion)
        .filter(PlayerGameQuestion.game_id == game_id, PlayerGameQuestion.question_id == question_id)
        .first()
    )
    if not game_question:
        raise NotFoundError("Game question")
    if answered is not None:
        game_question.answered = answered
    if correct is not None:
        game_question.correct = correct
    db.flush()
    return {
        "success": True,
        "gameQuestion": {
            "id": str(game_question.id),
            "gameId": str(game_question.game_id),
            "questionId": str(game_question.question_id),
            "answered": game_question.answered,
            "correct": game_question.correct,
        },
    }


def reset_game_question(db: Session, game_id: UUID, question_id: UUID) -> Dict[str, Any]:
    db.query(PlayerGameQuestion).filter(
        PlayerGameQuestion.game_id == game_id,
        PlayerGameQuestion.question_id == question_id,
    ).delete(synchronize_session=False)
    db.flush()
    return {"success": True, "message": "Question reset"}


def delete_player_game(db: Session, game_id: UUID, confirm: str) -> Dict[str, Any]:
    if confirm != DELETE_CONFIRMATION:
        raise BadRequestError('Type "DELETE" to confirm', error_code="CONFIRMATION_MISMATCH")
    game = _get_game(db, game_id)
    db.query(AnswerDispute).filter(AnswerDispute.game_id == game.id).update(
        {AnswerDispute.game_id: None}, synchronize_session=False
    )
    db.delete(game)
    db.flush()
    logger.warning(f"Deleted player game {game_id}")
    return {"success": True, "message": "Game deleted"}
