"""
Question persistence.

Everything the admin content endpoints do to the question table:
listing by season/date, pushing a fetched game with duplicate detection,
bulk import, deletion by criteria, and the aggregates behind the
calendar and content-metrics views.
"""
import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from core.exceptions import BadRequestError
from models import (
    AnswerDispute,
    AnswerOverride,
    Category,
    Difficulty,
    GameHistory,
    KnowledgeCategory,
    PlayerGameQuestion,
    Question,
    Round,
)
from schemas import DeleteCriteria, FetchedGame, ImportQuestion
from services.archive_scraper import is_valid_date_format
from services.question_grouping import resolve_round

logger = logging.getLogger(__name__)


def serialize_question(question: Question) -> Dict[str, Any]:
    category = question.category
    return {
        "id": str(question.id),
        "question": question.question,
        "answer": question.answer,
        "value": question.value,
        "difficulty": question.difficulty,
        "knowledgeCategory": question.knowledge_category,
        "airDate": question.air_date.isoformat() if question.air_date else None,
        "season": question.season,
        "episodeId": question.episode_id,
        "round": question.round,
        "isDoubleJeopardy": question.is_double_jeopardy,
        "wasTripleStumper": question.was_triple_stumper,
        "category": {"id": str(category.id), "name": category.name} if category else None,
    }


def _parse_date(value: Optional[str], field: str) -> Optional[date]:
    if not value:
        return None
    if not is_valid_date_format(value):
        raise BadRequestError(f"Invalid date format: {value}. Expected YYYY-MM-DD.", error_code=f"INVALID_{field.upper()}")
    return date.fromisoformat(value)


def list_questions(
    db: Session,
    season: Optional[int] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
) -> List[Question]:
    """Either date bound may be given alone; both are inclusive."""
    query = db.query(Question).options(joinedload(Question.category))
    if season is not None:
        query = query.filter(Question.season == season)
    start = _parse_date(start_date, "start_date")
    end = _parse_date(end_date, "end_date")
    if start:
        query = query.filter(Question.air_date >= start)
    if end:
        query = query.filter(Question.air_date <= end)
    return query.order_by(Question.air_date.desc(), Question.season.desc()).all()


def get_or_create_category(db: Session, name: str) -> Category:
    category = db.query(Category).filter(Category.name == name).first()
    if category is None:
        category = Category(name=name)
        db.add(category)
        db.flush()
    return category


def push_game(db: Session, game: FetchedGame, episode_id: Optional[str] = None) -> Tuple[int, int]:
    """
    Store a fetched game's questions.

    A question whose text already exists for the same air date is skipped.
    Returns (created, skipped).
    """
    air_date = _parse_date(game.air_date, "air_date")
    created = 0
    skipped = 0

    for record in game.questions:
        existing_query = db.query(Question.id).filter(Question.question == record.question)
        if air_date is None:
            existing_query = existing_query.filter(Question.air_date.is_(None))
        else:
            existing_query = existing_query.filter(Question.air_date == air_date)
        if existing_query.first():
            skipped += 1
            continue

        category = get_or_create_category(db, record.category or "Unknown")
        round_ = resolve_round(record.model_dump(by_alias=True, exclude_none=True))

        db.add(Question(
            question=record.question,
            answer=record.answer,
            value=record.value,
            category_id=category.id,
            difficulty=record.difficulty or Difficulty.MEDIUM,
            air_date=air_date,
            season=game.season,
            episode_id=episode_id or game.game_id,
            knowledge_category=record.knowledge_category or KnowledgeCategory.GENERAL_KNOWLEDGE,
            round=round_,
            is_double_jeopardy=round_ == Round.DOUBLE,
            was_triple_stumper=bool(record.was_triple_stumper),
        ))
        # Flush so a duplicate inside the same payload is detected
        db.flush()
        created += 1

    logger.info(f"Pushed game {game.game_id} ({game.air_date}): created={created} skipped={skipped}")
    return created, skipped


def import_questions(db: Session, items: Iterable[ImportQuestion]) -> int:
    count = 0
    for item in items:
        category = get_or_create_category(db, item.category)
        round_ = item.round or Round.SINGLE
        db.add(Question(
            question=item.question,
            answer=item.answer,
            value=item.value,
            category_id=category.id,
            difficulty=item.difficulty or Difficulty.MEDIUM,
            air_date=_parse_date(item.air_date, "air_date"),
            season=item.season,
            episode_id=item.episode_id,
            knowledge_category=item.knowledge_category or KnowledgeCategory.GENERAL_KNOWLEDGE,
            round=round_,
            is_double_jeopardy=round_ == Round.DOUBLE,
            was_triple_stumper=bool(item.was_triple_stumper),
        ))
        count += 1
    db.flush()
    return count


def delete_questions(db: Session, criteria: DeleteCriteria) -> int:
    """
    Delete by season and/or an inclusive date range.

    Refuses an empty criteria set instead of wiping the table.
    """
    if criteria.season is None and not (criteria.start_date and criteria.end_date):
        raise BadRequestError("Provide a season or both startDate and endDate")

    query = db.query(Question)
    if criteria.season is not None:
        query = query.filter(Question.season == criteria.season)
    if criteria.start_date and criteria.end_date:
        query = query.filter(
            Question.air_date >= _parse_date(criteria.start_date, "start_date"),
            Question.air_date <= _parse_date(criteria.end_date, "end_date"),
        )

    ids = [row.id for row in query.with_entities(Question.id).all()]
    if not ids:
        return 0

    # Dependent rows first
    for model in (AnswerDispute, GameHistory, PlayerGameQuestion):
        db.query(model).filter(model.question_id.in_(ids)).delete(synchronize_session=False)
    db.query(AnswerOverride).filter(AnswerOverride.question_id.in_(ids)).delete(synchronize_session=False)
    deleted = db.query(Question).filter(Question.id.in_(ids)).delete(synchronize_session=False)

    logger.warning(f"Deleted {deleted} questions (season={criteria.season}, {criteria.start_date}..{criteria.end_date})")
    return deleted


def filled_dates(db: Session) -> List[str]:
    """Distinct air dates with at least one stored question, ascending."""
    rows = (
        db.query(Question.air_date)
        .filter(Question.air_date.isnot(None))
        .distinct()
        .order_by(Question.air_date.asc())
        .all()
    )
    return [row[0].isoformat() for row in rows]


def content_metrics(db: Session) -> Dict[str, Any]:
    total = db.query(func.count(Question.id)).scalar() or 0
    by_round = dict(db.query(Question.round, func.count(Question.id)).group_by(Question.round).all())
    by_knowledge = dict(
        db.query(Question.knowledge_category, func.count(Question.id))
        .group_by(Question.knowledge_category).all()
    )
    by_difficulty = dict(db.query(Question.difficulty, func.count(Question.id)).group_by(Question.difficulty).all())
    with_air_date = db.query(func.count(Question.id)).filter(Question.air_date.isnot(None)).scalar() or 0
    triple_stumpers = db.query(func.count(Question.id)).filter(Question.was_triple_stumper.is_(True)).scalar() or 0
    earliest, latest = db.query(func.min(Question.air_date), func.max(Question.air_date)).one()

    return {
        "totalQuestions": total,
        "totalCategories": db.query(func.count(Category.id)).scalar() or 0,
        "questionsByRound": {r: by_round.get(r, 0) for r in Round.ALL},
        "questionsByKnowledgeCategory": by_knowledge,
        "questionsByDifficulty": by_difficulty,
        "questionsWithAirDate": with_air_date,
        "questionsWithoutAirDate": total - with_air_date,
        "tripleStumpers": triple_stumpers,
        "airDateRange": {
            "earliest": earliest.isoformat() if earliest else None,
            "latest": latest.isoformat() if latest else None,
        },
    }
