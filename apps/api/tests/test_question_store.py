"""Tests for question persistence: push, import, delete and aggregates."""
from datetime import date

import pytest

from core.exceptions import BadRequestError
from fixtures.trivia_fixtures import make_fetched_game, make_question, make_user
from models import (
    AnswerDispute,
    AnswerOverride,
    Category,
    DisputeMode,
    GameHistory,
    Question,
)
from schemas import DeleteCriteria, ImportQuestion
from services import question_store


class TestPushGame:
    def test_creates_questions_with_round_flags(self, db_session):
        created, skipped = question_store.push_game(db_session, make_fetched_game(clues=2))
        db_session.commit()

        assert (created, skipped) == (3, 0)
        questions = db_session.query(Question).order_by(Question.value).all()
        assert {q.round for q in questions} == {"SINGLE", "FINAL"}
        assert all(q.air_date == date(2024, 3, 1) for q in questions)
        assert all(q.episode_id == "9001" for q in questions)
        assert all(q.season == 41 for q in questions)
        assert not any(q.is_double_jeopardy for q in questions)

    def test_second_push_skips_duplicates(self, db_session):
        game = make_fetched_game()
        question_store.push_game(db_session, game)
        created, skipped = question_store.push_game(db_session, game)
        assert (created, skipped) == (0, 4)
        assert db_session.query(Question).count() == 4

    def test_same_text_on_another_date_is_not_a_duplicate(self, db_session):
        question_store.push_game(db_session, make_fetched_game(air_date="2024-03-01"))
        created, _ = question_store.push_game(db_session, make_fetched_game(air_date="2024-03-02"))
        assert created == 4

    def test_categories_are_reused(self, db_session):
        question_store.push_game(db_session, make_fetched_game(game_id="1", air_date="2024-03-01"))
        question_store.push_game(db_session, make_fetched_game(game_id="2", air_date="2024-03-02"))
        assert db_session.query(Category).count() == 2

    def test_rejects_bad_air_date(self, db_session):
        with pytest.raises(BadRequestError):
            question_store.push_game(db_session, make_fetched_game(air_date="03/01/2024"))


def test_import_questions_defaults(db_session):
    count = question_store.import_questions(db_session, [
        ImportQuestion(question="q1", answer="a1", category="ART"),
        ImportQuestion(question="q2", answer="a2", category="ART", round="DOUBLE", air_date="2024-01-01"),
    ])
    db_session.commit()

    assert count == 2
    q2 = db_session.query(Question).filter(Question.question == "q2").one()
    assert q2.round == "DOUBLE"
    assert q2.is_double_jeopardy is True
    assert q2.difficulty == "MEDIUM"
    assert q2.knowledge_category == "GENERAL_KNOWLEDGE"


class TestListQuestions:
    def test_date_bounds_inclusive_and_independent(self, db_session):
        for day in (1, 2, 3):
            make_question(db_session, text=f"q{day}", air_date=date(2024, 1, day))

        assert len(question_store.list_questions(db_session, start_date="2024-01-02")) == 2
        assert len(question_store.list_questions(db_session, end_date="2024-01-02")) == 2
        only = question_store.list_questions(db_session, start_date="2024-01-02", end_date="2024-01-02")
        assert [q.question for q in only] == ["q2"]

    def test_newest_first(self, db_session):
        make_question(db_session, text="old", air_date=date(2023, 1, 1))
        make_question(db_session, text="new", air_date=date(2024, 1, 1))
        assert [q.question for q in question_store.list_questions(db_session)] == ["new", "old"]

    def test_invalid_date(self, db_session):
        with pytest.raises(BadRequestError):
            question_store.list_questions(db_session, start_date="yesterday")


class TestDeleteQuestions:
    def test_requires_criteria(self, db_session):
        with pytest.raises(BadRequestError):
            question_store.delete_questions(db_session, DeleteCriteria())
        with pytest.raises(BadRequestError):
            question_store.delete_questions(db_session, DeleteCriteria(start_date="2024-01-01"))

    def test_deletes_range_with_dependents(self, db_session):
        player = make_user(db_session)
        doomed = make_question(db_session, text="doomed", air_date=date(2024, 1, 1))
        kept = make_question(db_session, text="kept", air_date=date(2024, 1, 2))
        db_session.add(GameHistory(user_id=player.id, question_id=doomed.id, correct=False))
        db_session.add(AnswerOverride(question_id=doomed.id, text="x"))
        db_session.add(AnswerDispute(
            user_id=player.id, question_id=doomed.id, mode=DisputeMode.PRACTICE, user_answer="y",
        ))
        db_session.commit()

        deleted = question_store.delete_questions(
            db_session, DeleteCriteria(start_date="2024-01-01", end_date="2024-01-01")
        )
        db_session.commit()

        assert deleted == 1
        assert [q.id for q in db_session.query(Question).all()] == [kept.id]
        assert db_session.query(GameHistory).count() == 0
        assert db_session.query(AnswerOverride).count() == 0
        assert db_session.query(AnswerDispute).count() == 0

    def test_deletes_by_season(self, db_session):
        make_question(db_session, text="s40", season=40)
        make_question(db_session, text="s41", season=41)
        assert question_store.delete_questions(db_session, DeleteCriteria(season=40)) == 1


def test_filled_dates_distinct_ascending(db_session):
    make_question(db_session, text="a", air_date=date(2024, 1, 2))
    make_question(db_session, text="b", air_date=date(2024, 1, 2))
    make_question(db_session, text="c", air_date=date(2024, 1, 1))
    make_question(db_session, text="d", air_date=None)
    assert question_store.filled_dates(db_session) == ["2024-01-01", "2024-01-02"]


def test_content_metrics(db_session):
    make_question(db_session, text="a", round_="SINGLE", air_date=date(2024, 1, 1), was_triple_stumper=True)
    make_question(db_session, text="b", round_="DOUBLE", air_date=date(2024, 2, 1))
    make_question(db_session, text="c", round_="DOUBLE", air_date=None, category="HISTORY")

    metrics = question_store.content_metrics(db_session)

    assert metrics["totalQuestions"] == 3
    assert metrics["totalCategories"] == 2
    assert metrics["questionsByRound"] == {"SINGLE": 1, "DOUBLE": 2, "FINAL": 0}
    assert metrics["questionsWithAirDate"] == 2
    assert metrics["questionsWithoutAirDate"] == 1
    assert metrics["tripleStumpers"] == 1
    assert metrics["airDateRange"] == {"earliest": "2024-01-01", "latest": "2024-02-01"}
