"""Tests for grouping question records into per-date games."""
from datetime import date, datetime

from schemas import QuestionRecord
from services.question_grouping import (
    UNKNOWN_CATEGORY,
    UNKNOWN_DATE,
    group_by_date,
    group_question_total,
    resolve_date_key,
    resolve_round,
    sorted_groups,
)


class TestResolveRound:
    def test_explicit_round_wins_over_legacy_flags(self):
        assert resolve_round({"round": "SINGLE", "isDoubleJeopardy": True}) == "SINGLE"
        assert resolve_round({"round": "final", "isDoubleJeopardy": True}) == "FINAL"

    def test_legacy_flags_when_round_missing(self):
        assert resolve_round({"isDoubleJeopardy": True}) == "DOUBLE"
        assert resolve_round({"isFinalJeopardy": True, "isDoubleJeopardy": True}) == "FINAL"
        assert resolve_round({"is_double_jeopardy": True}) == "DOUBLE"

    def test_defaults_to_single(self):
        assert resolve_round({}) == "SINGLE"
        assert resolve_round({"round": "BOGUS"}) == "SINGLE"


class TestResolveDateKey:
    def test_string_dates_are_cut_not_parsed(self):
        # A UTC midnight timestamp must not shift to the previous day
        assert resolve_date_key({"airDate": "2024-03-01T00:00:00.000Z"}) == "2024-03-01"
        assert resolve_date_key({"air_date": "2024-03-01"}) == "2024-03-01"

    def test_date_objects(self):
        assert resolve_date_key({"airDate": date(2024, 3, 1)}) == "2024-03-01"
        assert resolve_date_key({"airDate": datetime(2024, 3, 1, 23, 59)}) == "2024-03-01"

    def test_missing_date_is_unknown(self):
        assert resolve_date_key({}) == UNKNOWN_DATE
        assert resolve_date_key({"airDate": "  "}) == UNKNOWN_DATE


def _record(question, air_date, category, **extra):
    return {"question": question, "answer": "a", "airDate": air_date, "category": category, **extra}


def test_groups_by_date_round_and_category():
    records = [
        _record("q1", "2024-03-01", "SCIENCE", round="SINGLE"),
        _record("q2", "2024-03-01", "SCIENCE", round="SINGLE"),
        _record("q3", "2024-03-01", {"name": "HISTORY"}, round="DOUBLE"),
        _record("q4", "2024-03-01T00:00:00Z", "CAPITALS", isFinalJeopardy=True),
        _record("q5", "2024-03-02", "SCIENCE"),
    ]
    groups = group_by_date(records)

    assert set(groups) == {"2024-03-01", "2024-03-02"}
    day = groups["2024-03-01"]
    assert day.question_count == 4
    assert [c.name for c in day.single_jeopardy] == ["SCIENCE"]
    assert len(day.single_jeopardy[0].questions) == 2
    assert [c.name for c in day.double_jeopardy] == ["HISTORY"]
    assert [c.round for c in day.final_jeopardy] == ["FINAL"]


def test_question_count_matches_category_sizes():
    records = [_record(f"q{i}", "2024-03-0%d" % (i % 3 + 1), f"CAT{i % 4}", round=("SINGLE", "DOUBLE")[i % 2]) for i in range(20)]
    for group in group_by_date(records).values():
        assert group.question_count == group_question_total(group)


def test_malformed_records_land_in_unknown_buckets():
    groups = group_by_date([{"question": "q", "answer": "a"}, {"question": "q2", "category": ""}])
    assert list(groups) == [UNKNOWN_DATE]
    assert groups[UNKNOWN_DATE].single_jeopardy[0].name == UNKNOWN_CATEGORY
    assert groups[UNKNOWN_DATE].question_count == 2


def test_accepts_question_record_models():
    record = QuestionRecord(question="q", answer="a", category="SCIENCE", round="DOUBLE")
    groups = group_by_date([record])
    assert groups[UNKNOWN_DATE].double_jeopardy[0].name == "SCIENCE"


def test_sorted_groups_newest_first_unknown_last():
    groups = group_by_date([
        _record("a", "2024-01-01", "X"),
        _record("b", None, "X"),
        _record("c", "2024-05-01", "X"),
    ])
    assert [g.air_date for g in sorted_groups(groups)] == ["2024-05-01", "2024-01-01", UNKNOWN_DATE]
