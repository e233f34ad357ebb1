"""Tests for the server-side fetch jobs."""
from datetime import date

from fixtures.trivia_fixtures import make_fetched_game, make_question
from models import Question
from services.scheduled_ingestion import ingest_dates, run_fetch_games, run_fetch_questions, window_dates


class FakeArchive:
    def __init__(self, available):
        self.available = set(available)
        self.requested = []

    def parse_game_by_date(self, target_date):
        self.requested.append(target_date)
        if target_date not in self.available:
            return None
        return make_fetched_game(game_id=target_date.replace("-", ""), air_date=target_date, clues=2)


def test_window_dates_oldest_first():
    assert window_dates(date(2025, 3, 1), 3) == ["2025-02-27", "2025-02-28", "2025-03-01"]


def test_fetch_questions_targets_yesterday(db_session):
    archive = FakeArchive({"2025-01-09"})

    summary = run_fetch_questions(db_session, today="2025-01-10", client=archive)

    assert archive.requested == ["2025-01-09"]
    assert summary["created"] == 3
    assert db_session.query(Question).count() == 3


def test_fetch_games_skips_stored_dates_and_reports_failures(db_session):
    make_question(db_session, text="already here", air_date=date(2025, 1, 8))
    archive = FakeArchive({"2025-01-07", "2025-01-08"})

    summary = run_fetch_games(db_session, today="2025-01-10", days=3, client=archive)

    assert summary["dates"] == ["2025-01-07", "2025-01-08", "2025-01-09"]
    assert summary["alreadyStored"] == ["2025-01-08"]
    assert archive.requested == ["2025-01-07", "2025-01-09"]
    assert summary["fetched"] == 1
    assert summary["failedDates"] == ["2025-01-09"]
    assert summary["created"] == 3
    assert summary["pushFailed"] == []


def test_rerun_is_idempotent(db_session):
    archive = FakeArchive({"2025-01-09"})
    ingest_dates(db_session, ["2025-01-09"], client=archive)
    summary = ingest_dates(db_session, ["2025-01-09"], client=archive)

    assert summary["alreadyStored"] == ["2025-01-09"]
    assert summary["created"] == 0
    assert db_session.query(Question).count() == 3
