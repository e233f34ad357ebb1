"""
Server-side ingestion jobs.

Same sequential, paced loop the dashboard uses, but fetching straight from
the archive and writing straight to the database. Each game is pushed in
its own savepoint so one bad game does not undo the others.
"""
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from core.cache import invalidate_question_cache
from core.config import settings
from core.logging import get_context_logger
from schemas import FetchedGame
from services.archive_scraper import ArchiveClient
from services.batch_ingestion import BatchIngestion
from services.calendar_coverage import parse_iso_date, today_iso
from services.question_store import filled_dates, push_game
from services.rate_limiter import FixedIntervalLimiter


def window_dates(end: date, days: int) -> List[str]:
    """``days`` ISO dates ending at ``end``, oldest first."""
    return [(end - timedelta(days=offset)).isoformat() for offset in range(days - 1, -1, -1)]


def _pusher(db: Session, totals: Dict[str, int]):
    def push(game: FetchedGame) -> None:
        with db.begin_nested():
            created, skipped = push_game(db, game)
        totals["created"] += created
        totals["skipped"] += skipped
    return push


def ingest_dates(
    db: Session,
    dates: List[str],
    client: Optional[ArchiveClient] = None,
    limiter: Optional[FixedIntervalLimiter] = None,
) -> Dict[str, Any]:
    """Fetch and store the given dates; dates already stored are skipped."""
    client = client or ArchiveClient()
    limiter = limiter or FixedIntervalLimiter(settings.ARCHIVE_REQUEST_DELAY_S)

    log = get_context_logger(__name__, window_start=dates[0] if dates else None, window_end=dates[-1] if dates else None)
    existing = set(filled_dates(db))
    already_stored = sorted(existing.intersection(dates))
    pending = [d for d in dates if d not in existing]

    totals = {"created": 0, "skipped": 0}
    batch = BatchIngestion(
        fetcher=client.parse_game_by_date,
        pusher=_pusher(db, totals),
        limiter=limiter,
    )

    fetch_result = batch.fetch_dates(pending)
    push_failed: List[str] = []
    if batch.games:
        batch.select_all()
        push_failed = batch.push_selected().failed
        db.commit()
        invalidate_question_cache()

    summary = {
        "dates": dates,
        "alreadyStored": already_stored,
        "fetched": len(fetch_result.games),
        "created": totals["created"],
        "skipped": totals["skipped"],
        "failedDates": fetch_result.failed_dates,
        "pushFailed": push_failed,
        "message": fetch_result.message,
    }
    log.info(f"Ingestion finished: {summary['message']}, created={totals['created']}")
    return summary


def run_fetch_questions(db: Session, today: Optional[str] = None, client: Optional[ArchiveClient] = None) -> Dict[str, Any]:
    """Fetch yesterday's game."""
    yesterday = parse_iso_date(today or today_iso()) - timedelta(days=1)
    return ingest_dates(db, window_dates(yesterday, 1), client=client)


def run_fetch_games(
    db: Session,
    today: Optional[str] = None,
    days: Optional[int] = None,
    client: Optional[ArchiveClient] = None,
) -> Dict[str, Any]:
    """Fetch every missing date in the trailing window ending yesterday."""
    days = days or settings.CRON_FETCH_GAMES_LOOKBACK_DAYS
    yesterday = parse_iso_date(today or today_iso()) - timedelta(days=1)
    return ingest_dates(db, window_dates(yesterday, days), client=client)
