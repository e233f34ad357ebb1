"""
Batch fetch/push orchestration.

Drives the archive ingestion workflow for a date range:

    IDLE -> FETCHING -> REVIEWING -> PUSHING -> IDLE

- fetch_range: one request per date, strictly sequential, paced by a
  limiter. Dates after today are dropped before the loop. A date that
  fails is logged and left out; the loop continues.
- selection: a set of game ids that is always a subset of the current
  candidate list and is cleared whenever that list is replaced.
- push_selected: sequential, per-game success/failure accounting, no
  rollback. Pushed games leave the candidate list so they cannot be
  submitted twice.

The fetcher and pusher are plain callables so the same loop runs against
the REST API (admin console), the scraper directly (cron), or fakes.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, List, Optional, Set

from schemas import FetchedGame
from services.calendar_coverage import is_future_date, iter_date_range, today_iso
from services.rate_limiter import FixedIntervalLimiter, NoopLimiter
from services.archive_scraper import is_valid_date_format

logger = logging.getLogger(__name__)

Fetcher = Callable[[str], Optional[FetchedGame]]
Pusher = Callable[[FetchedGame], object]
Deleter = Callable[[str], object]
ProgressCallback = Callable[[int, int], None]


class BatchValidationError(ValueError):
    """Raised before any network call when batch input is unusable."""


class BatchPhase(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    REVIEWING = "reviewing"
    PUSHING = "pushing"


@dataclass
class BatchFetchResult:
    games: List[FetchedGame]
    dates: List[str]
    failed_dates: List[str]

    @property
    def message(self) -> str:
        return f"Fetched {len(self.games)} games out of {len(self.dates)} dates"


@dataclass
class BatchPushResult:
    succeeded: List[str]
    failed: List[str]

    @property
    def message(self) -> str:
        text = f"Pushed {len(self.succeeded)} games successfully"
        if self.failed:
            text += f", {len(self.failed)} failed"
        return text


@dataclass
class RefetchResult:
    succeeded: List[str]
    failed: List[str]

    @property
    def message(self) -> str:
        text = f"Successfully re-fetched {len(self.succeeded)} date(s)"
        if self.failed:
            text += f", {len(self.failed)} failed"
        return text


@dataclass
class BatchState:
    phase: BatchPhase = BatchPhase.IDLE
    games: List[FetchedGame] = field(default_factory=list)
    selected_ids: Set[str] = field(default_factory=set)
    progress: tuple = (0, 0)
    message: str = ""


def validate_range(start: Optional[str], end: Optional[str]) -> None:
    if not start or not end:
        raise BatchValidationError("Please provide both start and end dates for batch fetch")
    for value in (start, end):
        if not is_valid_date_format(value):
            raise BatchValidationError(f"Invalid date format: {value}. Expected YYYY-MM-DD.")
    if start > end:
        raise BatchValidationError("Start date must be before end date")


class BatchIngestion:
    def __init__(
        self,
        fetcher: Fetcher,
        pusher: Pusher,
        limiter: Optional[FixedIntervalLimiter] = None,
        on_progress: Optional[ProgressCallback] = None,
        state: Optional[BatchState] = None,
        today: Optional[Callable[[], str]] = None,
    ):
        self.fetcher = fetcher
        self.pusher = pusher
        self.limiter = limiter or NoopLimiter()
        self.on_progress = on_progress
        self.state = state or BatchState()
        self.today = today or today_iso

    # ------------------------------------------------------------------
    # candidate list and selection
    # ------------------------------------------------------------------

    @property
    def games(self) -> List[FetchedGame]:
        return self.state.games

    @property
    def selected_ids(self) -> Set[str]:
        return self.state.selected_ids

    def replace_games(self, games: Iterable[FetchedGame]) -> None:
        self.state.games = list(games)
        self.state.selected_ids = set()

    def _candidate_ids(self) -> Set[str]:
        return {g.game_id for g in self.state.games}

    def toggle(self, game_id: str) -> None:
        if game_id not in self._candidate_ids():
            return
        if game_id in self.state.selected_ids:
            self.state.selected_ids.discard(game_id)
        else:
            self.state.selected_ids.add(game_id)

    def select_all(self) -> None:
        self.state.selected_ids = self._candidate_ids()

    def select_none(self) -> None:
        self.state.selected_ids = set()

    def toggle_select_all(self) -> None:
        if self.state.games and len(self.state.selected_ids) == len(self.state.games):
            self.select_none()
        else:
            self.select_all()

    def selected_games(self) -> List[FetchedGame]:
        return [g for g in self.state.games if g.game_id in self.state.selected_ids]

    # ------------------------------------------------------------------
    # workflow
    # ------------------------------------------------------------------

    def _report(self, current: int, total: int) -> None:
        self.state.progress = (current, total)
        if self.on_progress:
            self.on_progress(current, total)

    def fetch_range(self, start: Optional[str], end: Optional[str]) -> BatchFetchResult:
        validate_range(start, end)
        dates = self._not_future(iter_date_range(start, end))
        if not dates:
            raise BatchValidationError("Dates after today cannot be fetched")
        return self.fetch_dates(dates)

    def _not_future(self, dates: Iterable[str]) -> List[str]:
        today = self.today()
        return [d for d in dates if not is_future_date(d, today)]

    def fetch_dates(self, dates: List[str]) -> BatchFetchResult:
        """Fetch an explicit list of dates; replaces the candidate list."""
        self.replace_games([])
        self.state.phase = BatchPhase.FETCHING
        self.state.message = ""
        self._report(0, len(dates))

        fetched: List[FetchedGame] = []
        failed: List[str] = []
        try:
            for index, date_str in enumerate(dates, start=1):
                self.limiter.wait()
                try:
                    game = self.fetcher(date_str)
                except Exception as e:
                    logger.warning(f"Batch fetch failed for {date_str}: {e}")
                    game = None
                if game is None:
                    failed.append(date_str)
                else:
                    fetched.append(game)
                self._report(index, len(dates))
        finally:
            self.replace_games(fetched)
            self.state.phase = BatchPhase.REVIEWING

        result = BatchFetchResult(games=fetched, dates=dates, failed_dates=failed)
        self.state.message = result.message
        logger.info(result.message)
        return result

    def push_selected(self) -> BatchPushResult:
        selected = self.selected_games()
        if not selected:
            raise BatchValidationError("Please select at least one game to push")

        self.state.phase = BatchPhase.PUSHING
        self._report(0, len(selected))

        succeeded: List[str] = []
        failed: List[str] = []
        try:
            for index, game in enumerate(selected, start=1):
                try:
                    self.pusher(game)
                    succeeded.append(game.game_id)
                except Exception as e:
                    logger.warning(f"Batch push failed for game {game.game_id}: {e}")
                    failed.append(game.game_id)
                self._report(index, len(selected))
        finally:
            pushed = set(succeeded)
            self.state.games = [g for g in self.state.games if g.game_id not in pushed]
            self.state.selected_ids = set()
            self.state.phase = BatchPhase.IDLE

        result = BatchPushResult(succeeded=succeeded, failed=failed)
        self.state.message = result.message
        logger.info(result.message)
        return result

    def refetch_dates(self, dates: Iterable[str], deleter: Deleter) -> RefetchResult:
        """Delete, fetch and push each date again; one date at a time."""
        dates = self._not_future(sorted(set(dates)))
        if not dates:
            raise BatchValidationError("Please select at least one date to re-fetch")

        succeeded: List[str] = []
        failed: List[str] = []
        self._report(0, len(dates))
        for index, date_str in enumerate(dates, start=1):
            self.limiter.wait()
            try:
                deleter(date_str)
                game = self.fetcher(date_str)
                if game is None:
                    failed.append(date_str)
                else:
                    self.pusher(game)
                    succeeded.append(date_str)
            except Exception as e:
                logger.warning(f"Re-fetch failed for {date_str}: {e}")
                failed.append(date_str)
            self._report(index, len(dates))

        result = RefetchResult(succeeded=succeeded, failed=failed)
        self.state.message = result.message
        return result
