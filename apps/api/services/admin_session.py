"""
Admin dashboard session state.

All dashboard state lives in one immutable-by-convention AdminSession
value. Changes go through ``reduce(session, event)``, which returns a new
session; derived views (grouped games, month calendar, what to load next)
are plain selector functions over a session.

Every remote resource is a tri-state ``Remote`` slot:

    NotLoaded -> Loading -> Loaded(data) | Failed(error)

so "fetched and empty" is distinguishable from "never fetched", and a
``Loading`` slot is never requested twice.

At most one overlay (modal) is open at a time.

The batch fetch/push working set is not part of the session: it belongs to
the console's BatchIngestion, which mutates its own BatchState between
network calls.
"""
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple, Union

from models import DisputeStatus
from schemas import FetchedGame, GameGroup, MonthCalendar
from services.calendar_coverage import build_month_calendar, parse_iso_date, shift_month, today_iso
from services.question_grouping import group_by_date, resolve_date_key, sorted_groups


class Tab(str, Enum):
    OVERVIEW = "overview"
    CONTENT = "content"
    CALENDAR = "calendar"
    USERS = "users"
    PLAYER_GAMES = "player-games"
    DISPUTES = "disputes"
    CRON_JOBS = "cron-jobs"
    GUEST_CONFIG = "guest-config"


class Resource(str, Enum):
    CONTENT_METRICS = "content-metrics"
    DISPUTE_STATS = "dispute-stats"
    GUEST_STATS = "guest-stats"
    CRON_JOBS = "cron-jobs"
    EXISTING_GAMES = "existing-games"
    CALENDAR_STATS = "calendar-stats"
    USERS = "users"
    PLAYER_GAMES = "player-games"
    DISPUTES = "disputes"
    GUEST_CONFIG = "guest-config"


TAB_RESOURCES: Dict[Tab, Tuple[Resource, ...]] = {
    Tab.OVERVIEW: (Resource.CONTENT_METRICS, Resource.DISPUTE_STATS, Resource.GUEST_STATS, Resource.CRON_JOBS),
    Tab.CONTENT: (Resource.CALENDAR_STATS,),
    Tab.CALENDAR: (Resource.CALENDAR_STATS,),
    Tab.USERS: (Resource.USERS,),
    Tab.PLAYER_GAMES: (Resource.PLAYER_GAMES,),
    Tab.DISPUTES: (Resource.DISPUTES, Resource.DISPUTE_STATS),
    Tab.CRON_JOBS: (Resource.CRON_JOBS,),
    Tab.GUEST_CONFIG: (Resource.GUEST_CONFIG, Resource.GUEST_STATS),
}

DELETE_CONFIRMATION = "DELETE"


# ---------------------------------------------------------------------------
# Remote tri-state
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class NotLoaded:
    pass


@dataclass(frozen=True)
class Loading:
    pass


@dataclass(frozen=True)
class Loaded:
    data: Any


@dataclass(frozen=True)
class Failed:
    error: str


Remote = Union[NotLoaded, Loading, Loaded, Failed]


def loaded_data(remote: Remote, default: Any = None) -> Any:
    return remote.data if isinstance(remote, Loaded) else default


# ---------------------------------------------------------------------------
# Overlays
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class NoOverlay:
    pass


@dataclass(frozen=True)
class EditGame:
    game_id: str


@dataclass(frozen=True)
class DeleteGame:
    game_id: str


@dataclass(frozen=True)
class DeleteUser:
    user_id: str


@dataclass(frozen=True)
class SendEmail:
    user_id: str


@dataclass(frozen=True)
class DeleteDates:
    dates: FrozenSet[str]


@dataclass(frozen=True)
class RefetchDates:
    dates: FrozenSet[str]


@dataclass(frozen=True)
class CalendarFetch:
    date: str


Overlay = Union[NoOverlay, EditGame, DeleteGame, DeleteUser, SendEmail, DeleteDates, RefetchDates, CalendarFetch]


class ConfirmationMismatch(ValueError):
    """The typed confirmation does not match; nothing was sent."""


def check_confirmation(expected: str, typed: Optional[str]) -> None:
    if (typed or "") != expected:
        raise ConfirmationMismatch(f"Please type {expected} to confirm")


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------

def _initial_resources() -> Dict[Resource, Remote]:
    return {resource: NotLoaded() for resource in Resource}


@dataclass(frozen=True)
class AdminSession:
    tab: Tab = Tab.OVERVIEW
    resources: Dict[Resource, Remote] = field(default_factory=_initial_resources)
    dispute_status_filter: Optional[str] = None
    calendar_year: Optional[int] = None
    calendar_month: Optional[int] = None
    selected_calendar_date: Optional[str] = None
    date_games: Tuple[Dict[str, Any], ...] = ()
    calendar_fetched_game: Optional[FetchedGame] = None
    selected_existing_dates: FrozenSet[str] = frozenset()
    overlay: Overlay = field(default_factory=NoOverlay)
    message: str = ""

    def remote(self, resource: Resource) -> Remote:
        return self.resources[resource]


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TabSelected:
    tab: Tab


@dataclass(frozen=True)
class ResourceRequested:
    resource: Resource


@dataclass(frozen=True)
class ResourceLoaded:
    resource: Resource
    data: Any


@dataclass(frozen=True)
class ResourceFailed:
    resource: Resource
    error: str


@dataclass(frozen=True)
class ResourceInvalidated:
    resource: Resource


@dataclass(frozen=True)
class PendingDisputesClicked:
    pass


@dataclass(frozen=True)
class DisputeFilterChanged:
    status: Optional[str]


@dataclass(frozen=True)
class OverlayOpened:
    overlay: Overlay


@dataclass(frozen=True)
class OverlayClosed:
    pass


@dataclass(frozen=True)
class ExistingGamesReplaced:
    games: List[Dict[str, Any]]


@dataclass(frozen=True)
class ExistingDateToggled:
    date: str


@dataclass(frozen=True)
class AllExistingDatesToggled:
    pass


@dataclass(frozen=True)
class CalendarMonthChanged:
    delta: int
    today: Optional[str] = None


@dataclass(frozen=True)
class CalendarDateSelected:
    date: Optional[str]


@dataclass(frozen=True)
class DateGamesLoaded:
    games: List[Dict[str, Any]]


@dataclass(frozen=True)
class CalendarGameFetched:
    game: Optional[FetchedGame]


@dataclass(frozen=True)
class MessageShown:
    message: str


Event = Union[
    TabSelected, ResourceRequested, ResourceLoaded, ResourceFailed, ResourceInvalidated,
    PendingDisputesClicked, DisputeFilterChanged, OverlayOpened, OverlayClosed,
    ExistingGamesReplaced, ExistingDateToggled, AllExistingDatesToggled,
    CalendarMonthChanged, CalendarDateSelected, DateGamesLoaded, CalendarGameFetched,
    MessageShown,
]


def _with_resource(session: AdminSession, resource: Resource, remote: Remote, **changes) -> AdminSession:
    resources = dict(session.resources)
    resources[resource] = remote
    return replace(session, resources=resources, **changes)


def _existing_date_keys(games: List[Dict[str, Any]]) -> FrozenSet[str]:
    return frozenset(resolve_date_key(g) for g in games)


def reduce(session: AdminSession, event: Event) -> AdminSession:
    """Return the session that results from applying ``event``."""
    if isinstance(event, TabSelected):
        return replace(session, tab=event.tab)

    if isinstance(event, ResourceRequested):
        return _with_resource(session, event.resource, Loading())

    if isinstance(event, ResourceLoaded):
        if event.resource == Resource.EXISTING_GAMES:
            return _with_resource(
                session, event.resource, Loaded(list(event.data or [])), selected_existing_dates=frozenset()
            )
        return _with_resource(session, event.resource, Loaded(event.data))

    if isinstance(event, ResourceFailed):
        return _with_resource(session, event.resource, Failed(event.error), message=event.error)

    if isinstance(event, ResourceInvalidated):
        if event.resource == Resource.EXISTING_GAMES:
            return _with_resource(session, event.resource, NotLoaded(), selected_existing_dates=frozenset())
        return _with_resource(session, event.resource, NotLoaded())

    if isinstance(event, PendingDisputesClicked):
        return reduce(replace(session, tab=Tab.DISPUTES), DisputeFilterChanged(DisputeStatus.PENDING))

    if isinstance(event, DisputeFilterChanged):
        if event.status == session.dispute_status_filter:
            return session
        return _with_resource(session, Resource.DISPUTES, NotLoaded(), dispute_status_filter=event.status)

    if isinstance(event, OverlayOpened):
        return replace(session, overlay=event.overlay)

    if isinstance(event, OverlayClosed):
        return replace(session, overlay=NoOverlay())

    if isinstance(event, ExistingGamesReplaced):
        return reduce(session, ResourceLoaded(Resource.EXISTING_GAMES, event.games))

    if isinstance(event, ExistingDateToggled):
        available = _existing_date_keys(loaded_data(session.remote(Resource.EXISTING_GAMES), []))
        if event.date not in available:
            return session
        selected = set(session.selected_existing_dates)
        selected.symmetric_difference_update({event.date})
        return replace(session, selected_existing_dates=frozenset(selected))

    if isinstance(event, AllExistingDatesToggled):
        available = _existing_date_keys(loaded_data(session.remote(Resource.EXISTING_GAMES), []))
        if available and session.selected_existing_dates == available:
            return replace(session, selected_existing_dates=frozenset())
        return replace(session, selected_existing_dates=available)

    if isinstance(event, CalendarMonthChanged):
        year, month = calendar_month_of(session, event.today)
        year, month = shift_month(year, month, event.delta)
        return replace(session, calendar_year=year, calendar_month=month)

    if isinstance(event, CalendarDateSelected):
        return replace(session, selected_calendar_date=event.date, date_games=(), calendar_fetched_game=None)

    if isinstance(event, DateGamesLoaded):
        return replace(session, date_games=tuple(event.games))

    if isinstance(event, CalendarGameFetched):
        return replace(session, calendar_fetched_game=event.game)

    if isinstance(event, MessageShown):
        return replace(session, message=event.message)

    raise TypeError(f"Unhandled event: {type(event).__name__}")


# ---------------------------------------------------------------------------
# Selectors
# ---------------------------------------------------------------------------

def resources_for_tab(tab: Tab) -> Tuple[Resource, ...]:
    return TAB_RESOURCES.get(tab, ())


def resources_to_load(session: AdminSession, tab: Optional[Tab] = None) -> List[Resource]:
    """Resources the tab needs that have never been requested."""
    return [r for r in resources_for_tab(tab or session.tab) if isinstance(session.remote(r), NotLoaded)]


def is_loading(session: AdminSession, resource: Resource) -> bool:
    return isinstance(session.remote(resource), Loading)


def grouped_games(session: AdminSession) -> List[GameGroup]:
    games = loaded_data(session.remote(Resource.EXISTING_GAMES), [])
    return sorted_groups(group_by_date(games))


def filled_dates(session: AdminSession) -> List[str]:
    stats = loaded_data(session.remote(Resource.CALENDAR_STATS)) or {}
    return list(stats.get("filledDates", []))


def calendar_month_of(session: AdminSession, today: Optional[str] = None) -> Tuple[int, int]:
    if session.calendar_year and session.calendar_month:
        return session.calendar_year, session.calendar_month
    current = parse_iso_date(today or today_iso())
    return current.year, current.month


def month_calendar(session: AdminSession, today: Optional[str] = None) -> MonthCalendar:
    year, month = calendar_month_of(session, today)
    return build_month_calendar(year, month, filled_dates(session), today or today_iso())


def pending_dispute_count(session: AdminSession) -> Optional[int]:
    stats = loaded_data(session.remote(Resource.DISPUTE_STATS))
    return stats.get("pendingCount") if stats else None
