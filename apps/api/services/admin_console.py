"""
Admin console: drives the dashboard workflows against the REST API.

AdminApiClient is a thin ``requests`` wrapper with one method per admin
endpoint. AdminConsole owns an AdminSession and turns operator actions
(select a tab, batch fetch, push, click a calendar day, delete dates) into
API calls and session events. Console actions never raise for API
failures; the error text lands in ``session.message``.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, Iterable, List, Optional

import requests
from pydantic import ValidationError

from core.config import settings
from schemas import FetchedGame
from services.admin_session import (
    DELETE_CONFIRMATION,
    AdminSession,
    AllExistingDatesToggled,
    CalendarDateSelected,
    CalendarFetch,
    CalendarGameFetched,
    ConfirmationMismatch,
    DateGamesLoaded,
    DeleteDates,
    DeleteGame,
    DeleteUser,
    EditGame,
    Event,
    ExistingDateToggled,
    ExistingGamesReplaced,
    MessageShown,
    OverlayClosed,
    OverlayOpened,
    PendingDisputesClicked,
    RefetchDates,
    Resource,
    ResourceFailed,
    ResourceInvalidated,
    ResourceLoaded,
    ResourceRequested,
    SendEmail,
    Tab,
    TabSelected,
    check_confirmation,
    filled_dates,
    loaded_data,
    reduce,
    resources_to_load,
)
from services.batch_ingestion import BatchIngestion, BatchValidationError
from services.calendar_coverage import DayAction, classify_click, format_date_string, today_iso
from services.rate_limiter import FixedIntervalLimiter

logger = logging.getLogger(__name__)


class AdminApiError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class AdminApiClient:
    """HTTP client for the /v1/admin surface."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
    ):
        self.base_url = (base_url or settings.ADMIN_API_BASE_URL).rstrip("/")
        self.token = token
        self.session = session or requests.Session()
        self.timeout = timeout or settings.ADMIN_API_TIMEOUT_S

    def _request(self, method: str, path: str, params: Optional[Dict] = None, json: Any = None) -> Any:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        if params:
            params = {k: v for k, v in params.items() if v is not None}

        url = f"{self.base_url}/v1/admin{path}"
        try:
            r = self.session.request(method, url, params=params, json=json, headers=headers, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.warning(f"Admin API {method} {path} failed: {e}")
            raise AdminApiError(f"Network error: {e}") from e

        if r.status_code >= 400:
            raise AdminApiError(self._error_message(r), status_code=r.status_code)
        try:
            body = r.json()
        except ValueError as e:
            raise AdminApiError(f"Invalid response from {path}", status_code=r.status_code) from e
        if not isinstance(body, dict):
            raise AdminApiError(f"Unexpected response from {path}", status_code=r.status_code)
        return body

    @staticmethod
    def _error_message(r: requests.Response) -> str:
        try:
            body = r.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            for key in ("detail", "error", "message"):
                value = body.get(key)
                if isinstance(value, str) and value:
                    return value
        return f"Request failed with status {r.status_code}"

    # content
    def get_games(self, season: Optional[int] = None, start_date: Optional[str] = None, end_date: Optional[str] = None) -> List[Dict[str, Any]]:
        data = self._request("GET", "/games", params={"season": season, "startDate": start_date, "endDate": end_date})
        return data.get("games", [])

    def delete_games(self, start_date: Optional[str] = None, end_date: Optional[str] = None, season: Optional[int] = None) -> Dict[str, Any]:
        criteria = {k: v for k, v in {"season": season, "startDate": start_date, "endDate": end_date}.items() if v is not None}
        return self._request("POST", "/games", json={"action": "delete", "data": criteria})

    def push_game(self, game: FetchedGame, episode_id: Optional[str] = None) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"game": game.model_dump(mode="json", by_alias=True)}
        if episode_id:
            payload["episodeId"] = episode_id
        return self._request("POST", "/games", json={"action": "push", "data": payload})

    def fetch_game(self, date: Optional[str] = None, game_id: Optional[str] = None) -> Optional[FetchedGame]:
        """The scraped game, or None when the archive has nothing for it."""
        data = self._request("GET", "/fetch-game", params={"date": date, "gameId": game_id})
        if data.get("success") and data.get("game"):
            try:
                return FetchedGame.model_validate(data["game"])
            except ValidationError as e:
                raise AdminApiError(f"Invalid game data from archive: {e.error_count()} field error(s)") from e
        return None

    def calendar_stats(self, month: Optional[str] = None) -> Dict[str, Any]:
        return self._request("GET", "/calendar-stats", params={"month": month})

    def content_metrics(self) -> Dict[str, Any]:
        return self._request("GET", "/content-metrics")

    # disputes
    def disputes(self, status: Optional[str] = None, mode: Optional[str] = None, page: int = 1, page_size: int = 20) -> Dict[str, Any]:
        return self._request("GET", "/disputes", params={"status": status, "mode": mode, "page": page, "pageSize": page_size})

    def dispute_stats(self) -> Dict[str, Any]:
        return self._request("GET", "/disputes/stats")

    def approve_dispute(self, dispute_id: str, admin_comment: Optional[str] = None, override_text: Optional[str] = None) -> Dict[str, Any]:
        return self._request(
            "POST", f"/disputes/{dispute_id}/approve",
            json={"adminComment": admin_comment, "overrideText": override_text},
        )

    def reject_dispute(self, dispute_id: str, admin_comment: Optional[str] = None) -> Dict[str, Any]:
        return self._request("POST", f"/disputes/{dispute_id}/reject", json={"adminComment": admin_comment})

    # users
    def users(self, search: Optional[str] = None, limit: int = 100, offset: int = 0) -> Dict[str, Any]:
        return self._request("GET", "/users", params={"search": search, "limit": limit, "offset": offset})

    def delete_user(self, user_id: str, confirm_email: str) -> Dict[str, Any]:
        return self._request("DELETE", f"/users/{user_id}", json={"confirmEmail": confirm_email})

    def send_user_email(self, user_id: str, subject: str, body: str) -> Dict[str, Any]:
        return self._request("POST", "/users/send-email", json={"userId": user_id, "subject": subject, "body": body})

    # player games
    def player_games(self, user_id: Optional[str] = None, status: Optional[str] = None, limit: int = 50) -> Dict[str, Any]:
        return self._request("GET", "/player-games", params={"userId": user_id, "status": status, "limit": limit})

    def update_player_game(self, game_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("PATCH", "/player-games", json={"gameId": game_id, "updates": updates})

    def delete_player_game(self, game_id: str) -> Dict[str, Any]:
        return self._request("DELETE", f"/player-games/{game_id}", json={"confirm": DELETE_CONFIRMATION})

    # guests
    def guest_config(self) -> Dict[str, Any]:
        return self._request("GET", "/guest-config")

    def update_guest_config(self, changes: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("PUT", "/guest-config", json=changes)

    def guest_stats(self) -> Dict[str, Any]:
        return self._request("GET", "/guest-stats")

    # cron
    def cron_jobs(self, job_name: Optional[str] = None, status: Optional[str] = None, limit: int = 50) -> Dict[str, Any]:
        return self._request("GET", "/cron-jobs", params={"jobName": job_name, "status": status, "limit": limit})

    def trigger_cron_job(self, job_name: str) -> Dict[str, Any]:
        return self._request("POST", f"/cron-jobs/{job_name}/trigger")


class AdminConsole:
    def __init__(
        self,
        client: AdminApiClient,
        session: Optional[AdminSession] = None,
        limiter: Optional[FixedIntervalLimiter] = None,
        today: Optional[Callable[[], str]] = None,
    ):
        self.client = client
        self.session = session or AdminSession()
        self.today = today or today_iso
        self.batch = BatchIngestion(
            fetcher=lambda date_str: client.fetch_game(date=date_str),
            pusher=client.push_game,
            limiter=limiter or FixedIntervalLimiter(settings.ARCHIVE_REQUEST_DELAY_S),
            today=self.today,
        )

    def dispatch(self, event: Event) -> AdminSession:
        self.session = reduce(self.session, event)
        return self.session

    def _say(self, message: str) -> None:
        self.dispatch(MessageShown(message))

    # ------------------------------------------------------------------
    # resource loading
    # ------------------------------------------------------------------

    def _loader(self, resource: Resource) -> Callable[[], Any]:
        c = self.client
        loaders: Dict[Resource, Callable[[], Any]] = {
            Resource.CONTENT_METRICS: c.content_metrics,
            Resource.DISPUTE_STATS: c.dispute_stats,
            Resource.GUEST_STATS: c.guest_stats,
            Resource.CRON_JOBS: c.cron_jobs,
            Resource.CALENDAR_STATS: c.calendar_stats,
            Resource.EXISTING_GAMES: c.get_games,
            Resource.USERS: c.users,
            Resource.PLAYER_GAMES: c.player_games,
            Resource.DISPUTES: lambda: c.disputes(status=self.session.dispute_status_filter),
            Resource.GUEST_CONFIG: c.guest_config,
        }
        return loaders[resource]

    def load(self, resource: Resource) -> None:
        self.dispatch(ResourceRequested(resource))
        try:
            data = self._loader(resource)()
        except AdminApiError as e:
            self.dispatch(ResourceFailed(resource, e.message))
            return
        except Exception as e:
            logger.exception(f"Loading {resource.value} failed")
            self.dispatch(ResourceFailed(resource, str(e)))
            return
        self.dispatch(ResourceLoaded(resource, data))

    def load_many(self, resources: Iterable[Resource]) -> None:
        """Fan out independent loads concurrently; apply results as they arrive."""
        resources = list(resources)
        if not resources:
            return
        for resource in resources:
            self.dispatch(ResourceRequested(resource))

        with ThreadPoolExecutor(max_workers=len(resources)) as pool:
            futures = {resource: pool.submit(self._loader(resource)) for resource in resources}
            for resource, future in futures.items():
                try:
                    self.dispatch(ResourceLoaded(resource, future.result()))
                except AdminApiError as e:
                    self.dispatch(ResourceFailed(resource, e.message))
                except Exception as e:
                    logger.exception(f"Loading {resource.value} failed")
                    self.dispatch(ResourceFailed(resource, str(e)))

    def load_overview(self) -> None:
        self.load_many(resources_to_load(self.session, Tab.OVERVIEW))

    def select_tab(self, tab: Tab) -> AdminSession:
        """Switch tabs and load whatever that tab has never loaded."""
        self.dispatch(TabSelected(tab))
        self.load_many(resources_to_load(self.session))
        return self.session

    def open_pending_disputes(self) -> AdminSession:
        self.dispatch(PendingDisputesClicked())
        self.load_many(resources_to_load(self.session))
        return self.session

    def refresh(self, *resources: Resource) -> None:
        for resource in resources:
            self.dispatch(ResourceInvalidated(resource))
        self.load_many(resources)

    # ------------------------------------------------------------------
    # batch fetch / push
    # ------------------------------------------------------------------

    def batch_fetch(self, start: Optional[str], end: Optional[str]) -> None:
        try:
            result = self.batch.fetch_range(start, end)
        except BatchValidationError as e:
            self._say(str(e))
            return
        self._say(result.message)

    def toggle_game(self, game_id: str) -> None:
        self.batch.toggle(game_id)

    def toggle_select_all_games(self) -> None:
        self.batch.toggle_select_all()

    def batch_push(self) -> None:
        try:
            result = self.batch.push_selected()
        except BatchValidationError as e:
            self._say(str(e))
            return
        self._say(result.message)
        self.refresh(Resource.CALENDAR_STATS)

    # ------------------------------------------------------------------
    # existing games
    # ------------------------------------------------------------------

    def load_existing_games(self, start_date: Optional[str] = None, end_date: Optional[str] = None) -> None:
        try:
            games = self.client.get_games(start_date=start_date, end_date=end_date)
        except AdminApiError as e:
            self._say(e.message)
            return
        self.dispatch(ExistingGamesReplaced(games))
        dates = {g for g in (str(q.get("airDate") or "")[:10] for q in games) if g}
        self._say(f"Found {len(games)} questions across {len(dates)} dates")

    def toggle_existing_date(self, date_str: str) -> None:
        self.dispatch(ExistingDateToggled(date_str))

    def toggle_all_existing_dates(self) -> None:
        self.dispatch(AllExistingDatesToggled())

    def request_delete_dates(self) -> None:
        if not self.session.selected_existing_dates:
            self._say("Please select at least one date to delete")
            return
        self.dispatch(OverlayOpened(DeleteDates(self.session.selected_existing_dates)))

    def delete_dates(self, typed: str) -> None:
        """Delete every selected date, one request per date."""
        try:
            check_confirmation(DELETE_CONFIRMATION, typed)
        except ConfirmationMismatch as e:
            self._say(str(e))
            return

        deleted = 0
        for date_str in sorted(self.session.selected_existing_dates):
            try:
                self.client.delete_games(start_date=date_str, end_date=date_str)
                deleted += 1
            except AdminApiError as e:
                logger.warning(f"Delete failed for {date_str}: {e.message}")

        self.dispatch(OverlayClosed())
        self._say(f"Successfully deleted games from {deleted} date(s)")
        self.refresh(Resource.EXISTING_GAMES, Resource.CALENDAR_STATS)

    def request_refetch_dates(self) -> None:
        if not self.session.selected_existing_dates:
            self._say("Please select at least one date to re-fetch")
            return
        self.dispatch(OverlayOpened(RefetchDates(self.session.selected_existing_dates)))

    def refetch_selected_dates(self) -> None:
        dates = self.session.selected_existing_dates
        self.dispatch(OverlayClosed())
        try:
            result = self.batch.refetch_dates(
                dates,
                deleter=lambda d: self.client.delete_games(start_date=d, end_date=d),
            )
        except BatchValidationError as e:
            self._say(str(e))
            return
        self._say(result.message)
        self.dispatch(ExistingGamesReplaced([]))
        self.refresh(Resource.CALENDAR_STATS)

    # ------------------------------------------------------------------
    # calendar
    # ------------------------------------------------------------------

    def click_calendar_date(self, date_str: str) -> DayAction:
        action = classify_click(date_str, filled_dates(self.session), self.today())
        if action == DayAction.NOOP:
            return action

        self.dispatch(CalendarDateSelected(date_str))
        if action == DayAction.LOAD:
            try:
                games = self.client.get_games(start_date=date_str, end_date=date_str)
            except AdminApiError as e:
                self._say(e.message)
                games = []
            self.dispatch(DateGamesLoaded(games))
        return action

    def fetch_missing_date(self) -> Optional[FetchedGame]:
        date_str = self.session.selected_calendar_date
        if not date_str:
            return None
        self.dispatch(OverlayOpened(CalendarFetch(date_str)))
        try:
            game = self.client.fetch_game(date=date_str)
        except AdminApiError as e:
            self._say(e.message)
            return None
        if game is None:
            self._say(f"No game found for {format_date_string(date_str)}")
        self.dispatch(CalendarGameFetched(game))
        return game

    def push_calendar_game(self) -> None:
        game = self.session.calendar_fetched_game
        if game is None:
            return
        try:
            self.client.push_game(game)
        except AdminApiError as e:
            self._say(e.message)
            return
        self._say(f"Successfully added game from {format_date_string(game.air_date or self.session.selected_calendar_date)}")
        self.dispatch(OverlayClosed())
        self.dispatch(CalendarDateSelected(None))
        self.refresh(Resource.CALENDAR_STATS)

    # ------------------------------------------------------------------
    # users
    # ------------------------------------------------------------------

    def request_delete_user(self, user_id: str) -> None:
        self.dispatch(OverlayOpened(DeleteUser(user_id)))

    def delete_user(self, user_id: str, typed_email: str) -> None:
        users = (loaded_data(self.session.remote(Resource.USERS)) or {}).get("users", [])
        user = next((u for u in users if u.get("id") == user_id), None)
        if user is None:
            self._say("User not found")
            return
        try:
            check_confirmation(user.get("email") or "", typed_email)
        except ConfirmationMismatch:
            self._say("Email does not match. Please type the user's email to confirm.")
            return
        try:
            result = self.client.delete_user(user_id, typed_email)
        except AdminApiError as e:
            self._say(e.message)
            return
        self.dispatch(OverlayClosed())
        self._say(result.get("message", "User deleted"))
        self.refresh(Resource.USERS)

    def request_send_email(self, user_id: str) -> None:
        self.dispatch(OverlayOpened(SendEmail(user_id)))

    def send_email(self, user_id: str, subject: str, body: str) -> None:
        if not subject.strip() or not body.strip():
            self._say("Subject and body are required")
            return
        try:
            result = self.client.send_user_email(user_id, subject, body)
        except AdminApiError as e:
            self._say(e.message)
            return
        self.dispatch(OverlayClosed())
        self._say(result.get("message", "Email sent"))

    # ------------------------------------------------------------------
    # disputes
    # ------------------------------------------------------------------

    def approve_dispute(self, dispute_id: str, admin_comment: Optional[str] = None, override_text: Optional[str] = None) -> None:
        try:
            result = self.client.approve_dispute(dispute_id, admin_comment=admin_comment, override_text=override_text)
        except AdminApiError as e:
            self._say(e.message)
            return
        self._say(f"{result.get('message', 'Dispute approved')} ({result.get('regradedCount', 0)} regraded)")
        self.refresh(Resource.DISPUTES, Resource.DISPUTE_STATS)

    def reject_dispute(self, dispute_id: str, admin_comment: Optional[str] = None) -> None:
        try:
            result = self.client.reject_dispute(dispute_id, admin_comment=admin_comment)
        except AdminApiError as e:
            self._say(e.message)
            return
        self._say(result.get("message", "Dispute rejected"))
        self.refresh(Resource.DISPUTES, Resource.DISPUTE_STATS)

    # ------------------------------------------------------------------
    # player games
    # ------------------------------------------------------------------

    def request_edit_player_game(self, game_id: str) -> None:
        self.dispatch(OverlayOpened(EditGame(game_id)))

    def save_player_game(self, game_id: str, updates: Dict[str, Any]) -> None:
        if not updates:
            self._say("No updates provided")
            return
        try:
            self.client.update_player_game(game_id, updates)
        except AdminApiError as e:
            self._say(e.message)
            return
        self.dispatch(OverlayClosed())
        self._say("Game updated")
        self.refresh(Resource.PLAYER_GAMES)

    def request_delete_player_game(self, game_id: str) -> None:
        self.dispatch(OverlayOpened(DeleteGame(game_id)))

    def delete_player_game(self, game_id: str, typed: str) -> None:
        try:
            check_confirmation(DELETE_CONFIRMATION, typed)
        except ConfirmationMismatch as e:
            self._say(str(e))
            return
        try:
            result = self.client.delete_player_game(game_id)
        except AdminApiError as e:
            self._say(e.message)
            return
        self.dispatch(OverlayClosed())
        self._say(result.get("message", "Game deleted"))
        self.refresh(Resource.PLAYER_GAMES)

    # ------------------------------------------------------------------
    # guests and cron
    # ------------------------------------------------------------------

    def save_guest_config(self, changes: Dict[str, Any]) -> None:
        try:
            config = self.client.update_guest_config(changes)
        except AdminApiError as e:
            self._say(e.message)
            return
        self.dispatch(ResourceLoaded(Resource.GUEST_CONFIG, config))
        self._say("Guest settings saved")

    def trigger_cron_job(self, job_name: str) -> None:
        try:
            result = self.client.trigger_cron_job(job_name)
        except AdminApiError as e:
            self._say(e.message)
        else:
            self._say(result.get("message", f"Cron job {job_name} triggered"))
        self.refresh(Resource.CRON_JOBS)
