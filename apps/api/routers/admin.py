"""
Admin Dashboard API Router

Content management, calendar coverage, disputes, users, player games,
guest configuration and cron job inspection.
Admin role only.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from pydantic import TypeAdapter, ValidationError as PydanticValidationError
from sqlalchemy.orm import Session
from typing import Any, Dict, List, Optional
from uuid import UUID
import logging
import re

from core.auth import require_admin
from core.cache import cache_key, get_or_build, invalidate_question_cache
from core.config import settings
from core.database import get_db
from core.exceptions import BadRequestError
from models import Round, User
from schemas import (
    DeleteCriteria,
    DeletePlayerGameRequest,
    DeleteUserRequest,
    DisputeResolution,
    FetchedGame,
    GamesActionRequest,
    GuestConfigResponse,
    GuestConfigUpdate,
    ImportQuestion,
    PlayerGamePatch,
    PlayerGameQuestionAction,
    PushPayload,
    SendUserEmailRequest,
)
from services import dispute_service, guest_config, player_games, question_store, user_admin
from services.archive_scraper import ArchiveClient, is_future_date, is_valid_date_format
from services.calendar_coverage import build_calendar_stats, build_month_calendar, today_iso
from services.cron_jobs import cron_overview, trigger_job
from services.question_grouping import group_by_date, sorted_groups

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/admin", tags=["admin"])

MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")
ARCHIVE_SEASONS_URL = "https://j-archive.com/listseasons.php"

_import_adapter = TypeAdapter(List[ImportQuestion])


def get_archive_client() -> ArchiveClient:
    return ArchiveClient()


def _game_payload(game: FetchedGame) -> Dict[str, Any]:
    """Wire form of a fetched game, with the legacy round flags filled in."""
    payload = game.model_dump(mode="json", by_alias=True)

    def flag(question: Dict[str, Any]) -> None:
        question["isDoubleJeopardy"] = question.get("round") == Round.DOUBLE
        question["isFinalJeopardy"] = question.get("round") == Round.FINAL

    for question in payload["questions"]:
        flag(question)
    for category in payload["categories"]:
        for question in category["questions"]:
            flag(question)
    return payload


# ============================================================================
# CONTENT
# ============================================================================

@router.get("/games")
def list_games(
    season: Optional[int] = Query(None),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    questions = question_store.list_questions(db, season=season, start_date=start_date, end_date=end_date)
    return {"games": [question_store.serialize_question(q) for q in questions]}


@router.get("/games/grouped")
def list_games_grouped(
    season: Optional[int] = Query(None),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    questions = question_store.list_questions(db, season=season, start_date=start_date, end_date=end_date)
    groups = sorted_groups(group_by_date(questions))
    return {
        "groups": [g.model_dump(mode="json", by_alias=True) for g in groups],
        "totalQuestions": len(questions),
    }


@router.post("/games")
def games_action(
    request: GamesActionRequest,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """
    import: list of questions. delete: {season?, startDate?, endDate?}.
    push: {game, episodeId?}; duplicates (same text and air date) are skipped.
    """
    try:
        if request.action == "import":
            items = _import_adapter.validate_python(request.data or [])
            count = question_store.import_questions(db, items)
            result: Dict[str, Any] = {"message": "Games imported successfully", "count": count}
        elif request.action == "delete":
            criteria = DeleteCriteria.model_validate(request.data or {})
            deleted = question_store.delete_questions(db, criteria)
            result = {"message": "Games deleted successfully", "deleted": deleted}
        else:
            payload = PushPayload.model_validate(request.data or {})
            created, skipped = question_store.push_game(db, payload.game, payload.episode_id)
            result = {
                "message": f"Game pushed successfully. Created: {created}, Skipped: {skipped}",
                "created": created,
                "skipped": skipped,
            }
    except PydanticValidationError as e:
        logger.info(f"Invalid {request.action} payload: {e.error_count()} errors")
        raise BadRequestError("Invalid game data", error_code="INVALID_GAME_DATA")

    db.commit()
    invalidate_question_cache()
    logger.info(f"Admin {admin.id} ran games action {request.action}")
    return result


@router.get("/fetch-game")
def fetch_game(
    date_str: Optional[str] = Query(None, alias="date"),
    game_id: Optional[str] = Query(None, alias="gameId"),
    admin: User = Depends(require_admin),
    client: ArchiveClient = Depends(get_archive_client),
):
    """Scrape a game from the archive for preview; nothing is stored."""
    if not date_str and not game_id:
        raise BadRequestError("Either date or gameId must be provided")

    if date_str:
        if not is_valid_date_format(date_str):
            raise BadRequestError(f"Invalid date format: {date_str}. Expected YYYY-MM-DD.", error_code="INVALID_DATE")
        if is_future_date(date_str):
            raise BadRequestError(
                f"Date {date_str} appears to be in the future. Cannot fetch games for future dates.",
                error_code="FUTURE_DATE",
            )

    if game_id:
        game = client.parse_game_by_id(game_id)
        if game is None:
            return {
                "success": False,
                "message": f"Could not fetch game with ID {game_id}.",
                "game": None,
                "currentSeason": client.get_current_season(),
            }
        return {"success": True, "game": _game_payload(game)}

    game = client.parse_game_by_date(date_str)
    if game is None:
        return {
            "success": False,
            "message": f"No game found for date {date_str}. The game may not be archived yet.",
            "suggestion": f"You can manually find the Game ID at {ARCHIVE_SEASONS_URL}",
            "game": None,
            "currentSeason": client.get_current_season(),
        }
    return {"success": True, "game": _game_payload(game)}


@router.get("/calendar-stats")
def calendar_stats(
    month: Optional[str] = Query(None, description="YYYY-MM; omit for the overall range"),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    today = today_iso()
    match = None
    if month:
        match = MONTH_RE.match(month)
        if not match or not 1 <= int(match.group(2)) <= 12:
            raise BadRequestError(f"Invalid month: {month}. Expected YYYY-MM.", error_code="INVALID_MONTH")

    def build() -> Dict[str, Any]:
        filled = question_store.filled_dates(db)
        if match:
            view = build_month_calendar(int(match.group(1)), int(match.group(2)), filled, today)
        else:
            view = build_calendar_stats(filled, today)
        return view.model_dump(mode="json", by_alias=True)

    return get_or_build(cache_key("calendar_stats", month=month, today=today), build, ttl=settings.CACHE_TTL_CALENDAR)


@router.get("/content-metrics")
def content_metrics(
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return get_or_build(
        cache_key("content_metrics"),
        lambda: question_store.content_metrics(db),
        ttl=settings.CACHE_TTL_METRICS,
    )


# ============================================================================
# DISPUTES
# ============================================================================

@router.get("/disputes")
def list_disputes(
    status_filter: Optional[str] = Query(None, alias="status"),
    mode: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100, alias="pageSize"),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return dispute_service.list_disputes(db, status=status_filter, mode=mode, page=page, page_size=page_size)


@router.get("/disputes/stats")
def dispute_stats(
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return {"pendingCount": dispute_service.pending_count(db)}


@router.post("/disputes/{dispute_id}/approve")
def approve_dispute(
    dispute_id: UUID,
    body: Optional[DisputeResolution] = None,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    body = body or DisputeResolution()
    result = dispute_service.approve_dispute(
        db, dispute_id, admin, admin_comment=body.admin_comment, override_text=body.override_text
    )
    db.commit()
    return result


@router.post("/disputes/{dispute_id}/reject")
def reject_dispute(
    dispute_id: UUID,
    body: Optional[DisputeResolution] = None,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    body = body or DisputeResolution()
    result = dispute_service.reject_dispute(db, dispute_id, admin, admin_comment=body.admin_comment)
    db.commit()
    return result


# ============================================================================
# USERS
# ============================================================================

@router.get("/users")
def list_users(
    search: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return user_admin.list_users(db, search=search, limit=limit, offset=offset)


@router.post("/users/send-email")
def send_user_email(
    request: SendUserEmailRequest,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return user_admin.send_user_email(db, request.user_id, request.subject, request.body)


@router.delete("/users/{user_id}")
def delete_user(
    user_id: UUID,
    request: DeleteUserRequest,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if user_id == admin.id:
        raise BadRequestError("Admins cannot delete their own account here", error_code="SELF_DELETE")
    result = user_admin.delete_user(db, user_id, request.confirm_email)
    db.commit()
    logger.warning(f"Admin {admin.id} deleted user {user_id}")
    return result


# ============================================================================
# PLAYER GAMES
# ============================================================================

@router.get("/player-games")
def list_player_games(
    user_id: Optional[UUID] = Query(None, alias="userId"),
    status_filter: Optional[str] = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=500),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return {"games": player_games.list_player_games(db, user_id=user_id, status=status_filter, limit=limit)}


@router.patch("/player-games")
def update_player_game(
    request: PlayerGamePatch,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    result = player_games.update_player_game(db, request.game_id, request.updates)
    db.commit()
    return result


@router.post("/player-games")
def player_game_question_action(
    request: PlayerGameQuestionAction,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if request.action == "updateQuestion":
        result = player_games.update_game_question(
            db, request.game_id, request.question_id,
            answered=request.updates.answered, correct=request.updates.correct,
        )
    else:
        result = player_games.reset_game_question(db, request.game_id, request.question_id)
    db.commit()
    return result


@router.delete("/player-games/{game_id}")
def delete_player_game(
    game_id: UUID,
    request: DeletePlayerGameRequest,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    result = player_games.delete_player_game(db, game_id, request.confirm)
    db.commit()
    return result


# ============================================================================
# GUESTS
# ============================================================================

@router.get("/guest-config")
def get_guest_config(
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    config = guest_config.get_or_create_config(db)
    db.commit()
    return GuestConfigResponse.model_validate(config).model_dump(mode="json", by_alias=True)


@router.put("/guest-config")
def update_guest_config(
    request: GuestConfigUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    config = guest_config.update_config(db, request)
    db.commit()
    return GuestConfigResponse.model_validate(config).model_dump(mode="json", by_alias=True)


@router.get("/guest-stats")
def guest_stats(
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return guest_config.guest_session_stats(db)


# ============================================================================
# CRON JOBS
# ============================================================================

@router.get("/cron-jobs")
def list_cron_jobs(
    job_name: Optional[str] = Query(None, alias="jobName"),
    status_filter: Optional[str] = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=500),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    result = cron_overview(db, job_name=job_name, status=status_filter, limit=limit)
    db.commit()
    return result


@router.post("/cron-jobs/{job_name}/trigger")
def trigger_cron_job(
    job_name: str,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Run a registered job now. The execution is logged with the admin's id."""
    try:
        return trigger_job(db, job_name, triggered_by=str(admin.id))
    except HTTPException:
        raise
    except Exception as e:
        # The FAILED execution row is already committed
        logger.error(f"Manual trigger of {job_name} failed: {e}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "error": str(e) or "Failed to trigger cron job"},
        )
