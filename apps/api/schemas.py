from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from datetime import datetime
from uuid import UUID
from typing import Any, Dict, List, Literal, Optional


class CamelModel(BaseModel):
    """Snake_case attributes, camelCase on the wire."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ---------------------------------------------------------------------------
# Question records and fetched games
# ---------------------------------------------------------------------------

class QuestionRecord(CamelModel):
    question: str
    answer: str
    value: int = 0
    category: str = "Unknown"
    round: Optional[Literal["SINGLE", "DOUBLE", "FINAL"]] = None
    knowledge_category: Optional[str] = None
    difficulty: Optional[Literal["EASY", "MEDIUM", "HARD"]] = None
    was_triple_stumper: Optional[bool] = None
    # Legacy round flags, honored only when round is absent
    is_double_jeopardy: Optional[bool] = None
    is_final_jeopardy: Optional[bool] = None


class FetchedCategory(CamelModel):
    name: str
    round: Literal["single", "double", "final"]
    questions: List[QuestionRecord] = Field(default_factory=list)


class FetchedGame(CamelModel):
    """A scraped game held by the dashboard until it is pushed."""
    game_id: str
    show_number: Optional[int] = None
    air_date: Optional[str] = None
    title: str = ""
    season: Optional[int] = None
    question_count: int = 0
    categories: List[FetchedCategory] = Field(default_factory=list)
    questions: List[QuestionRecord] = Field(default_factory=list)


class GroupedCategory(CamelModel):
    name: str
    round: Literal["SINGLE", "DOUBLE", "FINAL"]
    questions: List[Dict[str, Any]] = Field(default_factory=list)


class GameGroup(CamelModel):
    air_date: str
    single_jeopardy: List[GroupedCategory] = Field(default_factory=list)
    double_jeopardy: List[GroupedCategory] = Field(default_factory=list)
    final_jeopardy: List[GroupedCategory] = Field(default_factory=list)
    question_count: int = 0


class CalendarStats(CamelModel):
    filled_dates: List[str]
    missing_dates: List[str]
    total_filled: int
    total_missing: int
    coverage: float


class CalendarDay(CamelModel):
    date: str
    status: Literal["has-data", "missing", "future"]


class MonthCalendar(CamelModel):
    year: int
    month: int
    days: List[CalendarDay]
    total_filled: int
    total_missing: int
    coverage: float


# ---------------------------------------------------------------------------
# Admin request bodies
# ---------------------------------------------------------------------------

class ImportQuestion(CamelModel):
    question: str
    answer: str
    value: int = 0
    category: str
    difficulty: Optional[str] = None
    air_date: Optional[str] = None
    season: Optional[int] = None
    episode_id: Optional[str] = None
    knowledge_category: Optional[str] = None
    round: Optional[Literal["SINGLE", "DOUBLE", "FINAL"]] = None
    was_triple_stumper: Optional[bool] = None


class DeleteCriteria(CamelModel):
    season: Optional[int] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None


class PushPayload(CamelModel):
    game: FetchedGame
    episode_id: Optional[str] = None


class GamesActionRequest(BaseModel):
    action: Literal["import", "delete", "push"]
    data: Any = None


class PushResult(CamelModel):
    message: str
    created: int
    skipped: int


class DisputeResolution(CamelModel):
    admin_comment: Optional[str] = None
    override_text: Optional[str] = None


class DeleteUserRequest(CamelModel):
    confirm_email: str


class SendUserEmailRequest(CamelModel):
    user_id: UUID
    subject: str = Field(min_length=1)
    body: str = Field(min_length=1)


class PlayerGameUpdates(CamelModel):
    current_score: Optional[int] = None
    current_round: Optional[Literal["SINGLE", "DOUBLE", "FINAL"]] = None
    status: Optional[Literal["IN_PROGRESS", "COMPLETED", "ABANDONED"]] = None
    visibility: Optional[Literal["PRIVATE", "UNLISTED", "PUBLIC"]] = None


class PlayerGamePatch(CamelModel):
    game_id: UUID
    updates: PlayerGameUpdates


class GameQuestionUpdates(CamelModel):
    answered: Optional[bool] = None
    correct: Optional[bool] = None


class PlayerGameQuestionAction(CamelModel):
    action: Literal["updateQuestion", "resetQuestion"]
    game_id: UUID
    question_id: UUID
    updates: GameQuestionUpdates = Field(default_factory=GameQuestionUpdates)


class DeletePlayerGameRequest(BaseModel):
    confirm: str


class GuestConfigUpdate(CamelModel):
    random_game_max_questions_before_auth: Optional[int] = Field(default=None, ge=0)
    random_game_max_categories_before_auth: Optional[int] = Field(default=None, ge=0)
    random_game_max_rounds_before_auth: Optional[int] = Field(default=None, ge=0)
    random_game_max_games_before_auth: Optional[int] = Field(default=None, ge=0)
    random_question_max_questions_before_auth: Optional[int] = Field(default=None, ge=0)
    random_question_max_categories_before_auth: Optional[int] = Field(default=None, ge=0)
    daily_challenge_guest_enabled: Optional[bool] = None
    daily_challenge_guest_appears_on_leaderboard: Optional[bool] = None
    daily_challenge_min_lookback_days: Optional[int] = Field(default=None, ge=30, le=1825)
    daily_challenge_seasons: Optional[List[int]] = None
    time_to_authenticate_minutes: Optional[int] = Field(default=None, ge=1)


class GuestConfigResponse(CamelModel):
    id: str
    random_game_max_questions_before_auth: int
    random_game_max_categories_before_auth: Optional[int] = None
    random_game_max_rounds_before_auth: Optional[int] = None
    random_game_max_games_before_auth: int
    random_question_max_questions_before_auth: int
    random_question_max_categories_before_auth: Optional[int] = None
    daily_challenge_guest_enabled: bool
    daily_challenge_guest_appears_on_leaderboard: bool
    daily_challenge_min_lookback_days: int
    daily_challenge_seasons: Optional[List[int]] = None
    time_to_authenticate_minutes: int
    updated_at: Optional[datetime] = None


class CronExecutionResponse(CamelModel):
    id: UUID
    job_name: str
    status: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    duration_ms: Optional[int] = None
    result: Optional[Any] = None
    error: Optional[str] = None
    triggered_by: Optional[str] = None
