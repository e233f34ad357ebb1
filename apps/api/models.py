from sqlalchemy import Column, Integer, Boolean, Date, DateTime, ForeignKey, Text, Index, UniqueConstraint, JSON, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from core.database import Base
import uuid

# JSONB on PostgreSQL, plain JSON elsewhere (sqlite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


class UserRole:
    USER = "USER"
    ADMIN = "ADMIN"


class Round:
    SINGLE = "SINGLE"
    DOUBLE = "DOUBLE"
    FINAL = "FINAL"

    ALL = (SINGLE, DOUBLE, FINAL)


class Difficulty:
    EASY = "EASY"
    MEDIUM = "MEDIUM"
    HARD = "HARD"


class KnowledgeCategory:
    GEOGRAPHY_AND_HISTORY = "GEOGRAPHY_AND_HISTORY"
    ENTERTAINMENT = "ENTERTAINMENT"
    ARTS_AND_LITERATURE = "ARTS_AND_LITERATURE"
    SCIENCE_AND_NATURE = "SCIENCE_AND_NATURE"
    SPORTS_AND_LEISURE = "SPORTS_AND_LEISURE"
    GENERAL_KNOWLEDGE = "GENERAL_KNOWLEDGE"


class GameStatus:
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    ABANDONED = "ABANDONED"

    ALL = (IN_PROGRESS, COMPLETED, ABANDONED)


class DisputeStatus:
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"

    ALL = (PENDING, APPROVED, REJECTED)


class DisputeMode:
    GAME = "GAME"
    PRACTICE = "PRACTICE"
    DAILY_CHALLENGE = "DAILY_CHALLENGE"

    ALL = (GAME, PRACTICE, DAILY_CHALLENGE)


class OverrideSource:
    ADMIN = "ADMIN"
    DISPUTE = "DISPUTE"


class CronJobStatus:
    RUNNING = "RUNNING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"

    ALL = (RUNNING, SUCCESS, FAILED)


class User(Base):
    __tablename__ = "app_user"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(Text, unique=True, nullable=False)
    name = Column(Text, nullable=True)
    display_name = Column(Text, nullable=True)
    role = Column(Text, default=UserRole.USER, nullable=False)  # 'USER' | 'ADMIN'
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    last_online_at = Column(DateTime(timezone=True), nullable=True)
    last_seen_path = Column(Text, nullable=True)

    games = relationship("PlayerGame", back_populates="user")


class Category(Base):
    __tablename__ = "category"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(Text, unique=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    questions = relationship("Question", back_populates="category")


class Question(Base):
    __tablename__ = "question"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    question = Column(Text, nullable=False)
    answer = Column(Text, nullable=False)
    value = Column(Integer, nullable=False, default=0)
    difficulty = Column(Text, nullable=False, default=Difficulty.MEDIUM)
    category_id = Column(Uuid, ForeignKey("category.id"), nullable=False, index=True)
    knowledge_category = Column(Text, nullable=False, default=KnowledgeCategory.GENERAL_KNOWLEDGE)
    # Calendar date of broadcast; no time-of-day component
    air_date = Column(Date, nullable=True)
    season = Column(Integer, nullable=True)
    episode_id = Column(Text, nullable=True)
    round = Column(Text, nullable=False, default=Round.SINGLE)
    # Legacy flag kept in sync with round for older readers
    is_double_jeopardy = Column(Boolean, nullable=False, default=False)
    was_triple_stumper = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    category = relationship("Category", back_populates="questions")

    __table_args__ = (
        Index("ix_question_air_date", "air_date"),
        Index("ix_question_season", "season"),
    )


class PlayerGame(Base):
    __tablename__ = "player_game"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("app_user.id"), nullable=False, index=True)
    seed = Column(Text, nullable=True)
    status = Column(Text, nullable=False, default=GameStatus.IN_PROGRESS)
    current_round = Column(Text, nullable=False, default=Round.SINGLE)
    current_score = Column(Integer, nullable=False, default=0)
    visibility = Column(Text, nullable=False, default="PRIVATE")  # PRIVATE | UNLISTED | PUBLIC
    config = Column(JSONType, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    user = relationship("User", back_populates="games")
    questions = relationship("PlayerGameQuestion", back_populates="game", cascade="all, delete-orphan")


class PlayerGameQuestion(Base):
    __tablename__ = "player_game_question"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    game_id = Column(Uuid, ForeignKey("player_game.id", ondelete="CASCADE"), nullable=False, index=True)
    question_id = Column(Uuid, ForeignKey("question.id"), nullable=False)
    answered = Column(Boolean, nullable=False, default=False)
    correct = Column(Boolean, nullable=True)

    game = relationship("PlayerGame", back_populates="questions")
    question = relationship("Question")


class GameHistory(Base):
    __tablename__ = "game_history"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("app_user.id"), nullable=False, index=True)
    question_id = Column(Uuid, ForeignKey("question.id"), nullable=False, index=True)
    correct = Column(Boolean, nullable=False)
    points = Column(Integer, nullable=False, default=0)
    user_answer = Column(Text, nullable=True)
    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class AnswerOverride(Base):
    """An alternate accepted answer for one question."""
    __tablename__ = "answer_override"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    question_id = Column(Uuid, ForeignKey("question.id"), nullable=False)
    text = Column(Text, nullable=False)  # normalized answer text
    created_by_user_id = Column(Uuid, ForeignKey("app_user.id"), nullable=True)
    source = Column(Text, nullable=False, default=OverrideSource.ADMIN)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("question_id", "text", name="uq_answer_override_question_text"),
    )


class AnswerDispute(Base):
    """A player's claim that the grader marked a correct answer wrong."""
    __tablename__ = "answer_dispute"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("app_user.id"), nullable=False, index=True)
    question_id = Column(Uuid, ForeignKey("question.id"), nullable=False)
    game_id = Column(Uuid, ForeignKey("player_game.id", ondelete="SET NULL"), nullable=True)
    mode = Column(Text, nullable=False)
    round = Column(Text, nullable=False, default=Round.SINGLE)
    user_answer = Column(Text, nullable=False)
    system_was_correct = Column(Boolean, nullable=False, default=False)
    status = Column(Text, nullable=False, default=DisputeStatus.PENDING)
    admin_id = Column(Uuid, ForeignKey("app_user.id"), nullable=True)
    admin_comment = Column(Text, nullable=True)
    override_id = Column(Uuid, ForeignKey("answer_override.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    resolved_at = Column(DateTime(timezone=True), nullable=True)

    user = relationship("User", foreign_keys=[user_id])
    admin = relationship("User", foreign_keys=[admin_id])
    question = relationship("Question")
    override = relationship("AnswerOverride")

    __table_args__ = (
        Index("ix_answer_dispute_status_created", "status", "created_at"),
    )


class CronJobExecution(Base):
    __tablename__ = "cron_job_execution"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    job_name = Column(Text, nullable=False)
    status = Column(Text, nullable=False, default=CronJobStatus.RUNNING)
    started_at = Column(DateTime(timezone=True), nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    duration_ms = Column(Integer, nullable=True)
    result = Column(JSONType, nullable=True)
    error = Column(Text, nullable=True)
    triggered_by = Column(Text, nullable=True)  # 'cron' or an admin user id

    __table_args__ = (
        Index("ix_cron_job_execution_job_started", "job_name", "started_at"),
        Index("ix_cron_job_execution_status", "status"),
    )


class GuestConfig(Base):
    """Single-row ('default') limits for unauthenticated play."""
    __tablename__ = "guest_config"

    id = Column(Text, primary_key=True, default="default")
    random_game_max_questions_before_auth = Column(Integer, nullable=False, default=1)
    random_game_max_categories_before_auth = Column(Integer, nullable=True)
    random_game_max_rounds_before_auth = Column(Integer, nullable=True)
    random_game_max_games_before_auth = Column(Integer, nullable=False, default=0)
    random_question_max_questions_before_auth = Column(Integer, nullable=False, default=1)
    random_question_max_categories_before_auth = Column(Integer, nullable=True)
    daily_challenge_guest_enabled = Column(Boolean, nullable=False, default=False)
    daily_challenge_guest_appears_on_leaderboard = Column(Boolean, nullable=False, default=False)
    daily_challenge_min_lookback_days = Column(Integer, nullable=False, default=365)
    daily_challenge_seasons = Column(JSONType, nullable=True)  # list of season numbers
    time_to_authenticate_minutes = Column(Integer, nullable=False, default=1440)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class GuestSession(Base):
    __tablename__ = "guest_session"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    type = Column(Text, nullable=False)  # RANDOM_QUESTION | RANDOM_GAME | DAILY_CHALLENGE
    data = Column(JSONType, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    claimed_at = Column(DateTime(timezone=True), nullable=True)
    claimed_by_user_id = Column(Uuid, ForeignKey("app_user.id"), nullable=True)
