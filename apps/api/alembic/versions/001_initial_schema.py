"""initial trivia admin schema

Revision ID: 001
Revises: 
Create Date: 2025-12-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSONType = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def _created_at() -> sa.Column:
    return sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False)


def upgrade() -> None:
    op.create_table(
        'app_user',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('email', sa.Text(), nullable=False, unique=True),
        sa.Column('name', sa.Text(), nullable=True),
        sa.Column('display_name', sa.Text(), nullable=True),
        sa.Column('role', sa.Text(), nullable=False, server_default='USER'),
        _created_at(),
        sa.Column('last_online_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_seen_path', sa.Text(), nullable=True),
    )

    op.create_table(
        'category',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.Text(), nullable=False, unique=True),
        _created_at(),
    )

    op.create_table(
        'question',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('question', sa.Text(), nullable=False),
        sa.Column('answer', sa.Text(), nullable=False),
        sa.Column('value', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('difficulty', sa.Text(), nullable=False, server_default='MEDIUM'),
        sa.Column('category_id', sa.Uuid(), sa.ForeignKey('category.id'), nullable=False),
        sa.Column('knowledge_category', sa.Text(), nullable=False, server_default='GENERAL_KNOWLEDGE'),
        sa.Column('air_date', sa.Date(), nullable=True),
        sa.Column('season', sa.Integer(), nullable=True),
        sa.Column('episode_id', sa.Text(), nullable=True),
        sa.Column('round', sa.Text(), nullable=False, server_default='SINGLE'),
        sa.Column('is_double_jeopardy', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('was_triple_stumper', sa.Boolean(), nullable=False, server_default=sa.false()),
        _created_at(),
    )
    op.create_index('ix_question_category_id', 'question', ['category_id'])
    op.create_index('ix_question_air_date', 'question', ['air_date'])
    op.create_index('ix_question_season', 'question', ['season'])

    op.create_table(
        'player_game',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('app_user.id'), nullable=False),
        sa.Column('seed', sa.Text(), nullable=True),
        sa.Column('status', sa.Text(), nullable=False, server_default='IN_PROGRESS'),
        sa.Column('current_round', sa.Text(), nullable=False, server_default='SINGLE'),
        sa.Column('current_score', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('visibility', sa.Text(), nullable=False, server_default='PRIVATE'),
        sa.Column('config', JSONType, nullable=True),
        _created_at(),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    )
    op.create_index('ix_player_game_user_id', 'player_game', ['user_id'])

    op.create_table(
        'player_game_question',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('game_id', sa.Uuid(), sa.ForeignKey('player_game.id', ondelete='CASCADE'), nullable=False),
        sa.Column('question_id', sa.Uuid(), sa.ForeignKey('question.id'), nullable=False),
        sa.Column('answered', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('correct', sa.Boolean(), nullable=True),
    )
    op.create_index('ix_player_game_question_game_id', 'player_game_question', ['game_id'])

    op.create_table(
        'game_history',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('app_user.id'), nullable=False),
        sa.Column('question_id', sa.Uuid(), sa.ForeignKey('question.id'), nullable=False),
        sa.Column('correct', sa.Boolean(), nullable=False),
        sa.Column('points', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('user_answer', sa.Text(), nullable=True),
        sa.Column('timestamp', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    )
    op.create_index('ix_game_history_user_id', 'game_history', ['user_id'])
    op.create_index('ix_game_history_question_id', 'game_history', ['question_id'])

    op.create_table(
        'answer_override',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('question_id', sa.Uuid(), sa.ForeignKey('question.id'), nullable=False),
        sa.Column('text', sa.Text(), nullable=False),
        sa.Column('created_by_user_id', sa.Uuid(), sa.ForeignKey('app_user.id'), nullable=True),
        sa.Column('source', sa.Text(), nullable=False, server_default='ADMIN'),
        sa.Column('notes', sa.Text(), nullable=True),
        _created_at(),
        sa.UniqueConstraint('question_id', 'text', name='uq_answer_override_question_text'),
    )

    op.create_table(
        'answer_dispute',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('app_user.id'), nullable=False),
        sa.Column('question_id', sa.Uuid(), sa.ForeignKey('question.id'), nullable=False),
        sa.Column('game_id', sa.Uuid(), sa.ForeignKey('player_game.id', ondelete='SET NULL'), nullable=True),
        sa.Column('mode', sa.Text(), nullable=False),
        sa.Column('round', sa.Text(), nullable=False, server_default='SINGLE'),
        sa.Column('user_answer', sa.Text(), nullable=False),
        sa.Column('system_was_correct', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('status', sa.Text(), nullable=False, server_default='PENDING'),
        sa.Column('admin_id', sa.Uuid(), sa.ForeignKey('app_user.id'), nullable=True),
        sa.Column('admin_comment', sa.Text(), nullable=True),
        sa.Column('override_id', sa.Uuid(), sa.ForeignKey('answer_override.id'), nullable=True),
        _created_at(),
        sa.Column('resolved_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_answer_dispute_user_id', 'answer_dispute', ['user_id'])
    op.create_index('ix_answer_dispute_status_created', 'answer_dispute', ['status', 'created_at'])

    op.create_table(
        'cron_job_execution',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('job_name', sa.Text(), nullable=False),
        sa.Column('status', sa.Text(), nullable=False, server_default='RUNNING'),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('duration_ms', sa.Integer(), nullable=True),
        sa.Column('result', JSONType, nullable=True),
        sa.Column('error', sa.Text(), nullable=True),
        sa.Column('triggered_by', sa.Text(), nullable=True),
    )
    op.create_index('ix_cron_job_execution_job_started', 'cron_job_execution', ['job_name', 'started_at'])
    op.create_index('ix_cron_job_execution_status', 'cron_job_execution', ['status'])

    op.create_table(
        'guest_config',
        sa.Column('id', sa.Text(), primary_key=True),
        sa.Column('random_game_max_questions_before_auth', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('random_game_max_categories_before_auth', sa.Integer(), nullable=True),
        sa.Column('random_game_max_rounds_before_auth', sa.Integer(), nullable=True),
        sa.Column('random_game_max_games_before_auth', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('random_question_max_questions_before_auth', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('random_question_max_categories_before_auth', sa.Integer(), nullable=True),
        sa.Column('daily_challenge_guest_enabled', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('daily_challenge_guest_appears_on_leaderboard', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('daily_challenge_min_lookback_days', sa.Integer(), nullable=False, server_default='365'),
        sa.Column('daily_challenge_seasons', JSONType, nullable=True),
        sa.Column('time_to_authenticate_minutes', sa.Integer(), nullable=False, server_default='1440'),
        _created_at(),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    )

    op.create_table(
        'guest_session',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('type', sa.Text(), nullable=False),
        sa.Column('data', JSONType, nullable=True),
        _created_at(),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('claimed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('claimed_by_user_id', sa.Uuid(), sa.ForeignKey('app_user.id'), nullable=True),
    )


def downgrade() -> None:
    for table in (
        'guest_session', 'guest_config', 'cron_job_execution', 'answer_dispute',
        'answer_override', 'game_history', 'player_game_question', 'player_game',
        'question', 'category', 'app_user',
    ):
        op.drop_table(table)
