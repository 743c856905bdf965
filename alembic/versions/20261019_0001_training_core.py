"""Initial schema - training core

Revision ID: 0001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Users table (mirror of the identity service account)
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('email', sa.String(255), unique=True, nullable=False, index=True),
        sa.Column('full_name', sa.String(255), nullable=True),
        sa.Column('plan', sa.String(50), nullable=False, server_default='free'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('teaser_emails_enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('weekly_report_enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # Practice modes and their drills
    op.create_table(
        'practice_modes',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('slug', sa.String(100), unique=True, nullable=False, index=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('level_thresholds', sa.JSON(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        'drills',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('mode_id', sa.Uuid(), sa.ForeignKey('practice_modes.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('instruction', sa.Text(), nullable=False),
        sa.Column('input_type', sa.String(30), nullable=False, server_default='text'),
        sa.Column('options', sa.JSON(), nullable=True),
        sa.Column('timer_seconds', sa.Integer(), nullable=True),
        sa.Column('dimension_keys', sa.JSON(), nullable=False),
        sa.Column('insight', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('mode_id', 'position', name='uq_drill_mode_position'),
    )

    # Training sessions and the exchange log
    op.create_table(
        'training_sessions',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('mode_id', sa.Uuid(), sa.ForeignKey('practice_modes.id', ondelete='CASCADE'), nullable=False),
        sa.Column('level_at_start', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('exchange_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('drill_index', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('phase', sa.String(20), nullable=False, server_default='scenario'),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('ended_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('summary', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_training_sessions_user_status', 'training_sessions', ['user_id', 'status', 'ended_at'])

    op.create_table(
        'session_messages',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('session_id', sa.Uuid(), sa.ForeignKey('training_sessions.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('sequence', sa.Integer(), nullable=False),
        sa.Column('role', sa.String(10), nullable=False),
        sa.Column('card_type', sa.String(30), nullable=True),
        sa.Column('drill_phase', sa.String(100), nullable=True),
        sa.Column('payload', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('session_id', 'sequence', name='uq_session_message_sequence'),
    )

    # Scoring
    op.create_table(
        'drill_scores',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('session_id', sa.Uuid(), sa.ForeignKey('training_sessions.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('mode_id', sa.Uuid(), sa.ForeignKey('practice_modes.id', ondelete='SET NULL'), nullable=True),
        sa.Column('drill_type', sa.String(100), nullable=False),
        sa.Column('drill_phase', sa.String(100), nullable=False),
        sa.Column('is_iteration', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('outcomes', sa.JSON(), nullable=False),
        sa.Column('response_text', sa.Text(), nullable=False),
        sa.Column('word_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_drill_scores_user_time', 'drill_scores', ['user_id', 'created_at'])

    op.create_table(
        'dimension_scores',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('drill_score_id', sa.Uuid(), sa.ForeignKey('drill_scores.id', ondelete='CASCADE'), nullable=False),
        sa.Column('drill_id', sa.Uuid(), sa.ForeignKey('drills.id', ondelete='SET NULL'), nullable=True),
        sa.Column('dimension_key', sa.String(100), nullable=False),
        sa.Column('score', sa.Float(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        'ix_dimension_scores_user_key_time',
        'dimension_scores',
        ['user_id', 'dimension_key', 'created_at'],
    )

    op.create_table(
        'skill_dimensions',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('key', sa.String(100), unique=True, nullable=False),
        sa.Column('label', sa.String(255), nullable=False),
        sa.Column('category', sa.String(100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('target', sa.Text(), nullable=True),
        sa.Column('tips', sa.JSON(), nullable=False),
        sa.Column('score_anchors', sa.JSON(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # Progress, usage and one-time insight tracking
    op.create_table(
        'user_mode_progress',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('mode_id', sa.Uuid(), sa.ForeignKey('practice_modes.id', ondelete='CASCADE'), nullable=False),
        sa.Column('current_level', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('total_drills_completed', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_sessions', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_exchanges', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('exchanges_at_current_level', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('cap_notified_level', sa.Integer(), nullable=True),
        sa.Column('last_trained_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('user_id', 'mode_id', name='uq_user_mode_progress'),
    )

    op.create_table(
        'daily_usage',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('usage_date', sa.Date(), nullable=False),
        sa.Column('exchange_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('sessions_started', sa.Integer(), nullable=False, server_default='0'),
        sa.UniqueConstraint('user_id', 'usage_date', name='uq_daily_usage_user_date'),
    )

    op.create_table(
        'insight_views',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('drill_id', sa.Uuid(), sa.ForeignKey('drills.id', ondelete='CASCADE'), nullable=False),
        sa.Column('seen_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('user_id', 'drill_id', name='uq_insight_view'),
    )

    # Notification idempotency guard
    op.create_table(
        'email_sends',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('email_type', sa.String(50), nullable=False),
        sa.Column('week_number', sa.Integer(), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('snapshot', sa.JSON(), nullable=False),
        sa.Column('subject', sa.String(255), nullable=False),
        sa.Column('sent_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('user_id', 'email_type', 'week_number', 'year', name='uq_email_send_slot'),
    )
    op.create_index(
        'uq_email_send_teaser',
        'email_sends',
        ['user_id'],
        unique=True,
        postgresql_where=sa.text("email_type = 'teaser'"),
        sqlite_where=sa.text("email_type = 'teaser'"),
    )

    # Event logs table (immutable audit trail)
    op.create_table(
        'event_logs',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('event_type', sa.String(100), nullable=False, index=True),
        sa.Column('entity_type', sa.String(50), nullable=False),
        sa.Column('entity_id', sa.Uuid(), nullable=False, index=True),
        sa.Column('user_id', sa.Uuid(), nullable=True, index=True),
        sa.Column('payload', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_event_logs_entity', 'event_logs', ['entity_type', 'entity_id'])
    op.create_index('ix_event_logs_type_time', 'event_logs', ['event_type', 'created_at'])


def downgrade() -> None:
    op.drop_table('event_logs')
    op.drop_table('email_sends')
    op.drop_table('insight_views')
    op.drop_table('daily_usage')
    op.drop_table('user_mode_progress')
    op.drop_table('skill_dimensions')
    op.drop_table('dimension_scores')
    op.drop_table('drill_scores')
    op.drop_table('session_messages')
    op.drop_table('training_sessions')
    op.drop_table('drills')
    op.drop_table('practice_modes')
    op.drop_table('users')
