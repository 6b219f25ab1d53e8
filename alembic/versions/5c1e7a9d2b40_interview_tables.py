"""interview_tables

Revision ID: 5c1e7a9d2b40
Revises: 
Create Date: 2026-10-18 09:12:44.118203

Creates sessions, questions, answers and reports. Production-safe: tables that
already exist are left untouched.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision: str = '5c1e7a9d2b40'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def table_exists(table_name: str) -> bool:
    """Check if a table exists in the database."""
    bind = op.get_bind()
    inspector = inspect(bind)
    return table_name in inspector.get_table_names()


def upgrade() -> None:
    if not table_exists('sessions'):
        op.create_table('sessions',
            sa.Column('id', sa.String(length=36), nullable=False),
            sa.Column('category', sa.String(length=32), nullable=False),
            sa.Column('status', sa.String(length=32), nullable=False, server_default='created'),
            sa.Column('resume_data', sa.JSON(), nullable=True),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
            sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
            sa.CheckConstraint("category IN ('technical', 'behavioral', 'communication')", name='ck_sessions_category'),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index('idx_sessions_created', 'sessions', ['created_at'], unique=False)

    if not table_exists('questions'):
        op.create_table('questions',
            sa.Column('id', sa.String(length=36), nullable=False),
            sa.Column('session_id', sa.String(length=36), nullable=False),
            sa.Column('question_text', sa.Text(), nullable=False),
            sa.Column('question_type', sa.String(), nullable=False),
            sa.Column('question_order', sa.Integer(), nullable=False),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
            sa.ForeignKeyConstraint(['session_id'], ['sessions.id'], ondelete='CASCADE'),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('session_id', 'question_order', name='uq_questions_session_order')
        )
        op.create_index(op.f('ix_questions_session_id'), 'questions', ['session_id'], unique=False)

    if not table_exists('answers'):
        op.create_table('answers',
            sa.Column('id', sa.String(length=36), nullable=False),
            sa.Column('session_id', sa.String(length=36), nullable=False),
            sa.Column('question_id', sa.String(length=36), nullable=False),
            sa.Column('answer_text', sa.Text(), nullable=False),
            sa.Column('answer_mode', sa.String(length=16), nullable=False),
            sa.Column('response_time', sa.Integer(), nullable=False),
            sa.Column('audio_duration', sa.Integer(), nullable=False),
            sa.Column('audio_url', sa.String(), nullable=True),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
            sa.CheckConstraint("answer_mode IN ('text', 'voice')", name='ck_answers_mode'),
            sa.CheckConstraint('response_time >= 0', name='ck_answers_response_time'),
            sa.CheckConstraint('audio_duration >= 0', name='ck_answers_audio_duration'),
            sa.ForeignKeyConstraint(['question_id'], ['questions.id'], ondelete='CASCADE'),
            sa.ForeignKeyConstraint(['session_id'], ['sessions.id'], ondelete='CASCADE'),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('session_id', 'question_id', name='uq_answers_session_question')
        )
        op.create_index(op.f('ix_answers_session_id'), 'answers', ['session_id'], unique=False)
        op.create_index(op.f('ix_answers_question_id'), 'answers', ['question_id'], unique=False)

    if not table_exists('reports'):
        op.create_table('reports',
            sa.Column('id', sa.String(length=36), nullable=False),
            sa.Column('session_id', sa.String(length=36), nullable=False),
            sa.Column('overall_score', sa.Integer(), nullable=False),
            sa.Column('clarity_score', sa.Integer(), nullable=False),
            sa.Column('content_score', sa.Integer(), nullable=False),
            sa.Column('confidence_score', sa.Integer(), nullable=False),
            sa.Column('structure_score', sa.Integer(), nullable=False),
            sa.Column('strengths', sa.JSON(), nullable=False),
            sa.Column('improvements', sa.JSON(), nullable=False),
            sa.Column('feedback', sa.JSON(), nullable=False),
            sa.Column('generated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
            sa.CheckConstraint('overall_score BETWEEN 0 AND 100', name='ck_reports_overall'),
            sa.CheckConstraint('clarity_score BETWEEN 0 AND 100', name='ck_reports_clarity'),
            sa.CheckConstraint('content_score BETWEEN 0 AND 100', name='ck_reports_content'),
            sa.CheckConstraint('confidence_score BETWEEN 0 AND 100', name='ck_reports_confidence'),
            sa.CheckConstraint('structure_score BETWEEN 0 AND 100', name='ck_reports_structure'),
            sa.ForeignKeyConstraint(['session_id'], ['sessions.id'], ondelete='CASCADE'),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_reports_session_id'), 'reports', ['session_id'], unique=True)


def downgrade() -> None:
    op.drop_index(op.f('ix_reports_session_id'), table_name='reports')
    op.drop_table('reports')
    op.drop_index(op.f('ix_answers_question_id'), table_name='answers')
    op.drop_index(op.f('ix_answers_session_id'), table_name='answers')
    op.drop_table('answers')
    op.drop_index(op.f('ix_questions_session_id'), table_name='questions')
    op.drop_table('questions')
    op.drop_index('idx_sessions_created', table_name='sessions')
    op.drop_table('sessions')
