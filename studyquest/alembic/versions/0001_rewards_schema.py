"""rewards schema: users, catalog, progress, achievements, xp ledger, rank snapshots

Revision ID: 0001_rewards_schema
Revises:
Create Date: 2024-01-08 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_rewards_schema'
down_revision = None
branch_labels = None
depends_on = None

DIFFICULTIES = ("Beginner", "Intermediate", "Advanced")
CONTENT_TYPES = ("question", "flashcard", "media", "section", "quiz")
XP_SOURCES = ("content", "daily_repeat", "completion_bonus", "achievement", "daily_quiz")
RANK_CHANGE_TYPES = ("up", "down", "none", "new")


def _enum(values, name):
    return sa.Enum(*values, name=name, native_enum=False)


def _catalog_item_table(table_name: str, label_column: str, label_length: int, *extra_columns) -> None:
    op.create_table(
        table_name,
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('topic_id', sa.String(36), sa.ForeignKey('topics.id', ondelete='CASCADE'), nullable=False),
        *extra_columns,
        sa.Column(label_column, sa.String(label_length), nullable=False),
        sa.Column('difficulty', _enum(DIFFICULTIES, 'difficulty_enum'), nullable=False),
    )
    op.create_index(f'ix_{table_name}_topic_id', table_name, ['topic_id'])


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('firebase_uid', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('role', sa.String(50), nullable=False),
        sa.Column('total_xp', sa.Integer, nullable=False),
        sa.Column('level', sa.Integer, nullable=False),
        sa.Column('current_streak', sa.Integer, nullable=False),
        sa.Column('max_streak', sa.Integer, nullable=False),
        sa.Column('last_active_date', sa.Date, nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True)),
        sa.UniqueConstraint('email', name='uq_user_email'),
        sa.UniqueConstraint('firebase_uid', name='uq_user_firebase_uid'),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_firebase_uid', 'users', ['firebase_uid'], unique=True)
    op.create_index('ix_users_total_xp', 'users', ['total_xp'])

    # --- Content catalog (read-only for this service) ---
    op.create_table(
        'subjects',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now()),
    )
    op.create_table(
        'topics',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('subject_id', sa.String(36), sa.ForeignKey('subjects.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('difficulty', _enum(DIFFICULTIES, 'difficulty_enum'), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_topics_subject_id', 'topics', ['subject_id'])
    op.create_table(
        'question_sections',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('topic_id', sa.String(36), sa.ForeignKey('topics.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('section_order', sa.Integer, nullable=False),
        sa.Column('difficulty', _enum(DIFFICULTIES, 'difficulty_enum'), nullable=False),
    )
    op.create_index('ix_question_sections_topic_id', 'question_sections', ['topic_id'])

    _catalog_item_table(
        'questions', 'prompt', 1000,
        sa.Column('section_id', sa.String(36), sa.ForeignKey('question_sections.id', ondelete='SET NULL'), nullable=True),
    )
    op.create_index('ix_questions_section_id', 'questions', ['section_id'])
    _catalog_item_table('flashcards', 'front', 1000)
    _catalog_item_table('media', 'title', 255)

    # --- Rewards state ---
    op.create_table(
        'user_progress',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('user_id', sa.Integer, sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('content_id', sa.String(64), nullable=False),
        sa.Column('content_type', _enum(CONTENT_TYPES, 'content_type_enum'), nullable=False),
        sa.Column('subject_id', sa.String(36)),
        sa.Column('topic_id', sa.String(36)),
        sa.Column('section_id', sa.String(36)),
        sa.Column('completed', sa.Boolean, nullable=False),
        sa.Column('score', sa.Float),
        sa.Column('first_attempt_score', sa.Float),
        sa.Column('best_score', sa.Float),
        sa.Column('attempts', sa.Integer, nullable=False),
        sa.Column('time_spent', sa.Integer, nullable=False),
        sa.Column('first_completed_at', sa.TIMESTAMP(timezone=True)),
        sa.Column('first_completed_on', sa.Date),
        sa.Column('last_daily_xp_date', sa.Date),
        sa.Column('daily_xp_count', sa.Integer, nullable=False),
        sa.Column('total_xp_earned', sa.Integer, nullable=False),
        sa.Column('is_bonus_record', sa.Boolean, nullable=False),
        sa.Column('data', sa.JSON),
        sa.Column('last_accessed', sa.TIMESTAMP(timezone=True), server_default=sa.func.now()),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True)),
        sa.UniqueConstraint('user_id', 'content_id', 'content_type', name='uq_user_content_progress'),
    )
    op.create_index('ix_user_progress_id', 'user_progress', ['id'])
    op.create_index('ix_user_progress_user_topic', 'user_progress', ['user_id', 'topic_id'])
    op.create_index('ix_user_progress_user_section', 'user_progress', ['user_id', 'section_id'])
    op.create_index('ix_user_progress_user_subject', 'user_progress', ['user_id', 'subject_id'])

    op.create_table(
        'user_achievements',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('user_id', sa.Integer, sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('achievement_id', sa.String(64), nullable=False),
        sa.Column('xp_reward', sa.Integer, nullable=False),
        sa.Column('unlocked_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.UniqueConstraint('user_id', 'achievement_id', name='uq_user_achievement'),
    )
    op.create_index('ix_user_achievements_id', 'user_achievements', ['id'])
    op.create_index('ix_user_achievements_user_id', 'user_achievements', ['user_id'])

    op.create_table(
        'xp_ledger',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('user_id', sa.Integer, sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('amount', sa.Integer, nullable=False),
        sa.Column('source', _enum(XP_SOURCES, 'xp_source_enum'), nullable=False),
        sa.Column('reference', sa.String(128)),
        sa.Column('balance_after', sa.Integer, nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False),
    )
    op.create_index('ix_xp_ledger_id', 'xp_ledger', ['id'])
    op.create_index('ix_xp_ledger_user_id', 'xp_ledger', ['user_id'])

    # --- Daily rankings ---
    op.create_table(
        'daily_rank_snapshots',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('date', sa.Date, nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.UniqueConstraint('date', name='uq_daily_rank_snapshot_date'),
    )
    op.create_index('ix_daily_rank_snapshots_id', 'daily_rank_snapshots', ['id'])
    op.create_table(
        'daily_rank_entries',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('snapshot_id', sa.Integer, sa.ForeignKey('daily_rank_snapshots.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Integer, nullable=False),
        sa.Column('rank', sa.Integer, nullable=False),
        sa.Column('total_xp', sa.Integer, nullable=False),
        sa.Column('level', sa.Integer, nullable=False),
        sa.Column('current_streak', sa.Integer, nullable=False),
        sa.Column('max_streak', sa.Integer, nullable=False),
        sa.Column('previous_rank', sa.Integer),
        sa.Column('rank_change', sa.Integer, nullable=False),
        sa.Column('rank_change_type', _enum(RANK_CHANGE_TYPES, 'rank_change_type_enum'), nullable=False),
        sa.UniqueConstraint('snapshot_id', 'user_id', name='uq_daily_rank_entry_user'),
    )
    op.create_index('ix_daily_rank_entries_id', 'daily_rank_entries', ['id'])
    op.create_index('ix_daily_rank_entries_snapshot_id', 'daily_rank_entries', ['snapshot_id'])
    op.create_table(
        'user_rank_history',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('user_id', sa.Integer, sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('date', sa.Date, nullable=False),
        sa.Column('rank', sa.Integer, nullable=False),
        sa.Column('total_xp', sa.Integer, nullable=False),
        sa.UniqueConstraint('user_id', 'date', name='uq_user_rank_history_day'),
    )
    op.create_index('ix_user_rank_history_id', 'user_rank_history', ['id'])
    op.create_index('ix_user_rank_history_user_id', 'user_rank_history', ['user_id'])


def downgrade() -> None:
    for table in (
        'user_rank_history', 'daily_rank_entries', 'daily_rank_snapshots',
        'xp_ledger', 'user_achievements', 'user_progress',
        'media', 'flashcards', 'questions', 'question_sections', 'topics', 'subjects',
        'users',
    ):
        op.drop_table(table)
