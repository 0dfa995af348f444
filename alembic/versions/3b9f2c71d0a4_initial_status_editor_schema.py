"""initial_status_editor_schema

Revision ID: 3b9f2c71d0a4
Revises:
Create Date: 2026-10-17 09:12:05.418233

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '3b9f2c71d0a4'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    ]


def upgrade() -> None:
    """Create accounts, statuses, media, polls, edit history and the job queue."""

    # Helper for JSON type
    JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB, "postgresql")

    # 1. Accounts and scheduled statuses
    # ----------------------------------
    op.create_table('accounts',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('username', sa.String(length=255), nullable=False),
        sa.Column('display_name', sa.String(length=255), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('username')
    )

    op.create_table('scheduled_statuses',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.Column('scheduled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('params', JSON_TYPE, nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['account_id'], ['accounts.id'], ),
        sa.PrimaryKeyConstraint('id')
    )

    # 2. Statuses and polls (statuses.poll_id is added once polls exists)
    # -------------------------------------------------------------------
    op.create_table('statuses',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.Column('text', sa.Text(), server_default='', nullable=False),
        sa.Column('spoiler_text', sa.Text(), server_default='', nullable=False),
        sa.Column('sensitive', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('language', sa.String(length=10), nullable=True),
        sa.Column('edited_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['account_id'], ['accounts.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_statuses_account_created', 'statuses', ['account_id', 'created_at'], unique=False)

    op.create_table('polls',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.Column('status_id', sa.Integer(), nullable=True),
        sa.Column('options', JSON_TYPE, nullable=False),
        sa.Column('cached_tallies', JSON_TYPE, nullable=False),
        sa.Column('multiple', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('hide_totals', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('votes_count', sa.BigInteger(), server_default='0', nullable=False),
        sa.Column('voters_count', sa.BigInteger(), nullable=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['account_id'], ['accounts.id'], ),
        sa.ForeignKeyConstraint(['status_id'], ['statuses.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_polls_status_id'), 'polls', ['status_id'], unique=False)

    with op.batch_alter_table('statuses') as batch_op:
        batch_op.add_column(sa.Column('poll_id', sa.Integer(), nullable=True))
        batch_op.create_foreign_key('fk_statuses_poll_id', 'polls', ['poll_id'], ['id'], ondelete='SET NULL')

    op.create_table('poll_votes',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('poll_id', sa.Integer(), nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.Column('choice', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['account_id'], ['accounts.id'], ),
        sa.ForeignKeyConstraint(['poll_id'], ['polls.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_poll_votes_poll_account', 'poll_votes', ['poll_id', 'account_id'], unique=False)

    # 3. Media attachments
    # --------------------
    op.create_table('media_attachments',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.Column('status_id', sa.Integer(), nullable=True),
        sa.Column('scheduled_status_id', sa.Integer(), nullable=True),
        sa.Column('type', sa.String(length=20), server_default='image', nullable=False),
        sa.Column('processing', sa.String(length=20), server_default='complete', nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('file_key', sa.String(length=500), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['account_id'], ['accounts.id'], ),
        sa.ForeignKeyConstraint(['scheduled_status_id'], ['scheduled_statuses.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['status_id'], ['statuses.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_media_attachments_account_status', 'media_attachments', ['account_id', 'status_id'], unique=False)
    op.create_index('idx_media_attachments_scheduled_status', 'media_attachments', ['scheduled_status_id'], unique=False)

    # 4. Edit history
    # ---------------
    op.create_table('status_edits',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('status_id', sa.Integer(), nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=True),
        sa.Column('text', sa.Text(), server_default='', nullable=False),
        sa.Column('spoiler_text', sa.Text(), server_default='', nullable=False),
        sa.Column('sensitive', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('ordered_media_attachment_ids', JSON_TYPE, nullable=True),
        sa.Column('media_descriptions', JSON_TYPE, nullable=True),
        sa.Column('poll_options', JSON_TYPE, nullable=True),
        sa.Column('media_attachments_changed', sa.Boolean(), server_default=sa.false(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['account_id'], ['accounts.id'], ),
        sa.ForeignKeyConstraint(['status_id'], ['statuses.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_status_edits_status_created', 'status_edits', ['status_id', 'created_at'], unique=False)

    # 5. Preview cards, tags, mentions
    # --------------------------------
    op.create_table('preview_cards',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('url', sa.String(length=2048), nullable=False),
        sa.Column('title', sa.String(length=255), server_default='', nullable=False),
        sa.Column('description', sa.Text(), server_default='', nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('url')
    )

    op.create_table('preview_cards_statuses',
        sa.Column('preview_card_id', sa.Integer(), nullable=False),
        sa.Column('status_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['preview_card_id'], ['preview_cards.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['status_id'], ['statuses.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('preview_card_id', 'status_id')
    )

    op.create_table('tags',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name')
    )

    op.create_table('statuses_tags',
        sa.Column('status_id', sa.Integer(), nullable=False),
        sa.Column('tag_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['status_id'], ['statuses.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['tag_id'], ['tags.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('status_id', 'tag_id')
    )

    op.create_table('mentions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('status_id', sa.Integer(), nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['account_id'], ['accounts.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['status_id'], ['statuses.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('status_id', 'account_id', name='uq_mentions_status_account')
    )

    # 6. Notifications and job queue
    # ------------------------------
    op.create_table('notifications',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.Column('from_account_id', sa.Integer(), nullable=True),
        sa.Column('type', sa.String(length=50), nullable=False),
        sa.Column('activity_id', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['account_id'], ['accounts.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['from_account_id'], ['accounts.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('account_id', 'type', 'activity_id', name='uq_notifications_account_type_activity')
    )

    op.create_table('scheduled_jobs',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('worker', sa.String(length=100), nullable=False),
        sa.Column('args', JSON_TYPE, nullable=False),
        sa.Column('args_key', sa.String(length=1000), server_default='[]', nullable=False),
        sa.Column('status', sa.String(length=50), server_default='PENDING', nullable=False),
        sa.Column('scheduled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('retry_count', sa.Integer(), server_default='0', nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_scheduled_jobs_status_scheduled', 'scheduled_jobs', ['status', 'scheduled_at'], unique=False)
    op.create_index('idx_scheduled_jobs_worker_status_args', 'scheduled_jobs', ['worker', 'status', 'args_key'], unique=False)


def downgrade() -> None:
    op.drop_index('idx_scheduled_jobs_worker_status_args', table_name='scheduled_jobs')
    op.drop_index('idx_scheduled_jobs_status_scheduled', table_name='scheduled_jobs')
    op.drop_table('scheduled_jobs')
    op.drop_table('notifications')
    op.drop_table('mentions')
    op.drop_table('statuses_tags')
    op.drop_table('tags')
    op.drop_table('preview_cards_statuses')
    op.drop_table('preview_cards')
    op.drop_index('idx_status_edits_status_created', table_name='status_edits')
    op.drop_table('status_edits')
    op.drop_index('idx_media_attachments_scheduled_status', table_name='media_attachments')
    op.drop_index('idx_media_attachments_account_status', table_name='media_attachments')
    op.drop_table('media_attachments')
    op.drop_index('idx_poll_votes_poll_account', table_name='poll_votes')
    op.drop_table('poll_votes')

    with op.batch_alter_table('statuses') as batch_op:
        batch_op.drop_constraint('fk_statuses_poll_id', type_='foreignkey')
        batch_op.drop_column('poll_id')

    op.drop_index(op.f('ix_polls_status_id'), table_name='polls')
    op.drop_table('polls')
    op.drop_index('idx_statuses_account_created', table_name='statuses')
    op.drop_table('statuses')
    op.drop_table('scheduled_statuses')
    op.drop_table('accounts')
