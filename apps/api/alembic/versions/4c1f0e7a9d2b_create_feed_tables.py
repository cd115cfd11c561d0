"""create videos, votes, comments, video_views and bookmarks

Revision ID: 4c1f0e7a9d2b
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '4c1f0e7a9d2b'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _created_at() -> sa.Column:
    return sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('auth_subject', sa.String(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint('id', name='pk_users'),
        sa.UniqueConstraint('auth_subject', name='uq_users_auth_subject'),
    )
    op.create_table(
        'videos',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('owner_user_id', sa.Uuid(), nullable=False),
        sa.Column('target_type', sa.String(length=16), nullable=False),
        sa.Column('target_id', sa.Uuid(), nullable=False),
        sa.Column('storage_bucket', sa.String(), nullable=False),
        sa.Column('storage_key', sa.String(), nullable=False),
        sa.Column('content_type', sa.String(), nullable=False),
        sa.Column('duration_seconds', sa.Integer(), nullable=True),
        _created_at(),
        sa.CheckConstraint("target_type in ('proposal', 'program')", name='ck_videos_target_type'),
        sa.ForeignKeyConstraint(['owner_user_id'], ['users.id'], name='fk_videos_owner_user_id_users', ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name='pk_videos'),
    )
    op.create_index('ix_videos_target', 'videos', ['target_type', 'target_id', 'created_at'])
    op.create_index('ix_videos_owner_user_id', 'videos', ['owner_user_id'])
    op.create_index('ix_videos_created_at', 'videos', ['created_at'])

    op.create_table(
        'votes',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('target_type', sa.String(length=16), nullable=False),
        sa.Column('target_id', sa.Uuid(), nullable=False),
        sa.Column('value', sa.SmallInteger(), nullable=False),
        _created_at(),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint('value in (-1, 1)', name='ck_votes_value'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name='fk_votes_user_id_users', ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name='pk_votes'),
        sa.UniqueConstraint('user_id', 'target_type', 'target_id', name='uq_votes_user_id'),
    )
    op.create_index('ix_votes_target', 'votes', ['target_type', 'target_id'])

    op.create_table(
        'comments',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('author_user_id', sa.Uuid(), nullable=False),
        sa.Column('target_type', sa.String(length=16), nullable=False),
        sa.Column('target_id', sa.Uuid(), nullable=False),
        sa.Column('parent_comment_id', sa.Uuid(), nullable=True),
        sa.Column('body_markdown', sa.Text(), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(['author_user_id'], ['users.id'], name='fk_comments_author_user_id_users', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['parent_comment_id'], ['comments.id'], name='fk_comments_parent_comment_id_comments', ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name='pk_comments'),
    )
    op.create_index('ix_comments_target', 'comments', ['target_type', 'target_id', 'created_at'])

    for table in ('video_views', 'bookmarks'):
        op.create_table(
            table,
            sa.Column('id', sa.Uuid(), nullable=False),
            sa.Column('user_id', sa.Uuid(), nullable=False),
            sa.Column('video_id', sa.Uuid(), nullable=False),
            _created_at(),
            sa.ForeignKeyConstraint(['user_id'], ['users.id'], name=f'fk_{table}_user_id_users', ondelete='CASCADE'),
            sa.ForeignKeyConstraint(['video_id'], ['videos.id'], name=f'fk_{table}_video_id_videos', ondelete='CASCADE'),
            sa.PrimaryKeyConstraint('id', name=f'pk_{table}'),
            sa.UniqueConstraint('user_id', 'video_id', name=f'uq_{table}_user_id'),
        )
        op.create_index(f'ix_{table}_video_id', table, ['video_id'])
    op.create_index('ix_video_views_user_created', 'video_views', ['user_id', 'created_at'])
    op.create_index('ix_bookmarks_user_created', 'bookmarks', ['user_id', 'created_at'])


def downgrade() -> None:
    op.drop_table('bookmarks')
    op.drop_table('video_views')
    op.drop_table('comments')
    op.drop_table('votes')
    op.drop_table('videos')
    op.drop_table('users')
