from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20261018_01"
down_revision = None
branch_labels = None
depends_on = None

def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('hashed_password', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'presentations',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('editor_data', sa.JSON(), nullable=True),
        sa.Column('excalidraw_data', sa.JSON(), nullable=True),
        sa.Column('is_public', sa.Boolean(), nullable=False, server_default=sa.text('0')),
        sa.Column('default_share_access', sa.String(length=5), nullable=False, server_default='read'),
        sa.Column('owner_id', sa.String(length=36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_presentations_owner_id', 'presentations', ['owner_id'])
    op.create_index('ix_presentations_updated_at', 'presentations', ['updated_at'])

    op.create_table(
        'share_grants',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('presentation_id', sa.String(length=36), sa.ForeignKey('presentations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('grantee_user_id', sa.String(length=36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('access_level', sa.String(length=5), nullable=False, server_default='read'),
        sa.Column('granted_by_user_id', sa.String(length=36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('presentation_id', 'grantee_user_id', name='uq_share_grants_presentation_grantee'),
    )
    op.create_index('ix_share_grants_grantee_user_id', 'share_grants', ['grantee_user_id'])

    op.create_table(
        'share_links',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('presentation_id', sa.String(length=36), sa.ForeignKey('presentations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('token', sa.String(length=64), nullable=False),
        sa.Column('access_level', sa.String(length=5), nullable=False, server_default='read'),
        sa.Column('password_hash', sa.String(length=255), nullable=True),
        sa.Column('expires_at', sa.DateTime(), nullable=True),
        sa.Column('max_views', sa.Integer(), nullable=True),
        sa.Column('view_count', sa.Integer(), nullable=False, server_default=sa.text('0')),
        sa.Column('created_by_user_id', sa.String(length=36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('1')),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint('view_count >= 0', name='ck_share_links_view_count_non_negative'),
        sa.CheckConstraint('max_views IS NULL OR max_views >= 1', name='ck_share_links_max_views_positive'),
    )
    op.create_index('ix_share_links_token', 'share_links', ['token'], unique=True)
    op.create_index('ix_share_links_presentation_id', 'share_links', ['presentation_id'])
    op.create_index('ix_share_links_expires_at', 'share_links', ['expires_at'])


def downgrade() -> None:
    op.drop_index('ix_share_links_expires_at', table_name='share_links')
    op.drop_index('ix_share_links_presentation_id', table_name='share_links')
    op.drop_index('ix_share_links_token', table_name='share_links')
    op.drop_table('share_links')
    op.drop_index('ix_share_grants_grantee_user_id', table_name='share_grants')
    op.drop_table('share_grants')
    op.drop_index('ix_presentations_updated_at', table_name='presentations')
    op.drop_index('ix_presentations_owner_id', table_name='presentations')
    op.drop_table('presentations')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
