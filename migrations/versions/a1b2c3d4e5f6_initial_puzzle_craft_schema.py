"""Initial Puzzle Craft schema: shops, campaigns, discount codes, game data

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'a1b2c3d4e5f6'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    """Create the Puzzle Craft tables."""
    op.create_table(
        'shops',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('shop', sa.String(255), nullable=False),
        sa.Column('plan', sa.String(50), nullable=False, server_default='none'),
        sa.Column('charge_id', sa.String(255), nullable=True),
        sa.Column('activated_at', sa.DateTime(), nullable=True),
        sa.Column('subscription_active', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('access_token', sa.String(255), nullable=True),
        sa.Column('uninstalled_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_shops_shop', 'shops', ['shop'], unique=True)

    op.create_table(
        'campaigns',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('shop', sa.String(255), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('image_url', sa.String(1024), nullable=False),
        sa.Column('puzzle_pieces', sa.Integer(), nullable=False, server_default='4'),
        sa.Column('widget_position', sa.String(30), nullable=False, server_default='right-bottom'),
        sa.Column('timer', sa.Integer(), nullable=False, server_default='30'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_campaigns_shop', 'campaigns', ['shop'])

    # At most one active campaign per shop
    op.create_index(
        'uq_campaigns_one_active_per_shop',
        'campaigns',
        ['shop'],
        unique=True,
        sqlite_where=sa.text('is_active'),
        postgresql_where=sa.text('is_active'),
    )

    op.create_table(
        'discount_codes',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('shop', sa.String(255), nullable=False),
        sa.Column('code', sa.String(100), nullable=False),
        sa.Column('title', sa.String(255), nullable=True),
        sa.Column('tier', sa.String(20), nullable=False),
        sa.Column('min_score', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('percentage', sa.Integer(), nullable=False, server_default='10'),
        sa.Column('shopify_id', sa.String(255), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('shop', 'code', name='uq_discount_codes_shop_code'),
    )
    op.create_index('ix_discount_codes_shop', 'discount_codes', ['shop'])

    op.create_table(
        'game_data',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('shop', sa.String(255), nullable=False),
        sa.Column('campaign_name', sa.String(255), nullable=False),
        sa.Column('player_email', sa.String(255), nullable=False),
        sa.Column('score', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('completion_percentage', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('time_used', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_time', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('puzzle_pieces', sa.Integer(), nullable=False, server_default='4'),
        sa.Column('completed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('discount_code', sa.String(100), nullable=True),
        sa.Column('discount_tier', sa.String(20), nullable=False, server_default='bronze'),
        sa.Column('discount_percentage', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('timestamp', sa.DateTime(), nullable=True),
        sa.Column('session_id', sa.String(255), nullable=False),
        sa.Column('is_early_submission', sa.Boolean(), nullable=True),
        sa.Column('image_loaded', sa.Boolean(), nullable=True),
        sa.Column('user_agent', sa.String(512), nullable=True),
        sa.Column('ip_address', sa.String(64), nullable=True),
        sa.Column('all_logs', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_game_data_player_email', 'game_data', ['player_email'])
    op.create_index('ix_game_data_timestamp', 'game_data', ['timestamp'])
    op.create_index('ix_game_data_shop_campaign', 'game_data', ['shop', 'campaign_name'])
    op.create_index('ix_game_data_score', 'game_data', ['score'])


def downgrade():
    """Drop the Puzzle Craft tables."""
    op.drop_index('ix_game_data_score', table_name='game_data')
    op.drop_index('ix_game_data_shop_campaign', table_name='game_data')
    op.drop_index('ix_game_data_timestamp', table_name='game_data')
    op.drop_index('ix_game_data_player_email', table_name='game_data')
    op.drop_table('game_data')

    op.drop_index('ix_discount_codes_shop', table_name='discount_codes')
    op.drop_table('discount_codes')

    op.drop_index('uq_campaigns_one_active_per_shop', table_name='campaigns')
    op.drop_index('ix_campaigns_shop', table_name='campaigns')
    op.drop_table('campaigns')

    op.drop_index('ix_shops_shop', table_name='shops')
    op.drop_table('shops')
