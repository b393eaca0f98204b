"""Initial database schema

Revision ID: 001_initial_schema
Revises: 
Create Date: 2026-10-19 12:00:00

Creates the trading cup schema:
- cups table with lifecycle status
- cup_participants table with cached PNL / rank projection
- cup_snapshots append-only history
- exchange_api_keys table with encrypted credentials
- disqualification_logs audit table
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create all tables"""

    # =========================================================================
    # TABLE: cups
    # =========================================================================
    op.create_table(
        'cups',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('exchange', sa.String(32), nullable=False, server_default='lbank'),
        sa.Column('pair', sa.String(32), nullable=False, server_default='IZKY/USDT'),
        sa.Column('status', sa.String(20), nullable=False, server_default='draft'),
        sa.Column('start_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('end_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('min_volume_usdt', sa.Float(), nullable=True, server_default='100'),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_by', sa.String(64), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint(
            "status IN ('draft', 'scheduled', 'active', 'ended', 'finalized')",
            name='ck_cups_status'
        ),
    )
    op.create_index('ix_cups_status', 'cups', ['status'])

    # =========================================================================
    # TABLE: cup_participants
    # =========================================================================
    op.create_table(
        'cup_participants',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('cup_id', sa.String(36), nullable=False),
        sa.Column('user_id', sa.String(64), nullable=False),
        sa.Column('registered_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),

        sa.Column('start_balance_usdt', sa.Float(), nullable=True),
        sa.Column('end_balance_usdt', sa.Float(), nullable=True),

        sa.Column('pnl', sa.Float(), nullable=True),
        sa.Column('pnl_pct', sa.Float(), nullable=True),
        sa.Column('total_volume_usdt', sa.Float(), nullable=False, server_default='0'),
        sa.Column('is_eligible', sa.Boolean(), nullable=True),

        sa.Column('is_disqualified', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('disqualify_reason', sa.String(32), nullable=True),

        sa.Column('rank', sa.Integer(), nullable=True),

        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['cup_id'], ['cups.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('cup_id', 'user_id', name='uq_cup_participants_cup_user'),
    )
    op.create_index('ix_cup_participants_cup_id', 'cup_participants', ['cup_id'])
    op.create_index('ix_cup_participants_user_id', 'cup_participants', ['user_id'])
    op.create_index('ix_cup_participants_rank', 'cup_participants', ['rank'])

    # =========================================================================
    # TABLE: cup_snapshots (append-only)
    # =========================================================================
    op.create_table(
        'cup_snapshots',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('cup_id', sa.String(36), nullable=False),
        sa.Column('user_id', sa.String(64), nullable=False),
        sa.Column('snapshot_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('balance_usdt', sa.Float(), nullable=True),
        sa.Column('volume_since_start', sa.Float(), nullable=True),
        sa.Column('pnl_pct', sa.Float(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['cup_id'], ['cups.id'], ondelete='CASCADE'),
    )
    op.create_index(
        'ix_cup_snapshots_cup_user_at',
        'cup_snapshots',
        ['cup_id', 'user_id', 'snapshot_at']
    )

    # =========================================================================
    # TABLE: exchange_api_keys
    # =========================================================================
    op.create_table(
        'exchange_api_keys',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('user_id', sa.String(64), nullable=False),
        sa.Column('exchange', sa.String(32), nullable=False, server_default='lbank'),
        sa.Column('encrypted_api_key', sa.Text(), nullable=False),
        sa.Column('encrypted_api_secret', sa.Text(), nullable=False),
        sa.Column('is_verified', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'exchange', name='uq_exchange_api_keys_user_exchange'),
    )
    op.create_index('ix_exchange_api_keys_user_id', 'exchange_api_keys', ['user_id'])

    # =========================================================================
    # TABLE: disqualification_logs
    # =========================================================================
    op.create_table(
        'disqualification_logs',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('cup_id', sa.String(36), nullable=True),
        sa.Column('user_id', sa.String(64), nullable=True),
        sa.Column('reason', sa.String(32), nullable=False),
        sa.Column('detected_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('admin_user_id', sa.String(64), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['cup_id'], ['cups.id'], ondelete='SET NULL'),
    )


def downgrade() -> None:
    """Drop all tables (reverse order of creation)"""
    op.drop_table('disqualification_logs')
    op.drop_index('ix_exchange_api_keys_user_id', table_name='exchange_api_keys')
    op.drop_table('exchange_api_keys')
    op.drop_index('ix_cup_snapshots_cup_user_at', table_name='cup_snapshots')
    op.drop_table('cup_snapshots')
    op.drop_index('ix_cup_participants_rank', table_name='cup_participants')
    op.drop_index('ix_cup_participants_user_id', table_name='cup_participants')
    op.drop_index('ix_cup_participants_cup_id', table_name='cup_participants')
    op.drop_table('cup_participants')
    op.drop_index('ix_cups_status', table_name='cups')
    op.drop_table('cups')
