"""Initial schema: users, deposits, notifications, admin rates.

Revision ID: 001_initial
Revises:
Create Date: 2026-01-10

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Users table (one deposit address column per asset/network)
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('notify_transactions', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('naira_balance', sa.Numeric(36, 8), nullable=False, server_default='0'),
        sa.Column('usdt_deposit_address_trc20', sa.String(255), nullable=True),
        sa.Column('btc_deposit_address', sa.String(255), nullable=True),
        sa.Column('eth_deposit_address', sa.String(255), nullable=True),
        sa.Column('bnb_deposit_address_bep20', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
        sa.UniqueConstraint('usdt_deposit_address_trc20'),
        sa.UniqueConstraint('btc_deposit_address'),
        sa.UniqueConstraint('eth_deposit_address'),
        sa.UniqueConstraint('bnb_deposit_address_bep20'),
    )

    # Deposits table
    op.create_table(
        'deposits',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('reference', sa.String(255), nullable=False),
        sa.Column('type', sa.String(20), nullable=False, server_default='Deposit'),
        sa.Column('amount', sa.Numeric(36, 18), nullable=False),
        sa.Column('naira_amount', sa.Numeric(36, 8), nullable=True),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('address', sa.String(255), nullable=False),
        sa.Column('coin', sa.String(20), nullable=False),
        sa.Column('network', sa.String(20), nullable=True),
        sa.Column('transaction_hash', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_deposits_transaction_hash', 'deposits', ['transaction_hash'], unique=True)
    op.create_index('ix_deposits_user_created', 'deposits', ['user_id', 'created_at'])

    # Notifications table
    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('notification_type', sa.String(50), nullable=False),
        sa.Column('read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('status', sa.String(20), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])

    # Admin naira rates (oldest row wins)
    op.create_table(
        'admin_rates',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('usdt_rate', sa.Numeric(20, 4), nullable=True),
        sa.Column('btc_rate', sa.Numeric(20, 4), nullable=True),
        sa.Column('eth_rate', sa.Numeric(20, 4), nullable=True),
        sa.Column('bnb_rate', sa.Numeric(20, 4), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )


def downgrade() -> None:
    op.drop_table('admin_rates')
    op.drop_table('notifications')
    op.drop_index('ix_deposits_user_created', table_name='deposits')
    op.drop_index('ix_deposits_transaction_hash', table_name='deposits')
    op.drop_table('deposits')
    op.drop_table('users')
