"""Create deposit ledger tables

Revision ID: 20260101_000001
Revises: 
Create Date: 2026-01-01

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20260101_000001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Accounts credited by deposits
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('username', sa.String(255), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('wallet_address', sa.String(42), nullable=True),
        sa.Column('balance', sa.DECIMAL(18, 8), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('balance >= 0', name='check_user_balance_non_negative'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
        sa.UniqueConstraint('wallet_address'),
    )
    op.create_index('ix_users_username', 'users', ['username'])

    # Deposit monitor watermark
    op.create_table(
        'monitor_state',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('contract_address', sa.String(42), nullable=False),
        sa.Column('last_processed_block', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('last_updated', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_monitor_state_contract_address', 'monitor_state', ['contract_address'], unique=True)

    # Recorded deposits
    op.create_table(
        'deposit_history',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('wallet_address', sa.String(42), nullable=False),
        sa.Column('amount', sa.DECIMAL(18, 8), nullable=False),
        sa.Column('transaction_hash', sa.String(66), nullable=False),
        sa.Column('deposit_index', sa.BigInteger(), nullable=False),
        sa.Column('block_number', sa.BigInteger(), nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='SET NULL'),
        sa.CheckConstraint('amount >= 0', name='check_deposit_history_amount_non_negative'),
        sa.UniqueConstraint('transaction_hash', 'deposit_index', name='uq_deposit_history_tx_deposit_index'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_deposit_history_user_id', 'deposit_history', ['user_id'])
    op.create_index('idx_deposit_history_block_number', 'deposit_history', ['block_number'])
    op.create_index('idx_deposit_history_wallet_address', 'deposit_history', ['wallet_address'])


def downgrade() -> None:
    op.drop_index('idx_deposit_history_wallet_address', 'deposit_history')
    op.drop_index('idx_deposit_history_block_number', 'deposit_history')
    op.drop_index('ix_deposit_history_user_id', 'deposit_history')
    op.drop_table('deposit_history')

    op.drop_index('ix_monitor_state_contract_address', 'monitor_state')
    op.drop_table('monitor_state')

    op.drop_index('ix_users_username', 'users')
    op.drop_table('users')
