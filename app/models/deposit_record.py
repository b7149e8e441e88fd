"""
Deposit record model.

Append-only history of confirmed on-chain deposits.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base
from app.models.types import MoneyType


class DepositRecord(Base):
    """
    DepositRecord model - one row per DepositMade event.

    (transaction_hash, deposit_index) is the idempotency key.
    Rows are never updated; they are removed only by reorg recovery.
    """

    __tablename__ = "deposit_history"
    __table_args__ = (
        UniqueConstraint(
            'transaction_hash',
            'deposit_index',
            name='uq_deposit_history_tx_deposit_index',
        ),
        CheckConstraint(
            'amount >= 0', name='check_deposit_history_amount_non_negative'
        ),
        Index('idx_deposit_history_block_number', 'block_number'),
        Index('idx_deposit_history_wallet_address', 'wallet_address'),
    )

    # Primary key
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    # User reference (null when the wallet was unregistered at ingestion)
    user_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Deposit details
    wallet_address: Mapped[str] = mapped_column(
        String(42), nullable=False
    )
    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)

    # Blockchain data
    transaction_hash: Mapped[str] = mapped_column(
        String(66), nullable=False
    )
    deposit_index: Mapped[int] = mapped_column(
        BigInteger, nullable=False
    )
    block_number: Mapped[int] = mapped_column(
        BigInteger, nullable=False
    )
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<DepositRecord(id={self.id}, tx={self.transaction_hash}, "
            f"index={self.deposit_index}, amount={self.amount})>"
        )
