"""
User model.

Represents a registered platform account. Only the fields the deposit
pipeline touches are mapped here; authentication and profile handling
live in the API layer.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base
from app.models.types import MoneyType


class User(Base):
    """User model - registered platform accounts."""

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(
            'balance >= 0', name='check_user_balance_non_negative'
        ),
    )

    # Primary key
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    username: Mapped[str | None] = mapped_column(
        String(255), nullable=True, index=True
    )
    email: Mapped[str | None] = mapped_column(
        String(255), nullable=True, unique=True
    )

    # Wallet (stored lowercase)
    wallet_address: Mapped[str | None] = mapped_column(
        String(42), nullable=True, unique=True
    )

    # Available (vault) balance credited by on-chain deposits
    balance: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<User(id={self.id}, username={self.username})>"
