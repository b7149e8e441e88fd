"""
Monitor State model.

Tracks the deposit monitor watermark per watched contract.
"""

from datetime import UTC, datetime

from sqlalchemy import BigInteger, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base


class MonitorState(Base):
    """
    Last fully processed block for a watched contract.

    Used to:
    - Resume ingestion after restart
    - Rewind the scan position after a chain reorganization

    Rows are created on first run and never deleted.
    """

    __tablename__ = "monitor_state"

    # Primary key
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    contract_address: Mapped[str] = mapped_column(
        String(42), nullable=False, unique=True, index=True
    )

    # Watermark
    last_processed_block: Mapped[int] = mapped_column(
        BigInteger, nullable=False, default=0
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<MonitorState(contract={self.contract_address}, "
            f"last_processed_block={self.last_processed_block})>"
        )
