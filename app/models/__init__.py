"""
Database models.

Exports all SQLAlchemy models for easy imports.
"""

from app.models.base import Base
from app.models.deposit_record import DepositRecord
from app.models.monitor_state import MonitorState
from app.models.user import User

__all__ = [
    # Base
    "Base",
    # Core Models
    "User",
    # Deposit ingestion
    "DepositRecord",
    "MonitorState",
]
