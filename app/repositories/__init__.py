"""
Repositories.

Data access layer.
"""

from app.repositories.base import BaseRepository
from app.repositories.deposit_record_repository import DepositRecordRepository
from app.repositories.monitor_state_repository import MonitorStateRepository
from app.repositories.user_repository import UserRepository

__all__ = [
    "BaseRepository",
    "DepositRecordRepository",
    "MonitorStateRepository",
    "UserRepository",
]
