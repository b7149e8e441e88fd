"""
Deposit monitor package.

Ingests DepositMade events from the deposit contract into the ledger
and credits user balances.
"""

from .ingestion import (
    DepositIngestionLoop,
    IngestionConfig,
    MonitorPhase,
    TickResult,
    TickStatus,
)
from .ledger import DepositLedger, NewDeposit
from .monitor import DepositMonitor
from .reorg_guard import ReorgGuard
from .verification import (
    DepositVerification,
    DepositVerificationService,
    WalletReconciliation,
)

__all__ = [
    "DepositIngestionLoop",
    "DepositLedger",
    "DepositMonitor",
    "DepositVerification",
    "DepositVerificationService",
    "IngestionConfig",
    "MonitorPhase",
    "NewDeposit",
    "ReorgGuard",
    "TickResult",
    "TickStatus",
    "WalletReconciliation",
]
