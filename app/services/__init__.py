"""
Services.

Business logic layer.
"""

from app.services.deposit_monitor import (
    DepositIngestionLoop,
    DepositLedger,
    DepositMonitor,
    DepositVerificationService,
    ReorgGuard,
)
from app.services.deposit_query_service import (
    DepositQueryService,
    get_contract_config,
)


__all__ = [
    "DepositIngestionLoop",
    "DepositLedger",
    "DepositMonitor",
    "DepositQueryService",
    "DepositVerificationService",
    "ReorgGuard",
    "get_contract_config",
]
