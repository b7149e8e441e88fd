"""
Blockchain services module.

Read-only access to the deposit contract over JSON-RPC.
"""

from .chain_reader import ChainReader, RawDepositEvent
from .constants import DEPOSIT_CONTRACT_ABI, DEPOSIT_EVENT_NAME
from .rpc_wrapper import classify_rpc_error, is_rate_limit_error, run_rpc


__all__ = [
    "ChainReader",
    "RawDepositEvent",
    "DEPOSIT_CONTRACT_ABI",
    "DEPOSIT_EVENT_NAME",
    "classify_rpc_error",
    "is_rate_limit_error",
    "run_rpc",
]
