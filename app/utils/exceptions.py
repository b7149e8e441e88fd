"""
Exception types for the deposit ingestion pipeline.

Chain-side failures are transient and retried by the ingestion loop.
Ledger-side conditions (duplicates, reorgs) are handled where they occur
and never escape a tick.
"""


class DepositMonitorError(Exception):
    """Base exception for deposit monitor errors."""
    pass


class ChainError(DepositMonitorError):
    """Base exception for blockchain node failures."""
    pass


class ConnectivityError(ChainError):
    """Raised when the RPC node times out or cannot be reached."""
    pass


class RpcError(ChainError):
    """Raised when the RPC provider returns an error."""
    pass


class RateLimitedError(RpcError):
    """Raised when the RPC provider rejects a call for rate limiting."""
    pass


class DuplicateDepositError(DepositMonitorError):
    """Raised when a deposit with the same idempotency key is already recorded."""

    def __init__(self, transaction_hash: str, deposit_index: int) -> None:
        self.transaction_hash = transaction_hash
        self.deposit_index = deposit_index
        super().__init__(
            f"Deposit already recorded: {transaction_hash} "
            f"(index {deposit_index})"
        )


class ReorgDetectedError(DepositMonitorError):
    """Raised when a previously processed block is no longer canonical."""

    def __init__(self, block_number: int, safe_block: int) -> None:
        self.block_number = block_number
        self.safe_block = safe_block
        super().__init__(
            f"Block {block_number} no longer on canonical chain, "
            f"rewinding to {safe_block}"
        )


class EventProcessingError(DepositMonitorError):
    """Raised when a single deposit event cannot be processed."""

    def __init__(self, transaction_hash: str, deposit_index: int, reason: str) -> None:
        self.transaction_hash = transaction_hash
        self.deposit_index = deposit_index
        super().__init__(
            f"Failed to process deposit {transaction_hash} "
            f"(index {deposit_index}): {reason}"
        )


class MonitorStateNotFoundError(DepositMonitorError):
    """Raised when no monitor state exists for a contract."""

    def __init__(self, contract_address: str) -> None:
        self.contract_address = contract_address
        super().__init__(f"No monitor state for contract {contract_address}")
