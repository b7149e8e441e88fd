"""
Deposit Verification Service.

On-demand checks against the chain: verify a single deposit transaction
from its receipt, and reconcile a wallet's ledger totals with the
contract's own counters.
"""

from dataclasses import dataclass
from decimal import Decimal

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.constants import AMOUNT_SCALE, DEPOSIT_TOKEN_DECIMALS
from app.repositories.deposit_record_repository import DepositRecordRepository
from app.services.blockchain.chain_reader import ChainReader
from app.utils.amounts import from_base_units, to_base_units
from app.utils.exceptions import ChainError
from app.utils.security import mask_address, mask_tx_hash


@dataclass
class DepositVerification:
    """Result of verifying a deposit transaction."""

    verified: bool
    amount: Decimal | None = None
    block_number: int | None = None
    timestamp: int | None = None
    error: str | None = None


@dataclass
class WalletReconciliation:
    """Ledger totals for a wallet compared with the contract's counters."""

    wallet_address: str
    on_chain_total: Decimal
    on_chain_count: int
    recorded_total: Decimal
    recorded_count: int

    @property
    def in_sync(self) -> bool:
        return (
            self.on_chain_total == self.recorded_total
            and self.on_chain_count == self.recorded_count
        )


class DepositVerificationService:
    """Read-only verification of deposits against the chain."""

    def __init__(
        self,
        chain_reader: ChainReader,
        token_decimals: int = DEPOSIT_TOKEN_DECIMALS,
    ) -> None:
        """
        Initialize verification service.

        Args:
            chain_reader: Chain reader for the deposit contract
            token_decimals: Fixed-point decimals of the deposited token
        """
        self.chain_reader = chain_reader
        self.token_decimals = token_decimals

    async def verify_deposit_transaction(
        self,
        tx_hash: str,
        expected_user: str,
        expected_amount: Decimal | None = None,
    ) -> DepositVerification:
        """
        Verify that a transaction made a deposit into the contract.

        Args:
            tx_hash: Transaction hash
            expected_user: Wallet expected as depositor
            expected_amount: Expected amount in whole tokens (optional)

        Returns:
            DepositVerification; ``error`` is set when not verified
        """
        try:
            receipt = await self.chain_reader.get_transaction_receipt(tx_hash)
        except ChainError as e:
            logger.error(
                f"[Deposit Verification] Error fetching receipt for "
                f"{mask_tx_hash(tx_hash)}: {e}"
            )
            return DepositVerification(verified=False, error=str(e))

        if receipt is None:
            return DepositVerification(
                verified=False, error="Transaction not found or not confirmed"
            )

        if receipt.get("status") != 1:
            return DepositVerification(
                verified=False, error="Transaction failed"
            )

        if str(receipt.get("to") or "").lower() != self.chain_reader.contract_address:
            return DepositVerification(
                verified=False,
                error="Transaction was not to the deposit contract",
            )

        events = self.chain_reader.decode_deposit_events(receipt)
        if not events:
            return DepositVerification(
                verified=False, error="No deposit event found in transaction"
            )

        event = events[0]
        if event.wallet_address != expected_user.lower():
            logger.warning(
                f"[Deposit Verification] Depositor mismatch for "
                f"{mask_tx_hash(tx_hash)}: expected "
                f"{mask_address(expected_user)}, got "
                f"{mask_address(event.wallet_address)}"
            )
            return DepositVerification(
                verified=False, error="Deposit was made by a different address"
            )

        amount = from_base_units(event.amount, self.token_decimals, AMOUNT_SCALE)
        if expected_amount is not None and event.amount != to_base_units(
            Decimal(expected_amount), self.token_decimals
        ):
            return DepositVerification(
                verified=False,
                amount=amount,
                error=f"Amount mismatch: expected {expected_amount}, got {amount}",
            )

        block_number = int(receipt.get("blockNumber", event.block_number))
        timestamp = event.timestamp
        try:
            block = await self.chain_reader.get_block(block_number)
            if block and block.get("timestamp"):
                timestamp = int(block["timestamp"])
        except ChainError as e:
            logger.warning(
                f"[Deposit Verification] Could not fetch block {block_number}, "
                f"using event timestamp: {e}"
            )

        return DepositVerification(
            verified=True,
            amount=amount,
            block_number=block_number,
            timestamp=timestamp,
        )

    async def reconcile_wallet(
        self, session: AsyncSession, wallet_address: str
    ) -> WalletReconciliation:
        """
        Compare the ledger's totals for a wallet with the contract's.

        Differences are expected for deposits still inside the
        confirmation window.

        Args:
            session: Database session
            wallet_address: Depositor wallet

        Returns:
            WalletReconciliation

        Raises:
            ChainError: If the contract views cannot be read
        """
        on_chain_raw = await self.chain_reader.total_deposited(wallet_address)
        on_chain_count = await self.chain_reader.deposit_count(wallet_address)

        deposit_repo = DepositRecordRepository(session)
        recorded_total, recorded_count = await deposit_repo.get_wallet_totals(
            wallet_address
        )

        result = WalletReconciliation(
            wallet_address=wallet_address.lower(),
            on_chain_total=from_base_units(
                on_chain_raw, self.token_decimals, AMOUNT_SCALE
            ),
            on_chain_count=int(on_chain_count),
            recorded_total=recorded_total,
            recorded_count=recorded_count,
        )

        if not result.in_sync:
            logger.warning(
                f"[Deposit Verification] Ledger out of sync for "
                f"{mask_address(wallet_address)}: chain "
                f"{result.on_chain_total} ({result.on_chain_count}), ledger "
                f"{result.recorded_total} ({result.recorded_count})"
            )

        return result
