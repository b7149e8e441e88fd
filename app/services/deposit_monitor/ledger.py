"""
Deposit Ledger.

Append-only record of confirmed on-chain deposits and the balance credit
that goes with each of them.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.deposit_record import DepositRecord
from app.repositories.deposit_record_repository import DepositRecordRepository
from app.repositories.user_repository import UserRepository
from app.utils.exceptions import DuplicateDepositError
from app.utils.security import mask_address, mask_tx_hash


@dataclass(frozen=True)
class NewDeposit:
    """Deposit ready to be written to the ledger."""

    wallet_address: str
    amount: Decimal
    transaction_hash: str
    deposit_index: int
    block_number: int
    timestamp: datetime
    user_id: int | None = None


class DepositLedger:
    """
    Ledger of recorded deposits.

    Every write happens inside the caller's session; nothing is committed
    here, so a batch can be rolled back as a whole.
    """

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize ledger.

        Args:
            session: Database session
        """
        self.session = session
        self.deposit_repo = DepositRecordRepository(session)
        self.user_repo = UserRepository(session)

    async def exists(self, transaction_hash: str, deposit_index: int) -> bool:
        """
        Check if a deposit is already recorded.

        Args:
            transaction_hash: Transaction hash
            deposit_index: Contract deposit sequence number

        Returns:
            True if recorded
        """
        return await self.deposit_repo.key_exists(transaction_hash, deposit_index)

    async def record(self, deposit: NewDeposit) -> DepositRecord:
        """
        Insert a deposit and credit the owning account.

        The account is credited only when ``deposit.user_id`` is set;
        deposits from unregistered wallets are kept with no user.

        Args:
            deposit: Deposit to record

        Returns:
            Created DepositRecord

        Raises:
            DuplicateDepositError: If the idempotency key is already present
        """
        if await self.exists(deposit.transaction_hash, deposit.deposit_index):
            raise DuplicateDepositError(
                deposit.transaction_hash, deposit.deposit_index
            )

        record = await self.deposit_repo.create(
            user_id=deposit.user_id,
            wallet_address=deposit.wallet_address.lower(),
            amount=deposit.amount,
            transaction_hash=deposit.transaction_hash.lower(),
            deposit_index=deposit.deposit_index,
            block_number=deposit.block_number,
            timestamp=deposit.timestamp,
        )

        if deposit.user_id is not None:
            credited = await self.user_repo.credit_balance(
                deposit.user_id, deposit.amount
            )
            if credited:
                logger.info(
                    f"[Deposit Ledger] Credited {deposit.amount} to vault "
                    f"for user {deposit.user_id}"
                )
            else:
                logger.warning(
                    f"[Deposit Ledger] User {deposit.user_id} not found, "
                    f"deposit {mask_tx_hash(deposit.transaction_hash)} "
                    f"recorded without credit"
                )

        return record

    async def delete_from(self, block_number: int) -> int:
        """
        Remove every deposit recorded at or after a block.

        Balance credits already applied are NOT reversed. Each deleted
        deposit that had credited an account is logged so it can be
        reconciled manually.

        Args:
            block_number: First block to delete (inclusive)

        Returns:
            Number of deleted records
        """
        doomed = await self.deposit_repo.find_from_block(block_number)

        for record in doomed:
            if record.user_id is not None:
                logger.warning(
                    f"[Deposit Ledger] Removing credited deposit "
                    f"{mask_tx_hash(record.transaction_hash)} "
                    f"(block {record.block_number}, {record.amount} from "
                    f"{mask_address(record.wallet_address)}, user "
                    f"{record.user_id}); balance credit is not reversed"
                )

        deleted = await self.deposit_repo.delete_from_block(block_number)
        if deleted:
            logger.warning(
                f"[Deposit Ledger] Deleted {deleted} deposits "
                f"from block {block_number}"
            )
        return deleted
