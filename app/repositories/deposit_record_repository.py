"""
Deposit record repository.

Data access layer for the on-chain deposit history.
"""

from decimal import Decimal

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.deposit_record import DepositRecord
from app.repositories.base import BaseRepository


class DepositRecordRepository(BaseRepository[DepositRecord]):
    """Repository for recorded deposits."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(DepositRecord, session)

    async def key_exists(
        self, transaction_hash: str, deposit_index: int
    ) -> bool:
        """
        Check if a deposit with this key is already recorded.

        Args:
            transaction_hash: Transaction hash
            deposit_index: Contract deposit sequence number

        Returns:
            True if recorded
        """
        return await self.exists(
            transaction_hash=transaction_hash.lower(),
            deposit_index=deposit_index,
        )

    async def find_from_block(self, block_number: int) -> list[DepositRecord]:
        """
        Get all deposits recorded at or after a block.

        Args:
            block_number: First block (inclusive)

        Returns:
            Deposits ordered by block
        """
        stmt = (
            select(DepositRecord)
            .where(DepositRecord.block_number >= block_number)
            .order_by(DepositRecord.block_number.asc(), DepositRecord.id.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def delete_from_block(self, block_number: int) -> int:
        """
        Delete all deposits recorded at or after a block.

        Args:
            block_number: First block (inclusive)

        Returns:
            Number of deleted rows
        """
        stmt = delete(DepositRecord).where(
            DepositRecord.block_number >= block_number
        )
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount or 0

    async def get_by_wallet(
        self,
        wallet_address: str,
        limit: int | None = None,
    ) -> list[DepositRecord]:
        """
        Get deposits made from a wallet, newest first.

        Args:
            wallet_address: Depositor wallet address
            limit: Max results

        Returns:
            List of deposits
        """
        stmt = (
            select(DepositRecord)
            .where(DepositRecord.wallet_address == wallet_address.lower())
            .order_by(DepositRecord.timestamp.desc(), DepositRecord.id.desc())
        )
        if limit:
            stmt = stmt.limit(limit)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_wallet_totals(
        self, wallet_address: str
    ) -> tuple[Decimal, int]:
        """
        Get total amount and count of deposits from a wallet.

        Args:
            wallet_address: Depositor wallet address

        Returns:
            Tuple of (total_amount, deposit_count)
        """
        stmt = select(
            func.coalesce(func.sum(DepositRecord.amount), 0),
            func.count(DepositRecord.id),
        ).where(DepositRecord.wallet_address == wallet_address.lower())

        result = await self.session.execute(stmt)
        total, count = result.one()
        return Decimal(str(total)), count or 0

    async def get_global_stats(self) -> dict:
        """
        Get aggregate deposit statistics.

        Returns:
            Dict with total_deposited, deposit_count, unique_depositors
        """
        stmt = select(
            func.coalesce(func.sum(DepositRecord.amount), 0),
            func.count(DepositRecord.id),
            func.count(func.distinct(DepositRecord.wallet_address)),
        )
        result = await self.session.execute(stmt)
        total, count, unique = result.one()

        return {
            "total_deposited": Decimal(str(total)),
            "deposit_count": count or 0,
            "unique_depositors": unique or 0,
        }
