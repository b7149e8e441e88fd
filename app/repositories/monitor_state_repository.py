"""
Monitor State repository.

Persists the last processed block per watched contract.
"""

from datetime import UTC, datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.monitor_state import MonitorState
from app.repositories.base import BaseRepository
from app.utils.exceptions import MonitorStateNotFoundError


class MonitorStateRepository(BaseRepository[MonitorState]):
    """
    Repository for deposit monitor watermarks.

    Contract addresses are stored lowercase. Only the ingestion loop
    writes here, so a plain UPDATE is enough for atomicity.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(MonitorState, session)

    async def get_state(self, contract_address: str) -> MonitorState | None:
        """
        Get monitor state row for a contract.

        Args:
            contract_address: Watched contract address

        Returns:
            MonitorState or None
        """
        stmt = select(MonitorState).where(
            MonitorState.contract_address == contract_address.lower()
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get(self, contract_address: str) -> int:
        """
        Get last processed block for a contract.

        Args:
            contract_address: Watched contract address

        Returns:
            Last processed block number

        Raises:
            MonitorStateNotFoundError: If the contract has no state yet
        """
        stmt = select(MonitorState.last_processed_block).where(
            MonitorState.contract_address == contract_address.lower()
        )
        result = await self.session.execute(stmt)
        block = result.scalar_one_or_none()
        if block is None:
            raise MonitorStateNotFoundError(contract_address)
        return block

    async def initialize(
        self, contract_address: str, seed_block: int
    ) -> bool:
        """
        Create monitor state if absent.

        Idempotent: a second call leaves the existing row untouched.

        Args:
            contract_address: Watched contract address
            seed_block: Initial watermark (usually current chain height)

        Returns:
            True if the row was created, False if it already existed
        """
        if await self.get_state(contract_address) is not None:
            return False

        await self.create(
            contract_address=contract_address.lower(),
            last_processed_block=seed_block,
            last_updated=datetime.now(UTC),
        )
        return True

    async def advance(self, contract_address: str, new_block: int) -> None:
        """
        Set the watermark to a new block.

        Args:
            contract_address: Watched contract address
            new_block: Last fully processed block

        Raises:
            MonitorStateNotFoundError: If the contract has no state yet
        """
        await self._set_block(contract_address, new_block)

    async def rewind(self, contract_address: str, target_block: int) -> None:
        """
        Move the watermark backwards during reorg recovery.

        Args:
            contract_address: Watched contract address
            target_block: Block to resume scanning after

        Raises:
            ValueError: If target_block is not below the current watermark
            MonitorStateNotFoundError: If the contract has no state yet
        """
        current = await self.get(contract_address)
        if target_block >= current:
            raise ValueError(
                f"Rewind target {target_block} must be below "
                f"current watermark {current}"
            )
        await self._set_block(contract_address, target_block)

    async def _set_block(self, contract_address: str, block: int) -> None:
        """Unconditionally update watermark and timestamp."""
        stmt = (
            update(MonitorState)
            .where(MonitorState.contract_address == contract_address.lower())
            .values(
                last_processed_block=block,
                last_updated=datetime.now(UTC),
            )
        )
        result = await self.session.execute(stmt)
        if result.rowcount == 0:
            raise MonitorStateNotFoundError(contract_address)
        await self.session.flush()
