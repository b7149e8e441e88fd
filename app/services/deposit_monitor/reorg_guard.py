"""
Reorg Guard.

Verifies that the last processed block is still on the canonical chain
before the watermark moves forward, and rolls back when it is not.
"""

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.repositories.monitor_state_repository import MonitorStateRepository
from app.services.blockchain.chain_reader import ChainReader
from app.utils.exceptions import ChainError, ReorgDetectedError

from .ledger import DepositLedger


class ReorgGuard:
    """Detects chain reorganizations and rewinds the ledger."""

    def __init__(
        self,
        session: AsyncSession,
        chain_reader: ChainReader,
        reorg_safety_blocks: int,
    ) -> None:
        """
        Initialize reorg guard.

        Args:
            session: Database session
            chain_reader: Chain reader for block existence checks
            reorg_safety_blocks: Confirmation depth
        """
        self.session = session
        self.chain_reader = chain_reader
        self.reorg_safety_blocks = reorg_safety_blocks
        self.ledger = DepositLedger(session)
        self.state_repo = MonitorStateRepository(session)

    def safe_block_for(self, block_number: int) -> int:
        """Block to rewind to when ``block_number`` is found orphaned."""
        return max(0, block_number - max(1, 2 * self.reorg_safety_blocks))

    async def check_and_recover(
        self, contract_address: str, last_processed_block: int
    ) -> int | None:
        """
        Check the recorded watermark against the chain and recover if needed.

        An RPC failure during the check is inconclusive: nothing is
        rewound and the tick carries on.

        Args:
            contract_address: Watched contract
            last_processed_block: Current watermark

        Returns:
            Block the watermark was rewound to, or None if unchanged
        """
        try:
            await self._detect(last_processed_block)
        except ChainError as e:
            logger.warning(
                f"[Reorg Guard] Could not verify block "
                f"{last_processed_block}, skipping reorg check: {e}"
            )
            return None
        except ReorgDetectedError as reorg:
            logger.warning(f"[Reorg Guard] ⚠️  {reorg}")
            await self._recover(contract_address, reorg)
            return reorg.safe_block

        return None

    async def _detect(self, last_processed_block: int) -> None:
        if not await self.chain_reader.block_exists(last_processed_block):
            raise ReorgDetectedError(
                last_processed_block,
                self.safe_block_for(last_processed_block),
            )

    async def _recover(
        self, contract_address: str, reorg: ReorgDetectedError
    ) -> None:
        """Delete deposits above the safe block and rewind the watermark to it."""
        try:
            # The safe block stays processed; the rescan starts after it
            deleted = await self.ledger.delete_from(reorg.safe_block + 1)
            await self.state_repo.rewind(contract_address, reorg.safe_block)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        logger.info(
            f"[Reorg Guard] Rewound to block {reorg.safe_block} for rescan "
            f"({deleted} deposits removed)"
        )
