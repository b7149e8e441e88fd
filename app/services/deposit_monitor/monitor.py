"""
Deposit Monitor.

Owns the ingestion loop and the timer that drives it. Exposes the
start/stop control pair used by the worker process.
"""

from datetime import UTC, datetime

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config.constants import DEPOSIT_MONITOR_JOB_ID
from app.config.settings import Settings
from app.repositories.monitor_state_repository import MonitorStateRepository
from app.services.blockchain.chain_reader import ChainReader
from app.utils.exceptions import ChainError

from .ingestion import DepositIngestionLoop, IngestionConfig


class DepositMonitor:
    """
    Background monitor for DepositMade events.

    Runs one ingestion tick immediately on start and then every
    ``monitor_interval_seconds``. Overlapping ticks are dropped both by
    the scheduler (``max_instances=1``) and by the loop's busy flag.
    """

    def __init__(
        self,
        settings: Settings,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        chain_reader: ChainReader | None = None,
        scheduler: AsyncIOScheduler | None = None,
    ) -> None:
        """
        Initialize deposit monitor.

        Args:
            settings: Application settings
            session_factory: Database session factory (default: app sessions)
            chain_reader: Chain reader (default: built from settings)
            scheduler: Scheduler to register the job on (default: own one)
        """
        self.settings = settings
        self._session_factory = session_factory
        self.chain_reader = chain_reader
        self._owns_chain_reader = chain_reader is None
        self.scheduler = scheduler
        self._owns_scheduler = scheduler is None
        self.loop: DepositIngestionLoop | None = None
        self._running = False

    @property
    def is_running(self) -> bool:
        """True between start_monitor() and stop_monitor()."""
        return self._running

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            from app.config.database import async_session_maker

            self._session_factory = async_session_maker
        return self._session_factory

    async def start_monitor(self) -> bool:
        """
        Start monitoring the deposit contract.

        Returns:
            True if the monitor was started
        """
        if self._running:
            logger.info("[Deposit Monitor] Already running")
            return False

        contract_address = self.settings.deposit_contract_address
        if not contract_address:
            logger.warning(
                "[Deposit Monitor] ⚠️  Contract address not configured, "
                "monitor disabled"
            )
            return False

        rpc_url = self.settings.active_rpc_url
        if not rpc_url:
            logger.warning(
                "[Deposit Monitor] ⚠️  RPC URL not configured, monitor disabled"
            )
            return False

        if self.chain_reader is None:
            self.chain_reader = ChainReader(
                rpc_url=rpc_url,
                contract_address=contract_address,
                timeout=self.settings.rpc_timeout,
            )

        self.loop = DepositIngestionLoop(
            chain_reader=self.chain_reader,
            session_factory=self.session_factory,
            config=IngestionConfig.from_settings(self.settings),
        )

        await self.initialize_state()

        if self.scheduler is None:
            self.scheduler = AsyncIOScheduler(timezone=UTC)

        self.scheduler.add_job(
            self.loop.run_tick,
            "interval",
            seconds=self.settings.monitor_interval_seconds,
            id=DEPOSIT_MONITOR_JOB_ID,
            name="Deposit monitor tick",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
            next_run_time=datetime.now(UTC),
        )
        if not self.scheduler.running:
            self.scheduler.start()

        self._running = True
        logger.info(
            f"[Deposit Monitor] ✅ Started - monitoring contract events on "
            f"{self.settings.network_name} every "
            f"{self.settings.monitor_interval_seconds}s"
        )
        return True

    async def stop_monitor(self) -> None:
        """Stop the timer and release chain resources."""
        if not self._running:
            return

        if self.scheduler is not None:
            if self.scheduler.get_job(DEPOSIT_MONITOR_JOB_ID) is not None:
                self.scheduler.remove_job(DEPOSIT_MONITOR_JOB_ID)
            if self._owns_scheduler and self.scheduler.running:
                self.scheduler.shutdown(wait=False)
                self.scheduler = None

        if self._owns_chain_reader and self.chain_reader is not None:
            self.chain_reader.close()
            self.chain_reader = None

        self._running = False
        logger.info("[Deposit Monitor] Stopped")

    async def initialize_state(self) -> None:
        """
        Seed the watermark on first run.

        History before the first start is never scanned: the watermark is
        seeded to the current chain height. Failures are logged and the
        first tick retries the seeding.
        """
        contract_address = self.settings.deposit_contract_address

        try:
            async with self.session_factory() as session:
                state_repo = MonitorStateRepository(session)
                existing = await state_repo.get_state(contract_address)
                if existing is not None:
                    logger.info(
                        f"[Deposit Monitor] Resuming from block "
                        f"{existing.last_processed_block}"
                    )
                    return

                current_block = await self.chain_reader.current_height()
                await state_repo.initialize(contract_address, current_block)
                await session.commit()
                logger.info(
                    f"[Deposit Monitor] Initialized from block {current_block}"
                )
        except ChainError as e:
            logger.error(f"[Deposit Monitor] Error initializing state: {e}")
        except Exception as e:
            logger.exception(f"[Deposit Monitor] Error initializing state: {e}")

    def status(self) -> dict:
        """
        Current monitor status for health reporting.

        Returns:
            Dict with running flag, phase, skipped ticks and last tick
        """
        loop = self.loop
        return {
            "running": self._running,
            "contract_address": self.settings.deposit_contract_address,
            "network": self.settings.network_name,
            "phase": loop.phase.value if loop else None,
            "ticks_skipped": loop.ticks_skipped if loop else 0,
            "last_tick": (
                loop.last_result.to_dict()
                if loop and loop.last_result else None
            ),
        }
