"""
Deposit Ingestion Loop.

One tick: read the chain head and the watermark, check for reorgs, fetch
DepositMade events for the next confirmed block window, record each of
them and advance the watermark. The whole batch is committed in a single
transaction, or not at all.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config.constants import (
    AMOUNT_SCALE,
    DEFAULT_BATCH_SIZE,
    DEFAULT_REORG_SAFETY_BLOCKS,
    DEPOSIT_TOKEN_DECIMALS,
    MONITOR_MAX_ATTEMPTS,
    MONITOR_RATE_LIMIT_COOLDOWN,
    MONITOR_RETRY_BASE_DELAY,
)
from app.repositories.monitor_state_repository import MonitorStateRepository
from app.repositories.user_repository import UserRepository
from app.services.blockchain.chain_reader import ChainReader, RawDepositEvent
from app.utils.amounts import from_base_units
from app.utils.exceptions import (
    ChainError,
    DuplicateDepositError,
    EventProcessingError,
    MonitorStateNotFoundError,
    RateLimitedError,
)
from app.utils.security import mask_address, mask_tx_hash

from .ledger import DepositLedger, NewDeposit
from .reorg_guard import ReorgGuard


class MonitorPhase(str, Enum):
    """Where the loop currently is within a tick."""

    IDLE = "idle"
    SCANNING = "scanning"
    COMMITTING = "committing"


class TickStatus(str, Enum):
    """Outcome of a single tick."""

    SEEDED = "seeded"
    UP_TO_DATE = "up_to_date"
    ADVANCED = "advanced"
    ABANDONED = "abandoned"
    BUSY = "busy"


@dataclass
class TickResult:
    """Summary of a tick, kept as the loop's last result."""

    status: TickStatus
    from_block: int | None = None
    to_block: int | None = None
    recorded: int = 0
    skipped: int = 0
    attempts: int = 0
    rewound_to: int | None = None
    error: str | None = None
    finished_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict:
        """Serialize for health reporting."""
        return {
            "status": self.status.value,
            "from_block": self.from_block,
            "to_block": self.to_block,
            "recorded": self.recorded,
            "skipped": self.skipped,
            "attempts": self.attempts,
            "rewound_to": self.rewound_to,
            "error": self.error,
            "finished_at": self.finished_at.isoformat(),
        }


@dataclass(frozen=True)
class IngestionConfig:
    """Startup-time parameters of the ingestion loop."""

    contract_address: str
    token_decimals: int = DEPOSIT_TOKEN_DECIMALS
    reorg_safety_blocks: int = DEFAULT_REORG_SAFETY_BLOCKS
    batch_size: int = DEFAULT_BATCH_SIZE
    max_attempts: int = MONITOR_MAX_ATTEMPTS
    retry_base_delay: float = MONITOR_RETRY_BASE_DELAY
    rate_limit_cooldown: float = MONITOR_RATE_LIMIT_COOLDOWN

    @classmethod
    def from_settings(cls, settings) -> "IngestionConfig":
        """Build config from application settings."""
        return cls(
            contract_address=settings.deposit_contract_address,
            token_decimals=settings.deposit_token_decimals,
            reorg_safety_blocks=settings.reorg_safety_blocks,
            batch_size=settings.deposit_batch_size,
            max_attempts=settings.monitor_max_attempts,
            retry_base_delay=settings.monitor_retry_base_delay,
            rate_limit_cooldown=settings.monitor_rate_limit_cooldown,
        )


class DepositIngestionLoop:
    """
    Re-entrancy guarded deposit ingestion.

    A tick started while another one is running is rejected, not queued.
    Failures are retried inside the tick (fixed cooldown for rate limits,
    exponential backoff otherwise) and never escape ``run_tick``.
    """

    def __init__(
        self,
        chain_reader: ChainReader,
        session_factory: async_sessionmaker[AsyncSession],
        config: IngestionConfig,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """
        Initialize ingestion loop.

        Args:
            chain_reader: Chain reader for the deposit contract
            session_factory: Factory for database sessions
            config: Loop parameters
            sleep: Coroutine used for backoff delays
        """
        self.chain_reader = chain_reader
        self.session_factory = session_factory
        self.config = config
        self._sleep = sleep

        self.phase = MonitorPhase.IDLE
        self.last_result: TickResult | None = None
        self.ticks_skipped = 0
        self._busy = False

    @property
    def is_busy(self) -> bool:
        """True while a tick is in progress."""
        return self._busy

    def backoff_delay(self, attempt: int) -> float:
        """Delay after a failed attempt (1-based): base * 2**attempt."""
        return self.config.retry_base_delay * (2 ** attempt)

    async def run_tick(self) -> TickResult:
        """
        Run one ingestion tick.

        Returns:
            TickResult; status BUSY if another tick is still running
        """
        if self._busy:
            self.ticks_skipped += 1
            logger.debug("[Deposit Monitor] Previous tick still running, skipping")
            return TickResult(status=TickStatus.BUSY)

        self._busy = True
        try:
            result = await self._run_with_retry()
            self.last_result = result
            return result
        finally:
            self.phase = MonitorPhase.IDLE
            self._busy = False

    async def _run_with_retry(self) -> TickResult:
        max_attempts = self.config.max_attempts
        last_error: Exception | None = None

        for attempt in range(1, max_attempts + 1):
            try:
                result = await self._scan_once()
                result.attempts = attempt
                return result

            except asyncio.CancelledError:
                raise

            except RateLimitedError as e:
                last_error = e
                logger.warning(
                    f"[Deposit Monitor] Rate limited (attempt "
                    f"{attempt}/{max_attempts}): {e}"
                )
                if attempt < max_attempts:
                    logger.info(
                        f"[Deposit Monitor] Backing off for "
                        f"{self.config.rate_limit_cooldown}s..."
                    )
                    await self._sleep(self.config.rate_limit_cooldown)

            except Exception as e:
                last_error = e
                if isinstance(e, (ChainError, EventProcessingError, SQLAlchemyError)):
                    logger.error(
                        f"[Deposit Monitor] Tick failed (attempt "
                        f"{attempt}/{max_attempts}): {e}"
                    )
                else:
                    logger.exception(
                        f"[Deposit Monitor] Unexpected error (attempt "
                        f"{attempt}/{max_attempts}): {e}"
                    )
                if attempt < max_attempts:
                    delay = self.backoff_delay(attempt)
                    logger.info(f"[Deposit Monitor] Retrying in {delay}s...")
                    await self._sleep(delay)

            finally:
                self.phase = MonitorPhase.IDLE

        logger.error(
            "[Deposit Monitor] Max retry attempts reached, "
            "will try again in next interval"
        )
        return TickResult(
            status=TickStatus.ABANDONED,
            attempts=max_attempts,
            error=str(last_error) if last_error else None,
        )

    async def _scan_once(self) -> TickResult:
        contract = self.config.contract_address
        self.phase = MonitorPhase.SCANNING

        async with self.session_factory() as session:
            state_repo = MonitorStateRepository(session)

            current_height = await self.chain_reader.current_height()

            try:
                last_processed = await state_repo.get(contract)
            except MonitorStateNotFoundError:
                await state_repo.initialize(contract, current_height)
                await session.commit()
                logger.info(
                    f"[Deposit Monitor] Initialized from block {current_height}"
                )
                return TickResult(
                    status=TickStatus.SEEDED, to_block=current_height
                )

            safe_height = current_height - self.config.reorg_safety_blocks
            if safe_height <= last_processed:
                await session.rollback()
                return TickResult(
                    status=TickStatus.UP_TO_DATE, to_block=last_processed
                )

            rewound_to = None
            if last_processed > 0:
                guard = ReorgGuard(
                    session, self.chain_reader, self.config.reorg_safety_blocks
                )
                rewound_to = await guard.check_and_recover(
                    contract, last_processed
                )
                if rewound_to is not None:
                    last_processed = await state_repo.get(contract)

            from_block = last_processed + 1
            to_block = min(last_processed + self.config.batch_size, safe_height)

            logger.info(
                f"[Deposit Monitor] Scanning blocks {from_block} to "
                f"{to_block} (current: {current_height})"
            )

            events = await self.chain_reader.events_in_range(from_block, to_block)
            if events:
                logger.info(
                    f"[Deposit Monitor] Found {len(events)} new deposits"
                )

            self.phase = MonitorPhase.COMMITTING
            ledger = DepositLedger(session)
            user_repo = UserRepository(session)
            recorded = 0
            skipped = 0

            try:
                for event in events:
                    if await self._process_event(ledger, user_repo, event):
                        recorded += 1
                    else:
                        skipped += 1

                # Only advance if every event was processed
                await state_repo.advance(contract, to_block)
                await session.commit()
            except Exception:
                await session.rollback()
                raise

        if events:
            logger.info(
                f"[Deposit Monitor] Successfully processed {recorded} "
                f"deposits ({skipped} already recorded)"
            )

        return TickResult(
            status=TickStatus.ADVANCED,
            from_block=from_block,
            to_block=to_block,
            recorded=recorded,
            skipped=skipped,
            rewound_to=rewound_to,
        )

    async def _process_event(
        self,
        ledger: DepositLedger,
        user_repo: UserRepository,
        event: RawDepositEvent,
    ) -> bool:
        """
        Record a single deposit event.

        Returns:
            True if recorded, False if it was already in the ledger
        """
        tx_hash = event.transaction_hash
        if await ledger.exists(tx_hash, event.deposit_index):
            logger.debug(
                f"[Deposit Monitor] Deposit already recorded: "
                f"{mask_tx_hash(tx_hash)} (index {event.deposit_index})"
            )
            return False

        try:
            amount = from_base_units(
                event.amount, self.config.token_decimals, AMOUNT_SCALE
            )
            user = await user_repo.find_by_wallet_address(event.wallet_address)
            if user is None:
                logger.info(
                    f"[Deposit Monitor] User not registered for wallet "
                    f"{mask_address(event.wallet_address)}"
                )

            await ledger.record(
                NewDeposit(
                    wallet_address=event.wallet_address,
                    amount=amount,
                    transaction_hash=tx_hash,
                    deposit_index=event.deposit_index,
                    block_number=event.block_number,
                    timestamp=datetime.fromtimestamp(event.timestamp, UTC),
                    user_id=user.id if user else None,
                )
            )
        except DuplicateDepositError as e:
            logger.debug(f"[Deposit Monitor] {e}")
            return False
        except (ChainError, SQLAlchemyError):
            raise
        except Exception as e:
            raise EventProcessingError(
                tx_hash, event.deposit_index, f"{type(e).__name__}: {e}"
            ) from e

        logger.success(
            f"[Deposit Monitor] ✅ Recorded deposit: {amount} from "
            f"{mask_address(event.wallet_address)} (tx: {mask_tx_hash(tx_hash)})"
        )
        return True
