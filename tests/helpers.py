"""
Test helpers: fake chain reader and event factories.
"""

from app.services.blockchain.chain_reader import RawDepositEvent
from app.utils.exceptions import ChainError


CONTRACT_ADDRESS = "0x00000000000000000000000000000000000000aa"
WALLET_A = "0x1111111111111111111111111111111111111111"
WALLET_B = "0x2222222222222222222222222222222222222222"
UNREGISTERED_WALLET = "0x3333333333333333333333333333333333333333"


def tx_hash(n: int) -> str:
    """Deterministic 32-byte transaction hash."""
    return "0x" + f"{n:064x}"


def make_event(
    block_number: int,
    deposit_index: int,
    amount: int = 100_000_000,
    wallet_address: str = WALLET_A,
    tx: str | None = None,
    log_index: int = 0,
    timestamp: int = 1_700_000_000,
) -> RawDepositEvent:
    """
    Build a DepositMade event.

    Default amount is 100 tokens at 6 decimals.
    """
    return RawDepositEvent(
        wallet_address=wallet_address.lower(),
        amount=amount,
        timestamp=timestamp,
        deposit_index=deposit_index,
        transaction_hash=tx or tx_hash(deposit_index),
        block_number=block_number,
        log_index=log_index,
    )


class FakeChainReader:
    """
    In-memory chain with the ChainReader interface.

    Attributes:
        height: Current chain height
        events: All DepositMade events on the chain
        missing_blocks: Heights the node no longer returns (orphaned)
        failures: Exceptions raised, one per call, before answering
    """

    def __init__(self, height: int = 0, contract_address: str = CONTRACT_ADDRESS):
        self.height = height
        self.contract_address = contract_address.lower()
        self.events: list[RawDepositEvent] = []
        self.missing_blocks: set[int] = set()
        self.failures: list[Exception] = []
        self.block_check_error: ChainError | None = None
        self.receipts: dict[str, dict] = {}
        self.block_timestamps: dict[int, int] = {}
        self.totals: dict[str, tuple[int, int]] = {}
        self.range_calls: list[tuple[int, int]] = []
        self.block_checks: list[int] = []
        self.closed = False

    def _maybe_fail(self) -> None:
        if self.failures:
            raise self.failures.pop(0)

    async def current_height(self) -> int:
        self._maybe_fail()
        return self.height

    async def get_block(self, number: int) -> dict | None:
        if number in self.missing_blocks or number > self.height:
            return None
        return {
            "number": number,
            "timestamp": self.block_timestamps.get(number, 1_700_000_000 + number),
        }

    async def block_exists(self, number: int) -> bool:
        self.block_checks.append(number)
        if self.block_check_error is not None:
            raise self.block_check_error
        return await self.get_block(number) is not None

    async def events_in_range(
        self, from_block: int, to_block: int
    ) -> list[RawDepositEvent]:
        self._maybe_fail()
        self.range_calls.append((from_block, to_block))
        return sorted(
            (e for e in self.events if from_block <= e.block_number <= to_block),
            key=lambda e: (e.block_number, e.log_index),
        )

    async def get_transaction_receipt(self, tx: str) -> dict | None:
        self._maybe_fail()
        return self.receipts.get(tx.lower())

    def decode_deposit_events(self, receipt: dict) -> list[RawDepositEvent]:
        return list(receipt.get("decoded", []))

    async def total_deposited(self, wallet_address: str) -> int:
        self._maybe_fail()
        return self.totals.get(wallet_address.lower(), (0, 0))[0]

    async def deposit_count(self, wallet_address: str) -> int:
        return self.totals.get(wallet_address.lower(), (0, 0))[1]

    def close(self) -> None:
        self.closed = True
