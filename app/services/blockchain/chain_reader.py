"""
Chain Reader.

Thin async wrapper around the web3 JSON-RPC client for the deposit
contract. Every call is a single attempt; retries belong to the caller.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any

from eth_utils import to_checksum_address
from loguru import logger
from web3 import Web3
from web3.exceptions import BlockNotFound, TransactionNotFound
from web3.logs import DISCARD

from app.config.constants import RPC_TIMEOUT

from .constants import DEPOSIT_CONTRACT_ABI, DEPOSIT_EVENT_NAME
from .rpc_wrapper import run_rpc


@dataclass(frozen=True)
class RawDepositEvent:
    """DepositMade event as emitted by the contract, amounts not converted."""

    wallet_address: str
    amount: int
    timestamp: int
    deposit_index: int
    transaction_hash: str
    block_number: int
    log_index: int


class ChainReader:
    """
    Read-only access to the deposit contract.

    Exposes:
    - current chain height
    - block existence checks (reorg detection)
    - DepositMade event queries over a block range
    - transaction receipts and contract views (verification)
    """

    def __init__(
        self,
        rpc_url: str,
        contract_address: str,
        timeout: float = RPC_TIMEOUT,
        w3: Web3 | None = None,
        executor: ThreadPoolExecutor | None = None,
    ) -> None:
        """
        Initialize chain reader.

        Args:
            rpc_url: JSON-RPC endpoint
            contract_address: Deposit contract address
            timeout: Per-call timeout in seconds
            w3: Optional preconfigured Web3 instance
            executor: Optional thread pool for blocking calls
        """
        self.rpc_url = rpc_url
        self.timeout = timeout
        self.contract_address = contract_address.lower()
        self.w3 = w3 or Web3(
            Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": timeout})
        )
        self.contract = self.w3.eth.contract(
            address=to_checksum_address(contract_address),
            abi=DEPOSIT_CONTRACT_ABI,
        )
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=4, thread_name_prefix="chain-reader"
        )

    @property
    def _deposit_event(self) -> Any:
        return getattr(self.contract.events, DEPOSIT_EVENT_NAME)

    async def _call(self, func: Any, operation_name: str) -> Any:
        return await run_rpc(
            self._executor,
            func,
            timeout=self.timeout,
            operation_name=operation_name,
        )

    async def current_height(self) -> int:
        """
        Get latest block number known to the node.

        Raises:
            ConnectivityError: On timeout or unreachable node
            RpcError: On provider error
        """
        return await self._call(
            lambda: self.w3.eth.block_number, "get_block_number"
        )

    async def get_block(self, number: int) -> dict | None:
        """
        Get block by number.

        Args:
            number: Block number

        Returns:
            Block data or None if the node has no block at that height
        """
        def _get_block() -> dict | None:
            try:
                return dict(self.w3.eth.get_block(number))
            except BlockNotFound:
                return None

        return await self._call(_get_block, f"get_block({number})")

    async def block_exists(self, number: int) -> bool:
        """
        Check whether the node still returns a block at this height.

        Args:
            number: Block number

        Returns:
            True if the block exists, False if it was abandoned or pruned

        Raises:
            ConnectivityError: On timeout or unreachable node
            RpcError: On provider error
        """
        return await self.get_block(number) is not None

    async def get_transaction_receipt(self, tx_hash: str) -> dict | None:
        """
        Get transaction receipt.

        Args:
            tx_hash: Transaction hash

        Returns:
            Receipt data or None if the transaction is unknown or pending
        """
        def _get_receipt() -> dict | None:
            try:
                return dict(self.w3.eth.get_transaction_receipt(tx_hash))
            except TransactionNotFound:
                return None

        return await self._call(_get_receipt, "get_transaction_receipt")

    async def events_in_range(
        self, from_block: int, to_block: int
    ) -> list[RawDepositEvent]:
        """
        Fetch all DepositMade events in an inclusive block range.

        Args:
            from_block: First block (inclusive)
            to_block: Last block (inclusive)

        Returns:
            Events ordered by block, then log position

        Raises:
            ConnectivityError: On timeout or unreachable node
            RateLimitedError: When the provider rate-limits us
            RpcError: On any other provider error
        """
        logs = await self._call(
            lambda: self._deposit_event.get_logs(
                fromBlock=from_block,
                toBlock=to_block,
            ),
            f"get_logs({from_block}-{to_block})",
        )

        events = [self._to_raw_event(log) for log in logs]
        events.sort(key=lambda e: (e.block_number, e.log_index))

        logger.debug(
            f"[Chain Reader] Blocks {from_block}-{to_block}: "
            f"{len(events)} DepositMade events"
        )
        return events

    def decode_deposit_events(self, receipt: dict) -> list[RawDepositEvent]:
        """
        Decode DepositMade events from a transaction receipt.

        Logs from other contracts or with other signatures are skipped.

        Args:
            receipt: Transaction receipt

        Returns:
            Decoded events in log order
        """
        contract_logs = [
            log for log in receipt.get("logs", [])
            if str(log.get("address", "")).lower() == self.contract_address
        ]
        decoded = self._deposit_event().process_receipt(
            {**receipt, "logs": contract_logs}, errors=DISCARD
        )
        return [self._to_raw_event(log) for log in decoded]

    async def total_deposited(self, wallet_address: str) -> int:
        """
        Get total deposited by a wallet according to the contract.

        Args:
            wallet_address: Depositor wallet

        Returns:
            Total in token base units
        """
        user = to_checksum_address(wallet_address)
        return await self._call(
            lambda: self.contract.functions.getTotalDeposited(user).call(),
            "getTotalDeposited",
        )

    async def deposit_count(self, wallet_address: str) -> int:
        """
        Get number of deposits by a wallet according to the contract.

        Args:
            wallet_address: Depositor wallet

        Returns:
            Deposit count
        """
        user = to_checksum_address(wallet_address)
        return await self._call(
            lambda: self.contract.functions.getDepositCount(user).call(),
            "getDepositCount",
        )

    def close(self) -> None:
        """Release the thread pool if this reader created it."""
        if self._owns_executor:
            self._executor.shutdown(wait=False)

    @staticmethod
    def _to_raw_event(log: Any) -> RawDepositEvent:
        args = log["args"]
        tx_hash = log["transactionHash"]
        if not isinstance(tx_hash, str):
            tx_hash = Web3.to_hex(tx_hash)
        return RawDepositEvent(
            wallet_address=str(args["user"]).lower(),
            amount=int(args["amount"]),
            timestamp=int(args["timestamp"]),
            deposit_index=int(args["depositIndex"]),
            transaction_hash=tx_hash.lower(),
            block_number=int(log["blockNumber"]),
            log_index=int(log["logIndex"]),
        )
