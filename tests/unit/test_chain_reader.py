"""
Tests for ChainReader with a mocked Web3 client.
"""

from unittest.mock import MagicMock

import pytest
import requests
from hexbytes import HexBytes
from web3.exceptions import BlockNotFound, TransactionNotFound

from app.services.blockchain.chain_reader import ChainReader
from app.utils.exceptions import ConnectivityError, RateLimitedError
from tests.helpers import CONTRACT_ADDRESS, WALLET_A, tx_hash


def raw_log(block_number, log_index, deposit_index, tx=None, amount=5_000_000):
    """Decoded DepositMade log as web3 returns it."""
    return {
        "args": {
            "user": "0x1111111111111111111111111111111111111111",
            "amount": amount,
            "timestamp": 1_700_000_000,
            "depositIndex": deposit_index,
        },
        "transactionHash": HexBytes(tx or tx_hash(deposit_index)),
        "blockNumber": block_number,
        "logIndex": log_index,
        "address": CONTRACT_ADDRESS,
    }


@pytest.fixture
def w3():
    return MagicMock()


@pytest.fixture
def reader(w3):
    chain_reader = ChainReader(
        rpc_url="http://localhost:8545",
        contract_address=CONTRACT_ADDRESS,
        timeout=2,
        w3=w3,
    )
    yield chain_reader
    chain_reader.close()


class TestChainReader:
    """Tests for ChainReader."""

    @pytest.mark.asyncio
    async def test_current_height(self, reader, w3):
        w3.eth.block_number = 12345
        assert await reader.current_height() == 12345

    @pytest.mark.asyncio
    async def test_block_exists(self, reader, w3):
        w3.eth.get_block.return_value = {"number": 10, "timestamp": 1}
        assert await reader.block_exists(10) is True

    @pytest.mark.asyncio
    async def test_block_missing(self, reader, w3):
        """Orphaned or pruned blocks are reported as missing, not errors."""
        w3.eth.get_block.side_effect = BlockNotFound("gone")
        assert await reader.block_exists(10) is False

    @pytest.mark.asyncio
    async def test_block_check_connectivity_error(self, reader, w3):
        w3.eth.get_block.side_effect = requests.ConnectionError("refused")
        with pytest.raises(ConnectivityError):
            await reader.block_exists(10)

    @pytest.mark.asyncio
    async def test_events_in_range_sorted_and_decoded(self, reader):
        reader.contract = MagicMock()
        reader.contract.events.DepositMade.get_logs.return_value = [
            raw_log(101, 3, 7),
            raw_log(100, 5, 6),
            raw_log(101, 1, 8),
        ]

        events = await reader.events_in_range(100, 110)

        reader.contract.events.DepositMade.get_logs.assert_called_once_with(
            fromBlock=100, toBlock=110
        )
        assert [(e.block_number, e.log_index) for e in events] == [
            (100, 5), (101, 1), (101, 3),
        ]
        first = events[0]
        assert first.wallet_address == WALLET_A
        assert first.amount == 5_000_000
        assert first.deposit_index == 6
        assert first.transaction_hash == tx_hash(6)

    @pytest.mark.asyncio
    async def test_events_in_range_rate_limited(self, reader):
        response = MagicMock()
        response.status_code = 429
        reader.contract = MagicMock()
        reader.contract.events.DepositMade.get_logs.side_effect = (
            requests.HTTPError("429", response=response)
        )

        with pytest.raises(RateLimitedError):
            await reader.events_in_range(1, 2)

    @pytest.mark.asyncio
    async def test_receipt_not_found(self, reader, w3):
        w3.eth.get_transaction_receipt.side_effect = TransactionNotFound("x")
        assert await reader.get_transaction_receipt(tx_hash(1)) is None

    def test_decode_skips_foreign_logs(self, reader):
        """Only logs emitted by the deposit contract are decoded."""
        reader.contract = MagicMock()
        decoder = reader.contract.events.DepositMade.return_value
        decoder.process_receipt.return_value = [raw_log(5, 0, 1)]
        receipt = {
            "logs": [
                {"address": CONTRACT_ADDRESS.upper().replace("0X", "0x")},
                {"address": "0x9999999999999999999999999999999999999999"},
            ]
        }

        events = reader.decode_deposit_events(receipt)

        passed_receipt = decoder.process_receipt.call_args.args[0]
        assert len(passed_receipt["logs"]) == 1
        assert len(events) == 1
        assert events[0].deposit_index == 1

    @pytest.mark.asyncio
    async def test_contract_views(self, reader):
        reader.contract = MagicMock()
        reader.contract.functions.getTotalDeposited.return_value.call.return_value = 7
        reader.contract.functions.getDepositCount.return_value.call.return_value = 2

        assert await reader.total_deposited(WALLET_A) == 7
        assert await reader.deposit_count(WALLET_A) == 2
