"""
Tests for DepositVerificationService.
"""

from datetime import UTC, datetime
from decimal import Decimal

import pytest

from app.services.deposit_monitor.ledger import DepositLedger, NewDeposit
from app.services.deposit_monitor.verification import DepositVerificationService
from app.utils.exceptions import ConnectivityError
from tests.helpers import (
    CONTRACT_ADDRESS,
    WALLET_A,
    WALLET_B,
    make_event,
    tx_hash,
)


def receipt_for(event, status=1, to=CONTRACT_ADDRESS):
    return {
        "status": status,
        "to": to,
        "blockNumber": event.block_number,
        "decoded": [event],
    }


@pytest.fixture
def service(fake_chain):
    return DepositVerificationService(fake_chain)


class TestVerifyDepositTransaction:
    """Tests for verify_deposit_transaction."""

    @pytest.mark.asyncio
    async def test_verified(self, service, fake_chain):
        event = make_event(block_number=900, deposit_index=1, amount=250_500_000)
        fake_chain.receipts[event.transaction_hash] = receipt_for(event)
        fake_chain.block_timestamps[900] = 1_700_000_123

        result = await service.verify_deposit_transaction(
            event.transaction_hash, WALLET_A.upper().replace("0X", "0x")
        )

        assert result.verified is True
        assert result.amount == Decimal("250.5")
        assert result.block_number == 900
        assert result.timestamp == 1_700_000_123
        assert result.error is None

    @pytest.mark.asyncio
    async def test_not_found(self, service):
        result = await service.verify_deposit_transaction(tx_hash(99), WALLET_A)
        assert result.verified is False
        assert "not found" in result.error

    @pytest.mark.asyncio
    async def test_failed_transaction(self, service, fake_chain):
        event = make_event(block_number=900, deposit_index=1)
        fake_chain.receipts[event.transaction_hash] = receipt_for(event, status=0)

        result = await service.verify_deposit_transaction(
            event.transaction_hash, WALLET_A
        )

        assert result.verified is False
        assert result.error == "Transaction failed"

    @pytest.mark.asyncio
    async def test_wrong_contract(self, service, fake_chain):
        event = make_event(block_number=900, deposit_index=1)
        fake_chain.receipts[event.transaction_hash] = receipt_for(
            event, to="0x9999999999999999999999999999999999999999"
        )

        result = await service.verify_deposit_transaction(
            event.transaction_hash, WALLET_A
        )

        assert result.verified is False
        assert "deposit contract" in result.error

    @pytest.mark.asyncio
    async def test_no_deposit_event(self, service, fake_chain):
        event = make_event(block_number=900, deposit_index=1)
        receipt = receipt_for(event)
        receipt["decoded"] = []
        fake_chain.receipts[event.transaction_hash] = receipt

        result = await service.verify_deposit_transaction(
            event.transaction_hash, WALLET_A
        )

        assert result.verified is False
        assert "No deposit event" in result.error

    @pytest.mark.asyncio
    async def test_different_depositor(self, service, fake_chain):
        event = make_event(block_number=900, deposit_index=1)
        fake_chain.receipts[event.transaction_hash] = receipt_for(event)

        result = await service.verify_deposit_transaction(
            event.transaction_hash, WALLET_B
        )

        assert result.verified is False
        assert "different address" in result.error

    @pytest.mark.asyncio
    async def test_amount_mismatch(self, service, fake_chain):
        event = make_event(block_number=900, deposit_index=1, amount=100_000_000)
        fake_chain.receipts[event.transaction_hash] = receipt_for(event)

        result = await service.verify_deposit_transaction(
            event.transaction_hash, WALLET_A, expected_amount=Decimal("99")
        )

        assert result.verified is False
        assert result.amount == Decimal("100")

    @pytest.mark.asyncio
    async def test_amount_compared_in_base_units(self, service, fake_chain):
        """One base unit of difference is a mismatch."""
        event = make_event(block_number=900, deposit_index=1, amount=100_000_001)
        fake_chain.receipts[event.transaction_hash] = receipt_for(event)

        exact = await service.verify_deposit_transaction(
            event.transaction_hash, WALLET_A, expected_amount=Decimal("100.000001")
        )
        rounded = await service.verify_deposit_transaction(
            event.transaction_hash, WALLET_A, expected_amount=Decimal("100")
        )

        assert exact.verified is True
        assert rounded.verified is False
        assert "mismatch" in rounded.error

    @pytest.mark.asyncio
    async def test_rpc_error_reported(self, service, fake_chain):
        fake_chain.failures = [ConnectivityError("down")]

        result = await service.verify_deposit_transaction(tx_hash(1), WALLET_A)

        assert result.verified is False
        assert "down" in result.error


class TestReconcileWallet:
    """Tests for reconcile_wallet."""

    @pytest.mark.asyncio
    async def test_in_sync(self, service, fake_chain, db_session):
        ledger = DepositLedger(db_session)
        await ledger.record(
            NewDeposit(
                wallet_address=WALLET_A,
                amount=Decimal("100"),
                transaction_hash=tx_hash(1),
                deposit_index=1,
                block_number=900,
                timestamp=datetime(2024, 1, 1, tzinfo=UTC),
            )
        )
        fake_chain.totals[WALLET_A] = (100_000_000, 1)

        result = await service.reconcile_wallet(db_session, WALLET_A)

        assert result.in_sync is True
        assert result.on_chain_total == Decimal("100")
        assert result.recorded_count == 1

    @pytest.mark.asyncio
    async def test_out_of_sync(self, service, fake_chain, db_session):
        fake_chain.totals[WALLET_A] = (50_000_000, 1)

        result = await service.reconcile_wallet(db_session, WALLET_A)

        assert result.in_sync is False
        assert result.recorded_total == Decimal("0")
        assert result.on_chain_count == 1
