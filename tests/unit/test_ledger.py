"""
Tests for DepositLedger.
"""

from dataclasses import replace
from datetime import UTC, datetime
from decimal import Decimal

import pytest
from sqlalchemy import select

from app.models.deposit_record import DepositRecord
from app.models.user import User
from app.services.deposit_monitor.ledger import DepositLedger, NewDeposit
from app.utils.exceptions import DuplicateDepositError
from tests.helpers import WALLET_A, tx_hash


def new_deposit(index: int, block: int, user_id: int | None = None) -> NewDeposit:
    return NewDeposit(
        wallet_address=WALLET_A,
        amount=Decimal("100"),
        transaction_hash=tx_hash(index),
        deposit_index=index,
        block_number=block,
        timestamp=datetime(2024, 1, 1, tzinfo=UTC),
        user_id=user_id,
    )


async def balance_of(session, user_id: int) -> Decimal:
    result = await session.execute(select(User.balance).where(User.id == user_id))
    return result.scalar_one()


class TestDepositLedger:
    """Tests for DepositLedger."""

    @pytest.mark.asyncio
    async def test_record_credits_user(self, db_session, registered_user):
        ledger = DepositLedger(db_session)

        record = await ledger.record(new_deposit(1, 100, registered_user.id))

        assert record.id is not None
        assert record.user_id == registered_user.id
        assert await balance_of(db_session, registered_user.id) == Decimal("100")

    @pytest.mark.asyncio
    async def test_record_without_user_does_not_credit(
        self, db_session, registered_user
    ):
        ledger = DepositLedger(db_session)

        record = await ledger.record(new_deposit(1, 100))

        assert record.user_id is None
        assert await balance_of(db_session, registered_user.id) == Decimal("0")

    @pytest.mark.asyncio
    async def test_duplicate_key_rejected(self, db_session, registered_user):
        ledger = DepositLedger(db_session)
        await ledger.record(new_deposit(1, 100, registered_user.id))

        with pytest.raises(DuplicateDepositError):
            await ledger.record(new_deposit(1, 100, registered_user.id))

        # Only one credit applied
        assert await balance_of(db_session, registered_user.id) == Decimal("100")

    @pytest.mark.asyncio
    async def test_same_tx_different_index_allowed(self, db_session):
        """One transaction can emit several deposits."""
        ledger = DepositLedger(db_session)
        first = new_deposit(1, 100)
        second = replace(first, deposit_index=2)

        await ledger.record(first)
        await ledger.record(second)

        assert await ledger.exists(first.transaction_hash, 2) is True

    @pytest.mark.asyncio
    async def test_delete_from_keeps_earlier_blocks_and_balance(
        self, db_session, registered_user
    ):
        """Credits are not reversed when deposits are removed."""
        ledger = DepositLedger(db_session)
        for index, block in [(1, 90), (2, 100), (3, 110)]:
            await ledger.record(new_deposit(index, block, registered_user.id))

        deleted = await ledger.delete_from(100)

        assert deleted == 2
        remaining = (await db_session.execute(select(DepositRecord))).scalars().all()
        assert [r.block_number for r in remaining] == [90]
        assert await balance_of(db_session, registered_user.id) == Decimal("300")
