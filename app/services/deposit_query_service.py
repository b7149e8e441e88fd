"""
Deposit query service.

Read side of the deposit ledger:
- Contract configuration for clients
- A user's deposit history and totals (by their linked wallet)
- Paginated history and global statistics for admins
"""

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.settings import Settings
from app.models.deposit_record import DepositRecord
from app.models.user import User
from app.repositories.deposit_record_repository import DepositRecordRepository
from app.repositories.user_repository import UserRepository


def get_contract_config(settings: Settings) -> dict[str, Any]:
    """
    Get deposit contract configuration.

    Args:
        settings: Application settings

    Returns:
        Dict with contract_address, network, rpc_url and configured flag
    """
    return {
        "contract_address": settings.deposit_contract_address or "",
        "network": settings.network_name,
        "rpc_url": settings.active_rpc_url or "",
        "configured": bool(settings.deposit_contract_address),
    }


def serialize_deposit(record: DepositRecord) -> dict[str, Any]:
    """Convert a deposit record to a plain dict."""
    return {
        "id": record.id,
        "user_id": record.user_id,
        "wallet_address": record.wallet_address,
        "amount": record.amount,
        "transaction_hash": record.transaction_hash,
        "deposit_index": record.deposit_index,
        "block_number": record.block_number,
        "timestamp": record.timestamp,
    }


class DepositQueryService:
    """Read-only queries over recorded deposits."""

    def __init__(self, session: AsyncSession):
        """
        Initialize deposit query service.

        Args:
            session: Database session
        """
        self.session = session
        self.deposit_repo = DepositRecordRepository(session)
        self.user_repo = UserRepository(session)

    async def _get_user_wallet(self, user_id: int) -> str | None:
        user = await self.user_repo.get_by_id(user_id)
        if user is None or not user.wallet_address:
            return None
        return user.wallet_address

    async def get_user_history(
        self, user_id: int, limit: int | None = None
    ) -> dict[str, Any] | None:
        """
        Get a user's deposit history, newest first.

        Args:
            user_id: User ID
            limit: Max results

        Returns:
            Dict with deposits and wallet_address, or None if the user
            does not exist or has no linked wallet
        """
        wallet = await self._get_user_wallet(user_id)
        if wallet is None:
            return None

        deposits = await self.deposit_repo.get_by_wallet(wallet, limit=limit)
        return {
            "deposits": [serialize_deposit(d) for d in deposits],
            "wallet_address": wallet,
        }

    async def get_user_stats(self, user_id: int) -> dict[str, Any] | None:
        """
        Get a user's deposit totals.

        Args:
            user_id: User ID

        Returns:
            Dict with total_deposited, deposit_count and wallet_address,
            or None if the user does not exist or has no linked wallet
        """
        wallet = await self._get_user_wallet(user_id)
        if wallet is None:
            return None

        total, count = await self.deposit_repo.get_wallet_totals(wallet)
        return {
            "total_deposited": total,
            "deposit_count": count,
            "wallet_address": wallet,
        }

    async def get_all_history(
        self, limit: int = 100, offset: int = 0
    ) -> list[dict[str, Any]]:
        """
        Get all deposits with their owners, newest first (admin view).

        Args:
            limit: Page size
            offset: Number of rows to skip

        Returns:
            List of deposit dicts; ``user`` is None for unregistered wallets
        """
        stmt = (
            select(DepositRecord, User)
            .outerjoin(User, DepositRecord.user_id == User.id)
            .order_by(DepositRecord.timestamp.desc(), DepositRecord.id.desc())
            .offset(max(offset, 0))
            .limit(max(limit, 1))
        )
        result = await self.session.execute(stmt)

        history = []
        for record, user in result.all():
            item = serialize_deposit(record)
            item["user"] = (
                {"id": user.id, "username": user.username, "email": user.email}
                if user
                else None
            )
            history.append(item)
        return history

    async def get_global_stats(self) -> dict[str, Any]:
        """
        Get global deposit statistics (admin view).

        Returns:
            Dict with total_deposited, deposit_count, unique_depositors
        """
        return await self.deposit_repo.get_global_stats()
