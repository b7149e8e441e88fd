"""
User repository.

Data access layer for User model.
"""

from decimal import Decimal

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user import User
from app.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """User repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize user repository."""
        super().__init__(User, session)

    async def find_by_wallet_address(
        self, wallet_address: str
    ) -> User | None:
        """
        Find user by wallet address (case-insensitive).

        Normalizes the address to lowercase before searching.

        Args:
            wallet_address: Wallet address (any case)

        Returns:
            User or None
        """
        if not wallet_address:
            return None
        return await self.get_by(wallet_address=wallet_address.lower())

    async def credit_balance(self, user_id: int, amount: Decimal) -> bool:
        """
        Add amount to user's available balance.

        Uses a single UPDATE so concurrent readers never see a
        half-applied credit.

        Args:
            user_id: User ID
            amount: Amount to credit

        Returns:
            True if the user row was updated
        """
        stmt = (
            update(User)
            .where(User.id == user_id)
            .values(balance=User.balance + amount)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        await self.session.flush()
        return (result.rowcount or 0) > 0
