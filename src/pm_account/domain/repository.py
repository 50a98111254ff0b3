"""Repository Protocol — dependency inversion for testability.

Unit tests inject a mock that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_account.domain.models import User


class AccountRepositoryProtocol(Protocol):
    async def get_user(self, db: AsyncSession, email: str) -> User | None: ...

    async def get_or_create_user(
        self, db: AsyncSession, email: str, starting_balance: float
    ) -> User: ...

    async def debit(
        self, db: AsyncSession, email: str, amount: float
    ) -> User | None: ...

    async def credit(self, db: AsyncSession, email: str, amount: float) -> User: ...

    async def list_top_balances(self, db: AsyncSession, limit: int) -> list[User]: ...
