"""AccountApplicationService — thin composition layer.

Users are created lazily with the configured starting balance the first
time an email shows up; that insert is the only write here and commits on
its own.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.pm_account.application.schemas import (
    LeaderboardEntry,
    LeaderboardResponse,
    UserResponse,
)
from src.pm_account.domain.email import normalize_email
from src.pm_account.domain.repository import AccountRepositoryProtocol
from src.pm_account.infrastructure.persistence import AccountRepository
from src.pm_common.money import euros_to_display, round_money


class AccountApplicationService:
    def __init__(self, repo: AccountRepositoryProtocol | None = None) -> None:
        self._repo: AccountRepositoryProtocol = repo or AccountRepository()

    async def get_or_create_user(self, db: AsyncSession, email: str) -> UserResponse:
        normalized = normalize_email(email)
        try:
            user = await self._repo.get_or_create_user(
                db, normalized, settings.STARTING_BALANCE
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return UserResponse.from_domain(user)

    async def get_leaderboard(self, db: AsyncSession, limit: int) -> LeaderboardResponse:
        users = await self._repo.list_top_balances(db, limit)
        items = [
            LeaderboardEntry(
                rank=i,
                email=u.email,
                balance=round_money(u.balance),
                balance_display=euros_to_display(u.balance),
            )
            for i, u in enumerate(users, start=1)
        ]
        return LeaderboardResponse(items=items)
