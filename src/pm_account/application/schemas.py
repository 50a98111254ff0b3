"""Pydantic schemas for pm_account API."""

from pydantic import BaseModel

from src.pm_account.domain.models import User
from src.pm_common.money import euros_to_display, round_money


class UserResponse(BaseModel):
    email: str
    balance: float
    balance_display: str

    @classmethod
    def from_domain(cls, user: User) -> "UserResponse":
        return cls(
            email=user.email,
            balance=round_money(user.balance),
            balance_display=euros_to_display(user.balance),
        )


class LeaderboardEntry(BaseModel):
    rank: int
    email: str
    balance: float
    balance_display: str


class LeaderboardResponse(BaseModel):
    items: list[LeaderboardEntry]
