"""AccountRepository — concrete implementation of AccountRepositoryProtocol.

All balance-mutating operations use atomic PostgreSQL UPDATE ... RETURNING.
A debit returning 0 rows means the balance could not cover it; the row is
never driven negative (also enforced by ck_users_balance_gte_0).

Transaction ownership: The CALLER (application service) is responsible for
committing or rolling back.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_account.domain.models import User
from src.pm_common.errors import UserNotFoundError

_USER_COLUMNS = "email, balance, created_at, updated_at"

_GET_USER_SQL = text(f"""
    SELECT {_USER_COLUMNS}
    FROM users
    WHERE email = :email
""")

# Lazy creation: first interaction inserts the starting balance, later calls
# just return the existing row.
_GET_OR_CREATE_USER_SQL = text(f"""
    INSERT INTO users (email, balance)
    VALUES (:email, :starting_balance)
    ON CONFLICT (email) DO UPDATE
        SET updated_at = users.updated_at
    RETURNING {_USER_COLUMNS}
""")

_DEBIT_SQL = text(f"""
    UPDATE users
    SET balance = balance - :amount,
        updated_at = NOW()
    WHERE email = :email AND balance >= :amount
    RETURNING {_USER_COLUMNS}
""")

_CREDIT_SQL = text(f"""
    UPDATE users
    SET balance = balance + :amount,
        updated_at = NOW()
    WHERE email = :email
    RETURNING {_USER_COLUMNS}
""")

_TOP_BALANCES_SQL = text(f"""
    SELECT {_USER_COLUMNS}
    FROM users
    ORDER BY balance DESC, email
    LIMIT :limit
""")


def _row_to_user(row: object) -> User:
    return User(
        email=row.email,  # type: ignore[attr-defined]
        balance=row.balance,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


class AccountRepository:
    """Concrete repository — all operations atomic at the SQL level."""

    async def get_user(self, db: AsyncSession, email: str) -> User | None:
        result = await db.execute(_GET_USER_SQL, {"email": email})
        row = result.fetchone()
        return _row_to_user(row) if row else None

    async def get_or_create_user(
        self, db: AsyncSession, email: str, starting_balance: float
    ) -> User:
        result = await db.execute(
            _GET_OR_CREATE_USER_SQL,
            {"email": email, "starting_balance": starting_balance},
        )
        return _row_to_user(result.fetchone())

    async def debit(
        self, db: AsyncSession, email: str, amount: float
    ) -> User | None:
        result = await db.execute(_DEBIT_SQL, {"email": email, "amount": amount})
        row = result.fetchone()
        return _row_to_user(row) if row else None

    async def credit(self, db: AsyncSession, email: str, amount: float) -> User:
        result = await db.execute(_CREDIT_SQL, {"email": email, "amount": amount})
        row = result.fetchone()
        if row is None:
            raise UserNotFoundError(email)
        return _row_to_user(row)

    async def list_top_balances(self, db: AsyncSession, limit: int) -> list[User]:
        result = await db.execute(_TOP_BALANCES_SQL, {"limit": limit})
        return [_row_to_user(row) for row in result.fetchall()]
