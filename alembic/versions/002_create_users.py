"""002: create users table

Revision ID: 002
Revises: 001
Create Date: 2026-10-12
"""
from typing import Sequence, Union

from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE users (
            email           VARCHAR(254)        PRIMARY KEY,
            balance         DOUBLE PRECISION    NOT NULL DEFAULT 1000,
            created_at      TIMESTAMPTZ         NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ         NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_users_balance_gte_0   CHECK (balance >= 0),
            CONSTRAINT ck_users_email_lower     CHECK (email = LOWER(TRIM(email)))
        );
    """)
    op.execute("CREATE INDEX idx_users_balance ON users (balance DESC);")
    op.execute("""
        CREATE TRIGGER trg_users_updated_at
            BEFORE UPDATE ON users
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)
    op.execute("COMMENT ON TABLE users IS 'Players keyed by normalized email; play-money euro balance';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS users CASCADE;")
