"""004: create trades (positions) table

Revision ID: 004
Revises: 003
Create Date: 2026-10-12
"""
from typing import Sequence, Union

from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE trades (
            id              VARCHAR(64)         PRIMARY KEY,
            user_email      VARCHAR(254)        NOT NULL REFERENCES users (email),
            market_id       VARCHAR(64)         NOT NULL REFERENCES markets (id),
            side            VARCHAR(3)          NOT NULL,
            shares          DOUBLE PRECISION    NOT NULL,
            amount          DOUBLE PRECISION    NOT NULL,
            avg_price       DOUBLE PRECISION    NOT NULL,
            status          VARCHAR(10)         NOT NULL DEFAULT 'OPEN',
            sell_fee        DOUBLE PRECISION,
            net_payout      DOUBLE PRECISION,
            closed_at       TIMESTAMPTZ,
            created_at      TIMESTAMPTZ         NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ         NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_trades_side CHECK (side IN ('YES', 'NO')),
            CONSTRAINT ck_trades_status CHECK (status IN ('OPEN', 'SOLD', 'WON', 'LOST')),
            CONSTRAINT ck_trades_shares_positive CHECK (shares > 0),
            CONSTRAINT ck_trades_amount_positive CHECK (amount > 0),
            CONSTRAINT ck_trades_payout_gte_0 CHECK (net_payout IS NULL OR net_payout >= 0)
        );
    """)
    op.execute("CREATE INDEX idx_trades_user ON trades (user_email, created_at DESC);")
    op.execute(
        "CREATE INDEX idx_trades_market_open ON trades (market_id) WHERE status = 'OPEN';"
    )
    op.execute("""
        CREATE TRIGGER trg_trades_updated_at
            BEFORE UPDATE ON trades
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)
    op.execute("COMMENT ON TABLE trades IS 'One row per buy; closed by sale (SOLD) or resolution (WON/LOST)';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS trades CASCADE;")
