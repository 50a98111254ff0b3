"""005: create price_snapshots table

Revision ID: 005
Revises: 004
Create Date: 2026-10-12
"""
from typing import Sequence, Union

from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE price_snapshots (
            id              BIGSERIAL           PRIMARY KEY,
            market_id       VARCHAR(64)         NOT NULL REFERENCES markets (id),
            yes_price       DOUBLE PRECISION    NOT NULL,
            no_price        DOUBLE PRECISION    NOT NULL,
            yes_pool        DOUBLE PRECISION    NOT NULL,
            no_pool         DOUBLE PRECISION    NOT NULL,
            created_at      TIMESTAMPTZ         NOT NULL DEFAULT NOW()
        );
    """)
    op.execute(
        "CREATE INDEX idx_price_snapshots_market ON price_snapshots (market_id, created_at DESC);"
    )
    op.execute("COMMENT ON TABLE price_snapshots IS 'Append-only price history, one row per pool change';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS price_snapshots CASCADE;")
