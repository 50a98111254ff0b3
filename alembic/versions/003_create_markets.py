"""003: create markets table

Revision ID: 003
Revises: 002
Create Date: 2026-10-12
"""
from typing import Sequence, Union

from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE markets (
            id                      VARCHAR(64)         PRIMARY KEY,
            title                   TEXT                NOT NULL,
            description             TEXT,
            category                VARCHAR(50),
            status                  VARCHAR(20)         NOT NULL DEFAULT 'ACTIVE',
            yes_pool                DOUBLE PRECISION    NOT NULL,
            no_pool                 DOUBLE PRECISION    NOT NULL,
            liquidity_k             DOUBLE PRECISION    NOT NULL,
            total_volume            DOUBLE PRECISION    NOT NULL DEFAULT 0,
            close_date              TIMESTAMPTZ         NOT NULL,
            resolution_kind         VARCHAR(32),
            resolution_threshold    DOUBLE PRECISION,
            resolution_entity       VARCHAR(200),
            resolved_outcome        BOOLEAN,
            resolution_source       TEXT,
            resolved_at             TIMESTAMPTZ,
            version                 BIGINT              NOT NULL DEFAULT 0,
            created_at              TIMESTAMPTZ         NOT NULL DEFAULT NOW(),
            updated_at              TIMESTAMPTZ         NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_markets_status CHECK (
                status IN ('ACTIVE', 'CLOSED', 'RESOLVED')
            ),
            CONSTRAINT ck_markets_pools_positive CHECK (yes_pool > 0 AND no_pool > 0),
            CONSTRAINT ck_markets_k_positive CHECK (liquidity_k > 0),
            CONSTRAINT ck_markets_volume_gte_0 CHECK (total_volume >= 0),
            CONSTRAINT ck_markets_resolution_kind CHECK (
                resolution_kind IS NULL OR resolution_kind IN (
                    'STOCK_INDEX', 'ELECTRICITY_PRICE', 'TEMPERATURE',
                    'NEWS_TRENDING', 'SPORTS_MATCH', 'MANUAL'
                )
            ),
            CONSTRAINT ck_markets_resolved_consistent CHECK (
                (status = 'RESOLVED') = (resolved_outcome IS NOT NULL)
            )
        );
    """)
    op.execute("CREATE INDEX idx_markets_status_close ON markets (status, close_date);")
    op.execute("CREATE INDEX idx_markets_created ON markets (created_at DESC, id DESC);")
    op.execute("CREATE INDEX idx_markets_category ON markets (category);")
    op.execute("""
        CREATE TRIGGER trg_markets_updated_at
            BEFORE UPDATE ON markets
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)
    op.execute("COMMENT ON TABLE markets IS 'Binary markets with a constant-product YES/NO pool';")
    op.execute("COMMENT ON COLUMN markets.version IS 'Bumped on every pool commit; compare-and-swap token';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS markets CASCADE;")
