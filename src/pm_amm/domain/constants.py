"""AMM constants — defaults for the values exposed in config.settings."""

# yes_pool * no_pool for a freshly seeded market (pools start at sqrt(k) = 100)
INITIAL_LIQUIDITY_K: float = 10000.0

# Per-trade stake ceiling in euros (inclusive)
MAX_TRADE_AMOUNT: float = 500.0

# Max relative drift of yes_pool * no_pool from the seeded k (rounding only)
K_DRIFT_TOLERANCE: float = 0.001

# Neutral quote returned for corrupted pool state
NEUTRAL_PRICE: float = 50.0
