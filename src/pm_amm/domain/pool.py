"""Pool seeding and integrity checks."""

import math

from src.pm_amm.domain.constants import INITIAL_LIQUIDITY_K, K_DRIFT_TOLERANCE
from src.pm_common.money import is_finite_number


def initialize_pools(k: float = INITIAL_LIQUIDITY_K) -> tuple[float, float]:
    """Equal pools (neutral 50/50) whose product is ``k``."""
    if not is_finite_number(k) or k <= 0:
        raise ValueError(f"Initial liquidity must be a positive number, got {k!r}")
    side = math.sqrt(k)
    return side, side


def validate_pools(
    yes_pool: float,
    no_pool: float,
    expected_k: float,
    tolerance: float = K_DRIFT_TOLERANCE,
) -> list[str]:
    """Return integrity violations for a stored pool state (empty when healthy).

    Trades and redemptions preserve the product exactly up to float rounding,
    so a product deviating from the seeded ``expected_k`` by more than
    ``tolerance`` (relative) means the row was corrupted or tampered with.
    """
    errors: list[str] = []
    if not is_finite_number(yes_pool) or yes_pool <= 0:
        errors.append(f"yes_pool must be positive and finite, got {yes_pool!r}")
    if not is_finite_number(no_pool) or no_pool <= 0:
        errors.append(f"no_pool must be positive and finite, got {no_pool!r}")
    if errors:
        return errors

    if not is_finite_number(expected_k) or expected_k <= 0:
        errors.append(f"expected k must be positive and finite, got {expected_k!r}")
        return errors

    actual_k = yes_pool * no_pool
    deviation = abs(actual_k - expected_k) / expected_k
    if deviation > tolerance:
        errors.append(
            f"constant product drifted: expected {expected_k:.4f}, actual {actual_k:.4f} "
            f"({deviation:.4%} > {tolerance:.2%})"
        )
    return errors
