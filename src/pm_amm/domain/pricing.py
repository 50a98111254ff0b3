"""Pricing function for the constant-product (FPMM) binary pool.

YES probability is the NO pool's share of total pool mass:

    p_yes = no_pool / (yes_pool + no_pool)

A larger NO pool means YES is *more* expensive: delivering YES shares draws
down the YES pool, so the scarcer side is the pricier one. The simulator and
liquidation algebra are written against this same convention.
"""

import logging

from src.pm_amm.domain.constants import NEUTRAL_PRICE
from src.pm_amm.domain.models import Prices
from src.pm_common.money import is_finite_number, round_percent

logger = logging.getLogger(__name__)

_FALLBACK = Prices(
    yes=int(NEUTRAL_PRICE),
    no=int(NEUTRAL_PRICE),
    yes_exact=NEUTRAL_PRICE,
    no_exact=NEUTRAL_PRICE,
    fallback=True,
)


def pools_are_valid(yes_pool: object, no_pool: object) -> bool:
    """Both pools finite, numeric and strictly positive."""
    return (
        is_finite_number(yes_pool)
        and is_finite_number(no_pool)
        and yes_pool > 0  # type: ignore[operator]
        and no_pool > 0  # type: ignore[operator]
    )


def yes_probability(yes_pool: float, no_pool: float) -> float:
    """Full-precision YES probability in [0, 1]. Caller validates pools."""
    return no_pool / (yes_pool + no_pool)


def price(yes_pool: float, no_pool: float) -> Prices:
    """Quote YES/NO percentages for a pool state.

    Degenerate pools never raise: they log a data-integrity warning and
    return the neutral 50/50 quote with ``fallback=True``.
    """
    if not pools_are_valid(yes_pool, no_pool):
        logger.warning(
            "Invalid pool state, quoting 50/50 fallback: yes_pool=%r no_pool=%r",
            yes_pool,
            no_pool,
        )
        return _FALLBACK

    yes_exact = yes_probability(yes_pool, no_pool) * 100
    no_exact = 100 - yes_exact
    yes = round_percent(yes_exact)
    return Prices(yes=yes, no=100 - yes, yes_exact=yes_exact, no_exact=no_exact)


def side_price(prices: Prices, side: str) -> float:
    """Full-precision percentage for one side."""
    return prices.yes_exact if side == "YES" else prices.no_exact
