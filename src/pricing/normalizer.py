"""
Price normalizers.

Turn a pool's raw on-chain representation into a decimal ratio that can be
compared across mechanisms:

- Constant product (V2): integer reserves
- Concentrated liquidity (V3): Q64.96 square-root price
- Either, from a single trade: signed swap deltas

Every normalizer returns a PriceObservation or raises NoRatio. DivisionByZero
from the decimal layer never escapes this module.
"""

import logging
from decimal import Decimal

from .decimal_math import divide, multiply, pow10, scale_by_decimals, to_decimal
from .errors import DivisionByZero, NoRatio
from .types import Asset, PriceObservation, ReservesSnapshot, Slot0Snapshot, Source
from .v3_math import sqrt_price_x96_to_raw_price

logger = logging.getLogger(__name__)


def from_constant_product(
    reserve0, reserve1, source: Source = Source.V2
) -> PriceObservation:
    """
    Ratio of reserve0 to reserve1.

    Both reserves must already be expressed in matching decimal-adjusted units
    (see from_reserves_snapshot for raw on-chain reserves).

    Raises:
        NoRatio: If reserve1 is zero
    """
    if to_decimal(reserve0) < 0 or to_decimal(reserve1) < 0:
        raise ValueError("reserves must be non-negative")
    try:
        return PriceObservation(source=source, ratio=divide(reserve0, reserve1))
    except DivisionByZero:
        raise NoRatio("reserve1 is zero")


def from_reserves_snapshot(
    snapshot: ReservesSnapshot, asset0: Asset, asset1: Asset, source: Source = Source.V2
) -> PriceObservation:
    """Decimal-adjust raw pair reserves, then take reserve0 / reserve1."""
    return from_constant_product(
        scale_by_decimals(snapshot.reserve0, asset0.decimals),
        scale_by_decimals(snapshot.reserve1, asset1.decimals),
        source=source,
    )


def from_sqrt_price_x96(
    sqrt_price_x96: int, decimals0: int, decimals1: int, source: Source = Source.V3
) -> PriceObservation:
    """
    Decimal-adjusted price from a Q96 square-root price.

    Algorithm:
        1. raw = (sqrtPriceX96 / 2^96)^2
        2. delta = decimals0 - decimals1
        3. delta > 0: raw * 10^delta, delta < 0: raw / 10^|delta|, else raw

    The encoding stores price at integer-unit granularity, so step 3 is what
    makes pairs with mismatched decimals (e.g. 6 vs 18) come out right.

    Raises:
        NoRatio: If the encoded price is zero (uninitialized pool)
    """
    if sqrt_price_x96 == 0:
        raise NoRatio("sqrtPriceX96 is zero")

    price_ratio = sqrt_price_x96_to_raw_price(sqrt_price_x96)
    decimal_delta = decimals0 - decimals1

    if decimal_delta > 0:
        adjusted = multiply(price_ratio, pow10(decimal_delta))
    elif decimal_delta < 0:
        adjusted = divide(price_ratio, pow10(abs(decimal_delta)))
    else:
        adjusted = price_ratio

    logger.debug(
        f"sqrtPriceX96={sqrt_price_x96} raw={price_ratio} "
        f"decimal_delta={decimal_delta} adjusted={adjusted}"
    )
    return PriceObservation(source=source, ratio=adjusted)


def from_slot0_snapshot(snapshot: Slot0Snapshot, source: Source = Source.V3) -> PriceObservation:
    return from_sqrt_price_x96(
        snapshot.sqrt_price_x96, snapshot.decimals0, snapshot.decimals1, source=source
    )


def from_swap_amounts(
    amount0_delta: int,
    amount1_delta: int,
    decimals0: int,
    decimals1: int,
    source: Source,
) -> PriceObservation:
    """
    Ratio implied by a single trade: |amount0| / |amount1| in human units.

    Raises:
        NoRatio: If the asset1 side of the trade is zero
    """
    amount0 = scale_by_decimals(abs(amount0_delta), decimals0)
    amount1 = scale_by_decimals(abs(amount1_delta), decimals1)
    try:
        return PriceObservation(source=source, ratio=divide(amount0, amount1))
    except DivisionByZero:
        raise NoRatio("asset1 side of the trade is zero")


def invert(observation: PriceObservation) -> PriceObservation:
    """
    Flip a ratio's orientation (1 / ratio).

    Raises:
        NoRatio: If the observation has no ratio or the ratio is zero
    """
    if observation.ratio is None:
        raise NoRatio("nothing to invert")
    try:
        return PriceObservation(
            source=observation.source, ratio=divide(Decimal(1), observation.ratio)
        )
    except DivisionByZero:
        raise NoRatio("cannot invert a zero ratio")
