"""
Uniswap V3 fixed-point price math.

Key concepts:
- sqrtPriceX96: sqrt(token1/token0 raw price) in Q64.96 fixed point

Everything here is integer or Decimal arithmetic. sqrtPriceX96 routinely
exceeds 2**53, so a float intermediate would silently lose precision.
"""

import math
from decimal import Decimal

from .decimal_math import divide

# Q96 constants
Q96 = 2**96
Q192 = Q96 * Q96


def sqrt_price_x96_to_raw_price(sqrt_price_x96: int) -> Decimal:
    """
    Raw (undecimaled) token1-per-token0 price from a Q96 square-root price.

    (sqrtPriceX96 / 2^96)^2 is computed as sqrtPriceX96^2 / 2^192 so the only
    rounding step is the final decimal division.
    """
    if sqrt_price_x96 < 0:
        raise ValueError("sqrtPriceX96 must be non-negative")
    return divide(sqrt_price_x96 * sqrt_price_x96, Q192)


def encode_sqrt_price_x96(reserve0: int, reserve1: int) -> int:
    """
    Encode reserve1/reserve0 as a Q96 square-root price (floor).

    Mirrors the encodePriceSqrt helper used when initializing V3 pools.
    """
    if reserve0 <= 0:
        raise ValueError("reserve0 must be positive")
    return math.isqrt((reserve1 << 192) // reserve0)
