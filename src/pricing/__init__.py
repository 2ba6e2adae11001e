"""
Pool price normalization.

This package turns raw Uniswap V2 reserves, V3 sqrtPriceX96 encodings and
swap deltas into comparable decimal ratios (asset0 per asset1), and labels
the direction of each trade.
"""

from .classifier import Direction, classify, net_deltas
from .errors import DivisionByZero, NoRatio, PricingError
from .normalizer import (
    from_constant_product,
    from_reserves_snapshot,
    from_slot0_snapshot,
    from_sqrt_price_x96,
    from_swap_amounts,
    invert,
)
from .types import Asset, PriceObservation, ReservesSnapshot, Slot0Snapshot, Source, SwapEvent

__all__ = [
    'Asset',
    'Direction',
    'DivisionByZero',
    'NoRatio',
    'PriceObservation',
    'PricingError',
    'ReservesSnapshot',
    'Slot0Snapshot',
    'Source',
    'SwapEvent',
    'classify',
    'from_constant_product',
    'from_reserves_snapshot',
    'from_slot0_snapshot',
    'from_sqrt_price_x96',
    'from_swap_amounts',
    'invert',
    'net_deltas',
]
