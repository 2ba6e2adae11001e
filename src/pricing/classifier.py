"""
Swap direction classification.

Sign convention: a positive delta was received by the pool, a negative delta
was paid out by the pool. "+100 asset0, -50 asset1" therefore means a trader
sold asset0 for asset1.
"""

import logging
from enum import Enum

from .types import Asset

logger = logging.getLogger(__name__)


class Direction(str, Enum):
    """Trade direction from the trader's point of view."""

    ASSET0_TO_ASSET1 = "asset0_to_asset1"
    ASSET1_TO_ASSET0 = "asset1_to_asset0"
    INDETERMINATE = "indeterminate"

    def sold(self, asset0: Asset, asset1: Asset):
        """Asset the trader sold, None when indeterminate."""
        if self is Direction.ASSET0_TO_ASSET1:
            return asset0
        if self is Direction.ASSET1_TO_ASSET0:
            return asset1
        return None

    def label(self, asset0: Asset, asset1: Asset) -> str:
        if self is Direction.ASSET0_TO_ASSET1:
            return f"{asset0.symbol}->{asset1.symbol}"
        if self is Direction.ASSET1_TO_ASSET0:
            return f"{asset1.symbol}->{asset0.symbol}"
        return "Unknown"


def classify(amount0_delta: int, amount1_delta: int) -> Direction:
    """
    Determine trade direction from signed pool deltas.

    Any sign combination other than one side in and one side out (including
    an exact zero on either side) is reported as INDETERMINATE.
    """
    if amount0_delta > 0 and amount1_delta < 0:
        return Direction.ASSET0_TO_ASSET1
    if amount0_delta < 0 and amount1_delta > 0:
        return Direction.ASSET1_TO_ASSET0

    logger.debug(f"Indeterminate swap direction: amount0={amount0_delta} amount1={amount1_delta}")
    return Direction.INDETERMINATE


def net_deltas(amount0_in: int, amount1_in: int, amount0_out: int, amount1_out: int):
    """Collapse a V2 in/out Swap into signed pool deltas (in - out)."""
    return amount0_in - amount0_out, amount1_in - amount1_out
