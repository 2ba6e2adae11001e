"""
Core types for pool pricing.

Domain models shared by the normalizers, the classifier and the monitor.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from .decimal_math import scale_by_decimals


class Source(str, Enum):
    """Pool mechanism an observation came from."""

    V2 = "uniswap_v2"  # constant product
    V3 = "uniswap_v3"  # concentrated liquidity

    @property
    def display_name(self) -> str:
        return "Uniswap V2" if self is Source.V2 else "Uniswap V3"


@dataclass(frozen=True)
class Asset:
    """
    Tradable token resolved once per pool at startup.

    Attributes:
        address: Token contract address
        symbol: Display symbol
        decimals: Power-of-ten scale of raw integer amounts
    """

    address: str
    symbol: str
    decimals: int

    def __post_init__(self):
        if self.decimals < 0:
            raise ValueError(f"decimals must be non-negative, got {self.decimals}")

    def format_amount(self, raw_amount: int) -> Decimal:
        """Convert a raw integer amount to human units."""
        return scale_by_decimals(raw_amount, self.decimals)


@dataclass(frozen=True)
class ReservesSnapshot:
    """Constant-product pool state (raw integer reserves)."""

    reserve0: int
    reserve1: int


@dataclass(frozen=True)
class Slot0Snapshot:
    """Concentrated-liquidity pool state (Q64.96 square-root price)."""

    sqrt_price_x96: int
    decimals0: int
    decimals1: int


@dataclass(frozen=True)
class PriceObservation:
    """
    Normalized ratio produced by a normalizer.

    Attributes:
        source: Mechanism that produced the ratio
        ratio: Units of asset0 per unit of asset1, None when no ratio exists
    """

    source: Source
    ratio: Optional[Decimal]

    @property
    def available(self) -> bool:
        return self.ratio is not None


@dataclass(frozen=True)
class SwapEvent:
    """
    Decoded Swap notification.

    Deltas are signed from the pool's point of view: positive amounts were
    received by the pool, negative amounts were paid out.
    """

    source: Source
    amount0_delta: int
    amount1_delta: int
    timestamp: datetime
    block_number: Optional[int] = None
    tx_hash: Optional[str] = None
    log_index: Optional[int] = None
    reserves: Optional[ReservesSnapshot] = None
    sqrt_price_x96: Optional[int] = None
