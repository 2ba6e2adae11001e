"""
Output record emitted for every processed swap.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from src.pricing.classifier import Direction
from src.pricing.types import Source


@dataclass(frozen=True)
class DivergenceRecord:
    """
    One processed swap and the divergence state right after it.

    Attributes:
        timestamp: Block time of the swap
        source: Pool the swap happened in
        direction: Trade direction label
        amount0: Absolute asset0 amount in human units
        amount1: Absolute asset1 amount in human units
        ratio: Ratio derived from this event, None when unavailable
        difference_pct: V3 vs V2 difference in percent, None when unavailable
        is_opportunity: Whether |difference_pct| exceeded the threshold
    """

    timestamp: datetime
    source: Source
    direction: Direction
    amount0: Decimal
    amount1: Decimal
    ratio: Optional[Decimal]
    difference_pct: Optional[Decimal]
    is_opportunity: bool
    block_number: Optional[int] = None
    tx_hash: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "source": self.source.value,
            "direction": self.direction.value,
            "amount0": str(self.amount0),
            "amount1": str(self.amount1),
            "ratio": str(self.ratio) if self.ratio is not None else None,
            "difference_pct": str(self.difference_pct) if self.difference_pct is not None else None,
            "is_opportunity": self.is_opportunity,
            "block_number": self.block_number,
            "tx_hash": self.tx_hash,
        }
