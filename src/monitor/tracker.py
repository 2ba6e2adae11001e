"""
Divergence tracking between the two pool sources.

Holds the latest ratio per source and compares them. The tracker is the only
state shared between the two event streams, so every read-modify-compare
goes through one lock.
"""

import logging
import threading
from decimal import Decimal
from typing import Dict, Optional, Tuple

from src.pricing.decimal_math import divide, multiply, quantize_pct, subtract, to_decimal
from src.pricing.errors import DivisionByZero
from src.pricing.types import Source

logger = logging.getLogger(__name__)

# Reference side of the percentage difference: ((v3 - v2) / v2) * 100
BASE_SOURCE = Source.V2
COMPARE_SOURCE = Source.V3


class DivergenceTracker:
    """
    Latest-ratio slots for both sources plus the comparison logic.

    No history is kept: update() overwrites the slot and the previous value
    is gone.
    """

    def __init__(self, threshold_pct: Decimal = Decimal("1")):
        self.threshold_pct = to_decimal(threshold_pct)
        self._slots: Dict[Source, Optional[Decimal]] = {source: None for source in Source}
        self._lock = threading.Lock()

    def update(self, source: Source, ratio: Optional[Decimal]) -> None:
        """Overwrite the slot for source."""
        with self._lock:
            self._slots[source] = ratio

    def clear(self, source: Source) -> None:
        """Mark a source's slot as unset, e.g. after its stream failed."""
        with self._lock:
            self._slots[source] = None
        logger.info(f"Cleared {source.value} ratio slot")

    def difference(self) -> Optional[Decimal]:
        """
        Percentage difference of the V3 ratio relative to the V2 ratio.

        Returns:
            Percentage rounded to 2 decimal places, or None when either slot
            is unset or the V2 ratio is zero
        """
        with self._lock:
            return self._difference_locked()

    def _difference_locked(self) -> Optional[Decimal]:
        base = self._slots[BASE_SOURCE]
        other = self._slots[COMPARE_SOURCE]
        if base is None or other is None:
            return None
        try:
            return quantize_pct(multiply(divide(subtract(other, base), base), 100))
        except DivisionByZero:
            logger.debug("Base ratio is zero, difference unavailable")
            return None

    @staticmethod
    def is_opportunity(pct: Optional[Decimal], threshold_pct) -> bool:
        """Strict threshold test |pct| > threshold, False when pct is unavailable."""
        if pct is None:
            return False
        return abs(pct) > to_decimal(threshold_pct)

    def observe(self, source: Source, ratio: Optional[Decimal]) -> Tuple[Optional[Decimal], bool]:
        """
        Record a ratio and compare, as a single critical section.

        A None ratio leaves the source's previous value in place.

        Returns:
            (difference_pct, is_opportunity)
        """
        with self._lock:
            if ratio is not None:
                self._slots[source] = ratio
            pct = self._difference_locked()
        return pct, self.is_opportunity(pct, self.threshold_pct)

    def get(self, source: Source) -> Optional[Decimal]:
        with self._lock:
            return self._slots[source]

    def snapshot(self) -> Dict[Source, Optional[Decimal]]:
        """Copy of both slots."""
        with self._lock:
            return dict(self._slots)
