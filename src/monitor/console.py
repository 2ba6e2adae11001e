"""
Console rendering of divergence records.

Prints the pool info table once at startup, then one fixed-width row per
processed swap, coloured by pool and by trade direction relative to the
configured primary token.
"""

import logging
import sys
from decimal import Decimal
from typing import List, Optional, TextIO

from src.feeds.tokens import PoolInfo
from src.pricing.decimal_math import CONTEXT
from src.pricing.types import Asset, Source

from .records import DivergenceRecord

logger = logging.getLogger(__name__)

# ANSI colours
RESET = "\033[0m"
RED = "\033[31m"
GREEN = "\033[32m"
YELLOW = "\033[33m"
ORANGE = "\033[38;5;208m"
ROYAL_BLUE = "\033[38;5;27m"

POOL_COLOURS = {Source.V2: ROYAL_BLUE, Source.V3: ORANGE}
POOL_LABELS = {Source.V2: "V2", Source.V3: "V3"}

HEADERS = ["TIME", "POOL", "SWAP", "AMOUNT0", "AMOUNT1", "RATIO", "DIFF"]
COLUMN_WIDTHS = [10, 12, 10, 20, 20, 25, 10]

RATIO_PLACES = Decimal("0.0000001")
AMOUNT_PLACES = Decimal("0.000001")


def _pad(text: str, width: int) -> str:
    return text.ljust(width)


def _row(cells: List[str]) -> str:
    return "".join(_pad(cell, width) for cell, width in zip(cells, COLUMN_WIDTHS))


def colourize(text: str, colour: str, enabled: bool = True) -> str:
    return f"{colour}{text}{RESET}" if enabled else text


def format_difference(pct: Optional[Decimal]) -> str:
    """Render a difference as "1.25%", or "N/A" when unavailable."""
    return "N/A" if pct is None else f"{pct:.2f}%"


def format_ratio(ratio: Optional[Decimal], asset0: Asset, asset1: Asset) -> str:
    if ratio is None:
        return "N/A"
    return f"1 {asset1.symbol} ≈ {ratio.quantize(RATIO_PLACES, context=CONTEXT)} {asset0.symbol}"


def format_header() -> str:
    return _row(HEADERS)


def format_swap_row(
    record: DivergenceRecord,
    asset0: Asset,
    asset1: Asset,
    primary_symbol: str,
    colour: bool = True,
) -> str:
    """
    Render one record as a fixed-width row.

    The swap column is red when the primary token was sold and green when it
    was bought. Padding is applied before colouring so escape codes do not
    shift the columns.
    """
    time_cell = _pad(record.timestamp.strftime("%H:%M:%S"), COLUMN_WIDTHS[0])
    pool_cell = colourize(_pad(POOL_LABELS[record.source], COLUMN_WIDTHS[1]), POOL_COLOURS[record.source], colour)

    swap_cell = _pad(record.direction.label(asset0, asset1), COLUMN_WIDTHS[2])
    sold = record.direction.sold(asset0, asset1)
    if sold is not None:
        swap_cell = colourize(swap_cell, RED if sold.symbol == primary_symbol else GREEN, colour)

    cells = [
        _pad(f"{record.amount0.quantize(AMOUNT_PLACES, context=CONTEXT)}", COLUMN_WIDTHS[3]),
        _pad(f"{record.amount1.quantize(AMOUNT_PLACES, context=CONTEXT)}", COLUMN_WIDTHS[4]),
        _pad(format_ratio(record.ratio, asset0, asset1), COLUMN_WIDTHS[5]),
        _pad(format_difference(record.difference_pct), COLUMN_WIDTHS[6]),
    ]
    return time_cell + pool_cell + swap_cell + "".join(cells)


def format_opportunity(record: DivergenceRecord, threshold_pct: Decimal) -> str:
    return (
        f"🚨 Arbitrage opportunity: V3 vs V2 difference {format_difference(record.difference_pct)} "
        f"exceeds {threshold_pct}% threshold"
    )


def format_pool_info(pools: List[PoolInfo]) -> str:
    """Table of the monitored pools' assets, decimals and reserves."""
    lines = []
    for pool in pools:
        lines.append(f"{pool.source.display_name} pool {pool.pool_address}")
        if pool.fee_pct is not None:
            lines.append(f"  Fee tier: {pool.fee_pct}%   Liquidity: {pool.liquidity}")
        lines.append(f"  {'SYMBOL':<10}{'ADDRESS':<44}{'DECIMALS':<10}{'RESERVES'}")
        reserves = (
            [pool.reserves.reserve0, pool.reserves.reserve1] if pool.reserves is not None else [None, None]
        )
        for token, reserve in zip([pool.token0, pool.token1], reserves):
            shown = token.format_amount(reserve) if reserve is not None else "-"
            lines.append(f"  {token.symbol:<10}{token.address:<44}{token.decimals:<10}{shown}")
    return "\n".join(lines)


class ConsoleSink:
    """Record sink that prints rows to a stream and logs opportunities."""

    def __init__(
        self,
        asset0: Asset,
        asset1: Asset,
        primary_symbol: str,
        threshold_pct: Decimal,
        stream: Optional[TextIO] = None,
        colour: Optional[bool] = None,
    ):
        self.asset0 = asset0
        self.asset1 = asset1
        self.primary_symbol = primary_symbol
        self.threshold_pct = threshold_pct
        self.stream = stream or sys.stdout
        self.colour = self.stream.isatty() if colour is None else colour
        self.rows_written = 0

        if primary_symbol not in (asset0.symbol, asset1.symbol):
            logger.warning(
                f"Primary token {primary_symbol} is not in the pair "
                f"{asset0.symbol}/{asset1.symbol}, swap colouring will be green only"
            )

    def print_header(self):
        self._write(format_header())

    def print_pools(self, pools: List[PoolInfo]):
        self._write(format_pool_info(pools))

    def __call__(self, record: DivergenceRecord) -> None:
        if self.rows_written == 0:
            self.print_header()
        self._write(format_swap_row(record, self.asset0, self.asset1, self.primary_symbol, self.colour))
        self.rows_written += 1

        if record.is_opportunity:
            banner = format_opportunity(record, self.threshold_pct)
            self._write(colourize(banner, YELLOW, self.colour))
            logger.info(banner, extra=record.to_dict())

    def _write(self, text: str):
        self.stream.write(text + "\n")
        self.stream.flush()
