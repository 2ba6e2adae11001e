"""
Uniswap V3 pool Swap feed.

V3 Swap logs carry signed deltas from the pool's perspective plus the
post-swap sqrtPriceX96. Liquidity and tick are decoded and discarded.
"""

from typing import Any, Dict, List

from eth_abi import decode

from src.monitor.errors import DecodeError
from src.pricing.types import Source, SwapEvent

from .base import BaseSwapFeed, event_topic

# Swap(address indexed sender, address indexed recipient, int256 amount0, int256 amount1,
#      uint160 sqrtPriceX96, uint128 liquidity, int24 tick)
V3_SWAP_TOPIC = event_topic("Swap(address,address,int256,int256,uint160,uint128,int24)")


class UniswapV3SwapFeed(BaseSwapFeed):
    """Swap stream for a single Uniswap V3 pool."""

    source = Source.V3

    @property
    def topics(self) -> List[str]:
        return [V3_SWAP_TOPIC]

    def decode_logs(self, logs: List[Dict[str, Any]]) -> List[SwapEvent]:
        events = []
        for log in logs:
            try:
                if self._topic0(log) == V3_SWAP_TOPIC:
                    events.append(self._decode_swap(log))
            except DecodeError as e:
                self.error_handler.log_error(e, {"pool": self.pool_address, "block": log.get("blockNumber")})
        return events

    def _decode_swap(self, log: Dict[str, Any]) -> SwapEvent:
        try:
            amount0, amount1, sqrt_price_x96, _liquidity, _tick = decode(
                ["int256", "int256", "uint160", "uint128", "int24"], self._data(log)
            )
        except Exception as e:
            raise DecodeError(f"bad Swap payload: {e}")

        return SwapEvent(
            source=self.source,
            amount0_delta=amount0,
            amount1_delta=amount1,
            timestamp=self.block_timestamp(log["blockNumber"]),
            block_number=log["blockNumber"],
            tx_hash=self._tx_hash(log),
            log_index=log.get("logIndex"),
            sqrt_price_x96=sqrt_price_x96,
        )
