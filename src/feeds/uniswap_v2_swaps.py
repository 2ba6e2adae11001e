"""
Uniswap V2 pair Swap feed.

A V2 pair emits Sync(reserve0, reserve1) right before Swap in the same
transaction, so both topics are requested and the reserves are attached to
the Swap that follows them.
"""

from typing import Any, Dict, List, Optional

from eth_abi import decode

from src.monitor.errors import DecodeError
from src.pricing.classifier import net_deltas
from src.pricing.types import ReservesSnapshot, Source, SwapEvent

from .base import BaseSwapFeed, event_topic

# Swap(address indexed sender, uint amount0In, uint amount1In, uint amount0Out, uint amount1Out, address indexed to)
V2_SWAP_TOPIC = event_topic("Swap(address,uint256,uint256,uint256,uint256,address)")
# Sync(uint112 reserve0, uint112 reserve1)
V2_SYNC_TOPIC = event_topic("Sync(uint112,uint112)")


class UniswapV2SwapFeed(BaseSwapFeed):
    """Swap stream for a single Uniswap V2 pair."""

    source = Source.V2

    @property
    def topics(self) -> List[str]:
        return [V2_SWAP_TOPIC, V2_SYNC_TOPIC]

    def decode_logs(self, logs: List[Dict[str, Any]]) -> List[SwapEvent]:
        events = []
        pending_sync: Optional[tuple] = None  # (tx_hash, ReservesSnapshot)

        for log in logs:
            try:
                topic0 = self._topic0(log)
                if topic0 == V2_SYNC_TOPIC:
                    pending_sync = (self._tx_hash(log), self._decode_sync(log))
                elif topic0 == V2_SWAP_TOPIC:
                    reserves = None
                    if pending_sync is not None and pending_sync[0] == self._tx_hash(log):
                        reserves = pending_sync[1]
                    events.append(self._decode_swap(log, reserves))
                    pending_sync = None
            except DecodeError as e:
                self.error_handler.log_error(e, {"pool": self.pool_address, "block": log.get("blockNumber")})

        return events

    def _decode_sync(self, log: Dict[str, Any]) -> ReservesSnapshot:
        try:
            reserve0, reserve1 = decode(["uint112", "uint112"], self._data(log))
        except Exception as e:
            raise DecodeError(f"bad Sync payload: {e}")
        return ReservesSnapshot(reserve0=reserve0, reserve1=reserve1)

    def _decode_swap(self, log: Dict[str, Any], reserves: Optional[ReservesSnapshot]) -> SwapEvent:
        try:
            amount0_in, amount1_in, amount0_out, amount1_out = decode(
                ["uint256", "uint256", "uint256", "uint256"], self._data(log)
            )
        except Exception as e:
            raise DecodeError(f"bad Swap payload: {e}")

        amount0_delta, amount1_delta = net_deltas(amount0_in, amount1_in, amount0_out, amount1_out)
        return SwapEvent(
            source=self.source,
            amount0_delta=amount0_delta,
            amount1_delta=amount1_delta,
            timestamp=self.block_timestamp(log["blockNumber"]),
            block_number=log["blockNumber"],
            tx_hash=self._tx_hash(log),
            log_index=log.get("logIndex"),
            reserves=reserves,
        )
