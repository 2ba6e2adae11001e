"""
Base classes for pool Swap event feeds.

A feed polls eth_getLogs for one pool, decodes the payloads into SwapEvents
and yields them in (block, log index) order. Feeds remember the last block
they processed, so a restarted stream resumes where the failed one stopped.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

from eth_utils import to_checksum_address
from hexbytes import HexBytes
from web3 import Web3

from src.monitor.errors import DecodeError, ErrorHandler, NetworkError, RateLimitError, SubscriptionFailure
from src.pricing.types import Source, SwapEvent

logger = logging.getLogger(__name__)


def event_topic(signature: str) -> str:
    """0x-prefixed keccak topic of an event signature."""
    return Web3.to_hex(Web3.keccak(text=signature))


@dataclass
class FeedConfig:
    """Configuration for log polling."""

    poll_interval: float = 2.0
    max_blocks_per_request: int = 500
    start_block: Optional[int] = None
    timestamp_cache_size: int = 256


class BaseSwapFeed(ABC):
    """
    Abstract base class for a single pool's Swap stream.

    Subclasses declare the topics they want and decode matching logs.
    """

    source: Source

    def __init__(self, web3: Web3, pool_address: str, config: Optional[FeedConfig] = None):
        self.web3 = web3
        self.pool_address = to_checksum_address(pool_address)
        self.config = config or FeedConfig()
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self.error_handler = ErrorHandler(self.logger)

        self.last_block: Optional[int] = None
        self._timestamps: Dict[int, datetime] = {}

    @property
    @abstractmethod
    def topics(self) -> List[str]:
        """Event topics to request (OR-ed in topic position 0)."""
        pass

    @abstractmethod
    def decode_logs(self, logs: List[Dict[str, Any]]) -> List[SwapEvent]:
        """
        Decode an ordered batch of logs into Swap events.

        Args:
            logs: Raw logs for this pool, sorted by block and log index

        Returns:
            Decoded events, in the same order
        """
        pass

    async def stream(self) -> AsyncIterator[SwapEvent]:
        """
        Yield Swap events forever, polling once per interval.

        The cursor moves past a chunk only after all of its events were
        yielded, so a stream restarted after a failure resumes at the first
        undelivered block.

        Raises:
            SubscriptionFailure: When the node cannot be queried
        """
        if self.last_block is None:
            self.last_block = await self._initial_block()
            self.logger.info(f"Watching {self.pool_address} from block {self.last_block + 1}")

        while True:
            async for to_block, events in self._chunks():
                for event in events:
                    yield event
                self.last_block = to_block
            await asyncio.sleep(self.config.poll_interval)

    async def poll(self) -> List[SwapEvent]:
        """
        Fetch and decode all new logs since the last processed block.

        The cursor is committed once every chunk has loaded; a failing chunk
        leaves it where it was.
        """
        if self.last_block is None:
            self.last_block = await self._rpc(lambda: self.web3.eth.block_number)
            return []

        events: List[SwapEvent] = []
        cursor = self.last_block
        async for to_block, chunk in self._chunks():
            events.extend(chunk)
            cursor = to_block
        self.last_block = cursor

        if events:
            self.logger.debug(f"Decoded {len(events)} swaps up to block {cursor}")
        return events

    async def _chunks(self) -> AsyncIterator[Tuple[int, List[SwapEvent]]]:
        """Decoded events per block range, from last_block + 1 up to the head."""
        current_block = await self._rpc(lambda: self.web3.eth.block_number)
        from_block = self.last_block + 1
        while from_block <= current_block:
            to_block = min(current_block, from_block + self.config.max_blocks_per_request - 1)
            logs = await self._get_logs(from_block, to_block)
            await self._prefetch_timestamps(logs)
            yield to_block, self.decode_logs(self._sorted(logs))
            from_block = to_block + 1

    async def _initial_block(self) -> int:
        if self.config.start_block is not None:
            return self.config.start_block - 1
        return await self._rpc(lambda: self.web3.eth.block_number)

    async def _get_logs(self, from_block: int, to_block: int) -> List[Dict[str, Any]]:
        params = {
            "address": self.pool_address,
            "fromBlock": from_block,
            "toBlock": to_block,
            "topics": [self.topics],
        }
        return await self._rpc(lambda: self.web3.eth.get_logs(params))

    async def _rpc(self, call):
        """Run a blocking web3 call off the event loop and normalize its errors."""
        try:
            return await asyncio.to_thread(call)
        except SubscriptionFailure:
            raise
        except Exception as e:
            raise self._wrap_error(e) from e

    def _wrap_error(self, error: Exception) -> SubscriptionFailure:
        category = self.error_handler.classify_error(error)
        message = f"{self.source.value} feed for {self.pool_address}: {error}"
        if category == 'rate_limit':
            return RateLimitError(message, source=self.source.value)
        if category == 'network':
            return NetworkError(message, source=self.source.value)
        return SubscriptionFailure(message, source=self.source.value)

    @staticmethod
    def _sorted(logs: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return sorted(logs, key=lambda log: (log["blockNumber"], log["logIndex"]))

    async def _prefetch_timestamps(self, logs: List[Dict[str, Any]]):
        """Load block times for a batch, every swap in a block shares one."""
        if len(self._timestamps) >= self.config.timestamp_cache_size:
            self._timestamps.clear()
        missing = {log["blockNumber"] for log in logs} - set(self._timestamps)
        for block_number in sorted(missing):
            block = await self._rpc(lambda n=block_number: self.web3.eth.get_block(n))
            self._timestamps[block_number] = datetime.fromtimestamp(block["timestamp"], tz=timezone.utc)

    def block_timestamp(self, block_number: int) -> datetime:
        """Block time for a block that was prefetched with its logs."""
        try:
            return self._timestamps[block_number]
        except KeyError:
            raise DecodeError(f"no timestamp loaded for block {block_number}")

    @staticmethod
    def _topic0(log: Dict[str, Any]) -> str:
        topics = log.get("topics") or []
        if not topics:
            raise DecodeError("log has no topics")
        return Web3.to_hex(HexBytes(topics[0]))

    @staticmethod
    def _data(log: Dict[str, Any]) -> bytes:
        return bytes(HexBytes(log["data"]))

    @staticmethod
    def _tx_hash(log: Dict[str, Any]) -> Optional[str]:
        tx_hash = log.get("transactionHash")
        return Web3.to_hex(HexBytes(tx_hash)) if tx_hash is not None else None
