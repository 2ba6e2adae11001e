"""
Stream coordination for the two pool feeds.

Each source gets a producer task (feed -> bounded queue) and a consumer task
(queue -> normalize -> tracker -> sink). The producers are supervised
independently: a failing feed is retried with exponential backoff while the
other source keeps flowing, and its tracker slot is cleared so stale data is
never compared.

Queue overflow policy is drop-oldest. A divergence monitor only cares about
the freshest ratios, so under a burst the oldest unprocessed swaps of that
source are discarded (and counted) rather than stalling its feed.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Callable, Dict, List, Optional

from src.feeds.base import BaseSwapFeed
from src.pricing.classifier import classify
from src.pricing.errors import NoRatio
from src.pricing.normalizer import from_reserves_snapshot, from_sqrt_price_x96, from_swap_amounts, invert
from src.pricing.types import Asset, Source, SwapEvent

from .errors import ErrorHandler, ReconnectPolicy, SubscriptionFailure
from .records import DivergenceRecord
from .tracker import DivergenceTracker

logger = logging.getLogger(__name__)

RecordSink = Callable[[DivergenceRecord], None]


class StreamState(str, Enum):
    """Lifecycle of a single source's stream."""

    IDLE = "idle"
    RUNNING = "running"
    RECONNECTING = "reconnecting"
    FAILED = "failed"
    STOPPED = "stopped"


@dataclass
class SourceHealth:
    """Observable health of one source's stream."""

    source: Source
    state: StreamState = StreamState.IDLE
    reconnect_attempts: int = 0
    last_error: Optional[str] = None
    events_processed: int = 0
    events_dropped: int = 0
    last_event_at: Optional[datetime] = None

    @property
    def healthy(self) -> bool:
        return self.state in (StreamState.IDLE, StreamState.RUNNING)

    def to_dict(self) -> Dict[str, object]:
        return {
            "source": self.source.value,
            "state": self.state.value,
            "reconnect_attempts": self.reconnect_attempts,
            "last_error": self.last_error,
            "events_processed": self.events_processed,
            "events_dropped": self.events_dropped,
            "last_event_at": self.last_event_at.isoformat() if self.last_event_at else None,
        }


class EventProcessor:
    """
    Turns one SwapEvent into one DivergenceRecord.

    Pure CPU work; the only shared state touched is the tracker, through its
    single locked observe() call.
    """

    def __init__(self, tracker: DivergenceTracker, asset0: Asset, asset1: Asset, ratio_mode: str = "trade"):
        self.tracker = tracker
        self.asset0 = asset0
        self.asset1 = asset1
        self.ratio_mode = ratio_mode

    def ratio_for(self, event: SwapEvent) -> Optional[Decimal]:
        """
        Ratio (asset0 per asset1) for an event, None when none can be derived.

        In pool mode the V3 price (asset1 per asset0 once decimal-adjusted) is
        inverted so both sources share the asset0-per-asset1 orientation.
        Events without pool state fall back to the trade ratio.
        """
        try:
            if self.ratio_mode == "pool":
                if event.source is Source.V2 and event.reserves is not None:
                    return from_reserves_snapshot(event.reserves, self.asset0, self.asset1).ratio
                if event.source is Source.V3 and event.sqrt_price_x96 is not None:
                    price = from_sqrt_price_x96(
                        event.sqrt_price_x96, self.asset0.decimals, self.asset1.decimals
                    )
                    return invert(price).ratio

            return from_swap_amounts(
                event.amount0_delta,
                event.amount1_delta,
                self.asset0.decimals,
                self.asset1.decimals,
                source=event.source,
            ).ratio
        except NoRatio as e:
            logger.debug(f"No {event.source.value} ratio for tx {event.tx_hash}: {e}")
            return None

    def process(self, event: SwapEvent) -> DivergenceRecord:
        ratio = self.ratio_for(event)
        difference_pct, is_opportunity = self.tracker.observe(event.source, ratio)

        return DivergenceRecord(
            timestamp=event.timestamp,
            source=event.source,
            direction=classify(event.amount0_delta, event.amount1_delta),
            amount0=self.asset0.format_amount(abs(event.amount0_delta)),
            amount1=self.asset1.format_amount(abs(event.amount1_delta)),
            ratio=ratio,
            difference_pct=difference_pct,
            is_opportunity=is_opportunity,
            block_number=event.block_number,
            tx_hash=event.tx_hash,
        )


@dataclass
class SourceStream:
    """Runtime pieces owned per source."""

    feed: BaseSwapFeed
    queue: asyncio.Queue
    policy: ReconnectPolicy
    health: SourceHealth
    tasks: List[asyncio.Task] = field(default_factory=list)


class StreamCoordinator:
    """
    Owns both pool subscriptions and serializes their writes into the tracker.

    Events are processed strictly in arrival order per source; no attempt is
    made to interleave the two sources by timestamp.
    """

    def __init__(
        self,
        tracker: DivergenceTracker,
        feeds: List[BaseSwapFeed],
        asset0: Asset,
        asset1: Asset,
        sink: Optional[RecordSink] = None,
        ratio_mode: str = "trade",
        queue_size: int = 256,
        reconnect_base_delay: float = 1.0,
        reconnect_max_delay: float = 60.0,
        reconnect_max_attempts: int = 10,
    ):
        """
        Initialize the coordinator.

        Args:
            tracker: Shared divergence state
            feeds: One feed per source
            asset0: Pair asset 0 (same for both pools)
            asset1: Pair asset 1 (same for both pools)
            sink: Receives every DivergenceRecord, defaults to logging
            ratio_mode: "trade" or "pool"
            queue_size: Per-source queue bound
            reconnect_base_delay: First backoff delay in seconds
            reconnect_max_delay: Backoff ceiling in seconds
            reconnect_max_attempts: Consecutive failures before a source is FAILED (0 = unlimited)
        """
        self.tracker = tracker
        self.processor = EventProcessor(tracker, asset0, asset1, ratio_mode)
        self.sink = sink or self._log_record
        self.error_handler = ErrorHandler(logger)

        self._streams: Dict[Source, SourceStream] = {}
        for feed in feeds:
            if feed.source in self._streams:
                raise ValueError(f"duplicate feed for {feed.source.value}")
            self._streams[feed.source] = SourceStream(
                feed=feed,
                queue=asyncio.Queue(maxsize=queue_size),
                policy=ReconnectPolicy(reconnect_base_delay, reconnect_max_delay, reconnect_max_attempts),
                health=SourceHealth(source=feed.source),
            )

    @property
    def sources(self) -> List[Source]:
        return list(self._streams)

    # --- Lifecycle ---

    async def start(self) -> None:
        """Start producer and consumer tasks for every source."""
        for source, stream in self._streams.items():
            if stream.tasks and not all(task.done() for task in stream.tasks):
                logger.warning(f"{source.value} stream already running")
                continue
            stream.tasks = [
                asyncio.create_task(self._produce(stream), name=f"{source.value}-producer"),
                asyncio.create_task(self._consume(stream), name=f"{source.value}-consumer"),
            ]
            logger.info(f"Started {source.display_name} stream for {stream.feed.pool_address}")

    async def run(self) -> None:
        """Start all streams and wait until every one of them has ended."""
        await self.start()
        consumers = [stream.tasks[1] for stream in self._streams.values()]
        await asyncio.gather(*consumers, return_exceptions=True)

    async def stop_source(self, source: Source) -> None:
        """Cancel one source's tasks; the other source keeps running."""
        stream = self._streams[source]
        for task in stream.tasks:
            task.cancel()
        for task in stream.tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        stream.tasks = []
        if stream.health.state is not StreamState.FAILED:
            stream.health.state = StreamState.STOPPED
        self.tracker.clear(source)
        logger.info(f"Stopped {source.display_name} stream")

    async def stop(self) -> None:
        """Cancel every stream."""
        for source in list(self._streams):
            await self.stop_source(source)

    def health(self) -> Dict[Source, SourceHealth]:
        return {source: stream.health for source, stream in self._streams.items()}

    # --- Event handling ---

    def handle_event(self, event: SwapEvent) -> DivergenceRecord:
        """Normalize, classify and compare a single event."""
        return self.processor.process(event)

    def _enqueue(self, stream: SourceStream, event: SwapEvent) -> None:
        if stream.queue.full():
            stream.queue.get_nowait()
            stream.queue.task_done()
            stream.health.events_dropped += 1
            logger.warning(
                f"{stream.health.source.value} queue full, dropped oldest event "
                f"({stream.health.events_dropped} dropped so far)"
            )
        stream.queue.put_nowait(event)

    async def _produce(self, stream: SourceStream) -> None:
        """Pump a feed into its queue, reconnecting on failure."""
        source = stream.health.source

        while True:
            stream.health.state = StreamState.RUNNING
            try:
                async for event in stream.feed.stream():
                    stream.policy.reset()
                    stream.health.reconnect_attempts = 0
                    self._enqueue(stream, event)
                logger.info(f"{source.display_name} stream closed")
                stream.health.state = StreamState.STOPPED
                break

            except asyncio.CancelledError:
                raise
            except Exception as e:
                failure = e if isinstance(e, SubscriptionFailure) else SubscriptionFailure(str(e), source.value)
                stream.health.last_error = str(failure)
                self.error_handler.log_error(failure, {
                    "source": source.value,
                    "attempt": stream.policy.attempts + 1,
                    "max_attempts": stream.policy.max_attempts,
                })

                # Let already-received events land first, then mark the slot stale
                await stream.queue.join()
                self.tracker.clear(source)

                if not self.error_handler.should_retry(failure) or not stream.policy.should_retry():
                    stream.health.state = StreamState.FAILED
                    logger.error(
                        f"{source.display_name} stream failed after "
                        f"{stream.policy.attempts} reconnect attempts: {failure}"
                    )
                    break

                delay = stream.policy.next_delay(self.error_handler.delay_multiplier(failure))
                stream.health.state = StreamState.RECONNECTING
                stream.health.reconnect_attempts = stream.policy.attempts
                logger.info(
                    f"Reconnecting {source.display_name} in {delay:.1f}s "
                    f"(attempt {stream.policy.attempts}/{stream.policy.max_attempts or 'unlimited'})"
                )
                await asyncio.sleep(delay)

        # End-of-stream marker for the consumer
        await stream.queue.put(None)

    async def _consume(self, stream: SourceStream) -> None:
        """Process a source's events in FIFO order."""
        source = stream.health.source
        while True:
            event = await stream.queue.get()
            try:
                if event is None:
                    return
                record = self.handle_event(event)
                stream.health.events_processed += 1
                stream.health.last_event_at = datetime.now(timezone.utc)
                self._emit(record)
            except Exception as e:
                logger.exception(f"Failed to process {source.value} event: {e}")
            finally:
                stream.queue.task_done()

    def _emit(self, record: DivergenceRecord) -> None:
        try:
            self.sink(record)
        except Exception as e:
            logger.exception(f"Record sink failed: {e}")

    @staticmethod
    def _log_record(record: DivergenceRecord) -> None:
        logger.info(f"Divergence record: {record.to_dict()}")
