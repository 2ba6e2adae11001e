"""
Live V2/V3 price divergence monitor.

Watches one Uniswap V2 pair and one Uniswap V3 pool trading the same two
tokens, prints every swap with the ratio it implies, and flags when the two
pools disagree by more than PRICE_DIFFERENCE percent.

Runs until interrupted (Ctrl+C).
"""

import asyncio
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from web3 import Web3

from src.config import ConfigError, ConfigManager, get_config
from src.feeds import FeedConfig, PoolInfo, TokenResolver, UniswapV2SwapFeed, UniswapV3SwapFeed, load_pool_info
from src.monitor.console import ConsoleSink
from src.monitor.coordinator import StreamCoordinator, StreamState
from src.monitor.tracker import DivergenceTracker
from src.pricing.types import Source

logger = logging.getLogger(__name__)


def check_same_pair(v2_info: PoolInfo, v3_info: PoolInfo):
    """Both pools must trade the same token0/token1, in the same order."""
    v2_pair = (v2_info.token0.address, v2_info.token1.address)
    v3_pair = (v3_info.token0.address, v3_info.token1.address)
    if v2_pair != v3_pair:
        raise ConfigError(
            f"Pools trade different pairs: V2 {v2_info.token0.symbol}/{v2_info.token1.symbol}, "
            f"V3 {v3_info.token0.symbol}/{v3_info.token1.symbol}"
        )


def build_coordinator(config: ConfigManager, web3: Web3, v2_info: PoolInfo, sink) -> StreamCoordinator:
    """Wire feeds, tracker and sink together from configuration."""
    monitor = config.monitor
    feed_config = FeedConfig(
        poll_interval=monitor.POLL_INTERVAL_SECONDS,
        max_blocks_per_request=config.chains.MAX_BLOCKS_PER_REQUEST,
    )
    feeds = [
        UniswapV2SwapFeed(web3, monitor.UNISWAP_V2_PAIR_ADDRESS, feed_config),
        UniswapV3SwapFeed(web3, monitor.UNISWAP_V3_POOL_ADDRESS, feed_config),
    ]
    return StreamCoordinator(
        tracker=DivergenceTracker(monitor.threshold_pct),
        feeds=feeds,
        asset0=v2_info.token0,
        asset1=v2_info.token1,
        sink=sink,
        ratio_mode=monitor.RATIO_MODE,
        queue_size=monitor.QUEUE_MAX_SIZE,
        reconnect_base_delay=monitor.RECONNECT_BASE_DELAY,
        reconnect_max_delay=monitor.RECONNECT_MAX_DELAY,
        reconnect_max_attempts=monitor.RECONNECT_MAX_ATTEMPTS,
    )


async def main() -> int:
    """Run the divergence monitor until both streams end or the process is interrupted."""
    coordinator = None
    try:
        config = get_config()

        logger.info("=" * 80)
        logger.info("Starting V2/V3 Divergence Monitor")
        logger.info("=" * 80)
        monitor = config.monitor

        web3 = Web3(Web3.HTTPProvider(config.chains.get_rpc_url()))
        resolver = TokenResolver(web3)

        logger.info("🔍 Loading pool metadata...")
        v2_info = await asyncio.to_thread(load_pool_info, web3, monitor.UNISWAP_V2_PAIR_ADDRESS, Source.V2, resolver)
        v3_info = await asyncio.to_thread(load_pool_info, web3, monitor.UNISWAP_V3_POOL_ADDRESS, Source.V3, resolver)
        check_same_pair(v2_info, v3_info)

        sink = ConsoleSink(
            asset0=v2_info.token0,
            asset1=v2_info.token1,
            primary_symbol=monitor.PRIMARY_TOKEN_SYMBOL,
            threshold_pct=monitor.threshold_pct,
        )
        sink.print_pools([v2_info, v3_info])

        coordinator = build_coordinator(config, web3, v2_info, sink)
        logger.info(
            f"🔄 Monitoring {v2_info.token0.symbol}/{v2_info.token1.symbol} "
            f"(ratio mode: {monitor.RATIO_MODE}, threshold: {monitor.threshold_pct}%)"
        )
        await coordinator.run()

    except ConfigError as e:
        logger.error(f"❌ Configuration error: {e}")
        return 1
    except Exception as e:
        logger.exception(f"❌ Fatal error in divergence monitor: {e}")
        return 1
    finally:
        if coordinator is not None:
            await coordinator.stop()

    failed = [
        source.display_name
        for source, health in coordinator.health().items()
        if health.state is StreamState.FAILED
    ]
    if failed:
        logger.error(f"❌ Streams failed: {', '.join(failed)}")
        return 1

    logger.info("✅ Divergence monitor stopped")
    return 0


def cli():
    """Console script entry point."""
    try:
        exit_code = asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("⏹️  Interrupted, shutting down")
        exit_code = 0
    sys.exit(exit_code)


if __name__ == "__main__":
    cli()
