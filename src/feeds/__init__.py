"""
Pool event feeds.

This package reads Uniswap V2 and V3 Swap logs over JSON-RPC, decodes them
into SwapEvents, and resolves the pools' token metadata.
"""

from .base import BaseSwapFeed, FeedConfig, event_topic
from .tokens import PoolInfo, TokenResolver, load_pool_info
from .uniswap_v2_swaps import V2_SWAP_TOPIC, V2_SYNC_TOPIC, UniswapV2SwapFeed
from .uniswap_v3_swaps import V3_SWAP_TOPIC, UniswapV3SwapFeed

__all__ = [
    'BaseSwapFeed',
    'FeedConfig',
    'PoolInfo',
    'TokenResolver',
    'UniswapV2SwapFeed',
    'UniswapV3SwapFeed',
    'V2_SWAP_TOPIC',
    'V2_SYNC_TOPIC',
    'V3_SWAP_TOPIC',
    'event_topic',
    'load_pool_info',
]
