"""Test configuration for the monitor."""
from datetime import datetime, timezone

import pytest

from src.pricing.types import Asset, Source, SwapEvent

BLOCK_TIME = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class ScriptedFeed:
    """
    Feed double that replays one script entry per stream() call.

    Each entry is (events, error): the events are yielded, then the error (if
    any) is raised. Once the script is exhausted the stream closes.
    """

    def __init__(self, source, connections):
        self.source = source
        self.pool_address = f"0x{source.value}"
        self.connections = list(connections)
        self.calls = 0

    async def stream(self):
        self.calls += 1
        if not self.connections:
            return
        events, error = self.connections.pop(0)
        for event in events:
            yield event
        if error is not None:
            raise error


def make_event(source, amount0, amount1, **kwargs):
    """Build a SwapEvent with a fixed block time."""
    return SwapEvent(source=source, amount0_delta=amount0, amount1_delta=amount1, timestamp=BLOCK_TIME, **kwargs)


@pytest.fixture
def usdc():
    """USDC-like asset0 (6 decimals)."""
    return Asset(address="0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48", symbol="USDC", decimals=6)


@pytest.fixture
def weth():
    """WETH-like asset1 (18 decimals)."""
    return Asset(address="0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2", symbol="WETH", decimals=18)


@pytest.fixture
def v2_sell_usdc():
    """V2 swap: 2000 USDC in, 1 WETH out."""
    return make_event(Source.V2, 2000 * 10**6, -1 * 10**18, block_number=100, tx_hash="0xaa")


@pytest.fixture
def v3_buy_usdc():
    """V3 swap: 1 WETH in, 2050 USDC out."""
    return make_event(Source.V3, -2050 * 10**6, 1 * 10**18, block_number=101, tx_hash="0xbb")


@pytest.fixture
def scripted_feed():
    """Factory for ScriptedFeed doubles."""
    return ScriptedFeed


@pytest.fixture
def event_factory():
    """Factory for SwapEvents."""
    return make_event
