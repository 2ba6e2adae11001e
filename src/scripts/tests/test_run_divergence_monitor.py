"""Tests for the divergence monitor entry point."""
from decimal import Decimal
from unittest.mock import AsyncMock, Mock, patch

import pytest

from src.config import ConfigError
from src.feeds.tokens import PoolInfo
from src.monitor.coordinator import SourceHealth, StreamState
from src.pricing.types import Asset, ReservesSnapshot, Source
from src.scripts.run_divergence_monitor import check_same_pair, main

MODULE = "src.scripts.run_divergence_monitor"

USDC = Asset(address="0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48", symbol="USDC", decimals=6)
WETH = Asset(address="0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2", symbol="WETH", decimals=18)
DAI = Asset(address="0x6B175474E89094C44Da98b954EedeAC495271d0F", symbol="DAI", decimals=18)


def pool_info(source, token0=USDC, token1=WETH):
    return PoolInfo(
        pool_address=f"0x{source.value}",
        source=source,
        token0=token0,
        token1=token1,
        reserves=ReservesSnapshot(1, 1) if source is Source.V2 else None,
    )


@pytest.fixture
def config():
    """Mock ConfigManager with monitor settings."""
    config = Mock()
    config.chains.get_rpc_url.return_value = "http://localhost:8545"
    config.monitor.PRIMARY_TOKEN_SYMBOL = "WETH"
    config.monitor.RATIO_MODE = "trade"
    config.monitor.threshold_pct = Decimal("1")
    return config


def fake_load_pool_info(web3, address, source, resolver):
    return pool_info(source)


class TestCheckSamePair:
    """Test the pool pair consistency check."""

    def test_same_pair(self):
        """Test matching pairs pass."""
        check_same_pair(pool_info(Source.V2), pool_info(Source.V3))

    def test_different_pair(self):
        """Test mismatched pairs are a configuration error."""
        with pytest.raises(ConfigError, match="different pairs"):
            check_same_pair(pool_info(Source.V2), pool_info(Source.V3, token0=DAI))


class TestMain:
    """Test the main() exit codes."""

    @pytest.mark.asyncio
    async def test_config_error(self):
        """Test configuration errors exit with 1."""
        with patch(f"{MODULE}.get_config", side_effect=ConfigError("bad pool address")):
            assert await main() == 1

    @pytest.mark.asyncio
    async def test_clean_shutdown(self, config, capsys):
        """Test a run whose streams end normally exits with 0."""
        coordinator = Mock()
        coordinator.run = AsyncMock()
        coordinator.stop = AsyncMock()
        coordinator.health.return_value = {
            Source.V2: SourceHealth(Source.V2, state=StreamState.STOPPED),
            Source.V3: SourceHealth(Source.V3, state=StreamState.STOPPED),
        }

        with patch(f"{MODULE}.get_config", return_value=config), \
             patch(f"{MODULE}.Web3"), \
             patch(f"{MODULE}.load_pool_info", side_effect=fake_load_pool_info), \
             patch(f"{MODULE}.build_coordinator", return_value=coordinator):
            assert await main() == 0

        coordinator.run.assert_awaited_once()
        coordinator.stop.assert_awaited_once()
        assert "Uniswap V2 pool" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_failed_stream(self, config):
        """Test a source that exhausted its reconnects exits with 1."""
        coordinator = Mock()
        coordinator.run = AsyncMock()
        coordinator.stop = AsyncMock()
        coordinator.health.return_value = {
            Source.V2: SourceHealth(Source.V2, state=StreamState.STOPPED),
            Source.V3: SourceHealth(Source.V3, state=StreamState.FAILED),
        }

        with patch(f"{MODULE}.get_config", return_value=config), \
             patch(f"{MODULE}.Web3"), \
             patch(f"{MODULE}.load_pool_info", side_effect=fake_load_pool_info), \
             patch(f"{MODULE}.build_coordinator", return_value=coordinator):
            assert await main() == 1

    @pytest.mark.asyncio
    async def test_mismatched_pools(self, config):
        """Test pools on different pairs never start streaming."""
        def load(web3, address, source, resolver):
            return pool_info(source, token0=DAI if source is Source.V3 else USDC)

        with patch(f"{MODULE}.get_config", return_value=config), \
             patch(f"{MODULE}.Web3"), \
             patch(f"{MODULE}.load_pool_info", side_effect=load), \
             patch(f"{MODULE}.build_coordinator") as build:
            assert await main() == 1

        build.assert_not_called()
