"""Test configuration for pricing."""
import pytest

from src.pricing.types import Asset


@pytest.fixture
def usdc():
    """USDC-like asset (6 decimals)."""
    return Asset(address="0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48", symbol="USDC", decimals=6)


@pytest.fixture
def weth():
    """WETH-like asset (18 decimals)."""
    return Asset(address="0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2", symbol="WETH", decimals=18)
