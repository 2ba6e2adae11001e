"""
Chain configuration for the divergence monitor.

Only a single chain is monitored; the pools being compared must live on it.
"""

from dataclasses import dataclass
from typing import Dict

from .base import BaseConfig


@dataclass
class ChainConfig(BaseConfig):
    """Chain connection settings."""

    CHAIN_NAME: str = BaseConfig.get_env("CHAIN_NAME", "ethereum")

    # HTTP(S) JSON-RPC endpoint used for eth_getLogs polling and metadata calls
    ETHEREUM_RPC_URL: str = BaseConfig.get_env(
        "ETHEREUM_RPC_URL", "http://localhost:8545"
    )
    ETHEREUM_CHAIN_ID: int = 1

    BLOCK_TIME_SECONDS: float = 12.0  # ~12s block time
    BLOCKS_PER_MINUTE_ETHEREUM: int = 5

    # Upper bound on the block span of a single eth_getLogs request
    MAX_BLOCKS_PER_REQUEST: int = BaseConfig.get_env_int("MAX_BLOCKS_PER_REQUEST", 500)

    @property
    def chain_settings(self) -> Dict[str, object]:
        """Get settings for the monitored chain."""
        return {
            "chain_name": self.CHAIN_NAME,
            "chain_id": self.ETHEREUM_CHAIN_ID,
            "rpc_url": self.ETHEREUM_RPC_URL,
            "blocks_per_minute": self.BLOCKS_PER_MINUTE_ETHEREUM,
            "explorer_url": "https://etherscan.io",
        }

    def get_rpc_url(self) -> str:
        """Get RPC URL for the monitored chain."""
        return self.ETHEREUM_RPC_URL
