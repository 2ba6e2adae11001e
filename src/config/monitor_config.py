"""
Divergence monitor configuration.

Pool identities, the opportunity threshold and the per-source stream
supervision settings.
"""

from dataclasses import dataclass
from decimal import Decimal

from .base import BaseConfig, ConfigError

RATIO_MODES = ("trade", "pool")


@dataclass
class MonitorConfig(BaseConfig):
    """Settings for the V2/V3 pool pair being compared."""

    # Pools trading the same pair (token0/token1 ordering is identical for both)
    UNISWAP_V2_PAIR_ADDRESS: str = BaseConfig.get_env(
        "UNISWAP_V2_PAIR_ADDRESS", "0xB4e16d0168e52d35CaCD2c6185b44281Ec28C9Dc"
    )  # USDC/WETH
    UNISWAP_V3_POOL_ADDRESS: str = BaseConfig.get_env(
        "UNISWAP_V3_POOL_ADDRESS", "0x88e6A0c2dDD26FEEb64F039a2c41296FcB3f5640"
    )  # USDC/WETH 0.05%
    PRIMARY_TOKEN_SYMBOL: str = BaseConfig.get_env("PRIMARY_TOKEN_SYMBOL", "WETH")

    # Opportunity threshold in percent
    PRICE_DIFFERENCE: float = BaseConfig.get_env_float("PRICE_DIFFERENCE", 1.0)

    # "trade": ratios from swap amounts, "pool": ratios from reserves / sqrtPriceX96
    RATIO_MODE: str = BaseConfig.get_env("RATIO_MODE", "trade")

    # Log polling
    POLL_INTERVAL_SECONDS: float = BaseConfig.get_env_float("POLL_INTERVAL_SECONDS", 2.0)

    # Per-source event queue, oldest events are dropped on overflow
    QUEUE_MAX_SIZE: int = BaseConfig.get_env_int("QUEUE_MAX_SIZE", 256)

    # Per-source reconnect supervision
    RECONNECT_BASE_DELAY: float = BaseConfig.get_env_float("RECONNECT_BASE_DELAY", 1.0)
    RECONNECT_MAX_DELAY: float = BaseConfig.get_env_float("RECONNECT_MAX_DELAY", 60.0)
    RECONNECT_MAX_ATTEMPTS: int = BaseConfig.get_env_int("RECONNECT_MAX_ATTEMPTS", 10)

    def _validate_config(self):
        """Validate monitor settings on top of the base checks."""
        super()._validate_config()
        if self.RATIO_MODE not in RATIO_MODES:
            raise ConfigError(
                f"Invalid ratio mode: {self.RATIO_MODE} (expected one of {RATIO_MODES})"
            )
        if self.PRICE_DIFFERENCE < 0:
            raise ConfigError("PRICE_DIFFERENCE must be non-negative")
        if self.QUEUE_MAX_SIZE < 1:
            raise ConfigError("QUEUE_MAX_SIZE must be at least 1")
        if self.RECONNECT_MAX_ATTEMPTS < 0:
            raise ConfigError("RECONNECT_MAX_ATTEMPTS must be non-negative (0 = unlimited)")

    @property
    def threshold_pct(self) -> Decimal:
        """Opportunity threshold as an exact decimal."""
        return Decimal(str(self.PRICE_DIFFERENCE))
