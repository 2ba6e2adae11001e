"""
Configuration management for the divergence monitor.

Use get_config() to access all configuration settings.

Example:
    from src.config import get_config

    config = get_config()

    # Access chain settings
    rpc_url = config.chains.get_rpc_url()

    # Access monitor settings
    v2_pair = config.monitor.UNISWAP_V2_PAIR_ADDRESS
    threshold = config.monitor.threshold_pct
"""

from .base import BaseConfig, ConfigError
from .chains import ChainConfig
from .manager import ConfigManager, get_config, reload_config
from .monitor_config import RATIO_MODES, MonitorConfig

__all__ = [
    "BaseConfig",
    "ConfigError",
    "ChainConfig",
    "MonitorConfig",
    "RATIO_MODES",
    "ConfigManager",
    "get_config",
    "reload_config",
]
