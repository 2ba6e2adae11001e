"""
Configuration manager for the divergence monitor.

Combines the base, chain and monitor configuration classes into a single
easy-to-use interface.
"""

import logging
from typing import Any, Dict, Optional

from web3 import Web3

from .base import BaseConfig, ConfigError
from .chains import ChainConfig
from .monitor_config import MonitorConfig

logger = logging.getLogger(__name__)


class ConfigManager:
    """
    Centralized configuration manager that combines all configuration classes.

    This class provides easy access to all configuration settings and ensures
    that configurations are properly initialized and validated.
    """

    def __init__(self, environment: Optional[str] = None, **monitor_overrides):
        """
        Initialize the configuration manager.

        Args:
            environment: Override the environment (local, dev, staging, production)
            **monitor_overrides: Field overrides for MonitorConfig
        """
        self._environment = environment
        self._monitor_overrides = monitor_overrides
        self._base_config = None
        self._chain_config = None
        self._monitor_config = None
        self._initialize_configs()

    def _initialize_configs(self):
        """Initialize all configuration objects."""
        try:
            self._base_config = BaseConfig()
            if self._environment:
                self._base_config.ENVIRONMENT = self._environment

            self._chain_config = ChainConfig()
            self._monitor_config = MonitorConfig(**self._monitor_overrides)

            logger.info(f"Configuration initialized for environment: {self.environment}")

        except Exception as e:
            logger.error(f"Failed to initialize configuration: {e}")
            raise ConfigError(f"Configuration initialization failed: {e}")

    @property
    def environment(self) -> str:
        """Get current environment."""
        return self._base_config.ENVIRONMENT

    @property
    def base(self) -> BaseConfig:
        """Get base configuration."""
        return self._base_config

    @property
    def chains(self) -> ChainConfig:
        """Get chain configuration."""
        return self._chain_config

    @property
    def monitor(self) -> MonitorConfig:
        """Get monitor configuration."""
        return self._monitor_config

    def validate_configuration(self) -> bool:
        """
        Validate all configuration settings.

        Returns:
            True if all configurations are valid

        Raises:
            ConfigError: If any configuration is invalid
        """
        try:
            if not self.chains.get_rpc_url():
                raise ConfigError("RPC URL not configured")

            for name in ("UNISWAP_V2_PAIR_ADDRESS", "UNISWAP_V3_POOL_ADDRESS"):
                address = getattr(self.monitor, name)
                if not address or not Web3.is_address(address):
                    raise ConfigError(f"{name} is not a valid address: {address!r}")

            if self.monitor.UNISWAP_V2_PAIR_ADDRESS.lower() == self.monitor.UNISWAP_V3_POOL_ADDRESS.lower():
                raise ConfigError("V2 pair and V3 pool must be different contracts")

            logger.info("Configuration validation successful")
            return True

        except ConfigError:
            raise
        except Exception as e:
            logger.error(f"Configuration validation failed: {e}")
            raise ConfigError(f"Configuration validation failed: {e}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert all configurations to dictionary format."""
        return {
            "environment": self.environment,
            "base": self.base.to_dict() if self.base else {},
            "chains": self.chains.to_dict() if self.chains else {},
            "monitor": self.monitor.to_dict() if self.monitor else {},
        }

    def __repr__(self) -> str:
        """String representation of the configuration manager."""
        return f"ConfigManager(environment={self.environment})"


# Global configuration manager instance
_config_manager = None


def get_config(environment: Optional[str] = None, force_reload: bool = False) -> ConfigManager:
    """
    Get the global configuration manager instance.

    Args:
        environment: Override environment
        force_reload: Force reload of configuration

    Returns:
        ConfigManager instance
    """
    global _config_manager

    if _config_manager is None or force_reload:
        _config_manager = ConfigManager(environment=environment)
        _config_manager.validate_configuration()

    return _config_manager


def reload_config(environment: Optional[str] = None) -> ConfigManager:
    """
    Reload the global configuration manager.

    Args:
        environment: Override environment

    Returns:
        New ConfigManager instance
    """
    return get_config(environment=environment, force_reload=True)
